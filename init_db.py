"""
init_db.py
----------
Create the tables and seed the demo data (users, delegates, bank accounts,
students, commissions, courses).
DEVELOPMENT USE ONLY

    python init_db.py            # seed an empty database
    python init_db.py --reset    # drop everything first
"""

import sys

from extensions import db
from models import User
from services import storage


DEMO_PASSWORD = "123456"

DEMO_USERS = [
    # Admins & Managers
    {"id": 1, "fullName": "عبدالله صالح الحمد الحداد", "username": "admin", "role": "admin", "createdDate": "2024-01-01"},
    {"id": 2, "fullName": "محمد صالح الحداد", "username": "manager", "role": "manager", "createdDate": "2024-01-01"},
    # Delegates
    {"id": 3, "fullName": "عبدالملك صالح احمد الحداد", "username": "abdulmalek", "role": "delegate", "createdDate": "2024-01-10"},
    {"id": 4, "fullName": "هدية عوضة", "username": "hadiya", "role": "delegate", "createdDate": "2024-02-15", "referredById": 3},
    {"id": 5, "fullName": "محمد الحجري", "username": "mhajri", "role": "delegate", "createdDate": "2024-02-20", "referredById": 3},
    {"id": 6, "fullName": "عمار الحداد", "username": "ammar", "role": "delegate", "createdDate": "2024-03-05", "referredById": 4},
    {"id": 7, "fullName": "نجلاء نصار", "username": "najla", "role": "delegate", "createdDate": "2024-03-10", "referredById": 5},
]

DEMO_DELEGATES = [
    {"id": 1, "userId": 1, "fullName": "عبدالله صالح الحمد الحداد", "phone": "0501111111", "students": 0, "email": "admin@example.com", "role": "admin"},
    {"id": 2, "userId": 2, "fullName": "محمد صالح الحداد", "phone": "0502222222", "students": 0, "email": "manager@example.com", "role": "manager"},
    {"id": 3, "userId": 3, "fullName": "عبدالملك صالح احمد الحداد", "phone": "0503333333", "students": 3, "email": "abdulmalek@example.com", "role": "delegate"},
    {"id": 4, "userId": 4, "fullName": "هدية عوضة", "phone": "0504444444", "students": 0, "email": "hadiya@example.com", "role": "delegate"},
    {"id": 5, "userId": 5, "fullName": "محمد الحجري", "phone": "0505555555", "students": 0, "email": "mhajri@example.com", "role": "delegate"},
    {"id": 6, "userId": 6, "fullName": "عمار الحداد", "phone": "0506666666", "students": 0, "email": "ammar@example.com", "role": "delegate"},
    {"id": 7, "userId": 7, "fullName": "نجلاء نصار", "phone": "0507777777", "students": 0, "email": "najla@example.com", "role": "delegate"},
]

DEMO_BANK_ACCOUNTS = [
    {"id": 1, "delegateId": 3, "bankName": "بنك الراجحي", "accountHolder": "ABDULMALEK SALEH A ALHADDAD", "bankAccount": "SA0380000000608010167519"},
    {"id": 2, "delegateId": 4, "bankName": "البنك الأهلي", "accountHolder": "HADIYA AWADH", "bankAccount": "SA0310000000123456789012"},
    {"id": 3, "delegateId": 5, "bankName": "بنك الرياض", "accountHolder": "MOHAMMED ALHAJRI", "bankAccount": "SA9320000001234567891234"},
]

DEMO_STUDENTS = [
    {"id": 1, "firstName": "أحمد", "secondName": "علي", "thirdName": "محمد", "lastName": "الشهري", "phone": "0511111111", "course": "حاسوب", "schedule": "مسائي", "delegateId": 3, "registrationDate": "2024-07-10"},
    {"id": 2, "firstName": "فاطمة", "secondName": "عبدالله", "thirdName": "حسن", "lastName": "الغامدي", "phone": "0511111112", "course": "انجليزي", "schedule": "صباحي", "delegateId": 3, "registrationDate": "2024-07-12"},
    {"id": 3, "firstName": "خالد", "secondName": "سعيد", "thirdName": "عمر", "lastName": "القحطاني", "phone": "0511111113", "course": "صيانة", "schedule": "صباحي أو مسائي", "delegateId": 3, "registrationDate": "2024-07-15"},
]

DEMO_COMMISSIONS = [
    {"id": 1, "studentId": 1, "delegateId": 3, "studentName": "أحمد علي محمد الشهري", "course": "حاسوب", "amount": 500, "status": "مدفوعة", "studentStatus": "مكتمل", "createdDate": "2024-07-10", "paidDate": "2024-07-20"},
    {"id": 2, "studentId": 2, "delegateId": 3, "studentName": "فاطمة عبدالله حسن الغامدي", "course": "انجليزي", "amount": 500, "status": "مؤكدة", "studentStatus": "مستمر", "createdDate": "2024-07-12", "confirmedDate": "2024-07-18"},
    {"id": 3, "studentId": 3, "delegateId": 3, "studentName": "خالد سعيد عمر القحطاني", "course": "صيانة", "amount": 500, "status": "معلقة", "studentStatus": "مدفوع الرسوم", "createdDate": "2024-07-15"},
]

DEMO_COURSES = [
    {"id": 1, "name": "دورة الحاسوب المتقدم", "description": "دورة شاملة في أساسيات الحاسوب والأوفيس", "category": "حاسوب", "duration": 4, "price": 1000, "current_students": 18, "max_students": 25, "time_slot": "صباحي", "start_date": "2024-01-10", "end_date": "2024-02-20", "enrollment_open": True, "status": "active"},
    {"id": 2, "name": "دورة اللغة الإنجليزية", "description": "مستويات متعددة في اللغة الإنجليزية", "category": "لغات", "duration": 6, "price": 1200, "current_students": 22, "max_students": 22, "time_slot": "مسائي", "start_date": "2024-01-05", "end_date": "2024-02-15", "enrollment_open": False, "status": "active"},
    {"id": 3, "name": "دورة المحاسبة", "description": "أساسيات المحاسبة المالية والإدارية", "category": "إدارة", "duration": 5, "price": 1500, "current_students": 12, "max_students": 20, "time_slot": "صباحي", "start_date": "2024-01-25", "end_date": "2024-03-10", "enrollment_open": True, "status": "active"},
]


def seed_demo_data(password=DEMO_PASSWORD):
    """Load the demo rows. Returns False (and writes nothing) if users already exist."""
    if User.query.first() is not None:
        return False

    storage.set_collection("app_users", [dict(u, password=password) for u in DEMO_USERS])
    storage.set_collection("app_delegates", DEMO_DELEGATES)
    storage.set_collection("app_bankAccounts", DEMO_BANK_ACCOUNTS)
    storage.set_collection("app_students", DEMO_STUDENTS)
    storage.set_collection("app_commissions", DEMO_COMMISSIONS)
    storage.set_collection("app_courses", DEMO_COURSES)
    db.session.commit()
    return True


def main(argv=None):
    from app import create_app

    argv = sys.argv[1:] if argv is None else argv
    app = create_app()

    with app.app_context():
        if "--reset" in argv:
            db.drop_all()
            print("🗑️ Dropped all tables")
        db.create_all()

        if seed_demo_data():
            print(f"✅ Demo data seeded (password for every user: {DEMO_PASSWORD})")
        else:
            print("ℹ Users already exist, nothing seeded")


if __name__ == "__main__":
    main()
