from datetime import datetime, date, timezone
import enum

from extensions import db
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin


# ======================
# Helpers
# ======================
def _iso(value):
    if value is None:
        return None
    return value.isoformat()


def utcnow():
    """Naive UTC timestamp, the form the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value):
    """Accept date / datetime / ISO string (YYYY-MM-DD[...]) and return a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def parse_datetime(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1]
    return datetime.fromisoformat(s)


# ======================
# Choices (stored by Arabic value)
# ======================
class Choice(str, enum.Enum):

    @classmethod
    def parse(cls, value):
        """Resolve a member by Arabic value or English name; None if unknown."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.lower() == member.name.lower():
                return member
        return None

    @classmethod
    def values(cls):
        return [m.value for m in cls]


class Course(Choice):
    English = "انجليزي"
    Computer = "حاسوب"
    Maintenance = "صيانة"
    Accounting = "محاسبة"
    Reading = "قراءة"
    Graphics = "جرافيكس"
    Custom = "دورة مخصصة"


class Schedule(Choice):
    Evening = "مسائي"
    Morning = "صباحي"
    Both = "صباحي أو مسائي"


class CommissionStatus(Choice):
    Pending = "معلقة"
    Confirmed = "مؤكدة"
    Paid = "مدفوعة"
    Cancelled = "ملغاة"


class StudentStatus(Choice):
    Registered = "مسجل"
    FeesPaid = "مدفوع الرسوم"
    Studying = "مستمر"
    OnHold = "متوقف"
    Dropped = "منقطع"
    Completed = "مكتمل"


ROLES = ("admin", "manager", "delegate")

ROLE_LABELS_AR = {
    "admin": "مدير نظام",
    "manager": "مدير تسجيل",
    "delegate": "مندوب",
}

COURSE_STATUSES = ("upcoming", "active", "completed")

NOTIFICATION_TYPES = ("success", "info", "warning", "danger")

ACTION_TYPES = (
    "add", "edit", "delete", "login", "logout",
    "backup", "restore", "export", "import",
)


# ======================
# Users
# ======================
class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    username = db.Column(db.String(100), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), index=True, nullable=False, default="delegate")
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_date = db.Column(db.Date, default=date.today, nullable=False)

    # Recruiter (who registered this user)
    referred_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    referred_by = db.relationship("User", remote_side=[id], backref=db.backref("recruits", lazy="dynamic"))

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not password:
            return False
        return check_password_hash(self.password_hash, password)

    def has_role(self, *roles):
        role = (self.role or "").strip().lower()
        return role in {str(r).strip().lower() for r in roles}

    @property
    def is_manager_or_admin(self):
        return self.has_role("admin", "manager")

    def __repr__(self):
        return f"<User {self.username}>"

    def to_dict(self, include_secret=False):
        data = {
            "id": self.id,
            "fullName": self.full_name,
            "username": self.username,
            "role": self.role,
            "isActive": bool(self.is_active),
            "createdDate": _iso(self.created_date),
            "referredById": self.referred_by_id,
        }
        if include_secret:
            data["passwordHash"] = self.password_hash
        return data

    @classmethod
    def from_dict(cls, data):
        user = cls(
            id=data.get("id"),
            full_name=data.get("fullName") or "",
            username=data.get("username") or "",
            role=data.get("role") or "delegate",
            is_active=bool(data.get("isActive", True)),
            created_date=parse_date(data.get("createdDate")) or date.today(),
            referred_by_id=data.get("referredById"),
        )
        if data.get("passwordHash"):
            user.password_hash = data["passwordHash"]
        else:
            # Snapshots from the browser build carry plain passwords.
            user.set_password(str(data.get("password") or ""))
        return user


# ======================
# Delegate profiles
# ======================
class Delegate(db.Model):
    __tablename__ = "delegates"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    full_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # Cached student count: only mutated via increment/decrement
    students = db.Column(db.Integer, default=0, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    role = db.Column(db.String(20), nullable=False, default="delegate")

    user = db.relationship("User", backref=db.backref("delegate_profile", uselist=False))

    def __repr__(self):
        return f"<Delegate {self.full_name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "fullName": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "students": self.students,
            "isActive": bool(self.is_active),
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            user_id=data.get("userId"),
            full_name=data.get("fullName") or "",
            phone=data.get("phone"),
            email=data.get("email"),
            students=int(data.get("students") or 0),
            is_active=bool(data.get("isActive", True)),
            role=data.get("role") or "delegate",
        )


class BankAccount(db.Model):
    __tablename__ = "bank_accounts"

    id = db.Column(db.Integer, primary_key=True)
    delegate_id = db.Column(db.Integer, db.ForeignKey("delegates.id"), nullable=False, unique=True, index=True)
    bank_name = db.Column(db.String(200), nullable=False)
    account_holder = db.Column(db.String(200), nullable=False)
    # Account number or IBAN
    bank_account = db.Column(db.String(100), nullable=False)
    iban = db.Column(db.String(100), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "delegateId": self.delegate_id,
            "bankName": self.bank_name,
            "accountHolder": self.account_holder,
            "bankAccount": self.bank_account,
            "iban": self.iban,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            delegate_id=data.get("delegateId"),
            bank_name=data.get("bankName") or "",
            account_holder=data.get("accountHolder") or "",
            bank_account=data.get("bankAccount") or "",
            iban=data.get("iban"),
        )


# ======================
# Students & Commissions
# ======================
class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    second_name = db.Column(db.String(100), nullable=False, default="")
    third_name = db.Column(db.String(100), nullable=False, default="")
    last_name = db.Column(db.String(100), nullable=False, default="")
    phone = db.Column(db.String(50), nullable=False, default="")
    course = db.Column(db.String(50), nullable=False)
    schedule = db.Column(db.String(50), nullable=False)
    delegate_id = db.Column(db.Integer, db.ForeignKey("delegates.id"), nullable=False, index=True)

    # Date of record, never changed after creation
    registration_date = db.Column(db.Date, nullable=False, default=date.today, index=True)

    delegate = db.relationship("Delegate", lazy="joined")

    @property
    def full_name(self):
        return f"{self.first_name} {self.second_name} {self.third_name} {self.last_name}"

    @property
    def short_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Student {self.id} {self.short_name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "firstName": self.first_name,
            "secondName": self.second_name,
            "thirdName": self.third_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "course": self.course,
            "schedule": self.schedule,
            "delegateId": self.delegate_id,
            "registrationDate": _iso(self.registration_date),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            first_name=data.get("firstName") or "",
            second_name=data.get("secondName") or "",
            third_name=data.get("thirdName") or "",
            last_name=data.get("lastName") or "",
            phone=str(data.get("phone") or ""),
            course=data.get("course"),
            schedule=data.get("schedule"),
            delegate_id=data.get("delegateId"),
            registration_date=parse_date(data.get("registrationDate")) or date.today(),
        )


class Commission(db.Model):
    __tablename__ = "commissions"

    id = db.Column(db.Integer, primary_key=True)
    # No FK: a commission may outlive edits to its student row
    student_id = db.Column(db.Integer, nullable=False, index=True)
    delegate_id = db.Column(db.Integer, nullable=False, index=True)
    student_name = db.Column(db.String(400), nullable=False)
    course = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Integer, nullable=False, default=500)

    status = db.Column(db.String(30), nullable=False, default=CommissionStatus.Pending.value, index=True)
    student_status = db.Column(db.String(30), nullable=False, default=StudentStatus.Registered.value)

    created_date = db.Column(db.Date, nullable=False, default=date.today)
    confirmed_date = db.Column(db.Date, nullable=True)
    paid_date = db.Column(db.Date, nullable=True)

    def __repr__(self):
        return f"<Commission {self.id} {self.status}>"

    def to_dict(self):
        return {
            "id": self.id,
            "studentId": self.student_id,
            "delegateId": self.delegate_id,
            "studentName": self.student_name,
            "course": self.course,
            "amount": self.amount,
            "status": self.status,
            "studentStatus": self.student_status,
            "createdDate": _iso(self.created_date),
            "confirmedDate": _iso(self.confirmed_date),
            "paidDate": _iso(self.paid_date),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            student_id=data.get("studentId"),
            delegate_id=data.get("delegateId"),
            student_name=data.get("studentName") or "",
            course=data.get("course"),
            amount=int(data.get("amount") or 0),
            status=data.get("status") or CommissionStatus.Pending.value,
            student_status=data.get("studentStatus") or StudentStatus.Registered.value,
            created_date=parse_date(data.get("createdDate")) or date.today(),
            confirmed_date=parse_date(data.get("confirmedDate")),
            paid_date=parse_date(data.get("paidDate")),
        )


# ======================
# Courses
# ======================
class CourseObject(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=True)
    duration = db.Column(db.Integer, nullable=False, default=0)  # weeks
    price = db.Column(db.Float, nullable=False, default=0)
    max_students = db.Column(db.Integer, nullable=False, default=0)
    current_students = db.Column(db.Integer, nullable=False, default=0)
    time_slot = db.Column(db.String(50), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    enrollment_open = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(20), nullable=False, default="upcoming", index=True)

    @property
    def is_full(self):
        return self.current_students >= self.max_students

    def __repr__(self):
        return f"<CourseObject {self.name}>"

    def to_dict(self):
        price = self.price
        if price is not None and float(price).is_integer():
            price = int(price)
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "duration": self.duration,
            "price": price,
            "max_students": self.max_students,
            "current_students": self.current_students,
            "time_slot": self.time_slot,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "enrollment_open": bool(self.enrollment_open),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            description=data.get("description"),
            category=data.get("category"),
            duration=int(data.get("duration") or 0),
            price=float(data.get("price") or 0),
            max_students=int(data.get("max_students") or 0),
            current_students=int(data.get("current_students") or 0),
            time_slot=data.get("time_slot"),
            start_date=parse_date(data.get("start_date")),
            end_date=parse_date(data.get("end_date")),
            enrollment_open=bool(data.get("enrollment_open", True)),
            status=data.get("status") or "upcoming",
        )


# ======================
# Notifications
# ======================
class Notification(db.Model):
    # no __tablename__ => default is "notification"
    __table_args__ = (
        db.Index("ix_notification_user_read", "user_id", "is_read"),
        db.Index("ix_notification_created", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # NULL => broadcast to every viewer
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.String(1000), nullable=False)
    type = db.Column(db.String(20), default="info", nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    related_module = db.Column(db.String(50), nullable=True)
    related_id = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "isRead": bool(self.is_read),
            "createdAt": _iso(self.created_at),
            "relatedModule": self.related_module,
            "relatedId": self.related_id,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            user_id=data.get("userId"),
            title=data.get("title") or "",
            message=data.get("message") or "",
            type=data.get("type") or "info",
            is_read=bool(data.get("isRead", False)),
            created_at=parse_datetime(data.get("createdAt")) or utcnow(),
            related_module=data.get("relatedModule"),
            related_id=data.get("relatedId"),
        )


# ======================
# Activity Log (append-only)
# ======================
class ActivityLog(db.Model):
    __tablename__ = "activity_log"

    id = db.Column(db.Integer, primary_key=True)

    # 0 / NULL => System
    user_id = db.Column(db.Integer, nullable=True, index=True)
    user_name = db.Column(db.String(200), nullable=False, default="System")

    action_type = db.Column(db.String(20), nullable=False, index=True)
    target = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)

    timestamp = db.Column(
        db.DateTime,
        default=utcnow,
        nullable=False,
        index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id or 0,
            "userName": self.user_name,
            "actionType": self.action_type,
            "target": self.target,
            "description": self.description,
            "timestamp": _iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            user_id=data.get("userId") or None,
            user_name=data.get("userName") or "System",
            action_type=data.get("actionType") or "edit",
            target=data.get("target") or "",
            description=data.get("description"),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
        )


# ======================
# Key/Value storage
# ======================
class StorageEntry(db.Model):
    __tablename__ = "storage_entry"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    key = db.Column(db.String(200), unique=True, nullable=False, index=True)
    # JSON-encoded payload
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<StorageEntry {self.key}>"
