"""Spreadsheet import/export for students, commissions and activity logs."""

from __future__ import annotations

from datetime import date
import logging

from flask import current_app

from extensions import db
from models import ActivityLog, Commission, Course, Delegate, Schedule
from services.errors import ValidationError
from services.registration_service import (
    RegisterStudentRequest, create_student_record, existing_names_map, list_students,
)
from utils.arabic import normalize_arabic, normalized_full_name
from utils.events import log_activity
from utils.excel import make_xlsx_bytes
from utils.importer import pick, read_excel_rows, to_str

logger = logging.getLogger(__name__)


# Localized import headers -> request fields
IMPORT_HEADERS = {
    "first_name": ("الاسم_الأول", "firstName"),
    "second_name": ("الاسم_الثاني", "secondName"),
    "third_name": ("الاسم_الثالث", "thirdName"),
    "last_name": ("اللقب", "lastName"),
    "phone": ("الهاتف", "phone"),
    "course": ("الدورة", "course"),
    "schedule": ("الوقت", "schedule"),
    "delegate_name": ("المندوب", "delegateName"),
}

STUDENT_EXPORT_HEADERS = [
    "الرقم", "الاسم الأول", "الاسم الثاني", "الاسم الثالث", "اللقب",
    "الاسم الرباعي", "الهاتف", "الدورة", "وقت الدوام", "المندوب", "تاريخ التسجيل",
]

COMMISSION_EXPORT_HEADERS = [
    "الرقم", "اسم الطالب", "المندوب", "الدورة", "المبلغ",
    "حالة العمولة", "حالة الطالب", "تاريخ الإنشاء", "تاريخ التأكيد", "تاريخ الدفع",
]

LOG_EXPORT_HEADERS = ["الرقم", "المستخدم", "الإجراء", "الجدول", "الوصف", "التاريخ"]


def _delegate_name_map():
    return {
        normalize_arabic((d.full_name or "").lower()): d.id
        for d in Delegate.query.order_by(Delegate.id.asc()).all()
    }


def _delegate_names():
    return {d.id: d.full_name for d in Delegate.query.all()}


# =========================
# Import
# =========================
def import_students(file_storage, actor=None):
    """Import students from an .xlsx upload.

    Returns {"importedCount": n, "skippedCount": m}.
    """
    max_rows = current_app.config.get("IMPORT_MAX_ROWS", 10000)
    try:
        _title, rows, _headers = read_excel_rows(file_storage, max_rows=max_rows)
    except Exception as e:
        logger.warning(f"Student import: unreadable file ({e})")
        raise ValidationError(
            "حدث خطأ أثناء استيراد الملف. يرجى التأكد من تنسيق الملف.",
            code="invalid_file",
        ) from e

    existing = existing_names_map()
    delegates = _delegate_name_map()

    imported = 0
    skipped = 0

    try:
        for row in rows:
            data = {field: to_str(pick(row, *headers)) for field, headers in IMPORT_HEADERS.items()}

            name_key = normalized_full_name(
                data["first_name"] or "", data["second_name"] or "",
                data["third_name"] or "", data["last_name"] or "",
            )
            if name_key in existing:
                skipped += 1
                continue

            delegate_id = delegates.get(normalize_arabic((data["delegate_name"] or "").lower()))
            course = Course.parse(data["course"])
            schedule = Schedule.parse(data["schedule"])
            if not delegate_id or course is None or schedule is None:
                skipped += 1
                continue

            req = RegisterStudentRequest(
                first_name=data["first_name"] or "",
                second_name=data["second_name"] or "",
                third_name=data["third_name"] or "",
                last_name=data["last_name"] or "",
                phone=data["phone"] or "",
                course=course.value,
                schedule=schedule.value,
                delegate_id=delegate_id,
            )
            student = create_student_record(req, course, schedule, actor=actor)
            existing[name_key] = student
            imported += 1

        log_activity(
            actor,
            "import",
            "students",
            f"استيراد طلاب من ملف: تم استيراد {imported} وتخطي {skipped}",
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Student import failed")
        raise

    logger.info(f"Student import done | imported={imported} | skipped={skipped}")
    return {"importedCount": imported, "skippedCount": skipped}


# =========================
# Export
# =========================
def export_students(delegate_id=None, search=None, actor=None):
    """Return (filename, xlsx bytes) for the filtered student table."""
    names = _delegate_names()
    students = list_students(delegate_id=delegate_id, search=search)

    rows = [
        [
            s.id, s.first_name, s.second_name, s.third_name, s.last_name,
            s.full_name, s.phone, s.course, s.schedule,
            names.get(s.delegate_id, "غير معروف"),
            s.registration_date.isoformat(),
        ]
        for s in students
    ]
    content = make_xlsx_bytes("سجل الطلاب", STUDENT_EXPORT_HEADERS, rows)

    log_activity(actor, "export", "students", f"تصدير {len(rows)} طالب إلى Excel")
    db.session.commit()
    return f"students_{date.today().isoformat()}.xlsx", content


def export_commissions(delegate_id=None, actor=None):
    names = _delegate_names()
    q = Commission.query
    if delegate_id:
        q = q.filter(Commission.delegate_id == int(delegate_id))
    commissions = q.order_by(Commission.id.desc()).all()

    rows = [
        [
            c.id, c.student_name, names.get(c.delegate_id, "غير معروف"), c.course, c.amount,
            c.status, c.student_status,
            c.created_date.isoformat() if c.created_date else "",
            c.confirmed_date.isoformat() if c.confirmed_date else "",
            c.paid_date.isoformat() if c.paid_date else "",
        ]
        for c in commissions
    ]
    content = make_xlsx_bytes("سجل العمولات", COMMISSION_EXPORT_HEADERS, rows)

    log_activity(actor, "export", "commissions", f"تصدير {len(rows)} عمولة إلى Excel")
    db.session.commit()
    return f"commissions_{date.today().isoformat()}.xlsx", content


def export_activity_logs(logs, actor=None):
    rows = [
        [
            log.id, log.user_name, log.action_type, log.target, log.description,
            log.timestamp.strftime("%Y-%m-%d %H:%M") if log.timestamp else "",
        ]
        for log in logs
    ]
    content = make_xlsx_bytes("سجل النشاطات", LOG_EXPORT_HEADERS, rows)

    log_activity(actor, "export", "activityLogs", f"تصدير {len(rows)} نشاط إلى Excel")
    db.session.commit()
    return f"activity_logs_{date.today().isoformat()}.xlsx", content


def query_activity_logs(search=None, action_type=None, user_id=None):
    q = ActivityLog.query
    if action_type:
        q = q.filter(ActivityLog.action_type == action_type)
    if user_id:
        q = q.filter(ActivityLog.user_id == int(user_id))
    if search:
        for word in search.strip().split():
            like = f"%{word}%"
            q = q.filter(
                ActivityLog.user_name.ilike(like)
                | ActivityLog.description.ilike(like)
                | ActivityLog.target.ilike(like)
            )
    return q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
