"""Student registration workflow.

Registering a student is one logical operation: the student row, its paired
commission, the delegate counter, the activity log entry and the broadcast
notification are all written in the same session and committed together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import Dict, Optional

from flask import current_app

from extensions import db
from models import (
    Commission, CommissionStatus, Course, Delegate, Schedule, Student, StudentStatus,
)
from services.account_service import (
    decrement_student_count, increment_student_count, next_id,
)
from services.errors import DuplicateStudentError, NotFoundError, ValidationError
from utils.arabic import join_name_parts, normalize_arabic, normalized_full_name
from utils.events import emit_event, log_activity

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_AMOUNT = 500


@dataclass
class RegisterStudentRequest:
    first_name: str
    second_name: str
    third_name: str
    last_name: str
    phone: str
    course: str
    schedule: str
    delegate_id: Optional[int]

    @classmethod
    def from_mapping(cls, data, delegate_lock_id=None):
        """Build from a JSON/form payload (camelCase keys).

        ``delegate_lock_id`` forces the delegate (delegate users register for themselves).
        """
        data = data or {}
        delegate_id = delegate_lock_id or data.get("delegateId")
        try:
            delegate_id = int(delegate_id) if delegate_id not in (None, "") else None
        except (TypeError, ValueError):
            delegate_id = None
        return cls(
            first_name=(data.get("firstName") or "").strip(),
            second_name=(data.get("secondName") or "").strip(),
            third_name=(data.get("thirdName") or "").strip(),
            last_name=(data.get("lastName") or "").strip(),
            phone=str(data.get("phone") or "").strip(),
            course=data.get("course"),
            schedule=data.get("schedule"),
            delegate_id=delegate_id,
        )

    @property
    def full_name(self):
        return join_name_parts([self.first_name, self.second_name, self.third_name, self.last_name])


def _commission_amount():
    try:
        return int(current_app.config.get("COMMISSION_AMOUNT", DEFAULT_COMMISSION_AMOUNT))
    except RuntimeError:
        return DEFAULT_COMMISSION_AMOUNT


def existing_names_map() -> Dict[str, Student]:
    """Normalized four-part name -> first student carrying it."""
    names = {}
    for s in Student.query.order_by(Student.id.asc()).all():
        key = normalize_arabic(s.full_name)
        if key not in names:
            names[key] = s
    return names


def find_duplicate(first_name, second_name, third_name, last_name) -> Optional[Student]:
    target = normalized_full_name(first_name, second_name, third_name, last_name)
    return existing_names_map().get(target)


def _resolve_choices(req: RegisterStudentRequest):
    course = Course.parse(req.course)
    schedule = Schedule.parse(req.schedule)
    if course is None:
        raise ValidationError("الرجاء اختيار دورة صحيحة!", code="invalid_choice", field="course")
    if schedule is None:
        raise ValidationError("الرجاء اختيار وقت دوام صحيح!", code="invalid_choice", field="schedule")
    return course, schedule


def create_student_record(req: RegisterStudentRequest, course: Course, schedule: Schedule, actor=None) -> Student:
    """Insert the student and its paired commission, bump the counter, log and notify.

    Does not validate or commit; callers do both.
    """
    today = date.today()

    student = Student(
        id=next_id(Student),
        first_name=req.first_name,
        second_name=req.second_name,
        third_name=req.third_name,
        last_name=req.last_name,
        phone=req.phone,
        course=course.value,
        schedule=schedule.value,
        delegate_id=req.delegate_id,
        registration_date=today,
    )
    db.session.add(student)
    db.session.flush()

    commission = Commission(
        id=next_id(Commission),
        student_id=student.id,
        delegate_id=student.delegate_id,
        student_name=req.full_name,
        course=student.course,
        amount=_commission_amount(),
        status=CommissionStatus.Pending.value,
        student_status=StudentStatus.Registered.value,
        created_date=student.registration_date,
    )
    db.session.add(commission)

    increment_student_count(student.delegate_id)

    emit_event(
        actor,
        "add",
        "students",
        student.short_name,
        title="🎉 طالب جديد",
        message=f"تم تسجيل الطالب: {student.short_name} بنجاح.",
        level="success",
        related_module="students",
        related_id=student.id,
    )
    db.session.flush()
    return student


def register_student(req: RegisterStudentRequest, actor=None) -> Student:
    """Validate and register a student with its commission."""
    if not req.delegate_id:
        raise ValidationError("الرجاء اختيار مندوب!", code="missing_delegate")

    if db.session.get(Delegate, req.delegate_id) is None:
        raise ValidationError("المندوب غير موجود", code="unknown_delegate")

    course, schedule = _resolve_choices(req)

    duplicate = find_duplicate(req.first_name, req.second_name, req.third_name, req.last_name)
    if duplicate is not None:
        logger.info(f"Duplicate registration rejected | existing_id={duplicate.id}")
        raise DuplicateStudentError(duplicate)

    try:
        student = create_student_record(req, course, schedule, actor=actor)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Student registration failed")
        raise

    logger.info(f"Student registered | student_id={student.id} | delegate_id={student.delegate_id}")
    return student


# =========================
# Edit / delete
# =========================
_EDITABLE = {
    "firstName": "first_name",
    "secondName": "second_name",
    "thirdName": "third_name",
    "lastName": "last_name",
    "phone": "phone",
}


def update_student(student_id, changes, actor=None) -> Student:
    """Admin edit. ``registrationDate`` and ``id`` are ignored if present."""
    student = db.session.get(Student, student_id)
    if student is None:
        raise NotFoundError("الطالب غير موجود", code="student_not_found")
    changes = changes or {}
    old_name = student.short_name

    for key, attr in _EDITABLE.items():
        if key in changes and changes[key] is not None:
            setattr(student, attr, str(changes[key]).strip())

    if changes.get("course") is not None:
        course = Course.parse(changes["course"])
        if course is None:
            raise ValidationError("الرجاء اختيار دورة صحيحة!", code="invalid_choice", field="course")
        student.course = course.value

    if changes.get("schedule") is not None:
        schedule = Schedule.parse(changes["schedule"])
        if schedule is None:
            raise ValidationError("الرجاء اختيار وقت دوام صحيح!", code="invalid_choice", field="schedule")
        student.schedule = schedule.value

    new_delegate_id = changes.get("delegateId")
    if new_delegate_id not in (None, ""):
        try:
            new_delegate_id = int(new_delegate_id)
        except (TypeError, ValueError):
            raise ValidationError("المندوب غير موجود", code="unknown_delegate")
        if new_delegate_id != student.delegate_id:
            if db.session.get(Delegate, new_delegate_id) is None:
                raise ValidationError("المندوب غير موجود", code="unknown_delegate")
            decrement_student_count(student.delegate_id)
            increment_student_count(new_delegate_id)
            Commission.query.filter_by(student_id=student.id).update(
                {"delegate_id": new_delegate_id}, synchronize_session="fetch"
            )
            student.delegate_id = new_delegate_id

    log_activity(actor, "edit", "students", f"{old_name} (ID: {student.id})")
    db.session.commit()
    return student


def delete_student(student_id, actor=None) -> bool:
    """Remove a student and its commissions; False (and nothing logged) if unknown."""
    student = db.session.get(Student, student_id)
    if student is None:
        return False

    name = student.short_name
    delegate_id = student.delegate_id

    removed = (
        Commission.query
        .filter_by(student_id=student.id)
        .delete(synchronize_session="fetch")
    )
    db.session.delete(student)
    decrement_student_count(delegate_id)

    emit_event(
        actor,
        "delete",
        "students",
        f"{name} (ID: {student_id})",
        title="🗑️ حذف طالب",
        message=f"تم حذف الطالب {name} من النظام.",
        level="danger",
    )
    db.session.commit()

    logger.info(f"Student deleted | student_id={student_id} | commissions_removed={removed}")
    return True


def list_students(delegate_id=None, search=None, sort=None, direction=None):
    q = Student.query
    if delegate_id:
        q = q.filter(Student.delegate_id == int(delegate_id))
    students = q.order_by(Student.id.desc()).sorted_by(sort, direction).all()

    term = (search or "").strip().lower()
    if term:
        students = [
            s for s in students
            if term in s.full_name.lower() or term in (s.phone or "")
        ]
    return students
