from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from extensions import db
from models import CourseObject, COURSE_STATUSES, parse_date
from services.account_service import next_id
from services.errors import NotFoundError, ValidationError
from utils.events import emit_event, log_activity


@dataclass
class CourseRequest:
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    duration: int = 0
    price: float = 0
    max_students: int = 0
    time_slot: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    enrollment_open: bool = True
    status: str = "upcoming"

    @classmethod
    def from_mapping(cls, data):
        data = data or {}
        try:
            req = cls(
                name=(data.get("name") or "").strip(),
                description=data.get("description"),
                category=data.get("category"),
                duration=int(data.get("duration") or 0),
                price=float(data.get("price") or 0),
                max_students=int(data.get("max_students") or 0),
                time_slot=data.get("time_slot"),
                start_date=parse_date(data.get("start_date")),
                end_date=parse_date(data.get("end_date")),
                enrollment_open=bool(data.get("enrollment_open", True)),
                status=(data.get("status") or "upcoming").strip().lower(),
            )
        except ValueError:
            raise ValidationError("بيانات الدورة غير صحيحة", code="invalid_course")
        req.validate()
        return req

    def validate(self):
        if not self.name:
            raise ValidationError("اسم الدورة مطلوب", code="missing_field", field="name")
        if self.status not in COURSE_STATUSES:
            raise ValidationError("حالة الدورة غير صحيحة", code="invalid_choice", field="status")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("تاريخ النهاية قبل تاريخ البداية", code="invalid_dates")


def add_course(req: CourseRequest, actor=None) -> CourseObject:
    course = CourseObject(
        id=next_id(CourseObject),
        name=req.name,
        description=req.description,
        category=req.category,
        duration=req.duration,
        price=req.price,
        max_students=req.max_students,
        current_students=0,
        time_slot=req.time_slot,
        start_date=req.start_date,
        end_date=req.end_date,
        enrollment_open=req.enrollment_open,
        status=req.status,
    )
    db.session.add(course)
    db.session.flush()

    emit_event(
        actor,
        "add",
        "courses",
        f"إضافة دورة جديدة: {course.name}",
        title="📚 دورة جديدة",
        message=f"تم إضافة دورة جديدة: {course.name}",
        level="info",
        related_module="courses",
        related_id=course.id,
    )
    db.session.commit()
    return course


_UPDATABLE = (
    "name", "description", "category", "duration", "price", "max_students",
    "current_students", "time_slot", "start_date", "end_date", "enrollment_open", "status",
)


def update_course(course_id, changes, actor=None) -> CourseObject:
    course = db.session.get(CourseObject, course_id)
    if course is None:
        raise NotFoundError("الدورة غير موجودة", code="course_not_found")

    merged = course.to_dict()
    merged.update({k: v for k, v in (changes or {}).items() if k in _UPDATABLE})
    req = CourseRequest.from_mapping(merged)

    course.name = req.name
    course.description = req.description
    course.category = req.category
    course.duration = req.duration
    course.price = req.price
    course.max_students = req.max_students
    course.time_slot = req.time_slot
    course.start_date = req.start_date
    course.end_date = req.end_date
    course.enrollment_open = req.enrollment_open
    course.status = req.status
    if "current_students" in (changes or {}):
        course.current_students = max(0, int(changes["current_students"] or 0))

    log_activity(actor, "edit", "courses", f"تحديث دورة: {course.id}")
    db.session.commit()
    return course


def delete_course(course_id, actor=None) -> bool:
    # Students reference courses by kind only; nothing cascades.
    course = db.session.get(CourseObject, course_id)
    if course is None:
        return False
    name = course.name
    db.session.delete(course)
    log_activity(actor, "delete", "courses", f"حذف دورة: {name}")
    db.session.commit()
    return True


def list_courses(status=None):
    q = CourseObject.query
    if status:
        q = q.filter(CourseObject.status == status)
    return q.order_by(CourseObject.id.asc()).all()


def courses_by_status():
    grouped = {s: [] for s in COURSE_STATUSES}
    for c in list_courses():
        grouped.setdefault(c.status, []).append(c)
    return grouped
