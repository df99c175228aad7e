"""Read-side derivations: dashboard counters, reports, course progress, networks.

Nothing here writes to the database.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

from models import (
    Commission, CommissionStatus, CourseObject, Delegate, Student, StudentStatus, User,
)

# Student statuses counted as "still studying" in performance reports
STUDYING_STATUSES = (
    StudentStatus.Studying.value,
    StudentStatus.OnHold.value,
    StudentStatus.FeesPaid.value,
    StudentStatus.Registered.value,
)


# =========================
# Delegates
# =========================
def top_delegate(delegates: Iterable[Delegate]) -> Optional[Delegate]:
    """Active delegate with the most students; ties go to the lowest id."""
    best = None
    for d in delegates:
        if not d.is_active:
            continue
        if best is None or d.students > best.students or (d.students == best.students and d.id < best.id):
            best = d
    return best


def get_network(user_id):
    """Users directly recruited by ``user_id``, with their student counts."""
    recruits = (
        User.query
        .filter(User.referred_by_id == user_id)
        .order_by(User.id.asc())
        .all()
    )
    profiles = {
        d.user_id: d
        for d in Delegate.query.filter(Delegate.user_id.in_([u.id for u in recruits])).all()
    } if recruits else {}

    rows = []
    for u in recruits:
        profile = profiles.get(u.id)
        rows.append({
            "user": u.to_dict(),
            "delegateId": profile.id if profile else None,
            "phone": profile.phone if profile else None,
            "students": profile.students if profile else 0,
        })
    return rows


# =========================
# Courses
# =========================
def course_progress(course: CourseObject, today: Optional[date] = None) -> int:
    """Percentage of the course period elapsed, 0..100."""
    if course.status == "upcoming":
        return 0
    if course.status == "completed":
        return 100
    if not course.start_date or not course.end_date:
        return 0

    today = today or date.today()
    if today < course.start_date:
        return 0
    if today > course.end_date:
        return 100

    total = (course.end_date - course.start_date).days
    if total == 0:
        return 0
    current = (today - course.start_date).days
    return min(100, max(0, round(current / total * 100)))


def days_remaining(target: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if target is None:
        return None
    today = today or date.today()
    return (target - today).days


def course_stats(today: Optional[date] = None):
    today = today or date.today()
    courses = CourseObject.query.order_by(CourseObject.id.asc()).all()

    active = [c for c in courses if c.status == "active"]
    upcoming = [c for c in courses if c.status == "upcoming"]
    completed = [c for c in courses if c.status == "completed"]

    total_students = sum(c.current_students for c in active)
    available_seats = sum(
        c.max_students - c.current_students
        for c in active
        if c.enrollment_open
    )
    capacity = total_students + available_seats
    occupancy = (total_students / capacity * 100) if capacity > 0 else 0

    next_week = today + timedelta(days=7)
    starting_this_week = len([
        c for c in upcoming
        if c.start_date and today <= c.start_date <= next_week
    ])

    return {
        "active": len(active),
        "upcoming": len(upcoming),
        "completed": len(completed),
        "totalStudents": total_students,
        "availableSeats": available_seats,
        "occupancyRate": round(occupancy, 1),
        "startingThisWeek": starting_this_week,
        "fullCourses": len([c for c in active if c.is_full]),
        "progress": [
            {
                "id": c.id,
                "name": c.name,
                "progress": course_progress(c, today),
                "daysRemaining": days_remaining(c.end_date, today),
            }
            for c in active
        ],
    }


# =========================
# Dashboard & reports
# =========================
def _sum_amount(commissions, status):
    return sum(c.amount for c in commissions if c.status == status)


def dashboard_stats():
    commissions = Commission.query.all()
    best = top_delegate(Delegate.query.order_by(Delegate.id.asc()).all())

    return {
        "totalStudents": Student.query.count(),
        "pendingCommissions": _sum_amount(commissions, CommissionStatus.Pending.value),
        "paidCommissions": _sum_amount(commissions, CommissionStatus.Paid.value),
        "topDelegate": f"{best.full_name} ({best.students} طالب)" if best else "لا يوجد",
        "topDelegateId": best.id if best else None,
    }


def delegate_performance(delegate_id=None):
    """Per-delegate performance rows (delegate role only) plus a totals row."""
    q = Delegate.query.filter(Delegate.role == "delegate")
    if delegate_id:
        q = q.filter(Delegate.id == int(delegate_id))
    delegates = q.order_by(Delegate.id.asc()).all()

    by_delegate = {}
    for c in Commission.query.all():
        by_delegate.setdefault(c.delegate_id, []).append(c)

    rows = []
    for d in delegates:
        items = by_delegate.get(d.id, [])
        rows.append({
            "delegateId": d.id,
            "delegateName": d.full_name,
            "totalStudents": d.students,
            "studyingStudents": len([c for c in items if c.student_status in STUDYING_STATUSES]),
            "droppedStudents": len([c for c in items if c.student_status == StudentStatus.Dropped.value]),
            "completedStudents": len([c for c in items if c.student_status == StudentStatus.Completed.value]),
            "totalCommissions": sum(c.amount for c in items if c.status != CommissionStatus.Cancelled.value),
            "paidCommissions": _sum_amount(items, CommissionStatus.Paid.value),
        })

    totals = {
        key: sum(r[key] for r in rows)
        for key in (
            "totalStudents", "studyingStudents", "droppedStudents",
            "completedStudents", "totalCommissions", "paidCommissions",
        )
    }
    return {"rows": rows, "totals": totals}


def delegate_summary(delegate: Delegate):
    """Home view of a delegate: own students, own commissions, sums by status."""
    students = (
        Student.query
        .filter(Student.delegate_id == delegate.id)
        .order_by(Student.id.desc())
        .all()
    )
    commissions = (
        Commission.query
        .filter(Commission.delegate_id == delegate.id)
        .order_by(Commission.id.desc())
        .all()
    )
    return {
        "delegate": delegate.to_dict(),
        "studentsCount": len(students),
        "totalCommissions": sum(c.amount for c in commissions),
        "pendingCommissions": _sum_amount(commissions, CommissionStatus.Pending.value),
        "confirmedCommissions": _sum_amount(commissions, CommissionStatus.Confirmed.value),
        "paidCommissions": _sum_amount(commissions, CommissionStatus.Paid.value),
        "networkSize": User.query.filter(User.referred_by_id == delegate.user_id).count(),
        "students": [s.to_dict() for s in students],
        "commissions": [c.to_dict() for c in commissions],
    }
