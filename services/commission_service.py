"""Commission status updates and student-status reconciliation.

Statuses are not a strict state machine: any commission status may be set
from any other. The only derived rules are:

- Confirmed stamps ``confirmed_date`` once; it is never overwritten or cleared.
- Paid stamps ``paid_date`` with today on every transition into Paid.
- Student status Completed (when not already Paid) forces Confirmed.
- Student status Dropped forces Cancelled, including from Paid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging

from extensions import db
from models import Commission, CommissionStatus, Delegate, StudentStatus
from services.errors import ValidationError
from utils.events import log_activity, push_notification

logger = logging.getLogger(__name__)


@dataclass
class UpdateCommissionStatusRequest:
    commission_id: int
    status: CommissionStatus

    @classmethod
    def from_mapping(cls, commission_id, data):
        status = CommissionStatus.parse((data or {}).get("status"))
        if status is None:
            raise ValidationError("حالة العمولة غير صحيحة", code="invalid_choice", field="status")
        return cls(commission_id=int(commission_id), status=status)


@dataclass
class UpdateStudentStatusRequest:
    commission_id: int
    student_status: StudentStatus

    @classmethod
    def from_mapping(cls, commission_id, data):
        status = StudentStatus.parse((data or {}).get("studentStatus"))
        if status is None:
            raise ValidationError("حالة الطالب غير صحيحة", code="invalid_choice", field="studentStatus")
        return cls(commission_id=int(commission_id), student_status=status)


def _notify_owner(commission: Commission, status: CommissionStatus):
    delegate = db.session.get(Delegate, commission.delegate_id)
    if delegate is None:
        return None

    title = "💰 تم دفع العمولة" if status == CommissionStatus.Paid else "✅ تم تأكيد العمولة"
    return push_notification(
        title,
        f"تم تحديث حالة عمولتك للطالب {commission.student_name} إلى {status.value}.",
        "success",
        user_id=delegate.user_id,
        related_module="commissions",
        related_id=commission.id,
    )


def update_commission_status(req: UpdateCommissionStatusRequest, actor=None):
    """Set a commission's status. Returns the commission (None if the id is unknown)."""
    commission = db.session.get(Commission, req.commission_id)
    status = req.status

    if commission is not None:
        today = date.today()

        if status == CommissionStatus.Confirmed and commission.confirmed_date is None:
            commission.confirmed_date = today
        if status == CommissionStatus.Paid:
            commission.paid_date = today

        if status in (CommissionStatus.Paid, CommissionStatus.Confirmed):
            _notify_owner(commission, status)

        commission.status = status.value

    log_activity(
        actor,
        "edit",
        "commissions",
        f"تحديث حالة العمولة (ID: {req.commission_id}) إلى {status.value}",
    )
    db.session.commit()
    return commission


def update_student_status(req: UpdateStudentStatusRequest, actor=None):
    """Write the student status and derive the commission status from it."""
    commission = db.session.get(Commission, req.commission_id)
    student_status = req.student_status

    if commission is not None:
        current = CommissionStatus.parse(commission.status)

        if student_status == StudentStatus.Completed and current != CommissionStatus.Paid:
            commission.status = CommissionStatus.Confirmed.value
            commission.confirmed_date = commission.confirmed_date or date.today()
        elif student_status == StudentStatus.Dropped:
            if current == CommissionStatus.Paid:
                # Kept as-is pending a product decision: a paid commission gets cancelled.
                logger.warning(
                    f"Paid commission cancelled by Dropped student status | commission_id={commission.id}"
                )
            commission.status = CommissionStatus.Cancelled.value

        commission.student_status = student_status.value

    log_activity(
        actor,
        "edit",
        "commissions",
        f"تحديث حالة الطالب للعمولة (ID: {req.commission_id}) إلى {student_status.value}",
    )
    db.session.commit()
    return commission


def list_commissions(delegate_id=None, status=None):
    q = Commission.query
    if delegate_id:
        q = q.filter(Commission.delegate_id == int(delegate_id))
    if status:
        parsed = CommissionStatus.parse(status)
        if parsed is not None:
            q = q.filter(Commission.status == parsed.value)
    return q.order_by(Commission.id.desc()).all()
