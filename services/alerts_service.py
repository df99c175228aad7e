from datetime import date
import logging

from flask import current_app

from extensions import db
from models import Commission, CommissionStatus, CourseObject
from services import storage
from services.stats_service import days_remaining
from utils.events import push_notification

logger = logging.getLogger(__name__)

ALERT_KEY_PREFIX = "alert_"


def _already_sent(key):
    return storage.exists(key)


def _mark_sent(key, today):
    storage.set_item(key, today.isoformat())


def run_alerts_if_needed(viewer=None, today=None):
    """Broadcast the daily reminders for admin/manager viewers.

    Each reminder fires at most once per day; markers live in storage_entry.
    Returns the notifications created.
    """
    if not current_app.config.get("ALERTS_ENABLED", True):
        return []
    if viewer is not None and not viewer.is_manager_or_admin:
        return []

    today = today or date.today()
    created = []

    pending_count = Commission.query.filter(
        Commission.status == CommissionStatus.Pending.value
    ).count()
    if pending_count > 0:
        key = f"{ALERT_KEY_PREFIX}pending_commissions_{today.isoformat()}"
        if not _already_sent(key):
            created.append(push_notification(
                "💰 تنبيه العمولات",
                f"يوجد {pending_count} عمولة معلقة تحتاج إلى مراجعة.",
                "warning",
                related_module="commissions",
            ))
            _mark_sent(key, today)

    ending_window = current_app.config.get("COURSE_ENDING_DAYS", 7)
    active = CourseObject.query.filter(CourseObject.status == "active").all()
    for course in active:
        left = days_remaining(course.end_date, today)
        if left is None or not (0 < left <= ending_window):
            continue
        key = f"{ALERT_KEY_PREFIX}course_expiry_{course.id}_{today.isoformat()}"
        if _already_sent(key):
            continue
        created.append(push_notification(
            "⏳ دورة تنتهي قريباً",
            f'دورة "{course.name}" ستنتهي خلال {left} أيام.',
            "info",
            related_module="courses",
            related_id=course.id,
        ))
        _mark_sent(key, today)

    if created:
        db.session.commit()
        logger.info(f"Auto alerts sent: {len(created)}")
    return created
