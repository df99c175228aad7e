import logging

from extensions import db
from models import ActivityLog, Notification, ACTION_TYPES, NOTIFICATION_TYPES, utcnow

logger = logging.getLogger(__name__)


def _actor_fields(actor):
    if actor is None or not getattr(actor, "id", None):
        return None, "System"
    return actor.id, (getattr(actor, "full_name", None) or "System")


def log_activity(actor, action_type, target, description, auto_commit=False):
    """Append one ActivityLog row (never updated or deleted afterwards)."""
    if action_type not in ACTION_TYPES:
        raise ValueError(f"unknown action type: {action_type}")

    user_id, user_name = _actor_fields(actor)
    entry = ActivityLog(
        user_id=user_id,
        user_name=user_name,
        action_type=action_type,
        target=target,
        description=description,
        timestamp=utcnow(),
    )
    db.session.add(entry)

    logger.info(f"activity | {action_type} {target} | by={user_name} | {description}")

    if auto_commit:
        db.session.commit()
    return entry


def emit_event(
    actor,
    action_type,
    target,
    description,
    *,
    title,
    message,
    level="info",
    notify_user_id=None,
    related_module=None,
    related_id=None,
    auto_commit=False,
):
    """ActivityLog entry + one notification (broadcast when notify_user_id is None)."""
    log_activity(actor, action_type, target, description)
    notif = push_notification(
        title,
        message,
        level,
        user_id=notify_user_id,
        related_module=related_module,
        related_id=related_id,
    )
    if auto_commit:
        db.session.commit()
    return notif


def push_notification(title, message, level="info", user_id=None, related_module=None, related_id=None):
    if level not in NOTIFICATION_TYPES:
        level = "info"
    notif = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=level,
        is_read=False,
        created_at=utcnow(),
        related_module=related_module,
        related_id=related_id,
    )
    db.session.add(notif)
    return notif
