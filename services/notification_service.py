"""Notification store: per-viewer reads over a flat notification table.

A notification with ``user_id IS NULL`` is a broadcast and is visible to
every viewer. ``is_read`` is stored on the notification itself, so marking a
broadcast as read marks it for everyone.
"""

from sqlalchemy import or_

from extensions import db
from models import Notification
from utils.events import push_notification


def _viewer_filter(user):
    return or_(Notification.user_id == user.id, Notification.user_id.is_(None))


def add_notification(title, message, type="info", user_id=None, related_module=None, related_id=None):
    notif = push_notification(
        title,
        message,
        type,
        user_id=user_id,
        related_module=related_module,
        related_id=related_id,
    )
    db.session.commit()
    return notif


def list_for_viewer(user, unread_only=False):
    if user is None:
        return []
    q = Notification.query.filter(_viewer_filter(user))
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(user):
    if user is None:
        return 0
    return (
        Notification.query
        .filter(_viewer_filter(user), Notification.is_read.is_(False))
        .count()
    )


def mark_as_read(notification_id, user):
    """Mark one notification read; False if the viewer cannot see it."""
    if user is None:
        return False
    updated = (
        Notification.query
        .filter(Notification.id == notification_id, _viewer_filter(user))
        .update({"is_read": True}, synchronize_session="fetch")
    )
    db.session.commit()
    return bool(updated)


def mark_all_as_read(user):
    if user is None:
        return 0
    updated = (
        Notification.query
        .filter(_viewer_filter(user), Notification.is_read.is_(False))
        .update({"is_read": True}, synchronize_session="fetch")
    )
    db.session.commit()
    return updated


def clear_all(user):
    """Delete every notification the viewer can see (own + broadcast)."""
    if user is None:
        return 0
    deleted = (
        Notification.query
        .filter(_viewer_filter(user))
        .delete(synchronize_session="fetch")
    )
    db.session.commit()
    return deleted


def delete_notification(notification_id, user):
    if user is None:
        return False
    deleted = (
        Notification.query
        .filter(Notification.id == notification_id, _viewer_filter(user))
        .delete(synchronize_session="fetch")
    )
    db.session.commit()
    return bool(deleted)
