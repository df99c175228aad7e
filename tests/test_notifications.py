from datetime import datetime, timezone
import warnings

from extensions import db
from models import Notification, utcnow
from services.notification_service import (
    add_notification, clear_all, delete_notification, list_for_viewer,
    mark_all_as_read, mark_as_read, unread_count,
)


def test_viewer_sees_own_and_broadcast(ctx, admin, delegate_user):
    broadcast = add_notification("عام", "للجميع", "info")
    own = add_notification("خاص", "لك", "success", user_id=delegate_user.id)
    other = add_notification("خاص", "للمدير", "warning", user_id=admin.id)

    ids = [n.id for n in list_for_viewer(delegate_user)]
    assert set(ids) == {broadcast.id, own.id}
    assert other.id not in ids
    assert ids[0] == own.id


def test_unknown_type_falls_back_to_info(ctx):
    n = add_notification("t", "m", "shout")
    assert n.type == "info"


def test_mark_read_and_unread_count(ctx, delegate_user):
    a = add_notification("a", "a", user_id=delegate_user.id)
    add_notification("b", "b")
    assert unread_count(delegate_user) == 2

    assert mark_as_read(a.id, delegate_user) is True
    assert unread_count(delegate_user) == 1

    assert mark_all_as_read(delegate_user) == 1
    assert unread_count(delegate_user) == 0

    assert mark_as_read(12345, delegate_user) is False


def test_clear_all_keeps_other_users_notifications(ctx, admin, delegate_user):
    add_notification("b", "b")
    add_notification("mine", "m", user_id=delegate_user.id)
    theirs = add_notification("theirs", "t", user_id=admin.id)

    assert clear_all(delegate_user) == 2
    assert [n.id for n in Notification.query.all()] == [theirs.id]


def test_delete_notification(ctx, admin):
    n = add_notification("x", "y")
    assert delete_notification(n.id, admin) is True
    assert delete_notification(n.id, admin) is False


def test_other_users_notification_cannot_be_read_or_deleted(ctx, admin, delegate_user):
    theirs = add_notification("خاص", "لك", user_id=delegate_user.id)

    assert mark_as_read(theirs.id, admin) is False
    assert delete_notification(theirs.id, admin) is False

    kept = db.session.get(Notification, theirs.id)
    assert kept is not None
    assert kept.is_read is False


def test_timestamps_are_naive_utc(ctx):
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        stamp = utcnow()
    assert stamp.tzinfo is None

    n = add_notification("t", "m")
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert n.created_at.tzinfo is None
    assert abs((now - n.created_at).total_seconds()) < 60
