from flask import jsonify, request
from flask_login import current_user, login_required

from . import notifications_bp
from services.errors import NotFoundError
from services.notification_service import (
    clear_all, delete_notification, list_for_viewer, mark_all_as_read, mark_as_read, unread_count,
)


@notifications_bp.route("", methods=["GET"])
@login_required
def notifications_list():
    unread_only = request.args.get("unread") == "1"
    items = list_for_viewer(current_user, unread_only=unread_only)
    return jsonify({
        "items": [n.to_dict() for n in items],
        "unreadCount": unread_count(current_user),
    })


@notifications_bp.route("/unread-count")
@login_required
def notifications_unread_count():
    return jsonify({"count": unread_count(current_user)})


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@login_required
def notifications_mark_read(notification_id):
    if not mark_as_read(notification_id, current_user):
        raise NotFoundError("الإشعار غير موجود", code="notification_not_found")
    return jsonify({"ok": True})


@notifications_bp.route("/read-all", methods=["POST"])
@login_required
def notifications_mark_all_read():
    updated = mark_all_as_read(current_user)
    return jsonify({"ok": True, "updated": updated})


@notifications_bp.route("/<int:notification_id>", methods=["DELETE"])
@login_required
def notifications_delete(notification_id):
    if not delete_notification(notification_id, current_user):
        raise NotFoundError("الإشعار غير موجود", code="notification_not_found")
    return jsonify({"ok": True})


@notifications_bp.route("", methods=["DELETE"])
@login_required
def notifications_clear():
    deleted = clear_all(current_user)
    return jsonify({"ok": True, "deleted": deleted})
