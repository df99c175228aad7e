import logging

from flask import jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from . import auth_bp
from services.account_service import (
    authenticate, change_password, get_delegate_for_user, record_logout,
)

logger = logging.getLogger(__name__)


def _session_payload(user):
    profile = get_delegate_for_user(user)
    return {
        "user": user.to_dict(),
        "delegate": profile.to_dict() if profile else None,
    }


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = data.get("username")

    logger.info(f"Login attempt for username={username}")

    user = authenticate(username, data.get("password"))
    login_user(user)

    logger.info(f"Login success | user_id={user.id} | role={user.role}")
    return jsonify(_session_payload(user))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    record_logout(current_user)
    logout_user()
    return jsonify({"ok": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(_session_payload(current_user))


@auth_bp.route("/password", methods=["PUT", "POST"])
@login_required
def password():
    data = request.get_json(silent=True) or {}
    change_password(
        current_user.id,
        data.get("currentPassword"),
        data.get("newPassword"),
    )
    return jsonify({"ok": True, "message": "تم تغيير كلمة المرور بنجاح"})
