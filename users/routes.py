from flask import abort, jsonify, request
from flask_login import current_user, login_required

from . import users_bp
from models import BankAccount
from permissions import roles_required
from services.account_service import (
    AddUserRequest, add_or_update_bank_account, add_user, get_delegate_for_user,
    list_delegates, list_users, toggle_user_status, update_user,
)
from services.errors import ValidationError
from services.stats_service import get_network

# Fields a user may change on their own profile
SELF_EDITABLE = ("fullName", "phone", "email", "password", "confirmPassword")


def _user_payload(user):
    data = user.to_dict()
    profile = user.delegate_profile
    data["delegate"] = profile.to_dict() if profile else None
    data["referredByName"] = user.referred_by.full_name if user.referred_by else None
    return data


# =========================
# Users
# =========================
@users_bp.route("/users", methods=["GET"])
@login_required
@roles_required("admin")
def users_list():
    users = list_users(role=request.args.get("role"), search=request.args.get("q"))
    return jsonify({"items": [_user_payload(u) for u in users], "count": len(users)})


@users_bp.route("/users", methods=["POST"])
@login_required
def users_create():
    data = request.get_json(silent=True) or {}
    req = AddUserRequest.from_mapping(data)

    if current_user.has_role("admin"):
        referred_by_id = data.get("referredById") or None
    elif current_user.has_role("delegate"):
        # Delegates recruit delegates into their own network
        req.role = "delegate"
        referred_by_id = current_user.id
    else:
        abort(403)

    user = add_user(req, referred_by_id=referred_by_id, actor=current_user)
    return jsonify({"user": _user_payload(user)}), 201


@users_bp.route("/users/<int:user_id>", methods=["PUT"])
@login_required
def users_update(user_id):
    data = request.get_json(silent=True) or {}
    if not current_user.has_role("admin"):
        if user_id != current_user.id:
            abort(403)
        data = {k: v for k, v in data.items() if k in SELF_EDITABLE}

    user = update_user(user_id, data, actor=current_user)
    return jsonify({"user": _user_payload(user)})


@users_bp.route("/users/<int:user_id>/toggle", methods=["POST"])
@login_required
@roles_required("admin")
def users_toggle(user_id):
    user = toggle_user_status(user_id, actor=current_user)
    return jsonify({"user": _user_payload(user)})


@users_bp.route("/users/network")
@login_required
def users_network():
    user_id = current_user.id
    if current_user.has_role("admin"):
        user_id = request.args.get("userId", type=int) or user_id
    rows = get_network(user_id)
    return jsonify({"items": rows, "count": len(rows)})


@users_bp.route("/users/delegates")
@login_required
def users_delegates():
    active_only = request.args.get("active") == "1" or not current_user.is_manager_or_admin
    items = list_delegates(active_only=active_only)
    return jsonify({"items": [d.to_dict() for d in items], "count": len(items)})


# =========================
# Bank accounts
# =========================
@users_bp.route("/bankAccounts", methods=["GET"])
@login_required
def bank_accounts_list():
    if current_user.has_role("admin"):
        items = BankAccount.query.order_by(BankAccount.id.asc()).all()
    else:
        profile = get_delegate_for_user(current_user)
        items = BankAccount.query.filter_by(delegate_id=profile.id).all() if profile else []
    return jsonify({"items": [a.to_dict() for a in items], "count": len(items)})


@users_bp.route("/bankAccounts", methods=["PUT"])
@login_required
def bank_accounts_save():
    data = request.get_json(silent=True) or {}
    if current_user.has_role("admin") and data.get("delegateId"):
        try:
            delegate_id = int(data["delegateId"])
        except (TypeError, ValueError):
            raise ValidationError("المندوب غير موجود", code="unknown_delegate")
    else:
        profile = get_delegate_for_user(current_user)
        if profile is None:
            abort(403)
        delegate_id = profile.id

    account = add_or_update_bank_account(delegate_id, data, actor=current_user)
    return jsonify({"account": account.to_dict(), "message": "تم حفظ بيانات الحساب البنكي بنجاح"})
