from flask import abort, jsonify, request
from flask_login import current_user, login_required

from . import commissions_bp
from permissions import roles_required
from services.account_service import get_delegate_for_user
from services.commission_service import (
    UpdateCommissionStatusRequest, UpdateStudentStatusRequest,
    list_commissions, update_commission_status, update_student_status,
)
from services.import_service import export_commissions
from utils.excel import xlsx_response


def _totals(items):
    totals = {}
    for c in items:
        totals[c.status] = totals.get(c.status, 0) + c.amount
    return totals


@commissions_bp.route("", methods=["GET"])
@login_required
def commissions_list():
    if current_user.is_manager_or_admin:
        delegate_id = request.args.get("delegateId", type=int)
    else:
        profile = get_delegate_for_user(current_user)
        if profile is None:
            abort(403)
        delegate_id = profile.id

    items = list_commissions(delegate_id=delegate_id, status=request.args.get("status"))
    return jsonify({
        "items": [c.to_dict() for c in items],
        "count": len(items),
        "totals": _totals(items),
    })


@commissions_bp.route("/<int:commission_id>/status", methods=["PUT"])
@login_required
@roles_required("admin", "manager")
def commissions_set_status(commission_id):
    req = UpdateCommissionStatusRequest.from_mapping(commission_id, request.get_json(silent=True))
    commission = update_commission_status(req, actor=current_user)
    return jsonify({"commission": commission.to_dict() if commission else None})


@commissions_bp.route("/<int:commission_id>/student-status", methods=["PUT"])
@login_required
@roles_required("admin", "manager")
def commissions_set_student_status(commission_id):
    req = UpdateStudentStatusRequest.from_mapping(commission_id, request.get_json(silent=True))
    commission = update_student_status(req, actor=current_user)
    return jsonify({"commission": commission.to_dict() if commission else None})


@commissions_bp.route("/export")
@login_required
@roles_required("admin", "manager")
def commissions_export():
    filename, data = export_commissions(
        delegate_id=request.args.get("delegateId", type=int),
        actor=current_user,
    )
    return xlsx_response(filename, data)
