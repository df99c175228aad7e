from flask import jsonify, request
from flask_login import current_user, login_required

from . import audit_bp
from permissions import roles_required
from services.import_service import export_activity_logs, query_activity_logs
from utils.excel import xlsx_response


def _filtered_logs():
    return query_activity_logs(
        search=request.args.get("q"),
        action_type=request.args.get("action"),
        user_id=request.args.get("userId", type=int),
    )


@audit_bp.route("", methods=["GET"])
@login_required
@roles_required("admin")
def audit_index():
    page = request.args.get("page", 1, type=int)
    per_page = min(request.args.get("per_page", 50, type=int), 500)

    pagination = _filtered_logs().paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "items": [log.to_dict() for log in pagination.items],
        "page": pagination.page,
        "pages": pagination.pages,
        "total": pagination.total,
    })


@audit_bp.route("/export")
@login_required
@roles_required("admin")
def audit_export():
    logs = _filtered_logs().all()
    filename, data = export_activity_logs(logs, actor=current_user)
    return xlsx_response(filename, data)
