from flask import abort, jsonify, request
from flask_login import current_user, login_required

from . import reports_bp
from extensions import db
from models import Delegate
from permissions import roles_required
from services.account_service import get_delegate_for_user
from services.alerts_service import run_alerts_if_needed
from services.errors import NotFoundError
from services.stats_service import (
    course_stats, dashboard_stats, delegate_performance, delegate_summary,
)


@reports_bp.route("/dashboard")
@login_required
@roles_required("admin", "manager")
def reports_dashboard():
    run_alerts_if_needed(viewer=current_user)
    return jsonify(dashboard_stats())


@reports_bp.route("/performance")
@login_required
@roles_required("admin", "manager")
def reports_performance():
    return jsonify(delegate_performance(request.args.get("delegateId", type=int)))


@reports_bp.route("/courses")
@login_required
@roles_required("admin", "manager")
def reports_courses():
    return jsonify(course_stats())


@reports_bp.route("/delegate")
@login_required
def reports_delegate():
    if current_user.is_manager_or_admin:
        delegate_id = request.args.get("delegateId", type=int)
        delegate = db.session.get(Delegate, delegate_id) if delegate_id else None
        if delegate is None:
            raise NotFoundError("المندوب غير موجود", code="delegate_not_found")
    else:
        delegate = get_delegate_for_user(current_user)
        if delegate is None:
            abort(403)
    return jsonify(delegate_summary(delegate))
