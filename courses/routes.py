from flask import jsonify, request
from flask_login import current_user, login_required

from . import courses_bp
from permissions import roles_required
from services.course_service import (
    CourseRequest, add_course, courses_by_status, delete_course, list_courses, update_course,
)
from services.errors import NotFoundError
from services.stats_service import course_progress, days_remaining


def _course_payload(course):
    data = course.to_dict()
    data["progress"] = course_progress(course)
    data["daysRemaining"] = days_remaining(course.end_date)
    data["isFull"] = course.is_full
    return data


@courses_bp.route("", methods=["GET"])
@login_required
def courses_list():
    if request.args.get("grouped"):
        grouped = courses_by_status()
        return jsonify({
            status: [_course_payload(c) for c in items]
            for status, items in grouped.items()
        })

    items = list_courses(status=request.args.get("status"))
    return jsonify({"items": [_course_payload(c) for c in items], "count": len(items)})


@courses_bp.route("", methods=["POST"])
@login_required
@roles_required("admin", "manager")
def courses_create():
    req = CourseRequest.from_mapping(request.get_json(silent=True))
    course = add_course(req, actor=current_user)
    return jsonify({"course": _course_payload(course)}), 201


@courses_bp.route("/<int:course_id>", methods=["PUT"])
@login_required
@roles_required("admin", "manager")
def courses_update(course_id):
    course = update_course(course_id, request.get_json(silent=True), actor=current_user)
    return jsonify({"course": _course_payload(course)})


@courses_bp.route("/<int:course_id>", methods=["DELETE"])
@login_required
@roles_required("admin", "manager")
def courses_delete(course_id):
    if not delete_course(course_id, actor=current_user):
        raise NotFoundError("الدورة غير موجودة", code="course_not_found")
    return jsonify({"ok": True})
