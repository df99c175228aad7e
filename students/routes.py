import logging

from flask import abort, jsonify, request
from flask_login import current_user, login_required

from . import students_bp
from permissions import roles_required
from services.account_service import get_delegate_for_user
from services.errors import NotFoundError, ValidationError
from services.import_service import export_students, import_students
from services.registration_service import (
    RegisterStudentRequest, delete_student, list_students, register_student, update_student,
)
from utils.excel import xlsx_response

logger = logging.getLogger(__name__)


def _own_delegate_id():
    """Delegate users only ever see and register their own students."""
    if current_user.is_manager_or_admin:
        return None
    profile = get_delegate_for_user(current_user)
    if profile is None:
        abort(403)
    return profile.id


@students_bp.route("", methods=["GET"])
@login_required
def students_list():
    delegate_id = _own_delegate_id() or request.args.get("delegateId", type=int)
    students = list_students(
        delegate_id=delegate_id,
        search=request.args.get("q") or request.args.get("search"),
        sort=request.args.get("sort"),
        direction=request.args.get("direction"),
    )
    return jsonify({
        "items": [s.to_dict() for s in students],
        "count": len(students),
    })


@students_bp.route("", methods=["POST"])
@login_required
def students_create():
    data = request.get_json(silent=True) or {}
    req = RegisterStudentRequest.from_mapping(data, delegate_lock_id=_own_delegate_id())
    student = register_student(req, actor=current_user)
    return jsonify({
        "student": student.to_dict(),
        "message": f"تم تسجيل الطالب: {student.short_name} بنجاح.",
    }), 201


@students_bp.route("/<int:student_id>", methods=["PUT"])
@login_required
@roles_required("admin", "manager")
def students_update(student_id):
    student = update_student(student_id, request.get_json(silent=True) or {}, actor=current_user)
    return jsonify({"student": student.to_dict()})


@students_bp.route("/<int:student_id>", methods=["DELETE"])
@login_required
@roles_required("admin", "manager")
def students_delete(student_id):
    if not delete_student(student_id, actor=current_user):
        raise NotFoundError("الطالب غير موجود", code="student_not_found")
    return jsonify({"ok": True})


@students_bp.route("/import", methods=["POST"])
@login_required
@roles_required("admin", "manager")
def students_import():
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("الرجاء اختيار ملف Excel", code="invalid_file")
    if not f.filename.lower().endswith(".xlsx"):
        raise ValidationError("الرجاء رفع ملف بصيغة .xlsx", code="invalid_file")

    result = import_students(f.stream, actor=current_user)
    result["message"] = (
        f"✅ تم استيراد {result['importedCount']} طالب بنجاح.\n"
        f"⚠️ تم تخطي {result['skippedCount']} طالب (مكرر أو بيانات ناقصة)."
    )
    return jsonify(result)


@students_bp.route("/export")
@login_required
@roles_required("admin", "manager")
def students_export():
    filename, data = export_students(
        delegate_id=request.args.get("delegateId", type=int),
        search=request.args.get("q") or request.args.get("search"),
        actor=current_user,
    )
    return xlsx_response(filename, data)
