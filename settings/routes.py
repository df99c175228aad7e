from flask import Response, jsonify, request
from flask_login import current_user, login_required
import json

from . import settings_bp
from permissions import roles_required
from services.backup_service import (
    create_backup, delete_backup, get_backup, get_theme, import_backup_file,
    list_backups, restore_backup_by_name, set_theme,
)
from services.errors import NotFoundError, ValidationError


@settings_bp.route("/backups", methods=["GET"])
@login_required
@roles_required("admin")
def backups_list():
    return jsonify({"items": list_backups()})


@settings_bp.route("/backups", methods=["POST"])
@login_required
@roles_required("admin")
def backups_create():
    backup = create_backup(actor=current_user)
    return jsonify({
        "name": backup["name"],
        "date": backup["date"],
        "size": backup["size"],
        "message": "✅ تم إنشاء نسخة احتياطية بنجاح",
    }), 201


@settings_bp.route("/backups/<name>", methods=["GET"])
@login_required
@roles_required("admin")
def backups_download(name):
    backup = get_backup(name)
    return Response(
        json.dumps(backup, ensure_ascii=False),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={backup['name']}.json"},
    )


@settings_bp.route("/backups/<name>", methods=["DELETE"])
@login_required
@roles_required("admin")
def backups_delete(name):
    if not delete_backup(name, actor=current_user):
        raise NotFoundError("النسخة الاحتياطية غير موجودة", code="backup_not_found")
    return jsonify({"ok": True})


@settings_bp.route("/backups/<name>/restore", methods=["POST"])
@login_required
@roles_required("admin")
def backups_restore(name):
    restored = restore_backup_by_name(name, actor=current_user)
    return jsonify({"restored": restored, "message": "✅ تم استعادة النسخة الاحتياطية بنجاح"})


@settings_bp.route("/backups/import", methods=["POST"])
@login_required
@roles_required("admin")
def backups_import():
    f = request.files.get("file")
    if f is not None:
        text = f.read()
    else:
        text = request.get_data()
    if not text:
        raise ValidationError("❌ ملف غير صالح", code="invalid_backup")

    name, restored = import_backup_file(text, actor=current_user)
    return jsonify({
        "name": name,
        "restored": restored,
        "message": "✅ تم استيراد واستعادة النسخة بنجاح",
    })


@settings_bp.route("/theme", methods=["GET"])
@login_required
def theme_get():
    return jsonify({"theme": get_theme()})


@settings_bp.route("/theme", methods=["PUT"])
@login_required
@roles_required("admin")
def theme_set():
    data = request.get_json(silent=True) or {}
    return jsonify({"theme": set_theme(data.get("theme"))})
