"""System snapshots stored as JSON under ``backup_<timestamp>`` keys."""

from __future__ import annotations

import json
import logging
from types import SimpleNamespace

from extensions import db
from models import utcnow
from services import storage
from services.errors import NotFoundError, ValidationError
from utils.events import emit_event, log_activity

logger = logging.getLogger(__name__)

# snapshot section -> storage collection; order matters on restore (parents first)
SNAPSHOT_COLLECTIONS = (
    ("users", "app_users"),
    ("delegates", "app_delegates"),
    ("bankAccounts", "app_bankAccounts"),
    ("courses", "app_courses"),
    ("students", "app_students"),
    ("commissions", "app_commissions"),
)

THEMES = ("default", "dark", "green", "purple")


def _snapshot_data():
    return {section: storage.get_collection(key) for section, key in SNAPSHOT_COLLECTIONS}


def create_backup(actor=None):
    now = utcnow()
    data = _snapshot_data()
    size_kb = len(json.dumps(data, ensure_ascii=False).encode("utf-8")) / 1024

    name = storage.BACKUP_PREFIX + now.strftime("%Y-%m-%dT%H-%M-%S-%f")
    backup = {
        "name": name,
        "date": now.isoformat() + "Z",
        "size": f"{size_kb:.2f} KB",
        "data": data,
    }
    storage.set_item(name, backup)

    emit_event(
        actor,
        "backup",
        "system",
        "تم إنشاء نسخة احتياطية",
        title="💾 نسخة احتياطية",
        message="تم إنشاء نسخة احتياطية للنظام بنجاح.",
        level="success",
    )
    db.session.commit()
    logger.info(f"Backup created | name={name} | size={backup['size']}")
    return backup


def list_backups():
    """Summaries of stored snapshots, newest first (payload omitted)."""
    items = []
    for key in storage.keys(storage.BACKUP_PREFIX):
        backup = storage.get_item(key)
        if not isinstance(backup, dict):
            continue
        items.append({
            "name": backup.get("name") or key,
            "key": key,
            "date": backup.get("date"),
            "size": backup.get("size"),
        })
    items.sort(key=lambda b: b.get("date") or "", reverse=True)
    return items


def get_backup(name):
    backup = storage.get_item(name) if name.startswith(storage.BACKUP_PREFIX) else None
    if not isinstance(backup, dict):
        raise NotFoundError("النسخة الاحتياطية غير موجودة", code="backup_not_found")
    return backup


def delete_backup(name, actor=None) -> bool:
    if not name.startswith(storage.BACKUP_PREFIX) or not storage.remove_item(name):
        return False
    log_activity(actor, "delete", "system", f"حذف نسخة احتياطية: {name}")
    db.session.commit()
    return True


def restore_backup(data, actor=None):
    """Replace every collection present in ``data``.

    Returns {section: rows_written}.
    """
    if not isinstance(data, dict):
        raise ValidationError("ملف غير صالح", code="invalid_backup")

    # the acting user row may be replaced below
    who = None
    if actor is not None and getattr(actor, "id", None):
        who = SimpleNamespace(id=actor.id, full_name=actor.full_name)

    restored = {}
    try:
        for section, key in SNAPSHOT_COLLECTIONS:
            rows = data.get(section)
            if rows is None:
                continue
            if not isinstance(rows, list):
                raise ValidationError("ملف غير صالح", code="invalid_backup", section=section)
            restored[section] = storage.set_collection(key, rows)

        emit_event(
            who,
            "restore",
            "system",
            "تم استعادة نسخة احتياطية",
            title="🔄 استعادة النظام",
            message="تم استعادة بيانات النظام من النسخة الاحتياطية.",
            level="warning",
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Backup restore failed")
        raise

    logger.info(f"Backup restored | {restored}")
    return restored


def restore_backup_by_name(name, actor=None):
    return restore_backup(get_backup(name).get("data"), actor=actor)


def import_backup_file(text, actor=None):
    """Parse an exported snapshot file and restore it."""
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    try:
        parsed = json.loads(text or "")
    except ValueError as e:
        raise ValidationError("حدث خطأ أثناء قراءة الملف", code="invalid_backup") from e

    if not isinstance(parsed, dict) or not parsed.get("data") or not parsed.get("name"):
        raise ValidationError("ملف غير صالح", code="invalid_backup")

    restored = restore_backup(parsed["data"], actor=actor)
    return parsed["name"], restored


# =========================
# Theme
# =========================
def get_theme():
    theme = storage.get_item(storage.THEME_KEY)
    return theme if theme in THEMES else "default"


def set_theme(name):
    name = (name or "").strip().lower()
    if name not in THEMES:
        raise ValidationError("السمة غير معروفة", code="invalid_choice", field="theme")
    storage.set_item(storage.THEME_KEY, name)
    db.session.commit()
    return name
