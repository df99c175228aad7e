import json

import pytest

from extensions import db
from models import ActivityLog, Notification, Student, User
from services import storage
from services.backup_service import (
    SNAPSHOT_COLLECTIONS, create_backup, delete_backup, get_backup, get_theme,
    import_backup_file, list_backups, restore_backup, restore_backup_by_name, set_theme,
)
from services.errors import NotFoundError, ValidationError
from services.registration_service import delete_student


def _sorted(rows):
    return sorted(rows, key=lambda r: r["id"])


def test_create_backup_shape(ctx, admin):
    backup = create_backup(actor=admin)

    assert backup["name"].startswith("backup_")
    assert backup["size"].endswith(" KB")
    assert set(backup["data"]) == {section for section, _ in SNAPSHOT_COLLECTIONS}
    assert len(backup["data"]["students"]) == 3
    assert "passwordHash" in backup["data"]["users"][0]

    assert storage.exists(backup["name"])
    assert ActivityLog.query.filter_by(action_type="backup").count() == 1
    notif = Notification.query.order_by(Notification.id.desc()).first()
    assert notif.type == "success"


def test_list_get_delete(ctx, admin):
    backup = create_backup(actor=admin)

    listed = list_backups()
    assert [b["name"] for b in listed] == [backup["name"]]
    assert "data" not in listed[0]

    assert get_backup(backup["name"])["data"]["courses"]

    assert delete_backup(backup["name"], actor=admin) is True
    assert delete_backup(backup["name"], actor=admin) is False
    with pytest.raises(NotFoundError):
        get_backup(backup["name"])


def test_restore_round_trip(ctx, admin):
    backup = create_backup(actor=admin)
    snapshot = backup["data"]

    # mutate everything the snapshot covers
    delete_student(1, actor=admin)
    db.session.get(User, 4).full_name = "changed"
    db.session.commit()

    restore_backup_by_name(backup["name"], actor=admin)

    for section, key in SNAPSHOT_COLLECTIONS:
        assert _sorted(storage.get_collection(key)) == _sorted(snapshot[section])

    assert db.session.get(User, 3).check_password("123456")
    log = ActivityLog.query.filter_by(action_type="restore").one()
    assert log.user_name == admin.full_name


def test_restore_only_touches_present_sections(ctx, admin):
    restore_backup({"students": []}, actor=admin)
    assert Student.query.count() == 0
    assert User.query.count() == 7


def test_restore_accepts_plain_passwords(ctx, admin):
    users = storage.get_collection("app_users")
    for u in users:
        u.pop("passwordHash")
        u["password"] = "fresh"
    restore_backup({"users": users}, actor=admin)
    assert db.session.get(User, 1).check_password("fresh")


def test_import_backup_file(ctx, admin):
    backup = create_backup(actor=admin)
    delete_student(2, actor=admin)

    name, restored = import_backup_file(json.dumps(backup, ensure_ascii=False), actor=admin)
    assert name == backup["name"]
    assert restored["students"] == 3
    assert db.session.get(Student, 2) is not None


@pytest.mark.parametrize("text", [
    "not json",
    json.dumps({"name": "x"}),
    json.dumps({"data": {"students": []}}),
    json.dumps([1, 2]),
])
def test_import_backup_file_rejects_invalid(ctx, admin, text):
    with pytest.raises(ValidationError) as exc:
        import_backup_file(text, actor=admin)
    assert exc.value.code == "invalid_backup"


def test_theme(ctx):
    assert get_theme() == "default"
    assert set_theme("Dark") == "dark"
    assert get_theme() == "dark"
    with pytest.raises(ValidationError):
        set_theme("neon")
