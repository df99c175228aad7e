"""Key/value persistence adapter.

Keys follow the browser build's localStorage names so that snapshots stay
interchangeable:

- collection keys (``app_students``, ``app_commissions`` ...) map to tables;
  ``get_item`` returns the rows as JSON dicts and ``set_item`` replaces the table.
- any other key (``app-theme``, ``backup_<ts>``, alert markers) is stored as
  a JSON blob in ``storage_entry``.

Writes are added to the current session; callers commit.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from extensions import db
from models import (
    ActivityLog, BankAccount, Commission, CourseObject, Delegate,
    Notification, StorageEntry, Student, User, utcnow,
)


COLLECTIONS = {
    "app_students": Student,
    "app_commissions": Commission,
    "app_courses": CourseObject,
    "app_users": User,
    "app_delegates": Delegate,
    "app_activityLogs": ActivityLog,
    "app_bankAccounts": BankAccount,
    "app_notifications": Notification,
}

THEME_KEY = "app-theme"
BACKUP_PREFIX = "backup_"


def is_collection(key: str) -> bool:
    return key in COLLECTIONS


def _row_to_dict(row) -> Dict[str, Any]:
    if isinstance(row, User):
        return row.to_dict(include_secret=True)
    return row.to_dict()


def get_collection(key: str) -> List[Dict[str, Any]]:
    model = COLLECTIONS[key]
    rows = model.query.order_by(model.id.asc()).all()
    return [_row_to_dict(r) for r in rows]


def set_collection(key: str, rows: Iterable[Dict[str, Any]]) -> int:
    """Replace a whole collection: upsert by id, then drop ids not in ``rows``.

    Returns the number of rows written.
    """
    model = COLLECTIONS[key]
    keep_ids = set()
    written = 0

    for data in rows or []:
        if not isinstance(data, dict):
            continue
        obj = model.from_dict(data)
        if obj.id is None:
            db.session.add(obj)
            db.session.flush()
        else:
            obj = db.session.merge(obj)
        keep_ids.add(obj.id)
        written += 1

    q = model.query
    if keep_ids:
        q = q.filter(model.id.notin_(keep_ids))
    q.delete(synchronize_session="fetch")
    db.session.flush()
    return written


def _entry(key: str) -> Optional[StorageEntry]:
    return StorageEntry.query.filter_by(key=key).first()


def get_item(key: str, default: Any = None) -> Any:
    if is_collection(key):
        return get_collection(key)

    entry = _entry(key)
    if entry is None or entry.value is None:
        return default
    try:
        return json.loads(entry.value)
    except ValueError:
        return default


def set_item(key: str, value: Any) -> None:
    if is_collection(key):
        set_collection(key, value)
        return

    payload = json.dumps(value, ensure_ascii=False)
    entry = _entry(key)
    if entry:
        entry.value = payload
        entry.updated_at = utcnow()
    else:
        entry = StorageEntry(key=key, value=payload)
        db.session.add(entry)
    db.session.flush()


def remove_item(key: str) -> bool:
    if is_collection(key):
        set_collection(key, [])
        return True
    entry = _entry(key)
    if not entry:
        return False
    db.session.delete(entry)
    db.session.flush()
    return True


def keys(prefix: str = "") -> List[str]:
    q = StorageEntry.query
    if prefix:
        q = q.filter(StorageEntry.key.startswith(prefix))
    return [e.key for e in q.order_by(StorageEntry.key.asc()).all()]


def exists(key: str) -> bool:
    return _entry(key) is not None
