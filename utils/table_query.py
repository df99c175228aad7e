"""Table-friendly query helpers.

This module provides a custom Flask-SQLAlchemy query class that can apply
**server-side sorting** for list endpoints using URL params:

  ?sort=<field>&direction=asc|desc

Sort keys arrive in the JSON (camelCase) spelling used by the API, e.g.
``registrationDate`` or ``fullName``; they are mapped to real columns here.
"""

from __future__ import annotations

import re
from typing import Optional

from flask_sqlalchemy.query import Query


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name or "").lower()


class SortableQuery(Query):
    """A Query that can apply a user-chosen sort on a single model."""

    # Map "friendly" / API-facing sort keys to real DB columns.
    # We keep it by model *name* to avoid importing models (avoid circular imports).
    _ALIASES_BY_MODELNAME = {
        # Student.full_name is a property; sort on the first name like the table does.
        "Student": {"full_name": "first_name", "delegate_name": "delegate_id"},
        "User": {"name": "full_name"},
    }

    def sorted_by(self, sort_key: Optional[str], direction: Optional[str] = "asc") -> "SortableQuery":
        """Apply sorting if ``sort_key`` names a sortable column, else return self."""
        sort_key = (sort_key or "").strip()
        if not sort_key:
            return self

        direction = (direction or "asc").strip().lower()
        direction = "desc" if direction in ("desc", "descending") else "asc"

        # Only support simple single-entity queries (the common case for tables).
        descriptions = self.column_descriptions
        if len(descriptions) != 1:
            return self
        model = descriptions[0].get("entity")
        if model is None or not hasattr(model, "__mapper__"):
            return self

        sort_key_db = camel_to_snake(sort_key)

        # Never sort by relationships (unsafe / unpredictable without explicit joins)
        if sort_key_db in model.__mapper__.relationships.keys():
            return self

        model_aliases = self._ALIASES_BY_MODELNAME.get(model.__name__, {})
        sort_key_db = model_aliases.get(sort_key_db, sort_key_db)

        # Only allow sorting by real model attributes that produce SQL expressions
        col = getattr(model, sort_key_db, None)
        if col is None or not hasattr(col, "asc") or not hasattr(col, "desc"):
            return self

        expr = col.desc() if direction == "desc" else col.asc()
        # Clear existing ordering so the user's choice wins.
        return self.order_by(None).order_by(expr)
