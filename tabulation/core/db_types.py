"""
Dialect-aware database types.
Provides PostgreSQL JSONB when available,
falls back to generic JSON for SQLite.
"""
import json
from typing import Any, List, Optional

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator
from sqlalchemy.engine import Dialect


class UniversalJSON(TypeDecorator):
    """
    Uses JSONB for PostgreSQL.
    Uses JSON for SQLite and others.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


def parse_id_list(raw: Any) -> List[int]:
    """
    Normalize an id collection into an ordered, de-duplicated list of ints.

    Accepts a native list/tuple, a JSON array string ("[1, 2]"), a
    PostgreSQL array literal ("{1,2}"), a comma-delimited string ("1,2"),
    a single int, or None. Entries that are not integers are dropped.
    """
    if raw is None:
        return []

    if isinstance(raw, bool):
        return []

    if isinstance(raw, int):
        items: List[Any] = [raw]
    elif isinstance(raw, (list, tuple, set)):
        items = list(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = text[1:-1].split(",")
            items = decoded if isinstance(decoded, list) else [decoded]
        else:
            if text.startswith("{") and text.endswith("}"):
                text = text[1:-1]
            items = text.split(",")
    else:
        return []

    ids: List[int] = []
    seen = set()
    for item in items:
        value = _coerce_id(item)
        if value is None or value in seen:
            continue
        seen.add(value)
        ids.append(value)
    return ids


def _coerce_id(item: Any) -> Optional[int]:
    if isinstance(item, bool):
        return None
    if isinstance(item, int):
        return item
    if isinstance(item, float):
        return int(item) if item.is_integer() else None
    if isinstance(item, str):
        text = item.strip()
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            return int(number) if number.is_integer() else None
    return None


class CriteriaIdList(UniversalJSON):
    """
    Award criteria ids, stored as a JSON array.

    Whatever shape arrives (array, array literal, delimited string) is
    normalized on the way in and on the way out, so callers only ever
    see List[int].
    """
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect):
        if value is None:
            return None
        return parse_id_list(value)

    def process_result_value(self, value: Any, dialect: Dialect):
        if value is None:
            return None
        return parse_id_list(value)
