"""
Row change events delivered to store subscribers.

One event per mutated row: (table, operation, row). Consumers treat the
latest delivered row for a primary key as authoritative.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional


class ChangeOperation(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_OPERATIONS = frozenset(ChangeOperation)


def channel_for(table: str) -> str:
    """Broadcast channel carrying one table's changes."""
    return f"table:{table}"


def normalize_operations(event_types: Optional[Iterable[Any]]) -> frozenset:
    """Map ("*" | None | names) to a set of ChangeOperation."""
    if event_types is None:
        return ALL_OPERATIONS
    if isinstance(event_types, (str, ChangeOperation)):
        event_types = [event_types]
    operations = set()
    for item in event_types:
        if item == "*":
            return ALL_OPERATIONS
        operations.add(ChangeOperation(str(getattr(item, "value", item)).upper()))
    return frozenset(operations)


def row_matches(row: Optional[Mapping[str, Any]], filters: Optional[Mapping[str, Any]]) -> bool:
    """
    Check a row against {column: value} filters.

    A list/tuple/set/frozenset value means "column IN values".
    """
    if not filters:
        return True
    if row is None:
        return False
    for column, expected in filters.items():
        actual = row.get(column)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


@dataclass(frozen=True)
class ChangeEvent:
    """
    A committed row mutation.

    `row` is the new state (None for DELETE); `old` is the prior state
    where known (always set for DELETE).
    """
    table: str
    operation: ChangeOperation
    row: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    sequence: int = field(default=0, compare=False)

    @property
    def primary_key(self) -> Any:
        source = self.row if self.row is not None else self.old
        return source.get("id") if source else None

    @property
    def current(self) -> Optional[Dict[str, Any]]:
        """Row used for filter matching: new state, or old state on DELETE."""
        return self.row if self.row is not None else self.old

    def matches(self, filters: Optional[Mapping[str, Any]]) -> bool:
        return row_matches(self.current, filters)
