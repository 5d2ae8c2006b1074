"""
Live tabulation state.

Mirrors store tables in memory and folds change events into them:
INSERT/UPDATE replace the row with the same primary key, DELETE removes
it. The latest delivered row wins, so out-of-order delivery across rows
is harmless. Derived views are recomputed from these rows, never patched
incrementally.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from tabulation.core.rows import Row
from .broadcast_adapter import Subscription
from .events import ChangeEvent, ChangeOperation, row_matches

logger = logging.getLogger(__name__)

# Tables a tabulator or judge screen keeps live
TRACKED_TABLES = (
    "event",
    "contest",
    "criteria",
    "participant",
    "score",
    "judge_participant_total",
    "judge_contest_submission",
    "judge_scoring_permission",
    "judge_division_permission",
    "judge_participant_permission",
    "award",
)

StateListener = Callable[[str], None]


class TabulationState:
    """
    In-memory mirror of store tables driven by ChangeEvents.

    Usage:
        state = TabulationState()
        await state.hydrate(store, {"score": {"judge_id": 3}})
        state.attach(store)
    """

    def __init__(self):
        self._tables: Dict[str, Dict[Any, Row]] = {}
        self._listeners: List[StateListener] = []
        self._subscriptions: List[Subscription] = []
        self.version = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        """Replace a table's contents with a fresh snapshot."""
        self._tables[table] = {row["id"]: Row(row) for row in rows}
        self._changed(table)

    async def hydrate(self, store, tables: Mapping[str, Optional[Mapping[str, Any]]]) -> None:
        """Load each table from the store with its filter."""
        for table, filters in tables.items():
            self.load(table, await store.query_rows(table, filters))

    def attach(self, store, tables: Iterable[str] = TRACKED_TABLES,
               filters: Optional[Mapping[str, Mapping[str, Any]]] = None) -> List[Subscription]:
        """Subscribe the reducer to every change on the given tables."""
        filters = filters or {}
        for table in tables:
            self._subscriptions.append(
                store.subscribe(table, "*", filters.get(table), self.apply)
            )
        return list(self._subscriptions)

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []

    # ------------------------------------------------------------------
    # Reducer
    # ------------------------------------------------------------------

    def apply(self, event: ChangeEvent) -> bool:
        """
        Fold one change into the mirror.

        Returns:
            True if the table contents changed
        """
        rows = self._tables.setdefault(event.table, {})
        key = event.primary_key

        if event.operation is ChangeOperation.DELETE:
            if rows.pop(key, None) is None:
                return False
        else:
            row = Row(event.row)
            if rows.get(key) == row:
                return False
            rows[key] = row

        logger.debug(f"Applied {event.operation.value} {event.table}#{key} (seq {event.sequence})")
        self._changed(event.table)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def rows(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """Rows of a table matching the filters, ordered by id."""
        rows = self._tables.get(table, {})
        return [rows[key] for key in sorted(rows) if row_matches(rows[key], filters)]

    def get(self, table: str, key: Any) -> Optional[Row]:
        return self._tables.get(table, {}).get(key)

    def on_change(self, listener: StateListener) -> None:
        """Register a callback invoked with the table name after each change."""
        self._listeners.append(listener)

    def _changed(self, table: str) -> None:
        self.version += 1
        for listener in list(self._listeners):
            listener(table)
