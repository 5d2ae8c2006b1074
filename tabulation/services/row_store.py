"""
tabulation/services/row_store.py
Generic row-store adapter over an async SQLAlchemy session.

Every read and write of the scoring core goes through this adapter:
- query_rows / insert_rows / update_row / delete_rows / upsert_row
- subscribe(table, event_types, filters, callback)
- atomic(): one transaction; change events are published after commit

Filters are {column: value}; a list/tuple/set value means IN.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tabulation.core.rows import Row
from tabulation.exceptions import NotFoundError, StoreError
from tabulation.orm import (
    Administrator,
    Award,
    Contest,
    Criterion,
    Division,
    Event,
    Judge,
    JudgeAssignment,
    JudgeContestSubmission,
    JudgeDivisionPermission,
    JudgeParticipantPermission,
    JudgeParticipantTotal,
    JudgeScoringPermission,
    Participant,
    Score,
    Tabulator,
    Team,
)
from tabulation.realtime.broadcast_adapter import BroadcastAdapter, ChangeCallback, Subscription
from tabulation.realtime.events import ChangeEvent, ChangeOperation, channel_for

logger = logging.getLogger(__name__)

MODELS = {
    model.__tablename__: model
    for model in (
        Event,
        Contest,
        Criterion,
        Division,
        Team,
        Participant,
        Judge,
        Tabulator,
        Administrator,
        JudgeAssignment,
        Score,
        JudgeParticipantTotal,
        JudgeContestSubmission,
        JudgeScoringPermission,
        JudgeDivisionPermission,
        JudgeParticipantPermission,
        Award,
    )
}


def model_for(table: str):
    try:
        return MODELS[table]
    except KeyError:
        raise StoreError(f"Unknown table '{table}'") from None


def _where(model, filters: Optional[Mapping[str, Any]]) -> list:
    clauses = []
    for column, value in (filters or {}).items():
        attribute = getattr(model, column, None)
        if attribute is None:
            raise StoreError(f"Unknown column '{model.__tablename__}.{column}'")
        if isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(attribute.in_(list(value)))
        elif value is None:
            clauses.append(attribute.is_(None))
        else:
            clauses.append(attribute == value)
    return clauses


class RowStore:
    """
    Row-level store adapter bound to one session.

    Writes outside atomic() commit individually. Inside atomic(), nothing
    is committed (and no change event is published) until the outermost
    block exits cleanly; any SQLAlchemy failure rolls the whole block back
    and surfaces as StoreError.
    """

    def __init__(self, session: AsyncSession, broadcaster: Optional[BroadcastAdapter] = None):
        self.session = session
        self.broadcaster = broadcaster
        self._depth = 0
        self._pending_events: List[ChangeEvent] = []

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator["RowStore"]:
        """Run the enclosed writes as one all-or-nothing unit."""
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield self
            if outermost:
                await self.session.commit()
        except SQLAlchemyError as exc:
            if outermost:
                await self._rollback()
                logger.error(f"Store transaction failed: {exc}")
                raise StoreError(str(exc.orig if getattr(exc, "orig", None) else exc)) from exc
            raise
        except BaseException:
            if outermost:
                await self._rollback()
            raise
        finally:
            self._depth -= 1

        if outermost:
            events, self._pending_events = self._pending_events, []
            await self._publish(events)

    async def _rollback(self) -> None:
        self._pending_events = []
        await self.session.rollback()

    async def _publish(self, events: Sequence[ChangeEvent]) -> None:
        if self.broadcaster is None:
            return
        for event in events:
            await self.broadcaster.publish(channel_for(event.table), event)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query_models(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> list:
        model = model_for(table)
        query = select(model).where(*_where(model, filters))
        for column in order_by or ("id",):
            query = query.order_by(getattr(model, column))
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.error(f"Query on {table} failed: {exc}")
            raise StoreError(f"Failed to read {table}") from exc
        return list(result.scalars().all())

    async def query_rows(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """Rows matching the filters, ordered by id unless order_by is given."""
        return [Row(instance.to_dict()) for instance in await self.query_models(table, filters, order_by)]

    async def get_row(self, table: str, row_id: Any) -> Optional[Row]:
        rows = await self.query_rows(table, {"id": row_id})
        return rows[0] if rows else None

    async def require_row(self, table: str, row_id: Any, resource: Optional[str] = None) -> Row:
        row = await self.get_row(table, row_id)
        if row is None:
            raise NotFoundError(resource or table.replace("_", " ").capitalize(), row_id)
        return row

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_rows(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Row]:
        model = model_for(table)
        async with self.atomic():
            instances = [model(**dict(row)) for row in rows]
            self.session.add_all(instances)
            await self.session.flush()
            inserted = [Row(instance.to_dict()) for instance in instances]
            for row in inserted:
                self._pending_events.append(ChangeEvent(table, ChangeOperation.INSERT, row=dict(row)))
        return inserted

    async def update_row(self, table: str, row_id: Any, patch: Mapping[str, Any]) -> Row:
        model = model_for(table)
        async with self.atomic():
            instance = await self.session.get(model, row_id)
            if instance is None:
                raise NotFoundError(table, row_id)
            old = instance.to_dict()
            for column, value in patch.items():
                setattr(instance, column, value)
            await self.session.flush()
            row = Row(instance.to_dict())
            self._pending_events.append(ChangeEvent(table, ChangeOperation.UPDATE, row=dict(row), old=old))
        return row

    async def delete_rows(self, table: str, filters: Mapping[str, Any]) -> int:
        """Delete matching rows. An empty filter is refused."""
        if not filters:
            raise StoreError(f"Refusing unfiltered delete on {table}")
        model = model_for(table)
        async with self.atomic():
            existing = await self.query_rows(table, filters)
            if not existing:
                return 0
            ids = [row["id"] for row in existing]
            await self.session.execute(
                delete(model).where(model.id.in_(ids)).execution_options(synchronize_session="fetch")
            )
            for row in existing:
                self._pending_events.append(ChangeEvent(table, ChangeOperation.DELETE, old=dict(row)))
        return len(existing)

    async def upsert_row(self, table: str, key: Mapping[str, Any], values: Mapping[str, Any]) -> tuple:
        """
        Insert-or-update on a natural key.

        Returns:
            (row, created) where created is False for an update
        """
        async with self.atomic():
            existing = await self.query_rows(table, key)
            if existing:
                return await self.update_row(table, existing[0]["id"], values), False
            inserted = await self.insert_rows(table, [{**key, **values}])
            return inserted[0], True

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        table: str,
        event_types,
        filters: Optional[Mapping[str, Any]],
        callback: ChangeCallback,
    ) -> Subscription:
        """Listen for committed changes on a table."""
        model_for(table)
        if self.broadcaster is None:
            raise StoreError("Store has no change broadcaster")
        return self.broadcaster.subscribe(channel_for(table), callback, event_types, filters)
