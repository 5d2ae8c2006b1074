"""
tabulation/services/event_service.py
Active-event switching.
"""
import logging

from tabulation.core.rows import Row
from tabulation.exceptions import ScoringSuspendedError

logger = logging.getLogger(__name__)


async def ensure_event_active(store, event_id: int) -> Row:
    """
    Raises:
        NotFoundError: Unknown event
        ScoringSuspendedError: Event exists but is not active
    """
    event = await store.require_row("event", event_id, "Event")
    if not event.is_active:
        raise ScoringSuspendedError(event_id)
    return event


async def set_active_event(store, event_id: int) -> Row:
    """
    Make one event the only active event.

    Clears every active flag, then sets the target, in one transaction.
    """
    await store.require_row("event", event_id, "Event")
    async with store.atomic():
        for event in await store.query_rows("event", {"is_active": True}):
            if event.id != event_id:
                await store.update_row("event", event.id, {"is_active": False})
        activated = await store.update_row("event", event_id, {"is_active": True})
    logger.info(f"Active event switched to {event_id}")
    return activated
