"""
Broadcast Adapter Interface

Abstract base class for change-notification transports.
Events are published only after the store commits; delivery order across
different rows is not guaranteed.
"""
import abc
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .events import ChangeEvent, ChangeOperation, normalize_operations

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


class Subscription:
    """
    Handle for one registered listener.

    close() releases the listener and is safe to call more than once.
    Also usable as a context manager for scoped acquisition.
    """

    def __init__(
        self,
        adapter: "BroadcastAdapter",
        channel: str,
        callback: ChangeCallback,
        event_types=None,
        filters: Optional[Mapping[str, Any]] = None,
    ):
        self.adapter = adapter
        self.channel = channel
        self.callback = callback
        self.operations = normalize_operations(event_types)
        self.filters = dict(filters) if filters else None
        self.closed = False

    def wants(self, event: ChangeEvent) -> bool:
        """Whether this subscription should receive the event."""
        if self.closed:
            return False
        if event.operation not in self.operations:
            return False
        return event.matches(self.filters)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.adapter.remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BroadcastAdapter(abc.ABC):
    """
    Abstract base class for broadcast adapters.

    Guarantees:
    - Each event carries a monotonically increasing sequence number
    - Subscribers only see events for their channel, operations and filters
    - A failing subscriber never prevents delivery to the others
    """

    @abc.abstractmethod
    async def publish(self, channel: str, event: ChangeEvent) -> None:
        """
        Publish event to channel.

        Args:
            channel: Channel name (e.g., "table:score")
            event: Committed change event
        """
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(
        self,
        channel: str,
        callback: ChangeCallback,
        event_types=None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> Subscription:
        """
        Register a listener on a channel.

        Args:
            channel: Channel name to subscribe to
            callback: Called (or awaited) with each matching ChangeEvent
            event_types: "*", None, or an iterable of INSERT/UPDATE/DELETE
            filters: {column: value} row filter
        Returns:
            Subscription handle
        """
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, subscription: Subscription) -> None:
        """Drop a subscription (called by Subscription.close)."""
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self) -> None:
        """Release every subscription."""
        raise NotImplementedError

    def validate_event(self, event: ChangeEvent) -> bool:
        """
        Validate event has the fields consumers key on.

        Raises:
            ValueError: If table, operation or primary key is missing
        """
        if not event.table:
            raise ValueError("Change event missing table")
        if not isinstance(event.operation, ChangeOperation):
            raise ValueError(f"Change event has invalid operation: {event.operation!r}")
        if event.primary_key is None:
            raise ValueError(f"Change event for {event.table} missing primary key")
        return True
