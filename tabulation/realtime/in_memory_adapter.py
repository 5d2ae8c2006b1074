"""
In-Memory Broadcast Adapter

Process-local change notification. Listeners run on the publishing
coroutine, one after another, in subscription order.
"""
import asyncio
import dataclasses
import inspect
import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional

from .broadcast_adapter import BroadcastAdapter, ChangeCallback, Subscription
from .events import ChangeEvent

logger = logging.getLogger(__name__)


class InMemoryAdapter(BroadcastAdapter):
    """
    In-memory broadcast adapter.

    Single-threaded, event-driven: a publish delivers to every matching
    subscriber before returning.
    """

    def __init__(self):
        self._channels: Dict[str, List[Subscription]] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    async def publish(self, channel: str, event: ChangeEvent) -> None:
        """
        Publish event to in-memory channel.

        Args:
            channel: Channel name
            event: Change event (sequence is assigned here)
        """
        self.validate_event(event)
        event = dataclasses.replace(event, sequence=next(self._sequence))

        async with self._lock:
            # Copy to avoid modification during iteration
            subscribers = list(self._channels.get(channel, ()))

        for subscription in subscribers:
            if not subscription.wants(event):
                continue
            try:
                result = subscription.callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Subscriber on {channel} failed for {event.operation.value} "
                    f"{event.table}#{event.primary_key}"
                )

    def subscribe(
        self,
        channel: str,
        callback: ChangeCallback,
        event_types=None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> Subscription:
        subscription = Subscription(self, channel, callback, event_types, filters)
        self._channels.setdefault(channel, []).append(subscription)
        logger.debug(f"Subscribed to {channel} ({len(self._channels[channel])} listeners)")
        return subscription

    def remove(self, subscription: Subscription) -> None:
        listeners = self._channels.get(subscription.channel)
        if not listeners:
            return
        if subscription in listeners:
            listeners.remove(subscription)
        if not listeners:
            del self._channels[subscription.channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def close(self) -> None:
        """Close all channels."""
        async with self._lock:
            for listeners in self._channels.values():
                for subscription in listeners:
                    subscription.closed = True
            self._channels.clear()
