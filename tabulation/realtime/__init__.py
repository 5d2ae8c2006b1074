"""
Change notification for live judge and tabulator views.
"""
from .events import ChangeEvent, ChangeOperation, channel_for
from .broadcast_adapter import BroadcastAdapter, Subscription
from .in_memory_adapter import InMemoryAdapter
from .row_state import TabulationState, TRACKED_TABLES

__all__ = [
    "ChangeEvent",
    "ChangeOperation",
    "channel_for",
    "BroadcastAdapter",
    "Subscription",
    "InMemoryAdapter",
    "TabulationState",
    "TRACKED_TABLES",
]
