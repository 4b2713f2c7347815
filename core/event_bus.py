"""
Event bus for order domain events.

Synchronous in-process pub/sub. Handlers run in the publisher's thread, in
subscription order. Handler errors are logged and never propagate: the
order change has already been persisted.
"""

import logging
from collections import defaultdict
from typing import Callable

from core.events import OrderEvent

logger = logging.getLogger(__name__)


class EventBus:
    """Subscribe by event class name, publish by event instance."""

    def __init__(self):
        self._subscribers: dict[str, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """
        Args:
            event_type: Event class name (e.g. 'OrderFinalized')
            callback: Called with the event instance
        """
        self._subscribers[event_type].append(callback)

    def publish(self, event: OrderEvent) -> None:
        event_type = type(event).__name__

        for callback in self._subscribers.get(event_type, ()):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
