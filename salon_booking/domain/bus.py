"""Synchronous in-process bus for appointment events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger("salon_booking.bus")

Handler = Callable[[Any], None]


class EventBus:
    """Publish/subscribe bus for appointment events.

    Handlers are called synchronously in registration order, keyed by the
    exact event class. Each appointment event type has its own timeline
    entry, so a handler never receives a subclass it did not subscribe to.
    A handler's exception propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        handlers = self._subscribers.get(type(event), [])
        logger.debug(
            "Publishing %s to %d handler(s)", type(event).__name__, len(handlers)
        )
        for handler in handlers:
            handler(event)
