"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus implementation for publishing cluster and node-group
  lifecycle events
- Supports async subscription handlers, including handlers registered on a
  base event class
- Handler errors propagate to the publisher
"""

import logging
from typing import Callable, Awaitable
from kubeplane.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[DomainEvent], Awaitable[None]]]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            logger.debug("Publishing %s for %s", event.event_type, event.aggregate_id)
            for event_type in type(event).__mro__:
                for handler in self._handlers.get(event_type, []):
                    await handler(event)

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None:
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
