"""
Event Bus Port

Architectural Intent:
- Abstract interface for publishing cluster and node-group lifecycle events
- Allows decoupling of the managers from whoever consumes the events
- Implementation can be in-memory or backed by a message queue
"""

from typing import Protocol, Callable, Awaitable, runtime_checkable
from kubeplane.domain.events.event_base import DomainEvent


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: list[DomainEvent]) -> None: ...

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None: ...
