"""
Provider Call Helpers

Architectural Intent:
- One place where raw adapter failures are classified for callers
- Classified errors pass through untouched; anything else an adapter raises
  is wrapped as ProviderRejectedError with operation and target attached
- No retries: retry policy belongs to the caller
"""

import logging
from typing import Any, Awaitable, Optional, TypeVar

from kubeplane.domain.errors import ClusterControlError, ProviderRejectedError
from kubeplane.domain.events.event_base import DomainEvent
from kubeplane.domain.ports.event_bus_port import EventBusPort

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_provider(operation: str, target: Any, call: Awaitable[T]) -> T:
    try:
        return await call
    except ClusterControlError as e:
        if not e.operation:
            e.operation = operation
        if e.target is None:
            e.target = target
        raise
    except Exception as e:
        logger.error("%s on %s failed at provider: %s", operation, target, e)
        raise ProviderRejectedError(
            f"{operation} failed at provider",
            operation=operation,
            target=target,
            provider_message=str(e),
        ) from e


async def publish_events(
    event_bus: Optional[EventBusPort], events: tuple[DomainEvent, ...]
) -> None:
    if event_bus is not None and events:
        await event_bus.publish(list(events))
