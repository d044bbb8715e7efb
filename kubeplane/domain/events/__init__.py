"""
Domain Events Package

Architectural Intent:
- Base event type shared by the cluster and node-group aggregates
- Concrete lifecycle events live beside the entity that raises them
"""

from kubeplane.domain.events.event_base import DomainEvent

__all__ = ["DomainEvent"]
