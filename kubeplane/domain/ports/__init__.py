"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from kubeplane.domain.ports.provider_adapter_port import ProviderAdapterPort
from kubeplane.domain.ports.remote_executor_port import RemoteExecutorPort
from kubeplane.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "ProviderAdapterPort",
    "RemoteExecutorPort",
    "EventBusPort",
]
