"""
Composition Root

Architectural Intent:
- Dependency injection composition root for kubeplane
- Single place where the provider adapter, poller, remote executor and
  managers are wired together
- No adapter instantiation should occur outside this module (except tests)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- The provider adapter is chosen once from config.provider and shared by
  both managers; it is never switched mid-operation
- Each adapter receives its own config section at construction
"""

from dataclasses import dataclass
from typing import Optional

from kubeplane.application.polling.status_poller import StatusPoller
from kubeplane.application.use_cases.cluster_lifecycle import ClusterLifecycleManager
from kubeplane.application.use_cases.configure_nodes import NodeConfigurator
from kubeplane.application.use_cases.node_group_manager import NodeGroupManager
from kubeplane.domain.ports.provider_adapter_port import ProviderAdapterPort
from kubeplane.infrastructure.adapters.alibaba_adapter import AlibabaAdapter
from kubeplane.infrastructure.adapters.aws_adapter import AWSAdapter
from kubeplane.infrastructure.adapters.fabric_adapter import FabricAdapter
from kubeplane.infrastructure.adapters.tencent_adapter import TencentAdapter
from kubeplane.infrastructure.config import KubeplaneConfig
from kubeplane.infrastructure.event_bus import EventBus
from kubeplane.infrastructure.logging import configure_logging


@dataclass
class KubeplaneContainer:
    """DI container holding all wired dependencies."""

    config: KubeplaneConfig
    provider_adapter: ProviderAdapterPort
    fabric_adapter: FabricAdapter
    event_bus: EventBus
    poller: StatusPoller
    node_configurator: NodeConfigurator
    clusters: ClusterLifecycleManager
    node_groups: NodeGroupManager


def create_provider_adapter(config: KubeplaneConfig) -> ProviderAdapterPort:
    """Build the adapter named by config.provider from its config section."""
    if config.provider == "alibaba":
        section = config.alibaba
        return AlibabaAdapter(
            region=section.region,
            access_key_id=section.access_key_id,
            access_key_secret=section.access_key_secret,
            settle_polls=section.settle_polls,
        )
    if config.provider == "tencent":
        section = config.tencent
        return TencentAdapter(
            region=section.region,
            zone=section.zone,
            secret_id=section.secret_id,
            secret_key=section.secret_key,
            settle_polls=section.settle_polls,
        )
    if config.provider == "aws":
        section = config.aws
        return AWSAdapter(
            region=section.region,
            access_key_id=section.access_key_id,
            secret_access_key=section.secret_access_key,
            role_arn=section.role_arn,
            settle_polls=section.settle_polls,
        )
    raise ValueError(f"Unknown provider: {config.provider}")


def create_container(
    config: Optional[KubeplaneConfig] = None, setup_logging: bool = False
) -> KubeplaneContainer:
    """Create and wire all dependencies.

    With setup_logging, the "kubeplane" logger is configured from
    config.log_level and config.log_json.
    """
    config = config or KubeplaneConfig()
    if setup_logging:
        configure_logging(config.log_level, json_format=config.log_json)
    provider_adapter = create_provider_adapter(config)
    fabric_adapter = FabricAdapter()
    event_bus = EventBus()
    poller = StatusPoller(
        timeout=config.poller.timeout_seconds,
        interval=config.poller.interval_seconds,
        backoff_factor=config.poller.backoff_factor,
        max_interval=config.poller.max_interval_seconds,
    )
    node_configurator = NodeConfigurator(
        fabric_adapter,
        user=config.ssh.user,
        key_path=config.ssh.key_path or None,
        connect_timeout=config.ssh.connect_timeout,
    )

    clusters = ClusterLifecycleManager(provider_adapter, poller, event_bus)
    node_groups = NodeGroupManager(
        provider_adapter, poller, event_bus, configurator=node_configurator
    )

    return KubeplaneContainer(
        config=config,
        provider_adapter=provider_adapter,
        fabric_adapter=fabric_adapter,
        event_bus=event_bus,
        poller=poller,
        node_configurator=node_configurator,
        clusters=clusters,
        node_groups=node_groups,
    )
