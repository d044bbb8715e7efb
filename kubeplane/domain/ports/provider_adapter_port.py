"""
Provider Adapter Port

Architectural Intent:
- Port interface every managed-Kubernetes cloud driver implements
- Abstracts provider-specific cluster and node-pool APIs behind one
  provider-agnostic contract of eleven operations
- Implemented by the Alibaba (ACK), Tencent (TKE) and AWS (EKS) adapters

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Each adapter exposes a static CapabilityDescriptor; the managers consult
  it before forwarding optional fields
- Mutating calls return as soon as the provider accepts the request; the
  returned resource usually reports a transitional status and the managers
  poll for the settled one
- Provider failures surface as ProviderRejectedError, absent resources as
  NotFoundError
- create_cluster is not idempotent on retry: callers must not re-issue it
  after an ambiguous failure
"""

from typing import Protocol, runtime_checkable
from kubeplane.domain.entities.cluster import ClusterInfo
from kubeplane.domain.entities.node_group import NodeGroupInfo
from kubeplane.domain.value_objects.capability import CapabilityDescriptor
from kubeplane.domain.value_objects.iid import IID


@runtime_checkable
class ProviderAdapterPort(Protocol):
    """Port for provider-managed Kubernetes cluster operations."""

    capabilities: CapabilityDescriptor

    async def create_cluster(self, cluster: ClusterInfo) -> ClusterInfo:
        """Request a cluster, optionally with initial node groups."""
        ...

    async def list_cluster(self) -> list[ClusterInfo]:
        """Return every cluster currently visible at the provider."""
        ...

    async def get_cluster(self, cluster_iid: IID) -> ClusterInfo:
        """Return the current state of one cluster."""
        ...

    async def delete_cluster(self, cluster_iid: IID) -> bool:
        """True on confirmed deletion or accepted deletion request."""
        ...

    async def upgrade_cluster(
        self, cluster_iid: IID, target_version: str
    ) -> ClusterInfo:
        """Request a control-plane version upgrade."""
        ...

    async def add_node_group(
        self, cluster_iid: IID, node_group: NodeGroupInfo
    ) -> NodeGroupInfo:
        """Request a new node group inside an existing cluster."""
        ...

    async def list_node_group(self, cluster_iid: IID) -> list[NodeGroupInfo]:
        """Return every node group of a cluster."""
        ...

    async def get_node_group(
        self, cluster_iid: IID, node_group_iid: IID
    ) -> NodeGroupInfo:
        """Return the current state of one node group."""
        ...

    async def set_node_group_auto_scaling(
        self, cluster_iid: IID, node_group_iid: IID, enable: bool
    ) -> bool:
        """Toggle provider-side autoscaling for a node group."""
        ...

    async def change_node_group_scaling(
        self,
        cluster_iid: IID,
        node_group_iid: IID,
        desired_node_size: int,
        min_node_size: int,
        max_node_size: int,
    ) -> NodeGroupInfo:
        """Change node counts; bounds are validated before any remote call."""
        ...

    async def remove_node_group(
        self, cluster_iid: IID, node_group_iid: IID
    ) -> bool:
        """True on confirmed removal or accepted removal request."""
        ...
