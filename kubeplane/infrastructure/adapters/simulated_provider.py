"""
Simulated Managed-Kubernetes Provider

Architectural Intent:
- Shared base for the ACK, TKE and EKS adapters; implements
  ProviderAdapterPort on top of an in-memory registry that plays the role of
  the provider backend
- Subclasses supply the SDK-specific parts: request/response payload shapes
  (_stub_* hooks), provider status strings and the capability descriptor
- Replace a subclass's _stub_* hooks with real SDK client calls to go live;
  the public method signatures remain stable

Design Decisions:
- Mutations return at once with a transitional status. The resource settles
  after settle_polls further get_* reads, mimicking asynchronous provider
  operations; list_* reads never advance a transition
- Deletions settle by removing the record, so later reads raise
  NotFoundError exactly like the real APIs
- Provider status strings are mapped to unified statuses through per-adapter
  tables; an unmapped string is reported as Error
- simulate_failure(name) makes the next transition of a named resource
  settle in the provider's failed state, for exercising Error paths
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from kubeplane.domain.entities.cluster import ClusterInfo, ClusterStatus
from kubeplane.domain.entities.node_group import (
    NodeGroupInfo,
    NodeGroupStatus,
    validate_scaling_bounds,
)
from kubeplane.domain.errors import (
    AmbiguousNameError,
    NotFoundError,
    ProviderRejectedError,
)
from kubeplane.domain.value_objects.capability import (
    CapabilityDescriptor,
    FieldId,
    FieldSupport,
)
from kubeplane.domain.value_objects.iid import IID

logger = logging.getLogger(__name__)


@dataclass
class _Transition:
    # provider status once settled; None removes the record
    settled: Optional[str]
    reads_left: int


@dataclass
class ProviderRecord:
    """One simulated backend resource: a cluster or a node pool."""
    system_id: str
    name: str
    status: str
    payload: dict[str, Any]
    pools: dict[str, "ProviderRecord"] = field(default_factory=dict)
    nodes: list[str] = field(default_factory=list)
    pending: Optional[_Transition] = None


def _first_status(table: Mapping[str, Any], unified: Any) -> str:
    for provider_status, mapped in table.items():
        if mapped is unified:
            return provider_status
    raise KeyError(f"No provider status for {unified}")


class SimulatedProviderAdapter:
    """
    Base class for simulated managed-Kubernetes adapters.

    Subclasses must define PROVIDER, CAPABILITIES, CLUSTER_STATUS,
    NODE_POOL_STATUS, the error codes below, and every _stub_* hook.
    """

    PROVIDER = ""
    CAPABILITIES: CapabilityDescriptor
    CLUSTER_STATUS: Mapping[str, ClusterStatus] = {}
    NODE_POOL_STATUS: Mapping[str, NodeGroupStatus] = {}
    NOT_FOUND_CODE = "NotFound"
    BUSY_CODE = "InvalidState"
    DUPLICATE_NAME_CODE = "AlreadyExists"
    REJECTED_FIELD_CODE = "InvalidParameter"
    UNIQUE_NAMES = False

    def __init__(self, settle_polls: int = 2) -> None:
        if settle_polls < 0:
            raise ValueError("settle_polls cannot be negative")
        self.capabilities = self.CAPABILITIES
        self.settle_polls = settle_polls
        self._clusters: dict[str, ProviderRecord] = {}
        self._fail_names: set[str] = set()
        self._node_counter = 0

    # ------------------------------------------------------------------
    # Simulation controls
    # ------------------------------------------------------------------

    def simulate_failure(self, name_id: str) -> None:
        """Make the next transition of resources named name_id fail."""
        self._fail_names.add(name_id)

    def _begin(
        self,
        record: ProviderRecord,
        transitional: str,
        settled: Optional[str],
        failed: str,
        parent: Optional[ProviderRecord] = None,
    ) -> None:
        if record.name in self._fail_names:
            self._fail_names.discard(record.name)
            settled = failed
        record.status = transitional
        record.pending = _Transition(settled=settled, reads_left=self.settle_polls)
        if self.settle_polls == 0:
            self._advance(record, parent=parent)

    def _advance(
        self, record: ProviderRecord, parent: Optional[ProviderRecord]
    ) -> bool:
        """Count one read against record's transition. False once removed."""
        if record.pending is None:
            return True
        if record.pending.reads_left > 0:
            record.pending.reads_left -= 1
        if record.pending.reads_left > 0:
            return True

        settled = record.pending.settled
        record.pending = None
        if settled is None:
            if parent is None:
                self._clusters.pop(record.system_id, None)
            else:
                parent.pools.pop(record.system_id, None)
            logger.debug("%s: %s removed", self.PROVIDER, record.system_id)
            return False
        record.status = settled
        if parent is not None and self._pool_status(record) is NodeGroupStatus.ACTIVE:
            self._materialize_nodes(record)
        logger.debug("%s: %s settled as %s", self.PROVIDER, record.system_id, settled)
        return True

    def _materialize_nodes(self, pool: ProviderRecord) -> None:
        desired = self._stub_desired_size(pool)
        while len(pool.nodes) < desired:
            self._node_counter += 1
            n = self._node_counter
            pool.nodes.append(f"10.{(n // 65536) % 256}.{(n // 256) % 256}.{n % 256}")
        del pool.nodes[desired:]

    # ------------------------------------------------------------------
    # Status mapping
    # ------------------------------------------------------------------

    def _cluster_status_of(self, provider_status: str) -> ClusterStatus:
        status = self.CLUSTER_STATUS.get(provider_status)
        if status is None:
            logger.warning(
                "%s: unmapped cluster status %r", self.PROVIDER, provider_status
            )
            return ClusterStatus.ERROR
        return status

    def _pool_status_of(self, provider_status: str) -> NodeGroupStatus:
        status = self.NODE_POOL_STATUS.get(provider_status)
        if status is None:
            logger.warning(
                "%s: unmapped node pool status %r", self.PROVIDER, provider_status
            )
            return NodeGroupStatus.ERROR
        return status

    def _cluster_status(self, record: ProviderRecord) -> ClusterStatus:
        return self._cluster_status_of(record.status)

    def _pool_status(self, record: ProviderRecord) -> NodeGroupStatus:
        return self._pool_status_of(record.status)

    def _cluster_state(self, unified: ClusterStatus) -> str:
        return _first_status(self.CLUSTER_STATUS, unified)

    def _pool_state(self, unified: NodeGroupStatus) -> str:
        return _first_status(self.NODE_POOL_STATUS, unified)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _not_found(self, kind: str, iid: IID, operation: str) -> NotFoundError:
        return NotFoundError(
            f"{kind} {iid} not found",
            operation=operation,
            target=iid,
            provider_message=self.NOT_FOUND_CODE,
        )

    def _lookup(
        self,
        records: dict[str, ProviderRecord],
        iid: IID,
        kind: str,
        operation: str,
    ) -> ProviderRecord:
        if iid.system_id:
            record = records.get(iid.system_id)
            if record is None:
                raise self._not_found(kind, iid, operation)
            return record
        matches = [r for r in records.values() if r.name == iid.name_id]
        if not matches:
            raise self._not_found(kind, iid, operation)
        if len(matches) > 1:
            raise AmbiguousNameError(
                f"{len(matches)} {kind.lower()}s named {iid.name_id!r}",
                matches=len(matches),
                operation=operation,
                target=iid,
            )
        return matches[0]

    def _find_cluster(self, iid: IID, operation: str) -> ProviderRecord:
        return self._lookup(self._clusters, iid, "Cluster", operation)

    def _find_pool(
        self, cluster: ProviderRecord, iid: IID, operation: str
    ) -> ProviderRecord:
        return self._lookup(cluster.pools, iid, "Node group", operation)

    def _require_running(self, cluster: ProviderRecord, operation: str) -> None:
        if self._cluster_status(cluster) is not ClusterStatus.ACTIVE:
            raise ProviderRejectedError(
                f"Cluster {cluster.name} is {cluster.status}",
                code=self.BUSY_CODE,
                operation=operation,
                target=IID(cluster.name, cluster.system_id),
                provider_message=f"cluster state {cluster.status}",
            )

    def _reject_unsupported(self, node_group: NodeGroupInfo, operation: str) -> None:
        checks = (
            (FieldId.NODE_GROUP_IMAGE, node_group.image_iid is not None),
            (FieldId.NODE_GROUP_KEY_PAIR, node_group.key_pair_iid is not None),
            (FieldId.NODE_GROUP_ROOT_DISK_TYPE, bool(node_group.root_disk_type)),
            (FieldId.NODE_GROUP_ROOT_DISK_SIZE, bool(node_group.root_disk_size)),
        )
        for field_id, supplied in checks:
            if supplied and self.capabilities.support_for(field_id) is FieldSupport.REJECTED:
                raise ProviderRejectedError(
                    f"{self.PROVIDER} cannot set {field_id.value}",
                    code=self.REJECTED_FIELD_CODE,
                    operation=operation,
                    target=node_group.iid,
                )

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def _cluster_info(self, record: ProviderRecord) -> ClusterInfo:
        response = self._stub_describe_cluster(record)
        pools = [
            self._node_group_from_response(self._stub_describe_node_pool(record, p))
            for p in record.pools.values()
        ]
        return self._cluster_from_response(response, pools)

    def _node_group_info(
        self, cluster: ProviderRecord, pool: ProviderRecord
    ) -> NodeGroupInfo:
        return self._node_group_from_response(
            self._stub_describe_node_pool(cluster, pool)
        )

    # ------------------------------------------------------------------
    # ProviderAdapterPort implementation
    # ------------------------------------------------------------------

    async def create_cluster(self, cluster: ClusterInfo) -> ClusterInfo:
        operation = "CreateCluster"
        if self.UNIQUE_NAMES and any(
            r.name == cluster.iid.name_id for r in self._clusters.values()
        ):
            raise ProviderRejectedError(
                f"Cluster {cluster.iid.name_id} already exists",
                code=self.DUPLICATE_NAME_CODE,
                operation=operation,
                target=cluster.iid,
            )
        initial = ()
        if self.capabilities.honors(FieldId.CLUSTER_INITIAL_NODE_GROUPS):
            initial = cluster.node_group_list
        for node_group in initial:
            self._reject_unsupported(node_group, operation)

        system_id, payload = self._stub_create_cluster(cluster)
        record = ProviderRecord(
            system_id=system_id,
            name=cluster.iid.name_id,
            status=self._cluster_state(ClusterStatus.CREATING),
            payload=payload,
        )
        self._clusters[system_id] = record
        logger.info(
            "%s create cluster: name=%s id=%s version=%s",
            self.PROVIDER, record.name, system_id, cluster.version,
        )
        for node_group in initial:
            self._create_pool(record, node_group)
        self._begin(
            record,
            self._cluster_state(ClusterStatus.CREATING),
            self._cluster_state(ClusterStatus.ACTIVE),
            self._cluster_state(ClusterStatus.ERROR),
        )
        return self._cluster_info(record)

    async def list_cluster(self) -> list[ClusterInfo]:
        logger.debug("%s list clusters (%d)", self.PROVIDER, len(self._clusters))
        return [self._cluster_info(r) for r in list(self._clusters.values())]

    async def get_cluster(self, cluster_iid: IID) -> ClusterInfo:
        record = self._find_cluster(cluster_iid, "GetCluster")
        if not self._advance(record, parent=None):
            raise self._not_found("Cluster", cluster_iid, "GetCluster")
        return self._cluster_info(record)

    async def delete_cluster(self, cluster_iid: IID) -> bool:
        record = self._find_cluster(cluster_iid, "DeleteCluster")
        logger.info("%s delete cluster: %s", self.PROVIDER, record.system_id)
        for pool in record.pools.values():
            pool.status = self._pool_state(NodeGroupStatus.DELETING)
            pool.pending = None
        self._begin(
            record,
            self._cluster_state(ClusterStatus.DELETING),
            None,
            self._cluster_state(ClusterStatus.ERROR),
        )
        return True

    async def upgrade_cluster(
        self, cluster_iid: IID, target_version: str
    ) -> ClusterInfo:
        operation = "UpgradeCluster"
        record = self._find_cluster(cluster_iid, operation)
        self._require_running(record, operation)
        self._stub_upgrade_cluster(record, target_version)
        logger.info(
            "%s upgrade cluster: %s -> %s",
            self.PROVIDER, record.system_id, target_version,
        )
        self._begin(
            record,
            self._cluster_state(ClusterStatus.UPDATING),
            self._cluster_state(ClusterStatus.ACTIVE),
            self._cluster_state(ClusterStatus.ERROR),
        )
        return self._cluster_info(record)

    def _create_pool(
        self, cluster: ProviderRecord, node_group: NodeGroupInfo
    ) -> ProviderRecord:
        system_id, payload = self._stub_create_node_pool(cluster, node_group)
        pool = ProviderRecord(
            system_id=system_id,
            name=node_group.iid.name_id,
            status=self._pool_state(NodeGroupStatus.CREATING),
            payload=payload,
        )
        cluster.pools[system_id] = pool
        logger.info(
            "%s create node pool: cluster=%s name=%s id=%s",
            self.PROVIDER, cluster.system_id, pool.name, system_id,
        )
        self._begin(
            pool,
            self._pool_state(NodeGroupStatus.CREATING),
            self._pool_state(NodeGroupStatus.ACTIVE),
            self._pool_state(NodeGroupStatus.ERROR),
            parent=cluster,
        )
        return pool

    async def add_node_group(
        self, cluster_iid: IID, node_group: NodeGroupInfo
    ) -> NodeGroupInfo:
        operation = "AddNodeGroup"
        cluster = self._find_cluster(cluster_iid, operation)
        self._require_running(cluster, operation)
        self._reject_unsupported(node_group, operation)
        if self.UNIQUE_NAMES and any(
            p.name == node_group.iid.name_id for p in cluster.pools.values()
        ):
            raise ProviderRejectedError(
                f"Node group {node_group.iid.name_id} already exists",
                code=self.DUPLICATE_NAME_CODE,
                operation=operation,
                target=node_group.iid,
            )
        pool = self._create_pool(cluster, node_group)
        return self._node_group_info(cluster, pool)

    async def list_node_group(self, cluster_iid: IID) -> list[NodeGroupInfo]:
        cluster = self._find_cluster(cluster_iid, "ListNodeGroup")
        return [self._node_group_info(cluster, p) for p in list(cluster.pools.values())]

    async def get_node_group(
        self, cluster_iid: IID, node_group_iid: IID
    ) -> NodeGroupInfo:
        cluster = self._find_cluster(cluster_iid, "GetNodeGroup")
        pool = self._find_pool(cluster, node_group_iid, "GetNodeGroup")
        if not self._advance(pool, parent=cluster):
            raise self._not_found("Node group", node_group_iid, "GetNodeGroup")
        return self._node_group_info(cluster, pool)

    async def set_node_group_auto_scaling(
        self, cluster_iid: IID, node_group_iid: IID, enable: bool
    ) -> bool:
        operation = "SetNodeGroupAutoScaling"
        cluster = self._find_cluster(cluster_iid, operation)
        self._require_running(cluster, operation)
        pool = self._find_pool(cluster, node_group_iid, operation)
        self._stub_set_auto_scaling(pool, enable)
        logger.info(
            "%s set autoscaling: pool=%s enable=%s",
            self.PROVIDER, pool.system_id, enable,
        )
        self._begin(
            pool,
            self._pool_state(NodeGroupStatus.UPDATING),
            self._pool_state(NodeGroupStatus.ACTIVE),
            self._pool_state(NodeGroupStatus.ERROR),
            parent=cluster,
        )
        return True

    async def change_node_group_scaling(
        self,
        cluster_iid: IID,
        node_group_iid: IID,
        desired_node_size: int,
        min_node_size: int,
        max_node_size: int,
    ) -> NodeGroupInfo:
        operation = "ChangeNodeGroupScaling"
        validate_scaling_bounds(
            desired_node_size, min_node_size, max_node_size, target=node_group_iid
        )
        cluster = self._find_cluster(cluster_iid, operation)
        self._require_running(cluster, operation)
        pool = self._find_pool(cluster, node_group_iid, operation)
        self._stub_scale_node_pool(pool, desired_node_size, min_node_size, max_node_size)
        logger.info(
            "%s scale node pool: pool=%s desired=%d min=%d max=%d",
            self.PROVIDER, pool.system_id, desired_node_size,
            min_node_size, max_node_size,
        )
        self._begin(
            pool,
            self._pool_state(NodeGroupStatus.UPDATING),
            self._pool_state(NodeGroupStatus.ACTIVE),
            self._pool_state(NodeGroupStatus.ERROR),
            parent=cluster,
        )
        return self._node_group_info(cluster, pool)

    async def remove_node_group(
        self, cluster_iid: IID, node_group_iid: IID
    ) -> bool:
        operation = "RemoveNodeGroup"
        cluster = self._find_cluster(cluster_iid, operation)
        self._require_running(cluster, operation)
        pool = self._find_pool(cluster, node_group_iid, operation)
        logger.info("%s remove node pool: %s", self.PROVIDER, pool.system_id)
        self._begin(
            pool,
            self._pool_state(NodeGroupStatus.DELETING),
            None,
            self._pool_state(NodeGroupStatus.ERROR),
            parent=cluster,
        )
        return True

    # ------------------------------------------------------------------
    # SDK-specific hooks
    # ------------------------------------------------------------------

    def _stub_create_cluster(self, cluster: ClusterInfo) -> tuple[str, dict]:
        raise NotImplementedError

    def _stub_create_node_pool(
        self, cluster: ProviderRecord, node_group: NodeGroupInfo
    ) -> tuple[str, dict]:
        raise NotImplementedError

    def _stub_describe_cluster(self, record: ProviderRecord) -> dict:
        raise NotImplementedError

    def _stub_describe_node_pool(
        self, cluster: ProviderRecord, pool: ProviderRecord
    ) -> dict:
        raise NotImplementedError

    def _stub_upgrade_cluster(self, record: ProviderRecord, version: str) -> None:
        raise NotImplementedError

    def _stub_scale_node_pool(
        self, pool: ProviderRecord, desired: int, minimum: int, maximum: int
    ) -> None:
        raise NotImplementedError

    def _stub_set_auto_scaling(self, pool: ProviderRecord, enable: bool) -> None:
        raise NotImplementedError

    def _stub_desired_size(self, pool: ProviderRecord) -> int:
        raise NotImplementedError

    def _cluster_from_response(
        self, response: dict, node_groups: list[NodeGroupInfo]
    ) -> ClusterInfo:
        raise NotImplementedError

    def _node_group_from_response(self, response: dict) -> NodeGroupInfo:
        raise NotImplementedError
