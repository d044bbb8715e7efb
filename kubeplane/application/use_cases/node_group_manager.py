"""
Node Group Use Case

Architectural Intent:
- Orchestrates add / get / list / remove / scale / autoscale-toggle for the
  node groups of one cluster, on the same adapter and poller as the
  cluster lifecycle
- Node groups share their cluster's lifecycle ordering: every mutation is
  refused with ClusterBusyError while the cluster is Creating, Updating or
  Deleting

Design Decisions:
- Scaling bounds are validated before any remote call
- Scaling and autoscale toggles look synchronous: submit, then poll the
  node group back to Active and return the refreshed group
- Two concurrent scaling calls on one node group are last-write-wins at the
  provider; no client-side serialization is attempted
- Removal converges like cluster deletion: a node group that is already
  gone counts as removed
"""

import logging
from typing import Optional

from kubeplane.application.dtos.node_group_dtos import (
    PostProvisionRequest,
    ScalingRequest,
)
from kubeplane.application.polling.status_poller import StatusPoller
from kubeplane.application.provider_calls import call_provider, publish_events
from kubeplane.application.use_cases.cluster_lifecycle import log_dropped
from kubeplane.application.use_cases.configure_nodes import NodeConfigurator
from kubeplane.domain.entities.cluster import ClusterInfo, ClusterStatus
from kubeplane.domain.entities.node_group import NodeGroupInfo, NodeGroupStatus
from kubeplane.domain.errors import (
    ClusterBusyError,
    InvalidTransitionError,
    NotFoundError,
    ProviderRejectedError,
)
from kubeplane.domain.ports.event_bus_port import EventBusPort
from kubeplane.domain.ports.provider_adapter_port import ProviderAdapterPort
from kubeplane.domain.services.capability_filter import filter_node_group
from kubeplane.domain.services.identity import name_in_use, resolve
from kubeplane.domain.value_objects.iid import IID

logger = logging.getLogger(__name__)

_SETTLED = frozenset({NodeGroupStatus.ACTIVE, NodeGroupStatus.ERROR})


class NodeGroupManager:
    def __init__(
        self,
        adapter: ProviderAdapterPort,
        poller: StatusPoller,
        event_bus: Optional[EventBusPort] = None,
        configurator: Optional[NodeConfigurator] = None,
    ):
        self.adapter = adapter
        self.poller = poller
        self.event_bus = event_bus
        self.configurator = configurator

    async def _cluster(self, cluster_iid: IID, operation: str) -> ClusterInfo:
        clusters = await call_provider(
            operation, cluster_iid, self.adapter.list_cluster()
        )
        found = resolve(cluster_iid, clusters, operation=operation, kind="cluster")
        return await call_provider(
            operation, found.iid, self.adapter.get_cluster(found.iid)
        )

    async def _active_cluster(self, cluster_iid: IID, operation: str) -> ClusterInfo:
        cluster = await self._cluster(cluster_iid, operation)
        if cluster.is_busy:
            raise ClusterBusyError(
                f"Cluster {cluster.iid} is {cluster.status.value}; retry later",
                operation=operation,
                target=cluster.iid,
            )
        if cluster.status is not ClusterStatus.ACTIVE:
            status = cluster.status.value if cluster.status else "None"
            raise InvalidTransitionError(
                f"Cluster {cluster.iid} is {status}; node groups cannot change",
                operation=operation,
                target=cluster.iid,
            )
        return cluster

    async def _node_group(
        self, cluster: ClusterInfo, node_group_iid: IID, operation: str
    ) -> NodeGroupInfo:
        groups = await call_provider(
            operation, cluster.iid, self.adapter.list_node_group(cluster.iid)
        )
        return resolve(node_group_iid, groups, operation=operation, kind="node group")

    async def _settle(
        self,
        cluster: ClusterInfo,
        tracked: NodeGroupInfo,
        node_group_iid: IID,
        operation: str,
        timeout: Optional[float],
    ) -> NodeGroupInfo:
        result = await self.poller.wait_for(
            lambda: call_provider(
                operation,
                node_group_iid,
                self.adapter.get_node_group(cluster.iid, node_group_iid),
            ),
            _SETTLED,
            operation=operation,
            target=node_group_iid,
            timeout=timeout,
        )
        tracked = tracked.reconcile(result.resource)
        await publish_events(self.event_bus, tracked.domain_events)
        if tracked.status is NodeGroupStatus.ERROR:
            raise ProviderRejectedError(
                f"Node group {tracked.iid} ended in Error",
                operation=operation,
                target=tracked.iid,
            )
        return tracked

    async def list_node_group(self, cluster_iid: IID) -> list[NodeGroupInfo]:
        cluster = await self._cluster(cluster_iid, "ListNodeGroup")
        return await call_provider(
            "ListNodeGroup", cluster.iid, self.adapter.list_node_group(cluster.iid)
        )

    async def get_node_group(
        self, cluster_iid: IID, node_group_iid: IID
    ) -> NodeGroupInfo:
        cluster = await self._cluster(cluster_iid, "GetNodeGroup")
        found = await self._node_group(cluster, node_group_iid, "GetNodeGroup")
        return await call_provider(
            "GetNodeGroup",
            found.iid,
            self.adapter.get_node_group(cluster.iid, found.iid),
        )

    async def add_node_group(
        self,
        cluster_iid: IID,
        node_group: NodeGroupInfo,
        timeout: Optional[float] = None,
        post_provision: Optional[PostProvisionRequest] = None,
    ) -> NodeGroupInfo:
        """
        Add a node group and wait until it is Active.

        When post_provision is given, its files and commands are applied to
        every node of the new group once it is Active.
        """
        operation = "AddNodeGroup"
        requested = node_group.begin_creation()
        if post_provision is not None and self.configurator is None:
            raise ValueError("post_provision needs a NodeConfigurator")

        cluster = await self._active_cluster(cluster_iid, operation)
        existing = await call_provider(
            operation, cluster.iid, self.adapter.list_node_group(cluster.iid)
        )
        if name_in_use(node_group.iid.name_id, existing):
            raise InvalidTransitionError(
                f"Node group {node_group.iid.name_id!r} already exists in "
                f"{cluster.iid}",
                operation=operation,
                target=node_group.iid,
            )

        forwarded, dropped = filter_node_group(requested, self.adapter.capabilities)
        log_dropped(operation, dropped)
        logger.info(
            "Adding node group %s to %s (desired=%d min=%d max=%d)",
            node_group.iid, cluster.iid, forwarded.desired_node_size,
            forwarded.min_node_size, forwarded.max_node_size,
        )
        created = await call_provider(
            operation,
            node_group.iid,
            self.adapter.add_node_group(cluster.iid, forwarded),
        )
        tracked = await self._settle(
            cluster, requested, created.iid, operation, timeout
        )

        if post_provision is not None:
            await self.configurator.configure(tracked, post_provision)
        return tracked

    async def remove_node_group(
        self,
        cluster_iid: IID,
        node_group_iid: IID,
        timeout: Optional[float] = None,
    ) -> bool:
        operation = "RemoveNodeGroup"
        cluster = await self._active_cluster(cluster_iid, operation)
        try:
            current = await self._node_group(cluster, node_group_iid, operation)
        except NotFoundError:
            logger.info(
                "Node group %s already absent from %s", node_group_iid, cluster.iid
            )
            return True

        if current.status is NodeGroupStatus.DELETING:
            tracked = current
        else:
            tracked = current.begin_deletion()
            accepted = await call_provider(
                operation,
                current.iid,
                self.adapter.remove_node_group(cluster.iid, current.iid),
            )
            if not accepted:
                raise ProviderRejectedError(
                    f"Provider did not accept removal of {current.iid}",
                    operation=operation,
                    target=current.iid,
                )

        result = await self.poller.wait_for(
            lambda: call_provider(
                operation,
                current.iid,
                self.adapter.get_node_group(cluster.iid, current.iid),
            ),
            frozenset({NodeGroupStatus.ERROR}),
            operation=operation,
            target=current.iid,
            timeout=timeout,
            absent_is_terminal=True,
        )
        if not result.absent:
            tracked = tracked.reconcile(result.resource)
            await publish_events(self.event_bus, tracked.domain_events)
            raise ProviderRejectedError(
                f"Node group {current.iid} failed during removal",
                operation=operation,
                target=current.iid,
            )
        tracked = tracked.mark_removed()
        await publish_events(self.event_bus, tracked.domain_events)
        logger.info("Node group %s removed from %s", current.iid, cluster.iid)
        return True

    async def change_node_group_scaling(
        self,
        cluster_iid: IID,
        node_group_iid: IID,
        desired_node_size: int,
        min_node_size: int,
        max_node_size: int,
        timeout: Optional[float] = None,
    ) -> NodeGroupInfo:
        operation = "ChangeNodeGroupScaling"
        request = ScalingRequest(
            cluster_iid=cluster_iid,
            node_group_iid=node_group_iid,
            desired_node_size=desired_node_size,
            min_node_size=min_node_size,
            max_node_size=max_node_size,
        )
        cluster = await self._active_cluster(cluster_iid, operation)
        current = await self._node_group(cluster, node_group_iid, operation)
        tracked = current.begin_update(request.describe())

        logger.info("Scaling node group %s: %s", current.iid, request.describe())
        await call_provider(
            operation,
            current.iid,
            self.adapter.change_node_group_scaling(
                cluster.iid,
                current.iid,
                request.desired_node_size,
                request.min_node_size,
                request.max_node_size,
            ),
        )
        return await self._settle(cluster, tracked, current.iid, operation, timeout)

    async def set_node_group_auto_scaling(
        self,
        cluster_iid: IID,
        node_group_iid: IID,
        enable: bool,
        timeout: Optional[float] = None,
    ) -> NodeGroupInfo:
        operation = "SetNodeGroupAutoScaling"
        cluster = await self._active_cluster(cluster_iid, operation)
        current = await self._node_group(cluster, node_group_iid, operation)
        tracked = current.begin_update(f"auto_scaling={enable}")

        accepted = await call_provider(
            operation,
            current.iid,
            self.adapter.set_node_group_auto_scaling(cluster.iid, current.iid, enable),
        )
        if not accepted:
            raise ProviderRejectedError(
                f"Provider did not accept autoscaling change for {current.iid}",
                operation=operation,
                target=current.iid,
            )
        return await self._settle(cluster, tracked, current.iid, operation, timeout)
