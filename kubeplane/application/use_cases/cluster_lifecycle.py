"""
Cluster Lifecycle Use Case

Architectural Intent:
- Orchestrates create / get / list / upgrade / delete against one provider
  adapter, selected at construction and never changed mid-operation
- Resolves identifiers through the identity service, forwards only fields
  the provider's capability table honors, and hands asynchronous provider
  operations to the StatusPoller so callers see one awaitable step

Design Decisions:
- Every get/list re-reads from the provider; nothing is cached
- Create is not retried; a failed node group after a successful cluster is
  reported as PartialFailureError and nothing is rolled back
- Delete converges: deleting a missing or already-deleted cluster succeeds
  without any mutating call
- Concurrent calls on the same cluster are not serialized here
"""

import logging
from typing import Optional

from kubeplane.application.polling.status_poller import StatusPoller
from kubeplane.application.provider_calls import call_provider, publish_events
from kubeplane.domain.entities.cluster import ClusterInfo, ClusterStatus
from kubeplane.domain.entities.node_group import NodeGroupInfo, NodeGroupStatus
from kubeplane.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
    ProviderRejectedError,
)
from kubeplane.domain.ports.event_bus_port import EventBusPort
from kubeplane.domain.ports.provider_adapter_port import ProviderAdapterPort
from kubeplane.domain.services.capability_filter import (
    DroppedField,
    filter_cluster,
    filter_node_group,
)
from kubeplane.domain.services.identity import name_in_use, resolve
from kubeplane.domain.services.version import validate_upgrade_path
from kubeplane.domain.value_objects.capability import FieldId
from kubeplane.domain.value_objects.iid import IID

logger = logging.getLogger(__name__)

_CLUSTER_SETTLED = frozenset({ClusterStatus.ACTIVE, ClusterStatus.ERROR})
_CLUSTER_GONE = frozenset({ClusterStatus.DELETED, ClusterStatus.ERROR})
_NODE_GROUP_SETTLED = frozenset({NodeGroupStatus.ACTIVE, NodeGroupStatus.ERROR})


def log_dropped(operation: str, dropped: list[DroppedField]) -> None:
    for item in dropped:
        logger.info(
            "%s: provider does not apply %s, field dropped", operation, item
        )


class ClusterLifecycleManager:
    def __init__(
        self,
        adapter: ProviderAdapterPort,
        poller: StatusPoller,
        event_bus: Optional[EventBusPort] = None,
    ):
        self.adapter = adapter
        self.poller = poller
        self.event_bus = event_bus

    @property
    def capabilities(self):
        return self.adapter.capabilities

    async def resolve_cluster(self, cluster_iid: IID, operation: str) -> ClusterInfo:
        clusters = await call_provider(
            operation, cluster_iid, self.adapter.list_cluster()
        )
        return resolve(cluster_iid, clusters, operation=operation, kind="cluster")

    async def list_cluster(self) -> list[ClusterInfo]:
        return await call_provider("ListCluster", None, self.adapter.list_cluster())

    async def get_cluster(self, cluster_iid: IID) -> ClusterInfo:
        found = await self.resolve_cluster(cluster_iid, "GetCluster")
        return await call_provider(
            "GetCluster", found.iid, self.adapter.get_cluster(found.iid)
        )

    async def create_cluster(
        self, cluster: ClusterInfo, timeout: Optional[float] = None
    ) -> ClusterInfo:
        """
        Create a cluster and wait for it (and its initial node groups) to
        settle.

        Raises:
            InvalidScalingBoundsError: an initial node group has bad bounds.
            InvalidTransitionError: the name is already used at the provider,
                or the request names an initial node group twice.
            ProviderRejectedError: the provider failed the cluster.
            PartialFailureError: cluster Active, some node groups missing.
            ProvisioningTimeoutError: still converging at the deadline.

        The cluster and each initial node group are awaited one after
        another, each with the full timeout, so with N initial node groups
        the call can take up to (N + 1) * timeout.
        """
        operation = "CreateCluster"
        requested = cluster.begin_creation()
        names: set[str] = set()
        for node_group in requested.node_group_list:
            node_group.validate_bounds()
            if node_group.iid.name_id in names:
                raise InvalidTransitionError(
                    f"Node group {node_group.iid.name_id!r} is requested twice",
                    operation=operation,
                    target=node_group.iid,
                )
            names.add(node_group.iid.name_id)

        existing = await call_provider(
            operation, cluster.iid, self.adapter.list_cluster()
        )
        if name_in_use(cluster.iid.name_id, existing):
            raise InvalidTransitionError(
                f"A cluster named {cluster.iid.name_id!r} already exists",
                operation=operation,
                target=cluster.iid,
            )

        forwarded, dropped = filter_cluster(requested, self.capabilities)
        log_dropped(operation, dropped)
        deferred: tuple[NodeGroupInfo, ...] = ()
        if requested.node_group_list and not self.capabilities.honors(
            FieldId.CLUSTER_INITIAL_NODE_GROUPS
        ):
            # added one by one once the cluster is Active
            deferred = requested.node_group_list

        logger.info(
            "Creating cluster %s (version=%s, node_groups=%d) on %s",
            cluster.iid, cluster.version, len(requested.node_group_list),
            self.capabilities.provider,
        )
        created = await call_provider(
            operation, cluster.iid, self.adapter.create_cluster(forwarded)
        )
        tracked = requested.reconcile(created)

        result = await self.poller.wait_for(
            lambda: call_provider(
                operation, created.iid, self.adapter.get_cluster(created.iid)
            ),
            _CLUSTER_SETTLED,
            operation=operation,
            target=created.iid,
            timeout=timeout,
        )
        tracked = tracked.reconcile(result.resource)
        await publish_events(self.event_bus, tracked.domain_events)

        if tracked.status is ClusterStatus.ERROR:
            raise ProviderRejectedError(
                f"Cluster {tracked.iid} failed during creation",
                operation=operation,
                target=tracked.iid,
            )

        failed: list[IID] = []
        for node_group in deferred:
            failed.extend(
                await self._add_deferred_node_group(tracked.iid, node_group, timeout)
            )
        returned = {ng.iid.name_id: ng.iid for ng in created.node_group_list}
        for node_group in forwarded.node_group_list:
            node_group_iid = returned.get(node_group.iid.name_id)
            if node_group_iid is None:
                logger.error("Initial node group %s was not created", node_group.iid)
                failed.append(node_group.iid)
                continue
            failed.extend(
                await self._await_initial_node_group(
                    tracked.iid, node_group, node_group_iid, timeout
                )
            )

        final = await call_provider(
            operation, tracked.iid, self.adapter.get_cluster(tracked.iid)
        )
        final = tracked.reconcile(final)
        if failed:
            logger.warning(
                "Cluster %s is Active but %d node group(s) failed: %s",
                final.iid, len(failed), ", ".join(str(i) for i in failed),
            )
            raise PartialFailureError(
                f"Cluster {final.iid} created with {len(failed)} failed "
                "node group(s); nothing was rolled back",
                cluster=final,
                failed_node_groups=tuple(failed),
                operation=operation,
                target=final.iid,
            )
        logger.info("Cluster %s is Active", final.iid)
        return final

    async def _await_initial_node_group(
        self,
        cluster_iid: IID,
        requested: NodeGroupInfo,
        node_group_iid: IID,
        timeout: Optional[float],
    ) -> list[IID]:
        result = await self.poller.wait_for(
            lambda: call_provider(
                "CreateCluster",
                node_group_iid,
                self.adapter.get_node_group(cluster_iid, node_group_iid),
            ),
            _NODE_GROUP_SETTLED,
            operation="CreateCluster",
            target=node_group_iid,
            timeout=timeout,
        )
        tracked = requested.begin_creation().reconcile(result.resource)
        await publish_events(self.event_bus, tracked.domain_events)
        if tracked.status is NodeGroupStatus.ERROR:
            return [tracked.iid]
        return []

    async def _add_deferred_node_group(
        self, cluster_iid: IID, requested: NodeGroupInfo, timeout: Optional[float]
    ) -> list[IID]:
        forwarded, dropped = filter_node_group(requested, self.capabilities)
        log_dropped("CreateCluster", dropped)
        try:
            created = await call_provider(
                "CreateCluster",
                cluster_iid,
                self.adapter.add_node_group(cluster_iid, forwarded),
            )
        except ProviderRejectedError as e:
            logger.error("Initial node group %s rejected: %s", requested.iid, e)
            return [requested.iid]
        return await self._await_initial_node_group(
            cluster_iid, forwarded, created.iid, timeout
        )

    async def upgrade_cluster(
        self,
        cluster_iid: IID,
        target_version: str,
        timeout: Optional[float] = None,
    ) -> ClusterInfo:
        operation = "UpgradeCluster"
        current = await self.get_cluster(cluster_iid)
        tracked = current.begin_upgrade(target_version)
        validate_upgrade_path(
            current.version, target_version, self.capabilities, current.iid
        )

        logger.info(
            "Upgrading cluster %s %s -> %s",
            current.iid, current.version, target_version,
        )
        try:
            await call_provider(
                operation,
                current.iid,
                self.adapter.upgrade_cluster(current.iid, target_version),
            )
        except ProviderRejectedError as e:
            if e.code and e.code in self.capabilities.upgrade_path_error_codes:
                raise InvalidTransitionError(
                    f"Provider does not support upgrading {current.version} "
                    f"-> {target_version}",
                    operation=operation,
                    target=current.iid,
                    provider_message=e.provider_message or e.message,
                ) from e
            raise

        result = await self.poller.wait_for(
            lambda: call_provider(
                operation, current.iid, self.adapter.get_cluster(current.iid)
            ),
            _CLUSTER_SETTLED,
            operation=operation,
            target=current.iid,
            timeout=timeout,
        )
        tracked = tracked.reconcile(result.resource)
        await publish_events(self.event_bus, tracked.domain_events)
        if tracked.status is ClusterStatus.ERROR:
            raise ProviderRejectedError(
                f"Cluster {tracked.iid} failed during upgrade",
                operation=operation,
                target=tracked.iid,
            )
        return tracked

    async def delete_cluster(
        self, cluster_iid: IID, timeout: Optional[float] = None
    ) -> bool:
        """
        Delete a cluster and wait until the provider reports it gone.

        Returns True for clusters that are already gone.
        """
        operation = "DeleteCluster"
        try:
            current = await self.resolve_cluster(cluster_iid, operation)
        except NotFoundError:
            logger.info("Cluster %s already absent, nothing to delete", cluster_iid)
            return True

        if current.is_gone:
            logger.info("Cluster %s already deleted", current.iid)
            return True

        if current.status is ClusterStatus.DELETING:
            logger.info("Cluster %s already deleting, waiting", current.iid)
            tracked = current
        else:
            tracked = current.begin_deletion()
            accepted = await call_provider(
                operation, current.iid, self.adapter.delete_cluster(current.iid)
            )
            if not accepted:
                raise ProviderRejectedError(
                    f"Provider did not accept deletion of {current.iid}",
                    operation=operation,
                    target=current.iid,
                )

        # an Error left over from before this delete is not its outcome;
        # Error counts only once the provider has reported Deleting
        deleting_seen = current.status is not ClusterStatus.ERROR

        def deletion_status(cluster: ClusterInfo) -> ClusterStatus:
            nonlocal deleting_seen
            if cluster.status is ClusterStatus.DELETING:
                deleting_seen = True
            if cluster.status is ClusterStatus.ERROR and not deleting_seen:
                return ClusterStatus.DELETING
            return cluster.status

        result = await self.poller.wait_for(
            lambda: call_provider(
                operation, current.iid, self.adapter.get_cluster(current.iid)
            ),
            _CLUSTER_GONE,
            status_of=deletion_status,
            operation=operation,
            target=current.iid,
            timeout=timeout,
            absent_is_terminal=True,
        )
        if result.absent:
            tracked = tracked.mark_deleted()
        else:
            tracked = tracked.reconcile(result.resource)
        await publish_events(self.event_bus, tracked.domain_events)

        if tracked.status is ClusterStatus.ERROR:
            raise ProviderRejectedError(
                f"Cluster {tracked.iid} failed during deletion",
                operation=operation,
                target=tracked.iid,
            )
        logger.info("Cluster %s deleted", tracked.iid)
        return True
