"""
Cluster Module

Architectural Intent:
- ClusterInfo is the aggregate root for a managed Kubernetes cluster
- Lifecycle: None -> Creating -> Active -> (Updating -> Active)* -> Deleting
  -> Deleted, with Error reachable from Creating, Updating or Deleting
- Caller-initiated transitions (create, upgrade, delete) are validated here;
  provider-reported status is adopted through reconcile()
- All state changes produce new instances carrying accumulated events

Domain Events:
- ClusterCreationRequested, ClusterUpgradeRequested, ClusterDeletionRequested
- ClusterActivated, ClusterFailed, ClusterDeleted
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from kubeplane.domain.errors import InvalidTransitionError
from kubeplane.domain.events.event_base import DomainEvent
from kubeplane.domain.entities.node_group import NodeGroupInfo
from kubeplane.domain.value_objects.iid import IID
from kubeplane.domain.value_objects.network import KeyValue, NetworkInfo


class ClusterStatus(Enum):
    CREATING = "Creating"
    ACTIVE = "Active"
    UPDATING = "Updating"
    DELETING = "Deleting"
    DELETED = "Deleted"
    ERROR = "Error"


BUSY_STATUSES = frozenset(
    {ClusterStatus.CREATING, ClusterStatus.UPDATING, ClusterStatus.DELETING}
)


@dataclass(frozen=True)
class ClusterCreationRequested(DomainEvent):
    version: str = ""
    node_group_count: int = 0


@dataclass(frozen=True)
class ClusterUpgradeRequested(DomainEvent):
    from_version: str = ""
    to_version: str = ""


@dataclass(frozen=True)
class ClusterDeletionRequested(DomainEvent):
    pass


@dataclass(frozen=True)
class ClusterActivated(DomainEvent):
    version: str = ""


@dataclass(frozen=True)
class ClusterFailed(DomainEvent):
    previous_status: str = ""


@dataclass(frozen=True)
class ClusterDeleted(DomainEvent):
    pass


@dataclass(frozen=True)
class ClusterInfo:
    """
    Aggregate root: normalized cluster spec and observed state.
    """
    iid: IID
    version: str = ""
    network: NetworkInfo = NetworkInfo()
    node_group_list: tuple[NodeGroupInfo, ...] = ()
    status: Optional[ClusterStatus] = None
    key_value_list: tuple[KeyValue, ...] = ()
    created_at: Optional[datetime] = None
    domain_events: tuple[DomainEvent, ...] = field(
        default=(), compare=False, repr=False
    )

    def __post_init__(self) -> None:
        if isinstance(self.node_group_list, list):
            object.__setattr__(self, "node_group_list", tuple(self.node_group_list))

    @property
    def is_busy(self) -> bool:
        return self.status in BUSY_STATUSES

    @property
    def is_gone(self) -> bool:
        return self.status is ClusterStatus.DELETED

    def find_node_group(self, iid: IID) -> Optional[NodeGroupInfo]:
        for node_group in self.node_group_list:
            if node_group.iid.matches(iid):
                return node_group
        return None

    def _with_event(self, event: DomainEvent, **changes) -> "ClusterInfo":
        return replace(
            self, domain_events=self.domain_events + (event,), **changes
        )

    def begin_creation(self) -> "ClusterInfo":
        if self.status is not None:
            raise InvalidTransitionError(
                f"Cluster already exists with status {self.status.value}",
                operation="CreateCluster",
                target=self.iid,
            )
        if not self.iid.name_id:
            raise ValueError("A new cluster needs a name_id")
        return self._with_event(
            ClusterCreationRequested(
                aggregate_id=str(self.iid),
                version=self.version,
                node_group_count=len(self.node_group_list),
            ),
            status=ClusterStatus.CREATING,
            created_at=datetime.now(UTC),
        )

    def begin_upgrade(self, target_version: str) -> "ClusterInfo":
        if self.status is not ClusterStatus.ACTIVE:
            status = self.status.value if self.status else "None"
            raise InvalidTransitionError(
                f"Cluster must be Active to upgrade, is {status}",
                operation="UpgradeCluster",
                target=self.iid,
            )
        return self._with_event(
            ClusterUpgradeRequested(
                aggregate_id=str(self.iid),
                from_version=self.version,
                to_version=target_version,
            ),
            status=ClusterStatus.UPDATING,
        )

    def begin_deletion(self) -> "ClusterInfo":
        if self.status in (None, ClusterStatus.DELETING, ClusterStatus.DELETED):
            status = self.status.value if self.status else "None"
            raise InvalidTransitionError(
                f"Cluster cannot be deleted from {status}",
                operation="DeleteCluster",
                target=self.iid,
            )
        return self._with_event(
            ClusterDeletionRequested(aggregate_id=str(self.iid)),
            status=ClusterStatus.DELETING,
        )

    def reconcile(self, observed: "ClusterInfo") -> "ClusterInfo":
        """Adopt the provider's view, recording settled-state events."""
        events = self.domain_events
        if observed.status is not self.status:
            if observed.status is ClusterStatus.ACTIVE:
                events += (
                    ClusterActivated(
                        aggregate_id=str(observed.iid), version=observed.version
                    ),
                )
            elif observed.status is ClusterStatus.ERROR:
                previous = self.status.value if self.status else "None"
                events += (
                    ClusterFailed(
                        aggregate_id=str(observed.iid), previous_status=previous
                    ),
                )
            elif observed.status is ClusterStatus.DELETED:
                events += (ClusterDeleted(aggregate_id=str(observed.iid)),)
        return replace(
            observed,
            created_at=observed.created_at or self.created_at,
            domain_events=events,
        )

    def mark_deleted(self) -> "ClusterInfo":
        if self.status is ClusterStatus.DELETED:
            return self
        return self._with_event(
            ClusterDeleted(aggregate_id=str(self.iid)),
            status=ClusterStatus.DELETED,
        )
