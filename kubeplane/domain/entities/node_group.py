"""
Node Group Module

Architectural Intent:
- NodeGroupInfo is the normalized, provider-agnostic view of a worker pool
- A node group is owned by its cluster and cannot outlive it
- Caller-initiated transitions are validated here; provider-driven status
  changes are folded in through reconcile() and never rejected, because the
  provider is the source of truth

Domain Events:
- NodeGroupCreationRequested, NodeGroupUpdateRequested,
  NodeGroupDeletionRequested: caller asked for a mutation
- NodeGroupActivated, NodeGroupFailed: provider reported a settled state
- NodeGroupRemoved: provider no longer reports the node group
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional
from kubeplane.domain.errors import InvalidScalingBoundsError, InvalidTransitionError
from kubeplane.domain.events.event_base import DomainEvent
from kubeplane.domain.value_objects.iid import IID


class NodeGroupStatus(Enum):
    CREATING = "Creating"
    ACTIVE = "Active"
    UPDATING = "Updating"
    DELETING = "Deleting"
    ERROR = "Error"


@dataclass(frozen=True)
class NodeGroupCreationRequested(DomainEvent):
    vm_spec_name: str = ""


@dataclass(frozen=True)
class NodeGroupUpdateRequested(DomainEvent):
    change: str = ""


@dataclass(frozen=True)
class NodeGroupDeletionRequested(DomainEvent):
    pass


@dataclass(frozen=True)
class NodeGroupActivated(DomainEvent):
    desired_node_size: int = 0


@dataclass(frozen=True)
class NodeGroupFailed(DomainEvent):
    previous_status: str = ""


@dataclass(frozen=True)
class NodeGroupRemoved(DomainEvent):
    pass


def validate_scaling_bounds(
    desired: int, minimum: int, maximum: int, target: object = None
) -> None:
    """Raise InvalidScalingBoundsError unless 0 <= min <= desired <= max."""
    if maximum < 0 or minimum < 0 or desired < 0:
        raise InvalidScalingBoundsError(
            f"Node counts must be non-negative (desired={desired}, "
            f"min={minimum}, max={maximum})",
            operation="ChangeNodeGroupScaling",
            target=target,
        )
    if minimum > desired:
        raise InvalidScalingBoundsError(
            f"min ({minimum}) cannot exceed desired ({desired})",
            operation="ChangeNodeGroupScaling",
            target=target,
        )
    if desired > maximum:
        raise InvalidScalingBoundsError(
            f"desired ({desired}) cannot exceed max ({maximum})",
            operation="ChangeNodeGroupScaling",
            target=target,
        )


@dataclass(frozen=True)
class NodeGroupInfo:
    """
    Normalized node group spec and observed state.
    """
    iid: IID
    vm_spec_name: str = ""
    image_iid: Optional[IID] = None
    root_disk_type: str = ""
    root_disk_size: str = ""
    key_pair_iid: Optional[IID] = None
    on_auto_scaling: bool = False
    desired_node_size: int = 0
    min_node_size: int = 0
    max_node_size: int = 0
    status: NodeGroupStatus = NodeGroupStatus.CREATING
    nodes: tuple[IID, ...] = ()
    domain_events: tuple[DomainEvent, ...] = field(
        default=(), compare=False, repr=False
    )

    @property
    def is_settled(self) -> bool:
        return self.status in (NodeGroupStatus.ACTIVE, NodeGroupStatus.ERROR)

    def validate_bounds(self) -> None:
        validate_scaling_bounds(
            self.desired_node_size,
            self.min_node_size,
            self.max_node_size,
            target=self.iid,
        )

    def _with_event(self, event: DomainEvent, **changes) -> "NodeGroupInfo":
        return replace(
            self, domain_events=self.domain_events + (event,), **changes
        )

    def begin_creation(self) -> "NodeGroupInfo":
        if not self.iid.name_id:
            raise ValueError("A new node group needs a name_id")
        self.validate_bounds()
        return self._with_event(
            NodeGroupCreationRequested(
                aggregate_id=str(self.iid), vm_spec_name=self.vm_spec_name
            ),
            status=NodeGroupStatus.CREATING,
        )

    def begin_update(self, change: str) -> "NodeGroupInfo":
        # concurrent updates are last-write-wins at the provider
        if self.status not in (NodeGroupStatus.ACTIVE, NodeGroupStatus.UPDATING):
            raise InvalidTransitionError(
                f"Node group must be Active to update, is {self.status.value}",
                operation="UpdateNodeGroup",
                target=self.iid,
            )
        return self._with_event(
            NodeGroupUpdateRequested(aggregate_id=str(self.iid), change=change),
            status=NodeGroupStatus.UPDATING,
        )

    def begin_deletion(self) -> "NodeGroupInfo":
        if self.status is NodeGroupStatus.DELETING:
            return self
        return self._with_event(
            NodeGroupDeletionRequested(aggregate_id=str(self.iid)),
            status=NodeGroupStatus.DELETING,
        )

    def reconcile(self, observed: "NodeGroupInfo") -> "NodeGroupInfo":
        """Adopt the provider's view, recording settled-state events."""
        events = self.domain_events
        if observed.status is not self.status:
            if observed.status is NodeGroupStatus.ACTIVE:
                events += (
                    NodeGroupActivated(
                        aggregate_id=str(observed.iid),
                        desired_node_size=observed.desired_node_size,
                    ),
                )
            elif observed.status is NodeGroupStatus.ERROR:
                events += (
                    NodeGroupFailed(
                        aggregate_id=str(observed.iid),
                        previous_status=self.status.value,
                    ),
                )
        return replace(observed, domain_events=events)

    def mark_removed(self) -> "NodeGroupInfo":
        return self._with_event(NodeGroupRemoved(aggregate_id=str(self.iid)))
