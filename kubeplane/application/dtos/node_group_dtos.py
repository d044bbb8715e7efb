"""
Node Group DTOs

Architectural Intent:
- Data Transfer Objects for node-group use case boundaries
- Input validation at the application boundary, before any remote call
"""

from dataclasses import dataclass
from kubeplane.domain.entities.node_group import validate_scaling_bounds
from kubeplane.domain.value_objects.iid import IID


@dataclass(frozen=True)
class ScalingRequest:
    cluster_iid: IID
    node_group_iid: IID
    desired_node_size: int
    min_node_size: int
    max_node_size: int

    def __post_init__(self) -> None:
        if self.cluster_iid.is_empty:
            raise ValueError("cluster_iid cannot be empty")
        if self.node_group_iid.is_empty:
            raise ValueError("node_group_iid cannot be empty")
        validate_scaling_bounds(
            self.desired_node_size,
            self.min_node_size,
            self.max_node_size,
            target=self.node_group_iid,
        )

    def describe(self) -> str:
        return (
            f"desired={self.desired_node_size} min={self.min_node_size} "
            f"max={self.max_node_size}"
        )


@dataclass(frozen=True)
class PostProvisionRequest:
    """Commands (and files) to apply on every node of a new node group."""
    commands: tuple[str, ...] = ()
    files: tuple[tuple[str, str], ...] = ()
    hosts: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.commands and not self.files:
            raise ValueError("post-provision request needs commands or files")
