from kubeplane.domain.entities.cluster import (
    ClusterInfo,
    ClusterStatus,
    ClusterCreationRequested,
    ClusterUpgradeRequested,
    ClusterDeletionRequested,
    ClusterActivated,
    ClusterFailed,
    ClusterDeleted,
)
from kubeplane.domain.entities.node_group import (
    NodeGroupInfo,
    NodeGroupStatus,
    NodeGroupCreationRequested,
    NodeGroupUpdateRequested,
    NodeGroupDeletionRequested,
    NodeGroupActivated,
    NodeGroupFailed,
    NodeGroupRemoved,
    validate_scaling_bounds,
)

__all__ = [
    "ClusterInfo",
    "ClusterStatus",
    "ClusterCreationRequested",
    "ClusterUpgradeRequested",
    "ClusterDeletionRequested",
    "ClusterActivated",
    "ClusterFailed",
    "ClusterDeleted",
    "NodeGroupInfo",
    "NodeGroupStatus",
    "NodeGroupCreationRequested",
    "NodeGroupUpdateRequested",
    "NodeGroupDeletionRequested",
    "NodeGroupActivated",
    "NodeGroupFailed",
    "NodeGroupRemoved",
    "validate_scaling_bounds",
]
