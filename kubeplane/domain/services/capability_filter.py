"""
Capability Filter Service

Architectural Intent:
- Applies a provider's CapabilityDescriptor to an outgoing request
- Best-effort field application: fields the provider ignores or rejects
  are dropped before the request is forwarded, never failing the request

Domain Logic:
- IGNORED fields are dropped quietly, REJECTED fields are dropped with the
  reason recorded, HONORED fields are forwarded unchanged
- Node groups nested in a cluster request are filtered with the same table
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any

from kubeplane.domain.entities.cluster import ClusterInfo
from kubeplane.domain.entities.node_group import NodeGroupInfo
from kubeplane.domain.value_objects.capability import (
    CapabilityDescriptor,
    FieldId,
    FieldSupport,
)
from kubeplane.domain.value_objects.network import NetworkInfo


@dataclass(frozen=True)
class DroppedField:
    field_id: FieldId
    support: FieldSupport
    owner: str

    def __str__(self) -> str:
        return f"{self.owner}:{self.field_id.value}({self.support.value})"


# field -> (attribute, value meaning "not supplied")
_NODE_GROUP_FIELDS: dict[FieldId, tuple[str, Any]] = {
    FieldId.NODE_GROUP_IMAGE: ("image_iid", None),
    FieldId.NODE_GROUP_KEY_PAIR: ("key_pair_iid", None),
    FieldId.NODE_GROUP_ROOT_DISK_TYPE: ("root_disk_type", ""),
    FieldId.NODE_GROUP_ROOT_DISK_SIZE: ("root_disk_size", ""),
    FieldId.NODE_GROUP_AUTO_SCALING: ("on_auto_scaling", False),
}

_NETWORK_FIELDS: dict[FieldId, tuple[str, Any]] = {
    FieldId.CLUSTER_SUBNETS: ("subnet_iids", ()),
    FieldId.CLUSTER_SECURITY_GROUPS: ("security_group_iids", ()),
    FieldId.CLUSTER_KEY_VALUES: ("key_value_list", ()),
}


def _is_supplied(value: Any, empty: Any) -> bool:
    if value is None:
        return False
    if hasattr(value, "is_empty"):
        return not value.is_empty
    return value != empty


def filter_node_group(
    node_group: NodeGroupInfo, capabilities: CapabilityDescriptor
) -> tuple[NodeGroupInfo, list[DroppedField]]:
    dropped: list[DroppedField] = []
    changes: dict[str, Any] = {}
    owner = node_group.iid.name_id or node_group.iid.system_id
    for field_id, (attr, empty) in _NODE_GROUP_FIELDS.items():
        support = capabilities.support_for(field_id)
        if support is FieldSupport.HONORED:
            continue
        if _is_supplied(getattr(node_group, attr), empty):
            changes[attr] = empty
            dropped.append(DroppedField(field_id, support, owner))
    if changes:
        node_group = replace(node_group, **changes)
    return node_group, dropped


def filter_cluster(
    cluster: ClusterInfo, capabilities: CapabilityDescriptor
) -> tuple[ClusterInfo, list[DroppedField]]:
    dropped: list[DroppedField] = []
    owner = cluster.iid.name_id or cluster.iid.system_id

    network_changes: dict[str, Any] = {}
    for field_id, (attr, empty) in _NETWORK_FIELDS.items():
        support = capabilities.support_for(field_id)
        if support is FieldSupport.HONORED:
            continue
        if _is_supplied(getattr(cluster.network, attr), empty):
            network_changes[attr] = empty
            dropped.append(DroppedField(field_id, support, owner))
    network: NetworkInfo = cluster.network
    if network_changes:
        network = replace(network, **network_changes)

    node_groups = cluster.node_group_list
    initial_support = capabilities.support_for(FieldId.CLUSTER_INITIAL_NODE_GROUPS)
    if node_groups and initial_support is not FieldSupport.HONORED:
        dropped.append(
            DroppedField(FieldId.CLUSTER_INITIAL_NODE_GROUPS, initial_support, owner)
        )
        node_groups = ()
    else:
        filtered = []
        for node_group in node_groups:
            kept, node_group_dropped = filter_node_group(node_group, capabilities)
            filtered.append(kept)
            dropped.extend(node_group_dropped)
        node_groups = tuple(filtered)

    return replace(cluster, network=network, node_group_list=node_groups), dropped
