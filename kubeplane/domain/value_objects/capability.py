"""
Capability Descriptor Value Object

Architectural Intent:
- Static, per-adapter table of which optional ClusterInfo/NodeGroupInfo
  fields a provider honors, ignores or rejects
- Consulted by the managers before forwarding a request, so a
  provider-agnostic spec never fails solely because it names a field the
  provider cannot apply

Design Decisions:
- Fields not listed default to HONORED
- Also carries the provider's upgrade policy (supported minor skew, whether
  downgrades are accepted)
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class FieldId(Enum):
    CLUSTER_SUBNETS = "cluster.network.subnet_iids"
    CLUSTER_SECURITY_GROUPS = "cluster.network.security_group_iids"
    CLUSTER_KEY_VALUES = "cluster.network.key_value_list"
    CLUSTER_INITIAL_NODE_GROUPS = "cluster.node_group_list"
    NODE_GROUP_IMAGE = "node_group.image_iid"
    NODE_GROUP_KEY_PAIR = "node_group.key_pair_iid"
    NODE_GROUP_ROOT_DISK_TYPE = "node_group.root_disk_type"
    NODE_GROUP_ROOT_DISK_SIZE = "node_group.root_disk_size"
    NODE_GROUP_AUTO_SCALING = "node_group.on_auto_scaling"


class FieldSupport(Enum):
    HONORED = "honored"
    IGNORED = "ignored"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CapabilityDescriptor:
    """
    Value Object declaring a provider's field support and upgrade policy.
    """
    provider: str
    fields: Mapping[FieldId, FieldSupport] = field(default_factory=dict)
    max_minor_version_skew: int = 1
    allow_downgrade: bool = False
    # provider error codes meaning "unsupported upgrade path"
    upgrade_path_error_codes: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.provider:
            raise ValueError("Capability descriptor needs a provider name")
        if self.max_minor_version_skew < 0:
            raise ValueError("max_minor_version_skew cannot be negative")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(
            self, "upgrade_path_error_codes", frozenset(self.upgrade_path_error_codes)
        )

    def support_for(self, field_id: FieldId) -> FieldSupport:
        return self.fields.get(field_id, FieldSupport.HONORED)

    def honors(self, field_id: FieldId) -> bool:
        return self.support_for(field_id) is FieldSupport.HONORED

    def __hash__(self) -> int:
        table = tuple(sorted((k.value, v.value) for k, v in self.fields.items()))
        return hash((
            self.provider,
            table,
            self.max_minor_version_skew,
            self.allow_downgrade,
            self.upgrade_path_error_codes,
        ))
