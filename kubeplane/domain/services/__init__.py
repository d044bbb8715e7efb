"""
Domain Services Package

Architectural Intent:
- Contains domain services implementing cross-entity business logic
- Identity resolution, capability filtering and upgrade-path validation
"""

from kubeplane.domain.services.identity import iid_equals, resolve, name_in_use
from kubeplane.domain.services.capability_filter import (
    DroppedField,
    filter_cluster,
    filter_node_group,
)
from kubeplane.domain.services.version import (
    KubernetesVersion,
    validate_upgrade_path,
)

__all__ = [
    "iid_equals",
    "resolve",
    "name_in_use",
    "DroppedField",
    "filter_cluster",
    "filter_node_group",
    "KubernetesVersion",
    "validate_upgrade_path",
]
