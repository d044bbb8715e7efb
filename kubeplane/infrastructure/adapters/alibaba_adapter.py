"""
Alibaba Cloud ACK Adapter

Architectural Intent:
- Implements ProviderAdapterPort for Alibaba Cloud Container Service for
  Kubernetes (ACK) managed clusters and node pools
- Simulates the ACK OpenAPI (CS 2015-12-15) call patterns and response
  shapes without importing the SDK, enabling tests and local development
  with zero cloud credentials
- When the real SDK is available, replace the _stub_* helpers with
  alibabacloud_cs20151215 client calls; the public method signatures remain
  stable

Design Decisions:
- Node pool image selection is not applied by ACK at creation, so
  image_iid is declared IGNORED and dropped before forwarding
- ACK allows several clusters with the same name; lookups by name may
  therefore be ambiguous
- Versions carry the "-aliyun.N" build suffix (e.g. 1.22.10-aliyun.1); only
  versions in the supported list are accepted

Simulated region default: ap-northeast-1
"""

import datetime
import logging
import uuid
from typing import Optional

from kubeplane.domain.entities.cluster import ClusterInfo, ClusterStatus
from kubeplane.domain.entities.node_group import NodeGroupInfo, NodeGroupStatus
from kubeplane.domain.errors import ProviderRejectedError
from kubeplane.domain.value_objects.capability import (
    CapabilityDescriptor,
    FieldId,
    FieldSupport,
)
from kubeplane.domain.value_objects.iid import IID
from kubeplane.domain.value_objects.network import KeyValue, NetworkInfo
from kubeplane.infrastructure.adapters.simulated_provider import (
    ProviderRecord,
    SimulatedProviderAdapter,
)

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (
    "1.20.11-aliyun.1",
    "1.22.3-aliyun.1",
    "1.22.10-aliyun.1",
    "1.24.6-aliyun.1",
)
DEFAULT_VERSION = "1.22.10-aliyun.1"

ACK_CAPABILITIES = CapabilityDescriptor(
    provider="alibaba",
    fields={FieldId.NODE_GROUP_IMAGE: FieldSupport.IGNORED},
    max_minor_version_skew=1,
    upgrade_path_error_codes=frozenset({"ErrorUpgradeVersion"}),
)


# ---------------------------------------------------------------------------
# Internal helpers that mimic the shape of ACK OpenAPI payloads.
# ---------------------------------------------------------------------------

def _make_cluster_id() -> str:
    """Return a plausible ACK cluster ID."""
    return "c" + uuid.uuid4().hex


def _make_nodepool_id() -> str:
    return "np" + uuid.uuid4().hex


def _now() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


def _stub_create_cluster_request(region: str, cluster: ClusterInfo) -> dict:
    """
    Build the body of an ACK CreateCluster call for a managed cluster.

    The real call looks like:
        client.create_cluster(CreateClusterRequest(
            name=..., cluster_type="ManagedKubernetes", region_id=region,
            kubernetes_version=..., vpcid=..., vswitch_ids=[...],
            security_group_id=..., tags=[Tag(key=..., value=...)],
        ))
    """
    network = cluster.network
    return {
        "name": cluster.iid.name_id,
        "cluster_type": "ManagedKubernetes",
        "region_id": region,
        "current_version": cluster.version or DEFAULT_VERSION,
        "vpc_id": network.vpc_iid.system_id,
        "vswitch_ids": [s.system_id for s in network.subnet_iids],
        "security_group_id": (
            network.security_group_iids[0].system_id
            if network.security_group_iids else ""
        ),
        "tags": [{"key": kv.key, "value": kv.value} for kv in network.key_value_list],
        "created": _now(),
    }


def _stub_create_nodepool_request(cluster: ProviderRecord, ng: NodeGroupInfo) -> dict:
    """
    Build the body of an ACK CreateClusterNodePool call.

    The real call looks like:
        client.create_cluster_node_pool(cluster_id, CreateClusterNodePoolRequest(
            nodepool_info=..., scaling_group=..., auto_scaling=...,
        ))
    """
    return {
        "nodepool_info": {
            "name": ng.iid.name_id,
            "type": "ess",
            "created": _now(),
        },
        "scaling_group": {
            "instance_types": [ng.vm_spec_name] if ng.vm_spec_name else [],
            "system_disk_category": ng.root_disk_type or "cloud_efficiency",
            "system_disk_size": int(ng.root_disk_size or 40),
            "key_pair": ng.key_pair_iid.name_id if ng.key_pair_iid else "",
            "image_id": "",
            "desired_size": ng.desired_node_size,
            "vswitch_ids": list(cluster.payload.get("vswitch_ids", [])),
        },
        "auto_scaling": {
            "enable": ng.on_auto_scaling,
            "min_instances": ng.min_node_size,
            "max_instances": ng.max_node_size,
        },
    }


class AlibabaAdapter(SimulatedProviderAdapter):
    """
    Alibaba Cloud ACK provider adapter.

    Configuration parameters
    ------------------------
    region : str
        Alibaba Cloud region ID (e.g. "ap-northeast-1").
    access_key_id, access_key_secret : str
        RAM credentials passed to the SDK client.  Ignored in stub mode.
    settle_polls : int
        Reads before a simulated transition settles.
    """

    PROVIDER = "alibaba"
    CAPABILITIES = ACK_CAPABILITIES
    CLUSTER_STATUS = {
        "initial": ClusterStatus.CREATING,
        "running": ClusterStatus.ACTIVE,
        "updating": ClusterStatus.UPDATING,
        "upgrading": ClusterStatus.UPDATING,
        "scaling": ClusterStatus.UPDATING,
        "deleting": ClusterStatus.DELETING,
        "deleted": ClusterStatus.DELETED,
        "failed": ClusterStatus.ERROR,
        "delete_failed": ClusterStatus.ERROR,
    }
    NODE_POOL_STATUS = {
        "initial": NodeGroupStatus.CREATING,
        "active": NodeGroupStatus.ACTIVE,
        "scaling": NodeGroupStatus.UPDATING,
        "updating": NodeGroupStatus.UPDATING,
        "removing": NodeGroupStatus.DELETING,
        "deleting": NodeGroupStatus.DELETING,
        "failed": NodeGroupStatus.ERROR,
    }
    NOT_FOUND_CODE = "ErrorClusterNotFound"
    BUSY_CODE = "ErrorClusterState"
    DUPLICATE_NAME_CODE = "ErrorNameExists"
    REJECTED_FIELD_CODE = "ErrorParameter"

    def __init__(
        self,
        region: str = "ap-northeast-1",
        access_key_id: str = "",
        access_key_secret: str = "",
        settle_polls: int = 2,
    ) -> None:
        super().__init__(settle_polls=settle_polls)
        self.region = region
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        logger.debug("AlibabaAdapter initialised (region=%s)", region)

    def _stub_create_cluster(self, cluster: ClusterInfo) -> tuple[str, dict]:
        version = cluster.version or DEFAULT_VERSION
        if version not in SUPPORTED_VERSIONS:
            raise ProviderRejectedError(
                f"Kubernetes version {version} is not offered in {self.region}",
                code="ErrorClusterVersion",
                operation="CreateCluster",
                target=cluster.iid,
            )
        return _make_cluster_id(), _stub_create_cluster_request(self.region, cluster)

    def _stub_create_node_pool(
        self, cluster: ProviderRecord, node_group: NodeGroupInfo
    ) -> tuple[str, dict]:
        return _make_nodepool_id(), _stub_create_nodepool_request(cluster, node_group)

    def _stub_describe_cluster(self, record: ProviderRecord) -> dict:
        """
        Simulate DescribeClusterDetail.

        The real call looks like:
            client.describe_cluster_detail(cluster_id)
        """
        return {
            "cluster_id": record.system_id,
            "state": record.status,
            **record.payload,
        }

    def _stub_describe_node_pool(
        self, cluster: ProviderRecord, pool: ProviderRecord
    ) -> dict:
        """
        Simulate DescribeClusterNodePoolDetail merged with DescribeClusterNodes.
        """
        payload = pool.payload
        return {
            "nodepool_info": {**payload["nodepool_info"], "nodepool_id": pool.system_id},
            "status": {
                "state": pool.status,
                "total_nodes": len(pool.nodes),
                "healthy_nodes": len(pool.nodes),
            },
            "scaling_group": dict(payload["scaling_group"]),
            "auto_scaling": dict(payload["auto_scaling"]),
            "nodes": [
                {"instance_id": "i-" + ip.replace(".", ""), "ip_address": [ip]}
                for ip in pool.nodes
            ],
        }

    def _stub_upgrade_cluster(self, record: ProviderRecord, version: str) -> None:
        if version not in SUPPORTED_VERSIONS:
            raise ProviderRejectedError(
                f"Cannot upgrade {record.payload['current_version']} to {version}",
                code="ErrorUpgradeVersion",
                operation="UpgradeCluster",
                target=IID(record.name, record.system_id),
                provider_message="target version is not in the upgrade list",
            )
        record.payload["current_version"] = version

    def _stub_scale_node_pool(
        self, pool: ProviderRecord, desired: int, minimum: int, maximum: int
    ) -> None:
        pool.payload["scaling_group"]["desired_size"] = desired
        pool.payload["auto_scaling"]["min_instances"] = minimum
        pool.payload["auto_scaling"]["max_instances"] = maximum

    def _stub_set_auto_scaling(self, pool: ProviderRecord, enable: bool) -> None:
        pool.payload["auto_scaling"]["enable"] = enable

    def _stub_desired_size(self, pool: ProviderRecord) -> int:
        return pool.payload["scaling_group"]["desired_size"]

    def _cluster_from_response(
        self, response: dict, node_groups: list[NodeGroupInfo]
    ) -> ClusterInfo:
        security_group = response.get("security_group_id")
        tags = tuple(
            KeyValue(key=t["key"], value=t.get("value", ""))
            for t in response.get("tags", [])
        )
        return ClusterInfo(
            iid=IID(response["name"], response["cluster_id"]),
            version=response["current_version"],
            network=NetworkInfo(
                vpc_iid=IID("", response.get("vpc_id", "")),
                subnet_iids=tuple(IID("", v) for v in response.get("vswitch_ids", [])),
                security_group_iids=(IID("", security_group),) if security_group else (),
                key_value_list=tags,
            ),
            node_group_list=tuple(node_groups),
            status=self._cluster_status_of(response["state"]),
            key_value_list=(KeyValue("region_id", response.get("region_id", "")),),
            created_at=datetime.datetime.fromisoformat(response["created"]),
        )

    def _node_group_from_response(self, response: dict) -> NodeGroupInfo:
        info = response["nodepool_info"]
        scaling = response["scaling_group"]
        auto = response["auto_scaling"]
        image_id: Optional[str] = scaling.get("image_id")
        return NodeGroupInfo(
            iid=IID(info["name"], info["nodepool_id"]),
            vm_spec_name=scaling["instance_types"][0] if scaling["instance_types"] else "",
            image_iid=IID("", image_id) if image_id else None,
            root_disk_type=scaling["system_disk_category"],
            root_disk_size=str(scaling["system_disk_size"]),
            key_pair_iid=IID(scaling["key_pair"], "") if scaling["key_pair"] else None,
            on_auto_scaling=auto["enable"],
            desired_node_size=scaling["desired_size"],
            min_node_size=auto["min_instances"],
            max_node_size=auto["max_instances"],
            status=self._pool_status_of(response["status"]["state"]),
            nodes=tuple(
                IID(n["ip_address"][0], n["instance_id"]) for n in response["nodes"]
            ),
        )
