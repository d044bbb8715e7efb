"""
Tencent Cloud TKE Adapter

Architectural Intent:
- Implements ProviderAdapterPort for Tencent Kubernetes Engine (TKE)
  managed clusters and node pools
- Simulates the TKE API 2018-05-25 call patterns (CreateCluster,
  DescribeClusters, CreateClusterNodePool, DescribeClusterNodePoolDetail,
  ModifyClusterNodePool, UpdateClusterVersion, DeleteClusterNodePool)
  without importing tencentcloud-sdk-python
- When the real SDK is available, replace the _stub_* helpers with
  tke_client.TkeClient calls; the public method signatures remain stable

Design Decisions:
- TKE does not accept an image ID when creating a node pool: image_iid is
  REJECTED, and this adapter raises if one reaches it
- Node pools have no key-pair field and clusters take no security groups:
  both are IGNORED
- CreateCluster takes no node pools; initial node groups are IGNORED here
  and added by the cluster manager once the cluster is Running
- Node pools are placed in the configured zone of the configured region
- Only even minor releases are offered, so an upgrade may step two minors

Simulated region default: ap-tokyo (zone ap-tokyo-2)
"""

import datetime
import logging
import uuid

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

SUPPORTED_VERSIONS = ("1.18.4", "1.20.6", "1.22.5", "1.24.4")

TKE_CAPABILITIES = CapabilityDescriptor(
    provider="tencent",
    fields={
        FieldId.NODE_GROUP_IMAGE: FieldSupport.REJECTED,
        FieldId.NODE_GROUP_KEY_PAIR: FieldSupport.IGNORED,
        FieldId.CLUSTER_SECURITY_GROUPS: FieldSupport.IGNORED,
        FieldId.CLUSTER_INITIAL_NODE_GROUPS: FieldSupport.IGNORED,
    },
    # only even minors are offered; the next release is two minors up
    max_minor_version_skew=2,
    upgrade_path_error_codes=frozenset({"InvalidParameter.VersionNotSupported"}),
)


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _stub_create_cluster_request(cluster: ClusterInfo) -> dict:
    """
    Build the parameters of a TKE CreateCluster call.

    The real call looks like:
        req = models.CreateClusterRequest()
        req.ClusterType = "MANAGED_CLUSTER"
        req.ClusterBasicSettings = {"ClusterName": ..., "ClusterVersion": ...,
                                    "VpcId": ..., "TagSpecification": [...]}
        req.ClusterCIDRSettings = {"EniSubnetIds": [...]}
        client.CreateCluster(req)
    """
    network = cluster.network
    return {
        "ClusterName": cluster.iid.name_id,
        "ClusterType": "MANAGED_CLUSTER",
        "ClusterVersion": cluster.version,
        "ClusterNetworkSettings": {
            "VpcId": network.vpc_iid.system_id,
            "Subnets": [s.system_id for s in network.subnet_iids],
        },
        "TagSpecification": [
            {
                "ResourceType": "cluster",
                "Tags": [
                    {"Key": kv.key, "Value": kv.value}
                    for kv in network.key_value_list
                ],
            }
        ],
        "CreatedTime": datetime.datetime.now(datetime.UTC).isoformat(),
    }


def _stub_create_node_pool_request(
    zone: str, cluster: ProviderRecord, ng: NodeGroupInfo
) -> dict:
    """
    Build the parameters of a TKE CreateClusterNodePool call.

    The real call looks like:
        req = models.CreateClusterNodePoolRequest()
        req.ClusterId = cluster_id
        req.AutoScalingGroupPara = json.dumps({"MaxSize": ..., "MinSize": ...,
                                               "DesiredCapacity": ..., ...})
        req.LaunchConfigurePara = json.dumps({"InstanceType": ...,
                                              "SystemDisk": {...}})
        req.EnableAutoscale = ...
        client.CreateClusterNodePool(req)
    """
    return {
        "Name": ng.iid.name_id,
        "ClusterInstanceId": cluster.system_id,
        "EnableAutoscale": ng.on_auto_scaling,
        "AutoScalingGroupPara": {
            "MaxSize": ng.max_node_size,
            "MinSize": ng.min_node_size,
            "DesiredCapacity": ng.desired_node_size,
            "SubnetIds": list(
                cluster.payload["ClusterNetworkSettings"]["Subnets"]
            ),
            "Zones": [zone],
        },
        "LaunchConfigurePara": {
            "InstanceType": ng.vm_spec_name,
            "SystemDisk": {
                "DiskType": ng.root_disk_type or "CLOUD_PREMIUM",
                "DiskSize": int(ng.root_disk_size or 50),
            },
        },
    }


class TencentAdapter(SimulatedProviderAdapter):
    """
    Tencent Cloud TKE provider adapter.

    Configuration parameters
    ------------------------
    region : str
        Tencent Cloud region (e.g. "ap-tokyo").
    zone : str
        Availability zone for node pools (e.g. "ap-tokyo-2").
    secret_id, secret_key : str
        API credentials passed to the SDK client.  Ignored in stub mode.
    settle_polls : int
        Reads before a simulated transition settles.
    """

    PROVIDER = "tencent"
    CAPABILITIES = TKE_CAPABILITIES
    CLUSTER_STATUS = {
        "Creating": ClusterStatus.CREATING,
        "Running": ClusterStatus.ACTIVE,
        "Upgrading": ClusterStatus.UPDATING,
        "Scaling": ClusterStatus.UPDATING,
        "Deleting": ClusterStatus.DELETING,
        "Abnormal": ClusterStatus.ERROR,
    }
    NODE_POOL_STATUS = {
        "creating": NodeGroupStatus.CREATING,
        "normal": NodeGroupStatus.ACTIVE,
        "updating": NodeGroupStatus.UPDATING,
        "deleting": NodeGroupStatus.DELETING,
        "abnormal": NodeGroupStatus.ERROR,
    }
    NOT_FOUND_CODE = "ResourceNotFound"
    BUSY_CODE = "FailedOperation.ClusterState"
    DUPLICATE_NAME_CODE = "ResourceInUse"
    REJECTED_FIELD_CODE = "InvalidParameter.Param"

    def __init__(
        self,
        region: str = "ap-tokyo",
        zone: str = "ap-tokyo-2",
        secret_id: str = "",
        secret_key: str = "",
        settle_polls: int = 2,
    ) -> None:
        super().__init__(settle_polls=settle_polls)
        self.region = region
        self.zone = zone
        self.secret_id = secret_id
        self.secret_key = secret_key
        logger.debug("TencentAdapter initialised (region=%s, zone=%s)", region, zone)

    def _stub_create_cluster(self, cluster: ClusterInfo) -> tuple[str, dict]:
        if cluster.version not in SUPPORTED_VERSIONS:
            raise ProviderRejectedError(
                f"ClusterVersion {cluster.version!r} is not supported",
                code="InvalidParameter.VersionNotSupported",
                operation="CreateCluster",
                target=cluster.iid,
            )
        return _short_id("cls"), _stub_create_cluster_request(cluster)

    def _stub_create_node_pool(
        self, cluster: ProviderRecord, node_group: NodeGroupInfo
    ) -> tuple[str, dict]:
        return _short_id("np"), _stub_create_node_pool_request(
            self.zone, cluster, node_group
        )

    def _stub_describe_cluster(self, record: ProviderRecord) -> dict:
        """
        Simulate one entry of a DescribeClusters response.

        The real call looks like:
            req = models.DescribeClustersRequest()
            req.ClusterIds = [cluster_id]
            client.DescribeClusters(req).Clusters[0]
        """
        return {
            "ClusterId": record.system_id,
            "ClusterStatus": record.status,
            **record.payload,
        }

    def _stub_describe_node_pool(
        self, cluster: ProviderRecord, pool: ProviderRecord
    ) -> dict:
        """
        Simulate DescribeClusterNodePoolDetail merged with
        DescribeClusterInstances for the pool.
        """
        payload = pool.payload
        return {
            "NodePool": {
                "NodePoolId": pool.system_id,
                "Name": payload["Name"],
                "ClusterInstanceId": cluster.system_id,
                "LifeState": pool.status,
                "AutoscalingGroupStatus": (
                    "enabled" if payload["EnableAutoscale"] else "disabled"
                ),
                "MaxNodesNum": payload["AutoScalingGroupPara"]["MaxSize"],
                "MinNodesNum": payload["AutoScalingGroupPara"]["MinSize"],
                "DesiredNodesNum": payload["AutoScalingGroupPara"]["DesiredCapacity"],
                "NodeCountSummary": {
                    "AutoscalingAdded": {
                        "Normal": len(pool.nodes),
                        "Total": len(pool.nodes),
                    },
                },
                "LaunchConfigurePara": payload["LaunchConfigurePara"],
            },
            "InstanceSet": [
                {"InstanceId": "ins-" + ip.replace(".", ""), "LanIP": ip}
                for ip in pool.nodes
            ],
        }

    def _stub_upgrade_cluster(self, record: ProviderRecord, version: str) -> None:
        """
        The real call looks like:
            req = models.UpdateClusterVersionRequest()
            req.ClusterId = cluster_id
            req.DstVersion = version
            client.UpdateClusterVersion(req)
        """
        if version not in SUPPORTED_VERSIONS:
            raise ProviderRejectedError(
                f"DstVersion {version!r} is not an available upgrade",
                code="InvalidParameter.VersionNotSupported",
                operation="UpgradeCluster",
                target=IID(record.name, record.system_id),
                provider_message=f"current version {record.payload['ClusterVersion']}",
            )
        record.payload["ClusterVersion"] = version

    def _stub_scale_node_pool(
        self, pool: ProviderRecord, desired: int, minimum: int, maximum: int
    ) -> None:
        group = pool.payload["AutoScalingGroupPara"]
        group["DesiredCapacity"] = desired
        group["MinSize"] = minimum
        group["MaxSize"] = maximum

    def _stub_set_auto_scaling(self, pool: ProviderRecord, enable: bool) -> None:
        pool.payload["EnableAutoscale"] = enable

    def _stub_desired_size(self, pool: ProviderRecord) -> int:
        return pool.payload["AutoScalingGroupPara"]["DesiredCapacity"]

    def _cluster_from_response(
        self, response: dict, node_groups: list[NodeGroupInfo]
    ) -> ClusterInfo:
        network = response["ClusterNetworkSettings"]
        tags = tuple(
            KeyValue(key=t["Key"], value=t.get("Value", ""))
            for spec in response.get("TagSpecification", [])
            for t in spec.get("Tags", [])
        )
        return ClusterInfo(
            iid=IID(response["ClusterName"], response["ClusterId"]),
            version=response["ClusterVersion"],
            network=NetworkInfo(
                vpc_iid=IID("", network["VpcId"]),
                subnet_iids=tuple(IID("", s) for s in network["Subnets"]),
                key_value_list=tags,
            ),
            node_group_list=tuple(node_groups),
            status=self._cluster_status_of(response["ClusterStatus"]),
            key_value_list=(
                KeyValue("Region", self.region),
                KeyValue("Zone", self.zone),
            ),
            created_at=datetime.datetime.fromisoformat(response["CreatedTime"]),
        )

    def _node_group_from_response(self, response: dict) -> NodeGroupInfo:
        pool = response["NodePool"]
        launch = pool["LaunchConfigurePara"]
        return NodeGroupInfo(
            iid=IID(pool["Name"], pool["NodePoolId"]),
            vm_spec_name=launch["InstanceType"],
            root_disk_type=launch["SystemDisk"]["DiskType"],
            root_disk_size=str(launch["SystemDisk"]["DiskSize"]),
            on_auto_scaling=pool["AutoscalingGroupStatus"] == "enabled",
            desired_node_size=pool["DesiredNodesNum"],
            min_node_size=pool["MinNodesNum"],
            max_node_size=pool["MaxNodesNum"],
            status=self._pool_status_of(pool["LifeState"]),
            nodes=tuple(
                IID(i["LanIP"], i["InstanceId"]) for i in response["InstanceSet"]
            ),
        )
