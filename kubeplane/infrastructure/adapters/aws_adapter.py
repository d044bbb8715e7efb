"""
AWS EKS Adapter

Architectural Intent:
- Implements ProviderAdapterPort for Amazon Elastic Kubernetes Service
  (EKS) clusters and managed node groups
- Simulates boto3 EKS client call patterns and response dictionaries
  without importing the real SDK, enabling tests and local development with
  zero cloud credentials
- When the real boto3 library is available, replace the _stub_* helpers
  with boto3.client("eks") calls; the public method signatures remain stable

Design Decisions:
- EKS CreateCluster takes no node groups, so initial node groups are
  IGNORED here and added by the cluster manager once the cluster is ACTIVE
- Managed node groups expose diskSize but no disk type: root_disk_type is
  IGNORED
- Cluster and node group names are unique per account and region; the ARN
  is used as the system ID
- Autoscaling is driven by the Cluster Autoscaler, toggled through the
  k8s.io/cluster-autoscaler/enabled node group tag
- EKS upgrades one minor version at a time

Simulated region default: us-east-1
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

SUPPORTED_VERSIONS = ("1.27", "1.28", "1.29", "1.30")
ACCOUNT_ID = "123456789012"
AUTOSCALER_TAG = "k8s.io/cluster-autoscaler/enabled"

EKS_CAPABILITIES = CapabilityDescriptor(
    provider="aws",
    fields={
        FieldId.NODE_GROUP_ROOT_DISK_TYPE: FieldSupport.IGNORED,
        FieldId.CLUSTER_INITIAL_NODE_GROUPS: FieldSupport.IGNORED,
    },
    max_minor_version_skew=1,
    upgrade_path_error_codes=frozenset({"InvalidParameterException"}),
)


# ---------------------------------------------------------------------------
# Internal helpers that mimic the shape of real boto3 EKS payloads.
# ---------------------------------------------------------------------------

def _cluster_arn(region: str, name: str) -> str:
    return f"arn:aws:eks:{region}:{ACCOUNT_ID}:cluster/{name}"


def _nodegroup_arn(region: str, cluster: str, name: str) -> str:
    return (
        f"arn:aws:eks:{region}:{ACCOUNT_ID}:nodegroup/{cluster}/{name}/"
        f"{uuid.uuid4()}"
    )


def _stub_create_cluster(region: str, role_arn: str, cluster: ClusterInfo) -> dict:
    """
    Simulate the "cluster" dict of a boto3 EKS.create_cluster() response.

    The real call looks like:
        eks = boto3.client("eks", region_name=region)
        response = eks.create_cluster(
            name=name,
            version=version,
            roleArn=role_arn,
            resourcesVpcConfig={"subnetIds": [...], "securityGroupIds": [...]},
            tags={...},
        )
    """
    network = cluster.network
    return {
        "name": cluster.iid.name_id,
        "version": cluster.version,
        "roleArn": role_arn,
        "resourcesVpcConfig": {
            "vpcId": network.vpc_iid.system_id,
            "subnetIds": [s.system_id for s in network.subnet_iids],
            "securityGroupIds": [sg.system_id for sg in network.security_group_iids],
        },
        "tags": {kv.key: kv.value for kv in network.key_value_list},
        "createdAt": datetime.datetime.now(datetime.UTC).isoformat(),
        "platformVersion": "eks.1",
    }


def _stub_create_nodegroup(cluster: ProviderRecord, ng: NodeGroupInfo) -> dict:
    """
    Simulate the "nodegroup" dict of a boto3 EKS.create_nodegroup() response.

    The real call looks like:
        response = eks.create_nodegroup(
            clusterName=cluster_name,
            nodegroupName=name,
            scalingConfig={"minSize": ..., "maxSize": ..., "desiredSize": ...},
            instanceTypes=[...],
            diskSize=...,
            remoteAccess={"ec2SshKey": ...},
            launchTemplate={...},
            tags={...},
        )
    """
    return {
        "nodegroupName": ng.iid.name_id,
        "clusterName": cluster.name,
        "version": cluster.payload["version"],
        "scalingConfig": {
            "minSize": ng.min_node_size,
            "maxSize": ng.max_node_size,
            "desiredSize": ng.desired_node_size,
        },
        "instanceTypes": [ng.vm_spec_name] if ng.vm_spec_name else ["t3.medium"],
        "diskSize": int(ng.root_disk_size or 20),
        "remoteAccess": (
            {"ec2SshKey": ng.key_pair_iid.name_id} if ng.key_pair_iid else {}
        ),
        "launchTemplate": (
            {"imageId": ng.image_iid.system_id} if ng.image_iid else {}
        ),
        "subnets": list(cluster.payload["resourcesVpcConfig"]["subnetIds"]),
        "tags": {AUTOSCALER_TAG: "true" if ng.on_auto_scaling else "false"},
    }


class AWSAdapter(SimulatedProviderAdapter):
    """
    AWS EKS provider adapter.

    Configuration parameters
    ------------------------
    region : str
        AWS region name (e.g. "us-east-1").
    access_key_id, secret_access_key : str
        Credentials passed to boto3.Session.  Ignored in stub mode.
    role_arn : str
        IAM role the EKS control plane assumes.
    settle_polls : int
        Reads before a simulated transition settles.
    """

    PROVIDER = "aws"
    CAPABILITIES = EKS_CAPABILITIES
    CLUSTER_STATUS = {
        "CREATING": ClusterStatus.CREATING,
        "PENDING": ClusterStatus.CREATING,
        "ACTIVE": ClusterStatus.ACTIVE,
        "UPDATING": ClusterStatus.UPDATING,
        "DELETING": ClusterStatus.DELETING,
        "FAILED": ClusterStatus.ERROR,
    }
    NODE_POOL_STATUS = {
        "CREATING": NodeGroupStatus.CREATING,
        "ACTIVE": NodeGroupStatus.ACTIVE,
        "UPDATING": NodeGroupStatus.UPDATING,
        "DELETING": NodeGroupStatus.DELETING,
        "CREATE_FAILED": NodeGroupStatus.ERROR,
        "DELETE_FAILED": NodeGroupStatus.ERROR,
        "DEGRADED": NodeGroupStatus.ERROR,
    }
    NOT_FOUND_CODE = "ResourceNotFoundException"
    BUSY_CODE = "ResourceInUseException"
    DUPLICATE_NAME_CODE = "ResourceInUseException"
    REJECTED_FIELD_CODE = "InvalidParameterException"
    UNIQUE_NAMES = True

    def __init__(
        self,
        region: str = "us-east-1",
        access_key_id: str = "",
        secret_access_key: str = "",
        role_arn: str = "",
        settle_polls: int = 2,
    ) -> None:
        super().__init__(settle_polls=settle_polls)
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.role_arn = role_arn or f"arn:aws:iam::{ACCOUNT_ID}:role/eks-cluster-role"
        logger.debug("AWSAdapter initialised (region=%s)", region)

    def _stub_create_cluster(self, cluster: ClusterInfo) -> tuple[str, dict]:
        if cluster.version not in SUPPORTED_VERSIONS:
            raise ProviderRejectedError(
                f"unsupported Kubernetes version {cluster.version!r}",
                code="InvalidParameterException",
                operation="CreateCluster",
                target=cluster.iid,
            )
        arn = _cluster_arn(self.region, cluster.iid.name_id)
        return arn, _stub_create_cluster(self.region, self.role_arn, cluster)

    def _stub_create_node_pool(
        self, cluster: ProviderRecord, node_group: NodeGroupInfo
    ) -> tuple[str, dict]:
        arn = _nodegroup_arn(self.region, cluster.name, node_group.iid.name_id)
        return arn, _stub_create_nodegroup(cluster, node_group)

    def _stub_describe_cluster(self, record: ProviderRecord) -> dict:
        """
        Simulate boto3 EKS.describe_cluster().

        The real call looks like:
            eks.describe_cluster(name=name)
        """
        return {
            "cluster": {
                "arn": record.system_id,
                "status": record.status,
                **record.payload,
            },
            "ResponseMetadata": {
                "RequestId": str(uuid.uuid4()),
                "HTTPStatusCode": 200,
            },
        }

    def _stub_describe_node_pool(
        self, cluster: ProviderRecord, pool: ProviderRecord
    ) -> dict:
        """
        Simulate boto3 EKS.describe_nodegroup(); node addresses come from
        EC2.describe_instances on the node group's Auto Scaling group.
        """
        return {
            "nodegroup": {
                "nodegroupArn": pool.system_id,
                "status": pool.status,
                **pool.payload,
                "resources": {
                    "autoScalingGroups": [
                        {"name": f"eks-{pool.name}-{pool.system_id[-8:]}"}
                    ],
                },
            },
            "instances": [
                {"InstanceId": "i-" + ip.replace(".", ""), "PrivateIpAddress": ip}
                for ip in pool.nodes
            ],
        }

    def _stub_upgrade_cluster(self, record: ProviderRecord, version: str) -> None:
        """
        The real call looks like:
            eks.update_cluster_version(name=name, version=version)
        """
        current = record.payload["version"]
        if version not in SUPPORTED_VERSIONS or (
            SUPPORTED_VERSIONS.index(version) - SUPPORTED_VERSIONS.index(current)
            != 1
        ):
            raise ProviderRejectedError(
                f"Unsupported Kubernetes minor version update from {current} "
                f"to {version}",
                code="InvalidParameterException",
                operation="UpgradeCluster",
                target=IID(record.name, record.system_id),
            )
        record.payload["version"] = version

    def _stub_scale_node_pool(
        self, pool: ProviderRecord, desired: int, minimum: int, maximum: int
    ) -> None:
        """
        The real call looks like:
            eks.update_nodegroup_config(
                clusterName=..., nodegroupName=...,
                scalingConfig={"minSize": ..., "maxSize": ..., "desiredSize": ...},
            )
        """
        pool.payload["scalingConfig"] = {
            "minSize": minimum,
            "maxSize": maximum,
            "desiredSize": desired,
        }

    def _stub_set_auto_scaling(self, pool: ProviderRecord, enable: bool) -> None:
        """
        The real call looks like:
            eks.tag_resource(resourceArn=arn, tags={AUTOSCALER_TAG: "true"})
        """
        pool.payload["tags"][AUTOSCALER_TAG] = "true" if enable else "false"

    def _stub_desired_size(self, pool: ProviderRecord) -> int:
        return pool.payload["scalingConfig"]["desiredSize"]

    def _cluster_from_response(
        self, response: dict, node_groups: list[NodeGroupInfo]
    ) -> ClusterInfo:
        cluster = response["cluster"]
        vpc = cluster["resourcesVpcConfig"]
        return ClusterInfo(
            iid=IID(cluster["name"], cluster["arn"]),
            version=cluster["version"],
            network=NetworkInfo(
                vpc_iid=IID("", vpc["vpcId"]),
                subnet_iids=tuple(IID("", s) for s in vpc["subnetIds"]),
                security_group_iids=tuple(IID("", sg) for sg in vpc["securityGroupIds"]),
                key_value_list=tuple(
                    KeyValue(key=k, value=v) for k, v in cluster["tags"].items()
                ),
            ),
            node_group_list=tuple(node_groups),
            status=self._cluster_status_of(cluster["status"]),
            key_value_list=(KeyValue("platformVersion", cluster["platformVersion"]),),
            created_at=datetime.datetime.fromisoformat(cluster["createdAt"]),
        )

    def _node_group_from_response(self, response: dict) -> NodeGroupInfo:
        ng = response["nodegroup"]
        scaling = ng["scalingConfig"]
        image_id = ng["launchTemplate"].get("imageId")
        ssh_key = ng["remoteAccess"].get("ec2SshKey")
        return NodeGroupInfo(
            iid=IID(ng["nodegroupName"], ng["nodegroupArn"]),
            vm_spec_name=ng["instanceTypes"][0],
            image_iid=IID("", image_id) if image_id else None,
            root_disk_size=str(ng["diskSize"]),
            key_pair_iid=IID(ssh_key, "") if ssh_key else None,
            on_auto_scaling=ng["tags"].get(AUTOSCALER_TAG) == "true",
            desired_node_size=scaling["desiredSize"],
            min_node_size=scaling["minSize"],
            max_node_size=scaling["maxSize"],
            status=self._pool_status_of(ng["status"]),
            nodes=tuple(
                IID(i["PrivateIpAddress"], i["InstanceId"])
                for i in response["instances"]
            ),
        )
