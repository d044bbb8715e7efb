"""
Tests for the managed-Kubernetes provider adapters.

Coverage strategy
-----------------
Each adapter is exercised directly, without the managers:
  1. It satisfies ProviderAdapterPort and carries its capability table.
  2. Provider status strings map to unified statuses; unknown ones to Error.
  3. Mutations return a transitional status that settles after
     settle_polls get reads; list reads never advance a transition.
  4. Deletions end with NotFoundError on the next read.
  5. Provider-specific rules: name uniqueness, rejected fields, upgrade
     paths and their error codes, response shapes.
"""

import pytest

from kubeplane.domain.entities.cluster import ClusterInfo, ClusterStatus
from kubeplane.domain.entities.node_group import NodeGroupInfo, NodeGroupStatus
from kubeplane.domain.errors import (
    AmbiguousNameError,
    InvalidScalingBoundsError,
    NotFoundError,
    ProviderRejectedError,
)
from kubeplane.domain.ports.provider_adapter_port import ProviderAdapterPort
from kubeplane.domain.value_objects.iid import IID
from kubeplane.domain.value_objects.network import NetworkInfo
from kubeplane.infrastructure.adapters.alibaba_adapter import AlibabaAdapter
from kubeplane.infrastructure.adapters.aws_adapter import AUTOSCALER_TAG, AWSAdapter
from kubeplane.infrastructure.adapters.tencent_adapter import TencentAdapter

VERSIONS = {"alibaba": "1.22.10-aliyun.1", "tencent": "1.22.5", "aws": "1.29"}
NETWORK = NetworkInfo(
    vpc_iid=IID(system_id="vpc-1"),
    subnet_iids=(IID(system_id="subnet-1"),),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cluster(provider: str, name: str = "cluster-1", **kwargs) -> ClusterInfo:
    return ClusterInfo(
        iid=IID(name), version=VERSIONS[provider], network=NETWORK, **kwargs
    )


def _pool(name: str = "pool-a", **kwargs) -> NodeGroupInfo:
    defaults = dict(
        iid=IID(name),
        vm_spec_name="m5.large",
        desired_node_size=2,
        min_node_size=1,
        max_node_size=4,
    )
    defaults.update(kwargs)
    return NodeGroupInfo(**defaults)


async def _running(adapter, provider: str, name: str = "cluster-1") -> ClusterInfo:
    created = await adapter.create_cluster(_cluster(provider, name))
    while (await adapter.get_cluster(created.iid)).status is not ClusterStatus.ACTIVE:
        pass
    return await adapter.get_cluster(created.iid)


async def _settled_pool(adapter, cluster_iid: IID, pool: NodeGroupInfo) -> NodeGroupInfo:
    created = await adapter.add_node_group(cluster_iid, pool)
    while True:
        current = await adapter.get_node_group(cluster_iid, created.iid)
        if current.is_settled:
            return current


@pytest.fixture(params=["alibaba", "tencent", "aws"])
def provider(request):
    adapter = request.getfixturevalue(request.param)
    return request.param, adapter


# ---------------------------------------------------------------------------
# Shared behavior
# ---------------------------------------------------------------------------

class TestContract:
    def test_satisfies_port(self, provider):
        name, adapter = provider
        assert isinstance(adapter, ProviderAdapterPort)
        assert adapter.capabilities.provider == name

    def test_negative_settle_polls(self):
        with pytest.raises(ValueError):
            AlibabaAdapter(settle_polls=-1)

    @pytest.mark.parametrize(
        "adapter_cls,raw,expected",
        [
            (AlibabaAdapter, "running", ClusterStatus.ACTIVE),
            (AlibabaAdapter, "upgrading", ClusterStatus.UPDATING),
            (AlibabaAdapter, "delete_failed", ClusterStatus.ERROR),
            (TencentAdapter, "Running", ClusterStatus.ACTIVE),
            (TencentAdapter, "Abnormal", ClusterStatus.ERROR),
            (AWSAdapter, "PENDING", ClusterStatus.CREATING),
            (AWSAdapter, "FAILED", ClusterStatus.ERROR),
            (AWSAdapter, "SOMETHING_NEW", ClusterStatus.ERROR),
        ],
    )
    def test_cluster_status_mapping(self, adapter_cls, raw, expected):
        assert adapter_cls()._cluster_status_of(raw) is expected

    @pytest.mark.parametrize(
        "adapter_cls,raw,expected",
        [
            (AlibabaAdapter, "active", NodeGroupStatus.ACTIVE),
            (AlibabaAdapter, "removing", NodeGroupStatus.DELETING),
            (TencentAdapter, "normal", NodeGroupStatus.ACTIVE),
            (AWSAdapter, "DEGRADED", NodeGroupStatus.ERROR),
            (AWSAdapter, "CREATE_FAILED", NodeGroupStatus.ERROR),
            (TencentAdapter, "hibernating", NodeGroupStatus.ERROR),
        ],
    )
    def test_node_pool_status_mapping(self, adapter_cls, raw, expected):
        assert adapter_cls()._pool_status_of(raw) is expected


@pytest.mark.asyncio
class TestClusterProgression:
    async def test_create_settles_after_reads(self, provider):
        name, adapter = provider
        created = await adapter.create_cluster(_cluster(name))
        assert created.status is ClusterStatus.CREATING
        assert created.iid.system_id

        first = await adapter.get_cluster(created.iid)
        assert first.status is ClusterStatus.CREATING
        second = await adapter.get_cluster(created.iid)
        assert second.status is ClusterStatus.ACTIVE
        assert second.version == VERSIONS[name]

    async def test_list_does_not_advance(self, provider):
        name, adapter = provider
        await adapter.create_cluster(_cluster(name))
        for _ in range(5):
            listed = await adapter.list_cluster()
        assert listed[0].status is ClusterStatus.CREATING

    async def test_zero_settle_polls(self):
        adapter = AlibabaAdapter(settle_polls=0)
        created = await adapter.create_cluster(_cluster("alibaba"))
        assert created.status is ClusterStatus.ACTIVE

    async def test_lookup_by_name(self, provider):
        name, adapter = provider
        created = await adapter.create_cluster(_cluster(name))
        found = await adapter.get_cluster(IID("cluster-1"))
        assert found.iid.system_id == created.iid.system_id

    async def test_get_unknown(self, provider):
        _, adapter = provider
        with pytest.raises(NotFoundError) as exc:
            await adapter.get_cluster(IID(system_id="does-not-exist"))
        assert exc.value.provider_message == adapter.NOT_FOUND_CODE

    async def test_delete_removes_cluster_and_pools(self, provider):
        name, adapter = provider
        cluster = await _running(adapter, name)
        pool = await _settled_pool(adapter, cluster.iid, _pool())

        assert await adapter.delete_cluster(cluster.iid) is True
        listed = await adapter.list_node_group(cluster.iid)
        assert listed[0].status is NodeGroupStatus.DELETING
        deleting = await adapter.get_cluster(cluster.iid)
        assert deleting.status is ClusterStatus.DELETING
        with pytest.raises(NotFoundError):
            await adapter.get_cluster(cluster.iid)
        assert await adapter.list_cluster() == []
        with pytest.raises(NotFoundError):
            await adapter.get_node_group(cluster.iid, pool.iid)

    async def test_simulated_failure(self, provider):
        name, adapter = provider
        adapter.simulate_failure("cluster-1")
        created = await adapter.create_cluster(_cluster(name))
        await adapter.get_cluster(created.iid)
        assert (await adapter.get_cluster(created.iid)).status is ClusterStatus.ERROR

    async def test_mutation_needs_running_cluster(self, provider):
        name, adapter = provider
        created = await adapter.create_cluster(_cluster(name))
        with pytest.raises(ProviderRejectedError) as exc:
            await adapter.add_node_group(created.iid, _pool())
        assert exc.value.code == adapter.BUSY_CODE


@pytest.mark.asyncio
class TestNodePools:
    async def test_pool_lifecycle(self, provider):
        name, adapter = provider
        cluster = await _running(adapter, name)
        pool = await _settled_pool(adapter, cluster.iid, _pool(desired_node_size=2))

        assert pool.status is NodeGroupStatus.ACTIVE
        assert (pool.desired_node_size, pool.min_node_size, pool.max_node_size) == (2, 1, 4)
        assert len(pool.nodes) == 2
        assert all(node.name_id.startswith("10.") for node in pool.nodes)
        assert all(node.system_id for node in pool.nodes)

        scaled = await adapter.change_node_group_scaling(cluster.iid, pool.iid, 3, 1, 5)
        assert scaled.status is NodeGroupStatus.UPDATING
        await adapter.get_node_group(cluster.iid, pool.iid)
        settled = await adapter.get_node_group(cluster.iid, pool.iid)
        assert settled.status is NodeGroupStatus.ACTIVE
        assert len(settled.nodes) == 3
        assert settled.max_node_size == 5

        assert await adapter.remove_node_group(cluster.iid, pool.iid) is True
        await adapter.get_node_group(cluster.iid, pool.iid)
        with pytest.raises(NotFoundError):
            await adapter.get_node_group(cluster.iid, pool.iid)

    async def test_auto_scaling_toggle(self, provider):
        name, adapter = provider
        cluster = await _running(adapter, name)
        pool = await _settled_pool(adapter, cluster.iid, _pool(on_auto_scaling=True))
        assert pool.on_auto_scaling is True

        assert await adapter.set_node_group_auto_scaling(cluster.iid, pool.iid, False)
        [listed] = await adapter.list_node_group(cluster.iid)
        assert listed.on_auto_scaling is False
        assert listed.status is NodeGroupStatus.UPDATING

    async def test_scaling_bounds_checked(self, provider):
        name, adapter = provider
        cluster = await _running(adapter, name)
        pool = await _settled_pool(adapter, cluster.iid, _pool())
        with pytest.raises(InvalidScalingBoundsError):
            await adapter.change_node_group_scaling(cluster.iid, pool.iid, 9, 1, 4)

    async def test_unknown_pool(self, provider):
        name, adapter = provider
        cluster = await _running(adapter, name)
        with pytest.raises(NotFoundError):
            await adapter.get_node_group(cluster.iid, IID("ghost"))


# ---------------------------------------------------------------------------
# Provider-specific rules
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestAlibaba:
    async def test_initial_node_groups_created_with_cluster(self, alibaba):
        created = await alibaba.create_cluster(
            _cluster("alibaba", node_group_list=(_pool("pool-a"), _pool("pool-b")))
        )
        assert {ng.iid.name_id for ng in created.node_group_list} == {"pool-a", "pool-b"}
        assert created.iid.system_id.startswith("c")

    async def test_duplicate_names_allowed(self, alibaba):
        await alibaba.create_cluster(_cluster("alibaba"))
        await alibaba.create_cluster(_cluster("alibaba"))
        assert len(await alibaba.list_cluster()) == 2
        with pytest.raises(AmbiguousNameError):
            await alibaba.get_cluster(IID("cluster-1"))

    async def test_unsupported_version(self, alibaba):
        with pytest.raises(ProviderRejectedError) as exc:
            await alibaba.create_cluster(
                ClusterInfo(iid=IID("cluster-1"), version="1.30.1-aliyun.1")
            )
        assert exc.value.code == "ErrorClusterVersion"

    async def test_upgrade_not_in_list(self, alibaba):
        cluster = await _running(alibaba, "alibaba")
        with pytest.raises(ProviderRejectedError) as exc:
            await alibaba.upgrade_cluster(cluster.iid, "1.22.15-aliyun.1")
        assert exc.value.code == "ErrorUpgradeVersion"

    async def test_upgrade(self, alibaba):
        cluster = await _running(alibaba, "alibaba")
        updating = await alibaba.upgrade_cluster(cluster.iid, "1.24.6-aliyun.1")
        assert updating.status is ClusterStatus.UPDATING
        assert updating.version == "1.24.6-aliyun.1"

    async def test_region_reported(self):
        adapter = AlibabaAdapter(region="cn-hangzhou")
        created = await adapter.create_cluster(_cluster("alibaba"))
        assert ("region_id", "cn-hangzhou") in [
            (kv.key, kv.value) for kv in created.key_value_list
        ]


@pytest.mark.asyncio
class TestTencent:
    async def test_image_rejected_at_adapter(self, tencent):
        cluster = await _running(tencent, "tencent")
        with pytest.raises(ProviderRejectedError) as exc:
            await tencent.add_node_group(
                cluster.iid, _pool(image_iid=IID(system_id="img-pi0ii46r"))
            )
        assert exc.value.code == "InvalidParameter.Param"

    async def test_initial_node_groups_not_created(self, tencent):
        created = await tencent.create_cluster(
            _cluster("tencent", node_group_list=(_pool(),))
        )
        assert created.node_group_list == ()

    async def test_identifiers_and_zone(self):
        adapter = TencentAdapter(region="ap-seoul", zone="ap-seoul-2")
        created = await adapter.create_cluster(_cluster("tencent"))
        assert created.iid.system_id.startswith("cls-")
        extras = {kv.key: kv.value for kv in created.key_value_list}
        assert extras == {"Region": "ap-seoul", "Zone": "ap-seoul-2"}

    async def test_upgrade_code(self, tencent):
        cluster = await _running(tencent, "tencent")
        with pytest.raises(ProviderRejectedError) as exc:
            await tencent.upgrade_cluster(cluster.iid, "1.23.0")
        assert exc.value.code == "InvalidParameter.VersionNotSupported"


@pytest.mark.asyncio
class TestAWS:
    async def test_arn_system_ids(self, aws):
        cluster = await _running(aws, "aws")
        assert cluster.iid.system_id == (
            "arn:aws:eks:us-east-1:123456789012:cluster/cluster-1"
        )
        pool = await _settled_pool(aws, cluster.iid, _pool())
        assert pool.iid.system_id.startswith(
            "arn:aws:eks:us-east-1:123456789012:nodegroup/cluster-1/pool-a/"
        )

    async def test_names_are_unique(self, aws):
        await aws.create_cluster(_cluster("aws"))
        with pytest.raises(ProviderRejectedError) as exc:
            await aws.create_cluster(_cluster("aws"))
        assert exc.value.code == "ResourceInUseException"

    async def test_node_group_names_are_unique(self, aws):
        cluster = await _running(aws, "aws")
        await aws.add_node_group(cluster.iid, _pool())
        with pytest.raises(ProviderRejectedError):
            await aws.add_node_group(cluster.iid, _pool())

    async def test_one_minor_at_a_time(self, aws):
        cluster = await _running(aws, "aws")
        with pytest.raises(ProviderRejectedError) as exc:
            await aws.upgrade_cluster(cluster.iid, "1.28")
        assert exc.value.code == "InvalidParameterException"
        updating = await aws.upgrade_cluster(cluster.iid, "1.30")
        assert updating.version == "1.30"

    async def test_autoscaler_tag(self, aws):
        cluster = await _running(aws, "aws")
        pool = await _settled_pool(aws, cluster.iid, _pool(on_auto_scaling=False))
        record = aws._clusters[cluster.iid.system_id].pools[pool.iid.system_id]
        assert record.payload["tags"][AUTOSCALER_TAG] == "false"
        await aws.set_node_group_auto_scaling(cluster.iid, pool.iid, True)
        assert record.payload["tags"][AUTOSCALER_TAG] == "true"
