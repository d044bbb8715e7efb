"""Tests for capability descriptors and request filtering."""

import pytest

from kubeplane.domain.entities.cluster import ClusterInfo
from kubeplane.domain.entities.node_group import NodeGroupInfo
from kubeplane.domain.services.capability_filter import (
    filter_cluster,
    filter_node_group,
)
from kubeplane.domain.value_objects.capability import (
    CapabilityDescriptor,
    FieldId,
    FieldSupport,
)
from kubeplane.domain.value_objects.iid import IID
from kubeplane.domain.value_objects.network import KeyValue, NetworkInfo


TENCENT_LIKE = CapabilityDescriptor(
    provider="tke",
    fields={
        FieldId.NODE_GROUP_IMAGE: FieldSupport.REJECTED,
        FieldId.NODE_GROUP_KEY_PAIR: FieldSupport.IGNORED,
        FieldId.CLUSTER_SECURITY_GROUPS: FieldSupport.IGNORED,
    },
)


def _pool(**kwargs) -> NodeGroupInfo:
    defaults = dict(
        iid=IID("nodepoolx101"),
        vm_spec_name="S3.MEDIUM2",
        image_iid=IID(system_id="img-pi0ii46r"),
        root_disk_type="CLOUD_PREMIUM",
        root_disk_size="50",
        key_pair_iid=IID("kp1"),
        on_auto_scaling=True,
        desired_node_size=1,
        min_node_size=0,
        max_node_size=3,
    )
    defaults.update(kwargs)
    return NodeGroupInfo(**defaults)


class TestCapabilityDescriptor:
    def test_unlisted_fields_are_honored(self):
        caps = CapabilityDescriptor(provider="any")
        assert caps.support_for(FieldId.NODE_GROUP_IMAGE) is FieldSupport.HONORED
        assert caps.honors(FieldId.CLUSTER_SUBNETS)

    def test_fields_are_read_only(self):
        with pytest.raises(TypeError):
            TENCENT_LIKE.fields[FieldId.NODE_GROUP_IMAGE] = FieldSupport.HONORED

    def test_needs_provider(self):
        with pytest.raises(ValueError):
            CapabilityDescriptor(provider="")

    def test_negative_skew_rejected(self):
        with pytest.raises(ValueError):
            CapabilityDescriptor(provider="x", max_minor_version_skew=-1)

    def test_hashable(self):
        assert hash(TENCENT_LIKE) == hash(
            CapabilityDescriptor(provider="tke", fields=dict(TENCENT_LIKE.fields))
        )


class TestFilterNodeGroup:
    def test_drops_rejected_and_ignored_fields(self):
        filtered, dropped = filter_node_group(_pool(), TENCENT_LIKE)
        assert filtered.image_iid is None
        assert filtered.key_pair_iid is None
        assert {d.field_id for d in dropped} == {
            FieldId.NODE_GROUP_IMAGE,
            FieldId.NODE_GROUP_KEY_PAIR,
        }
        by_field = {d.field_id: d.support for d in dropped}
        assert by_field[FieldId.NODE_GROUP_IMAGE] is FieldSupport.REJECTED

    def test_keeps_honored_fields(self):
        filtered, _ = filter_node_group(_pool(), TENCENT_LIKE)
        assert filtered.vm_spec_name == "S3.MEDIUM2"
        assert filtered.root_disk_type == "CLOUD_PREMIUM"
        assert filtered.root_disk_size == "50"
        assert filtered.on_auto_scaling is True
        assert (filtered.desired_node_size, filtered.min_node_size,
                filtered.max_node_size) == (1, 0, 3)

    def test_unset_fields_are_not_reported(self):
        pool = _pool(image_iid=None, key_pair_iid=None)
        filtered, dropped = filter_node_group(pool, TENCENT_LIKE)
        assert dropped == []
        assert filtered == pool

    def test_dropped_field_str(self):
        _, dropped = filter_node_group(_pool(key_pair_iid=None), TENCENT_LIKE)
        assert str(dropped[0]) == "nodepoolx101:node_group.image_iid(rejected)"


class TestFilterCluster:
    def _cluster(self, **kwargs) -> ClusterInfo:
        defaults = dict(
            iid=IID("cluster-1"),
            version="1.22.5",
            network=NetworkInfo(
                vpc_iid=IID(system_id="vpc-q1c6fr9e"),
                subnet_iids=(IID(system_id="subnet-rl79gxhv"),),
                security_group_iids=(IID(system_id="sg-46eef229"),),
                key_value_list=(KeyValue("team", "infra"),),
            ),
            node_group_list=(_pool(),),
        )
        defaults.update(kwargs)
        return ClusterInfo(**defaults)

    def test_drops_network_and_nested_fields(self):
        filtered, dropped = filter_cluster(self._cluster(), TENCENT_LIKE)
        assert filtered.network.security_group_iids == ()
        assert filtered.network.subnet_iids == (IID(system_id="subnet-rl79gxhv"),)
        assert filtered.node_group_list[0].image_iid is None
        assert {d.field_id for d in dropped} == {
            FieldId.CLUSTER_SECURITY_GROUPS,
            FieldId.NODE_GROUP_IMAGE,
            FieldId.NODE_GROUP_KEY_PAIR,
        }

    def test_unsupported_initial_node_groups_removed(self):
        caps = CapabilityDescriptor(
            provider="eks",
            fields={FieldId.CLUSTER_INITIAL_NODE_GROUPS: FieldSupport.IGNORED},
        )
        filtered, dropped = filter_cluster(self._cluster(), caps)
        assert filtered.node_group_list == ()
        assert [d.field_id for d in dropped] == [FieldId.CLUSTER_INITIAL_NODE_GROUPS]

    def test_all_honored_is_identity(self):
        cluster = self._cluster()
        filtered, dropped = filter_cluster(cluster, CapabilityDescriptor(provider="x"))
        assert dropped == []
        assert filtered == cluster
