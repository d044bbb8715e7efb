"""Tests for IID, KeyValue and NetworkInfo value objects."""

import pytest

from kubeplane.domain.value_objects.iid import IID
from kubeplane.domain.value_objects.network import KeyValue, NetworkInfo


class TestIID:
    def test_defaults_are_empty(self):
        iid = IID()
        assert iid.is_empty
        assert str(iid) == "<empty>"

    def test_rejects_non_string(self):
        with pytest.raises(TypeError):
            IID(name_id=None)

    def test_str_shows_both_ids(self):
        assert str(IID("cluster-1", "c123")) == "cluster-1(c123)"
        assert str(IID("cluster-1")) == "cluster-1"
        assert str(IID(system_id="c123")) == "c123"

    def test_matches_by_system_id_when_both_set(self):
        assert IID("a", "sys-1").matches(IID("b", "sys-1"))
        assert not IID("a", "sys-1").matches(IID("a", "sys-2"))

    def test_matches_by_name_when_a_system_id_missing(self):
        assert IID("pool-a").matches(IID("pool-a", "np-1"))
        assert not IID("pool-a").matches(IID("pool-b", "np-1"))

    def test_with_system_id(self):
        iid = IID("pool-a").with_system_id("np-1")
        assert iid == IID("pool-a", "np-1")
        assert iid.with_system_id("np-1") == iid

    def test_system_id_is_immutable_once_set(self):
        with pytest.raises(ValueError, match="immutable"):
            IID("pool-a", "np-1").with_system_id("np-2")

    def test_factories(self):
        assert IID.by_name("x") == IID(name_id="x")
        assert IID.by_system_id("y") == IID(system_id="y")

    def test_hashable(self):
        assert len({IID("a", "1"), IID("a", "1"), IID("b")}) == 2


class TestNetworkInfo:
    def test_key_value_needs_key(self):
        with pytest.raises(ValueError):
            KeyValue(key="")

    def test_lists_are_frozen(self):
        network = NetworkInfo(
            vpc_iid=IID(system_id="vpc-2zek5slojo5bh621ftnrg"),
            subnet_iids=[IID(system_id="vsw-1")],
            security_group_iids=[IID(system_id="sg-1")],
            key_value_list=[KeyValue("env", "test")],
        )
        assert network.subnet_iids == (IID(system_id="vsw-1"),)
        assert isinstance(network.security_group_iids, tuple)
        assert isinstance(network.key_value_list, tuple)

    def test_default(self):
        network = NetworkInfo()
        assert network.vpc_iid.is_empty
        assert network.subnet_iids == ()
