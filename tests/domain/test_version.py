"""Tests for Kubernetes version parsing and upgrade-path validation."""

import pytest

from kubeplane.domain.errors import InvalidTransitionError
from kubeplane.domain.services.version import KubernetesVersion, validate_upgrade_path
from kubeplane.domain.value_objects.capability import CapabilityDescriptor

CAPS = CapabilityDescriptor(provider="test", max_minor_version_skew=1)


class TestKubernetesVersion:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1.22.5", (1, 22, 5, 0)),
            ("v1.22.5", (1, 22, 5, 0)),
            ("1.29", (1, 29, 0, 0)),
            ("1.22.10-aliyun.1", (1, 22, 10, 1)),
            ("1.24.6-eks.3", (1, 24, 6, 3)),
        ],
    )
    def test_parse(self, raw, expected):
        v = KubernetesVersion.parse(raw)
        assert (v.major, v.minor, v.patch, v.build) == expected
        assert str(v) == raw

    @pytest.mark.parametrize("raw", ["", "latest", "1", "1.x.3", "a1.22"])
    def test_parse_invalid(self, raw):
        with pytest.raises(ValueError):
            KubernetesVersion.parse(raw)

    def test_ordering_is_numeric(self):
        assert KubernetesVersion.parse("1.22.10") > KubernetesVersion.parse("1.22.9")
        assert KubernetesVersion.parse("1.22.10-aliyun.2") > KubernetesVersion.parse(
            "1.22.10-aliyun.1"
        )

    def test_equality_ignores_prefix(self):
        assert KubernetesVersion.parse("v1.22.5") == KubernetesVersion.parse("1.22.5")


class TestValidateUpgradePath:
    def test_patch_upgrade(self):
        validate_upgrade_path("1.22.3-aliyun.1", "1.22.10-aliyun.1", CAPS)

    def test_one_minor_upgrade(self):
        validate_upgrade_path("1.22.5", "1.23.1", CAPS)

    def test_same_version_rejected(self):
        with pytest.raises(InvalidTransitionError, match="not newer"):
            validate_upgrade_path("1.22.5", "1.22.5", CAPS)

    def test_downgrade_rejected(self):
        with pytest.raises(InvalidTransitionError) as exc:
            validate_upgrade_path("1.22.5", "1.20.6", CAPS, target_iid="cluster-1")
        assert exc.value.operation == "UpgradeCluster"
        assert exc.value.target == "cluster-1"

    def test_downgrade_allowed_by_provider(self):
        caps = CapabilityDescriptor(provider="lenient", allow_downgrade=True)
        validate_upgrade_path("1.22.5", "1.21.2", caps)

    def test_skew_exceeded(self):
        with pytest.raises(InvalidTransitionError, match="skips 2 minor"):
            validate_upgrade_path("1.22.10-aliyun.1", "1.24.6-aliyun.1", CAPS)

    def test_wider_skew(self):
        caps = CapabilityDescriptor(provider="wide", max_minor_version_skew=2)
        validate_upgrade_path("1.22.10-aliyun.1", "1.24.6-aliyun.1", caps)

    def test_major_change_rejected(self):
        caps = CapabilityDescriptor(provider="wide", max_minor_version_skew=50)
        with pytest.raises(InvalidTransitionError, match="Major"):
            validate_upgrade_path("1.29", "2.0", caps)

    def test_malformed_target(self):
        with pytest.raises(InvalidTransitionError):
            validate_upgrade_path("1.22.5", "next", CAPS)
