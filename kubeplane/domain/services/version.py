"""
Kubernetes Version Service

Architectural Intent:
- Validates control-plane upgrade paths before any remote call
- Providers decorate upstream versions ("1.22.10-aliyun.1", "1.24.6-eks.1",
  "v1.22.5"); ordering uses the numeric major.minor.patch core, then the
  provider suffix's trailing number as a tie-break

Domain Logic:
- Target must be strictly greater than current (unless the provider
  allows downgrades)
- Major version must not change
- Minor version may advance by at most the provider's declared skew
"""

from __future__ import annotations
from dataclasses import dataclass, field
import re

from kubeplane.domain.errors import InvalidTransitionError
from kubeplane.domain.value_objects.capability import CapabilityDescriptor

_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?(?P<suffix>[-+.].*)?$"
)
_SUFFIX_NUMBER_RE = re.compile(r"(\d+)$")


@dataclass(frozen=True, order=True)
class KubernetesVersion:
    major: int
    minor: int
    patch: int = 0
    build: int = 0
    raw: str = field(default="", compare=False)

    @staticmethod
    def parse(value: str) -> "KubernetesVersion":
        m = _VERSION_RE.match(value.strip()) if value else None
        if not m:
            raise ValueError(f"Invalid Kubernetes version: {value!r}")
        suffix = m.group("suffix") or ""
        build_match = _SUFFIX_NUMBER_RE.search(suffix)
        return KubernetesVersion(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch") or 0),
            build=int(build_match.group(1)) if build_match else 0,
            raw=value,
        )

    def __str__(self) -> str:
        return self.raw or f"{self.major}.{self.minor}.{self.patch}"


def validate_upgrade_path(
    current: str,
    target: str,
    capabilities: CapabilityDescriptor,
    target_iid: object = None,
) -> None:
    """Raise InvalidTransitionError unless current -> target is supported."""
    try:
        cur = KubernetesVersion.parse(current)
        tgt = KubernetesVersion.parse(target)
    except ValueError as e:
        raise InvalidTransitionError(
            str(e), operation="UpgradeCluster", target=target_iid
        ) from e

    if tgt == cur or (tgt <= cur and not capabilities.allow_downgrade):
        raise InvalidTransitionError(
            f"Target version {target} is not newer than {current}",
            operation="UpgradeCluster",
            target=target_iid,
        )
    if tgt.major != cur.major:
        raise InvalidTransitionError(
            f"Major version change {current} -> {target} is not supported",
            operation="UpgradeCluster",
            target=target_iid,
        )
    skew = abs(tgt.minor - cur.minor)
    if skew > capabilities.max_minor_version_skew:
        raise InvalidTransitionError(
            f"Upgrade {current} -> {target} skips {skew} minor versions; "
            f"{capabilities.provider} supports at most "
            f"{capabilities.max_minor_version_skew}",
            operation="UpgradeCluster",
            target=target_iid,
        )
