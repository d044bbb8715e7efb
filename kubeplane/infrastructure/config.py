"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from JSON files
- Provides typed access to poller, provider and SSH settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- Each adapter receives its own section at construction; nothing reads
  config globally
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

PROVIDERS = ("alibaba", "tencent", "aws")

# top-level keys that contain an underscore, so the env override must not
# split them into section and field
_TOP_LEVEL_KEYS = ("log_level", "log_json")


@dataclass(frozen=True)
class PollerConfig:
    """Status poller cadence and default deadline."""
    timeout_seconds: float = 1800.0
    interval_seconds: float = 10.0
    backoff_factor: float = 1.0
    max_interval_seconds: float = 60.0


@dataclass(frozen=True)
class AlibabaConfig:
    """Alibaba Cloud Container Service for Kubernetes (ACK)."""
    region: str = "ap-northeast-1"
    access_key_id: str = ""
    access_key_secret: str = ""
    # reads before a simulated transition settles
    settle_polls: int = 2


@dataclass(frozen=True)
class TencentConfig:
    """Tencent Kubernetes Engine (TKE)."""
    region: str = "ap-tokyo"
    zone: str = "ap-tokyo-2"
    secret_id: str = ""
    secret_key: str = ""
    settle_polls: int = 2


@dataclass(frozen=True)
class AWSConfig:
    """Amazon Elastic Kubernetes Service (EKS)."""
    region: str = "us-east-1"
    access_key_id: str = ""
    secret_access_key: str = ""
    role_arn: str = ""
    settle_polls: int = 2


@dataclass(frozen=True)
class SSHConfig:
    """Post-provisioning SSH access to nodes."""
    user: str = "root"
    key_path: str = ""
    connect_timeout: int = 10


@dataclass(frozen=True)
class KubeplaneConfig:
    """Root configuration for kubeplane."""
    provider: str = "alibaba"
    poller: PollerConfig = field(default_factory=PollerConfig)
    alibaba: AlibabaConfig = field(default_factory=AlibabaConfig)
    tencent: TencentConfig = field(default_factory=TencentConfig)
    aws: AWSConfig = field(default_factory=AWSConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    log_level: str = "WARNING"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"Unknown provider {self.provider!r}, expected one of {PROVIDERS}"
            )


def _env_override(data: dict, prefix: str = "KUBEPLANE") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern KUBEPLANE_SECTION_KEY.
    For example: KUBEPLANE_POLLER_TIMEOUT_SECONDS=600,
    KUBEPLANE_PROVIDER=tencent
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        elif len(parts) == 1:
            data[parts[0]] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _coerce(type_name: str, value):
    if not isinstance(value, str):
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name: f.type for f in dataclasses.fields(cls)}
    filtered = {
        k: _coerce(valid_fields[k], v) for k, v in data.items() if k in valid_fields
    }
    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "KUBEPLANE",
) -> KubeplaneConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (KUBEPLANE_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to kubeplane.json in CWD.
        env_prefix: Environment variable prefix. Defaults to KUBEPLANE.
    """
    config_path = Path(path) if path else Path("kubeplane.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return KubeplaneConfig(
        provider=data.get("provider", "alibaba").lower(),
        poller=_build_sub_config(PollerConfig, data.get("poller", {})),
        alibaba=_build_sub_config(AlibabaConfig, data.get("alibaba", {})),
        tencent=_build_sub_config(TencentConfig, data.get("tencent", {})),
        aws=_build_sub_config(AWSConfig, data.get("aws", {})),
        ssh=_build_sub_config(SSHConfig, data.get("ssh", {})),
        log_level=data.get("log_level", "WARNING"),
        log_json=_coerce("bool", data.get("log_json", False)),
    )
