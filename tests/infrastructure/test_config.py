"""Tests for configuration module."""

import json
import os
import pytest
from unittest.mock import patch

from kubeplane.infrastructure.config import (
    AlibabaConfig,
    AWSConfig,
    KubeplaneConfig,
    PollerConfig,
    SSHConfig,
    TencentConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env():
    env = {k: v for k, v in os.environ.items() if not k.startswith("KUBEPLANE_")}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/kubeplane.json")
        assert config.provider == "alibaba"
        assert config.log_level == "WARNING"
        assert config.log_json is False
        assert config.poller.timeout_seconds == 1800.0
        assert config.poller.interval_seconds == 10.0
        assert config.alibaba.region == "ap-northeast-1"
        assert config.tencent.zone == "ap-tokyo-2"
        assert config.aws.region == "us-east-1"
        assert config.ssh.user == "root"

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/kubeplane.json")
        assert isinstance(config.poller, PollerConfig)
        assert isinstance(config.alibaba, AlibabaConfig)
        assert isinstance(config.tencent, TencentConfig)
        assert isinstance(config.aws, AWSConfig)
        assert isinstance(config.ssh, SSHConfig)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            KubeplaneConfig(provider="gcp")


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "kubeplane.json"
        config_file.write_text(json.dumps({
            "provider": "Tencent",
            "log_level": "DEBUG",
            "poller": {"timeout_seconds": 600, "backoff_factor": 1.5},
            "tencent": {"region": "ap-seoul", "zone": "ap-seoul-1"},
            "ssh": {"user": "ubuntu", "key_path": "/keys/id_rsa"},
        }))

        config = load_config(path=str(config_file))
        assert config.provider == "tencent"
        assert config.log_level == "DEBUG"
        assert config.poller.timeout_seconds == 600
        assert config.poller.backoff_factor == 1.5
        assert config.tencent.region == "ap-seoul"
        assert config.tencent.zone == "ap-seoul-1"
        assert config.ssh.key_path == "/keys/id_rsa"

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "kubeplane.json"
        config_file.write_text(json.dumps({"aws": {"role_arn": "arn:aws:iam::1:role/eks"}}))

        config = load_config(path=str(config_file))
        assert config.aws.role_arn == "arn:aws:iam::1:role/eks"
        assert config.aws.region == "us-east-1"
        assert config.poller.interval_seconds == 10.0

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "kubeplane.json"
        config_file.write_text(json.dumps({"alibaba": {"vendor": "x", "region": "cn-hangzhou"}}))

        config = load_config(path=str(config_file))
        assert config.alibaba.region == "cn-hangzhou"

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "kubeplane.json"
        config_file.write_text("{not json")

        config = load_config(path=str(config_file))
        assert config.provider == "alibaba"


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "kubeplane.json"
        config_file.write_text(json.dumps({"poller": {"timeout_seconds": 600}}))

        with patch.dict(os.environ, {"KUBEPLANE_POLLER_TIMEOUT_SECONDS": "120"}):
            config = load_config(path=str(config_file))
        assert config.poller.timeout_seconds == 120.0

    def test_env_provider_and_top_level_keys(self):
        with patch.dict(os.environ, {
            "KUBEPLANE_PROVIDER": "AWS",
            "KUBEPLANE_LOG_LEVEL": "INFO",
            "KUBEPLANE_LOG_JSON": "true",
        }):
            config = load_config(path="/nonexistent/kubeplane.json")
        assert config.provider == "aws"
        assert config.log_level == "INFO"
        assert config.log_json is True

    def test_env_coerces_types(self):
        with patch.dict(os.environ, {
            "KUBEPLANE_ALIBABA_SETTLE_POLLS": "0",
            "KUBEPLANE_SSH_CONNECT_TIMEOUT": "30",
        }):
            config = load_config(path="/nonexistent/kubeplane.json")
        assert config.alibaba.settle_polls == 0
        assert config.ssh.connect_timeout == 30

    def test_custom_prefix(self):
        with patch.dict(os.environ, {"KP_TENCENT_REGION": "ap-bangkok"}):
            config = load_config(path="/nonexistent/kubeplane.json", env_prefix="KP")
        assert config.tencent.region == "ap-bangkok"
