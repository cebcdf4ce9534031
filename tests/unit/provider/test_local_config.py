"""Unit tests for local provider configuration."""

from __future__ import annotations

import os

import pytest

from cpboot.config import EnvironConfig
from cpboot.errors import ValidationError
from cpboot.provider.local.config import (
    LocalConfig,
    agent_service_name,
    check_root_dir,
    current_user,
    validate_config,
)


def local(attrs=None) -> EnvironConfig:
    return EnvironConfig.from_attrs({"name": "dev", "type": "local", **(attrs or {})})


@pytest.mark.cli_unit
class TestValidateConfig:
    """Tests for validate_config."""

    def test_defaults(self, cpboot_home, monkeypatch):
        """Test unset attributes get their defaults."""
        monkeypatch.setenv("SUDO_USER", "alice")

        cfg = validate_config(local())

        assert cfg.get("root-dir") == str(cpboot_home / "dev")
        assert cfg.get("namespace") == "alice-dev"
        assert cfg.get("state-port") == 37017
        assert cfg.get("api-port") == 17070
        assert cfg.get("storage-port") == 8040
        assert cfg.get("log-dir") == "/var/log/cpboot-alice-dev"
        assert cfg.get("container") == "docker"
        assert cfg.get("storage-dir") == os.path.join(str(cpboot_home / "dev"), "storage")

    def test_explicit_values_kept(self, tmp_path):
        """Test explicit attributes survive validation."""
        cfg = validate_config(
            local({"root-dir": str(tmp_path), "namespace": "ns", "state-port": "27017", "log-dir": "/tmp/l"})
        )

        assert cfg.get("root-dir") == str(tmp_path)
        assert cfg.get("namespace") == "ns"
        assert cfg.get("state-port") == 27017
        assert cfg.get("log-dir") == "/tmp/l"

    def test_relative_root_dir_made_absolute(self, tmp_path, monkeypatch):
        """Test root-dir is resolved against the working directory."""
        monkeypatch.chdir(tmp_path)

        cfg = validate_config(local({"root-dir": "envs/dev", "namespace": "ns"}))

        assert cfg.get("root-dir") == str(tmp_path / "envs" / "dev")

    def test_wrong_type(self):
        """Test a non-local config is rejected."""
        with pytest.raises(ValidationError, match="expected environment type"):
            validate_config(EnvironConfig.from_attrs({"name": "dev", "type": "ec2"}))

    @pytest.mark.parametrize("port", ["0", "70000", "http"])
    def test_bad_port(self, port, cpboot_home):
        """Test out of range and non-numeric ports are rejected."""
        with pytest.raises(ValidationError, match="state-port"):
            validate_config(local({"namespace": "ns", "state-port": port}))

    def test_ports_must_differ(self, cpboot_home):
        """Test the three ports cannot collide."""
        with pytest.raises(ValidationError, match="must differ"):
            validate_config(local({"namespace": "ns", "api-port": 37017}))

    def test_unsupported_container(self, cpboot_home):
        """Test only docker containers are accepted."""
        with pytest.raises(ValidationError, match="container"):
            validate_config(local({"namespace": "ns", "container": "lxc"}))

    def test_immutable_change_rejected(self, tmp_path):
        """Test immutable attributes cannot change once set."""
        old = validate_config(local({"root-dir": str(tmp_path / "a"), "namespace": "ns"}))

        with pytest.raises(ValidationError, match="cannot change root-dir"):
            validate_config(local({"root-dir": str(tmp_path / "b"), "namespace": "ns"}), old)

    def test_unchanged_accepted(self, tmp_path):
        """Test revalidating an existing config is fine."""
        old = validate_config(local({"root-dir": str(tmp_path), "namespace": "ns"}))

        assert validate_config(old, old).get("root-dir") == str(tmp_path)


@pytest.mark.cli_unit
class TestCheckRootDir:
    """Tests for check_root_dir."""

    @pytest.mark.parametrize("path", ["/usr", "/usr/local/cpboot", "/etc/cpboot", "/proc/1"])
    def test_protected(self, path):
        """Test system directories are rejected."""
        with pytest.raises(ValidationError, match="protected"):
            check_root_dir(path)

    @pytest.mark.parametrize("path", ["/usrdata/env", "/var/lib/cpboot", "/home/alice/.cpboot/dev"])
    def test_allowed(self, path):
        """Test ordinary directories pass, including prefix lookalikes."""
        check_root_dir(path)


@pytest.mark.cli_unit
class TestLocalConfig:
    """Tests for the typed local config view."""

    def test_paths(self, tmp_path):
        """Test derived paths hang off the root dir."""
        cfg = validate_config(local({"root-dir": str(tmp_path), "namespace": "ns", "log-dir": "/tmp/l"}))

        lc = LocalConfig.from_environ_config(cfg)

        assert lc.storage_dir == tmp_path / "storage"
        assert lc.agents_dir == tmp_path / "agents"
        assert lc.root_log_dir == tmp_path / "log"
        assert lc.cloud_init_output_log == tmp_path / "cloud-init-output.log"
        assert lc.state_port == 37017

    def test_current_user_prefers_sudo_user(self, monkeypatch):
        """Test the invoking user is found through sudo."""
        monkeypatch.setenv("SUDO_USER", "alice")

        assert current_user() == "alice"

    def test_agent_service_name(self):
        """Test agent service naming."""
        assert agent_service_name("alice-dev") == "cpboot-agent-alice-dev"
