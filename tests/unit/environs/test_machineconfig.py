"""Unit tests for machine and cloud configuration."""

from __future__ import annotations

import pytest
import yaml

from cpboot.config import EnvironConfig
from cpboot.environs.constraints import Constraints
from cpboot.environs.machineconfig import (
    JOB_MANAGE_ENVIRON,
    CloudConfig,
    finish_machine_config,
    new_bootstrap_machine_config,
    new_cloud_config,
)


def local_config(**extra) -> EnvironConfig:
    attrs = {
        "name": "dev",
        "type": "local",
        "namespace": "bob-dev",
        "root-dir": "/home/bob/.cpboot/dev",
        "storage-dir": "/home/bob/.cpboot/dev/storage",
        "log-dir": "/var/log/cpboot-bob-dev",
        "state-port": 37018,
        "api-port": 17071,
    }
    attrs.update(extra)
    return EnvironConfig.from_attrs(attrs)


@pytest.mark.cli_unit
class TestMachineConfig:
    """Tests for bootstrap machine config."""

    def test_bootstrap_machine(self):
        """Test the bootstrap machine is machine 0 managing the environment."""
        cons = Constraints.parse("mem=1G")

        mcfg = new_bootstrap_machine_config(cons, "trusty")

        assert mcfg.machine_id == "0"
        assert mcfg.jobs == [JOB_MANAGE_ENVIRON]
        assert mcfg.state_server is True
        assert mcfg.constraints is cons
        assert mcfg.series == "trusty"

    def test_finish_defaults_toggles_off(self):
        """Test toggles stay off unless configured."""
        mcfg = new_bootstrap_machine_config(Constraints(), "trusty")

        finish_machine_config(mcfg, local_config())

        assert mcfg.enable_os_refresh_update is False
        assert mcfg.enable_os_upgrade is False

    def test_finish_copies_config(self):
        """Test ports, toggles and agent environment are filled in."""
        mcfg = new_bootstrap_machine_config(Constraints(), "trusty")

        finish_machine_config(mcfg, local_config(**{"enable-os-refresh-update": True, "enable-os-upgrade": True}))

        assert mcfg.enable_os_refresh_update is True
        assert mcfg.enable_os_upgrade is True
        assert mcfg.state_port == 37018
        assert mcfg.api_port == 17071
        assert mcfg.agent_environment == {
            "PROVIDER_TYPE": "local",
            "NAMESPACE": "bob-dev",
            "STORAGE_DIR": "/home/bob/.cpboot/dev/storage",
            "LOG_DIR": "/var/log/cpboot-bob-dev",
        }


@pytest.mark.cli_unit
class TestCloudConfig:
    """Tests for CloudConfig."""

    def test_refresh_disabled_no_packages(self):
        """Test no packages are installed without a package refresh."""
        mcfg = new_bootstrap_machine_config(Constraints(), "trusty")

        cloudcfg = new_cloud_config(mcfg, ["curl"])

        assert cloudcfg.apt_update is False
        assert cloudcfg.apt_upgrade is False
        assert cloudcfg.packages == []
        assert cloudcfg.commands() == []

    def test_refresh_enabled(self):
        """Test update, upgrade and packages when enabled."""
        mcfg = new_bootstrap_machine_config(Constraints(), "trusty")
        mcfg.enable_os_refresh_update = True
        mcfg.enable_os_upgrade = True

        cloudcfg = new_cloud_config(mcfg, ["curl", "curl", "git"])
        cloudcfg.add_run_cmd("echo done")

        assert cloudcfg.packages == ["curl", "git"]
        assert cloudcfg.commands() == [
            "apt-get update",
            "apt-get -y upgrade",
            "apt-get -y install curl git",
            "echo done",
        ]

    def test_render(self):
        """Test rendering as a cloud-config document."""
        cloudcfg = CloudConfig(apt_update=True, run_cmds=["true"])

        text = cloudcfg.render()

        assert text.startswith("#cloud-config\n")
        assert yaml.safe_load(text) == {"apt_update": True, "apt_upgrade": False, "runcmd": ["true"]}
