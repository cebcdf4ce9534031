"""Configuration of the machines an environment provisions.

A MachineConfig describes one machine: its id, jobs, ports and the
environment its agent runs with. The bootstrap machine is always machine
0 and the sole state server. A CloudConfig is the first-boot script
derived from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from ..config import EnvironConfig
from .constraints import Constraints

JOB_MANAGE_ENVIRON = "JobManageEnviron"
JOB_HOST_UNITS = "JobHostUnits"

BOOTSTRAP_MACHINE_ID = "0"

DEFAULT_STATE_PORT = 37017
DEFAULT_API_PORT = 17070

# Agent environment variable names
PROVIDER_TYPE = "PROVIDER_TYPE"
NAMESPACE = "NAMESPACE"
STORAGE_DIR = "STORAGE_DIR"
LOG_DIR = "LOG_DIR"


@dataclass
class MachineConfig:
    """Everything needed to start the agent on one machine."""

    machine_id: str
    series: str
    constraints: Constraints = field(default_factory=Constraints)
    jobs: list[str] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    agent_environment: dict[str, str] = field(default_factory=dict)
    enable_os_refresh_update: bool = False
    enable_os_upgrade: bool = False
    state_port: int = DEFAULT_STATE_PORT
    api_port: int = DEFAULT_API_PORT
    data_dir: str = ""
    log_dir: str = ""

    @property
    def state_server(self) -> bool:
        return JOB_MANAGE_ENVIRON in self.jobs


def new_bootstrap_machine_config(cons: Constraints, series: str) -> MachineConfig:
    """Machine config for the bootstrap machine, the sole state server."""
    return MachineConfig(
        machine_id=BOOTSTRAP_MACHINE_ID,
        series=series,
        constraints=cons,
        jobs=[JOB_MANAGE_ENVIRON],
    )


def finish_machine_config(mcfg: MachineConfig, cfg: EnvironConfig) -> None:
    """Fill in the parts of mcfg that come from environment configuration."""
    mcfg.enable_os_refresh_update = bool(cfg.enable_os_refresh_update)
    mcfg.enable_os_upgrade = bool(cfg.enable_os_upgrade)
    mcfg.state_port = int(cfg.get("state-port", DEFAULT_STATE_PORT))
    mcfg.api_port = int(cfg.get("api-port", DEFAULT_API_PORT))
    mcfg.data_dir = str(cfg.get("root-dir", "") or "")
    mcfg.log_dir = str(cfg.get("log-dir", "") or "")
    mcfg.tags.setdefault("cpboot-env", cfg.name)

    env = {PROVIDER_TYPE: cfg.type}
    if cfg.get("namespace"):
        env[NAMESPACE] = str(cfg.get("namespace"))
    if cfg.get("storage-dir"):
        env[STORAGE_DIR] = str(cfg.get("storage-dir"))
    if mcfg.log_dir:
        env[LOG_DIR] = mcfg.log_dir
    mcfg.agent_environment.update(env)


@dataclass
class CloudConfig:
    """First-boot configuration of a machine, in cloud-init terms."""

    apt_update: bool = False
    apt_upgrade: bool = False
    packages: list[str] = field(default_factory=list)
    run_cmds: list[str] = field(default_factory=list)

    def add_package(self, name: str) -> None:
        if name not in self.packages:
            self.packages.append(name)

    def add_run_cmd(self, cmd: str) -> None:
        self.run_cmds.append(cmd)

    def commands(self) -> list[str]:
        """Shell commands equivalent to this config, in execution order."""
        cmds = []
        if self.apt_update:
            cmds.append("apt-get update")
        if self.apt_upgrade:
            cmds.append("apt-get -y upgrade")
        if self.packages:
            cmds.append("apt-get -y install " + " ".join(self.packages))
        cmds.extend(self.run_cmds)
        return cmds

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "apt_update": self.apt_update,
            "apt_upgrade": self.apt_upgrade,
        }
        if self.packages:
            data["packages"] = list(self.packages)
        if self.run_cmds:
            data["runcmd"] = list(self.run_cmds)
        return data

    def render(self) -> str:
        """Render as a #cloud-config document."""
        return "#cloud-config\n" + yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)


def new_cloud_config(mcfg: MachineConfig, packages: list[str] | None = None) -> CloudConfig:
    """Cloud config honouring the machine's OS refresh/upgrade toggles.

    Packages are only installed when package lists are refreshed.
    """
    cloudcfg = CloudConfig(
        apt_update=mcfg.enable_os_refresh_update,
        apt_upgrade=mcfg.enable_os_upgrade,
    )
    if mcfg.enable_os_refresh_update:
        for name in packages or []:
            cloudcfg.add_package(name)
    return cloudcfg
