"""The local environment: a control plane running on this host."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ...config import EnvironConfig
from ...configstore.interface import APIEndpoint
from ...container.base import ContainerManager
from ...container.docker import DockerContainerManager
from ...environs.arch import host_arch
from ...environs.constraints import (
    ARCH,
    CPU_CORES,
    CPU_POWER,
    INSTANCE_TYPE,
    TAGS,
    ConstraintsValidator,
)
from ...environs.interface import (
    BootstrapContext,
    BootstrapParams,
    BootstrapResult,
    HardwareCharacteristics,
)
from ...environs.machineconfig import CloudConfig, MachineConfig, new_cloud_config
from ...errors import NotBootstrappedError, StorageIOError, ValidationError, wrap_os_error
from ...mongo.admin import EnsureAdminUserParams
from ...mongo.service import ensure_server_pem, mongo_service_conf, service_name
from ...mongo.session import DialInfo
from ...service.base import ServiceFactory
from ...shared.logging import get_logger
from .config import LocalConfig
from .destroy import DestroySequencer, is_root, remove_path, run_escalated
from .storage import LocalStorage

logger = get_logger(__name__)

BOOTSTRAP_INSTANCE_ID = "localhost"

UNSUPPORTED_CONSTRAINTS = [CPU_CORES, CPU_POWER, INSTANCE_TYPE, TAGS]

# Installed on the host when package lists are refreshed.
BOOTSTRAP_PACKAGES = ["curl", "cpu-checker", "bridge-utils", "rsyslog-gnutls"]

# Applies a cloud config to this host.
CloudConfigExecutor = Callable[[BootstrapContext, MachineConfig, CloudConfig], None]


@dataclass
class ShellCloudConfigExecutor:
    """Runs a cloud config's commands on this host, logging their output."""

    output_log: Path
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run

    def __call__(self, ctx: BootstrapContext, mcfg: MachineConfig, cloudcfg: CloudConfig) -> None:
        try:
            log = open(self.output_log, "a")
        except OSError as e:
            raise wrap_os_error("cannot open cloud-init output log", self.output_log, e) from e
        with log:
            for cmd in cloudcfg.commands():
                ctx.debug(f"running: {cmd}")
                log.write(f"+ {cmd}\n")
                log.flush()
                result = self.runner(
                    ["/bin/sh", "-c", cmd],
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    env={**os.environ, **mcfg.agent_environment},
                )
                if result.returncode != 0:
                    raise StorageIOError(
                        message=f"command {cmd!r} failed with status {result.returncode}; "
                        f"see {self.output_log}",
                        data={"command": cmd, "returncode": result.returncode},
                    )


class LocalEnviron:
    """Environ backed by the local host."""

    def __init__(
        self,
        cfg: EnvironConfig,
        service_factory: ServiceFactory,
        container_manager: ContainerManager | None = None,
        execute_cloud_config: CloudConfigExecutor | None = None,
        is_root: Callable[[], bool] = is_root,
        escalate: Callable[[list[str]], int] = run_escalated,
    ):
        self._config = cfg
        self.local = LocalConfig.from_environ_config(cfg)
        self.service_factory = service_factory
        self.container_manager = container_manager or DockerContainerManager(self.local.namespace)
        self.execute_cloud_config = execute_cloud_config or ShellCloudConfigExecutor(
            self.local.cloud_init_output_log
        )
        self.is_root = is_root
        self.escalate = escalate

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> EnvironConfig:
        return self._config

    def prepare_dirs(self) -> None:
        """Create the root and storage directories.

        Raises:
            ValidationError: If permissions forbid creating them
            StorageIOError: On any other failure
        """
        for path in (self.local.root_dir, self.local.storage_dir):
            try:
                path.mkdir(mode=0o755, parents=True, exist_ok=True)
            except PermissionError as e:
                raise ValidationError(
                    message=f"failure setting config: mkdir {path}: permission denied",
                    data={"path": str(path)},
                ) from e
            except OSError as e:
                raise wrap_os_error("cannot create directory", path, e) from e

    def bootstrap(self, ctx: BootstrapContext, params: BootstrapParams) -> BootstrapResult:
        """Start the state database on this host.

        Returns:
            BootstrapResult for instance "localhost"
        """
        self._remove_leftovers()
        for path in (self.local.agents_dir, self.local.root_dir / "db"):
            try:
                path.mkdir(mode=0o755, parents=True, exist_ok=True)
            except OSError as e:
                raise wrap_os_error("cannot create directory", path, e) from e

        ctx.debug("writing state database certificate")
        ensure_server_pem(self.local.root_dir, self._config.ca_cert, self._config.ca_private_key)

        svc = self.service_factory(service_name(self.local.namespace))
        conf = mongo_service_conf(self.local.root_dir, self.local.state_port, self.local.namespace)
        svc.install(conf)
        svc.start()
        logger.info("state database service started", service=svc.name, port=self.local.state_port)

        hardware = HardwareCharacteristics(arch=host_arch())
        return BootstrapResult(
            instance_id=BOOTSTRAP_INSTANCE_ID,
            hardware=hardware,
            finalizer=self._finish_bootstrap,
        )

    def _remove_leftovers(self) -> None:
        # A previous bootstrap may have left its log dir link and
        # cloud-init output behind.
        log_link = self.local.root_log_dir
        remove_path(log_link)
        remove_path(self.local.cloud_init_output_log)
        try:
            self.local.log_dir.mkdir(parents=True, exist_ok=True)
            os.symlink(self.local.log_dir, log_link)
        except OSError as e:
            raise wrap_os_error("cannot link log directory", log_link, e) from e

    def _finish_bootstrap(self, ctx: BootstrapContext, mcfg: MachineConfig) -> None:
        cloudcfg = new_cloud_config(mcfg, BOOTSTRAP_PACKAGES)
        machine_dir = self.local.agents_dir / f"machine-{mcfg.machine_id}"
        cloudcfg.add_run_cmd(f"mkdir -p {shlex.quote(str(machine_dir))}")
        env_file = machine_dir / "agent.env"
        for key, value in sorted(mcfg.agent_environment.items()):
            line = shlex.quote(f"{key}={value}")
            cloudcfg.add_run_cmd(f"echo {line} >> {shlex.quote(str(env_file))}")
        logger.info("applying cloud config", machine=mcfg.machine_id, commands=len(cloudcfg.commands()))
        self.execute_cloud_config(ctx, mcfg, cloudcfg)

    def destroy(self) -> None:
        DestroySequencer(
            root_dir=self.local.root_dir,
            namespace=self.local.namespace,
            env_name=self.name,
            service_factory=self.service_factory,
            container_manager=self.container_manager,
            is_root=self.is_root,
            escalate=self.escalate,
        ).destroy()

    def state_server_instances(self) -> list[str]:
        """Instance ids of the state servers.

        Raises:
            NotBootstrappedError: If the environment was never bootstrapped
            StorageIOError: If the root directory cannot be inspected
        """
        agents = self.local.agents_dir
        try:
            agents.stat()
        except FileNotFoundError as e:
            raise NotBootstrappedError(
                message=f"environment {self.name!r} is not bootstrapped",
                data={"environment": self.name},
            ) from e
        except OSError as e:
            raise wrap_os_error("cannot check agents directory", agents, e) from e
        return [BOOTSTRAP_INSTANCE_ID]

    def constraints_validator(self) -> ConstraintsValidator:
        validator = ConstraintsValidator()
        validator.register_unsupported(UNSUPPORTED_CONSTRAINTS)
        validator.register_vocabulary(ARCH, self.supported_architectures())
        return validator

    def storage(self) -> LocalStorage:
        return LocalStorage(self.local.storage_dir, self.local.storage_port)

    def admin_bootstrap_params(self, user: str, password: str) -> EnsureAdminUserParams:
        return EnsureAdminUserParams(
            namespace=self.local.namespace,
            data_dir=str(self.local.root_dir),
            port=self.local.state_port,
            user=user,
            password=password,
            dial_info=DialInfo(addresses=[f"127.0.0.1:{self.local.state_port}"]),
            service_conf=mongo_service_conf(self.local.root_dir, self.local.state_port, self.local.namespace),
        )

    def api_endpoint(self) -> APIEndpoint:
        return APIEndpoint(
            addresses=[f"localhost:{self.local.api_port}"],
            ca_cert=self._config.ca_cert,
        )

    def supported_architectures(self) -> list[str]:
        return [host_arch()]
