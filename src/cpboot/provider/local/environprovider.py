"""Provider for environments running on the local host."""

from __future__ import annotations

from collections.abc import Callable

from ...cert import generate_ca
from ...config import EnvironConfig
from ...container.base import ContainerManager
from ...container.docker import DockerContainerManager
from ...environs.interface import BootstrapContext
from ...service.base import ServiceFactory
from ...service.systemd import systemd_factory
from ...shared.logging import get_logger
from .config import LocalConfig, check_root_dir, validate_config
from .destroy import is_root, run_escalated
from .environ import CloudConfigExecutor, LocalEnviron

logger = get_logger(__name__)


class LocalProvider:
    """EnvironProvider for the local host."""

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        container_factory: Callable[[str], ContainerManager] = DockerContainerManager,
        execute_cloud_config: CloudConfigExecutor | None = None,
        is_root: Callable[[], bool] = is_root,
        escalate: Callable[[list[str]], int] = run_escalated,
    ):
        """Initialize provider.

        Args:
            service_factory: Builds OS service controllers (default: systemd)
            container_factory: Builds the container manager for a namespace
            execute_cloud_config: Applies the bootstrap cloud config to the host
            is_root: Whether the current process is privileged
            escalate: Runs a command line with privileges
        """
        self.service_factory = service_factory or systemd_factory()
        self.container_factory = container_factory
        self.execute_cloud_config = execute_cloud_config
        self.is_root = is_root
        self.escalate = escalate

    def validate(self, cfg: EnvironConfig, old: EnvironConfig | None = None) -> EnvironConfig:
        return validate_config(cfg, old)

    def open(self, cfg: EnvironConfig) -> LocalEnviron:
        cfg = self.validate(cfg)
        return LocalEnviron(
            cfg,
            service_factory=self.service_factory,
            container_manager=self.container_factory(str(cfg.get("namespace"))),
            execute_cloud_config=self.execute_cloud_config,
            is_root=self.is_root,
            escalate=self.escalate,
        )

    def prepare(self, ctx: BootstrapContext, cfg: EnvironConfig) -> LocalEnviron:
        """Validate cfg, create the environment's directories and CA.

        Nothing is created when the root directory is rejected. Preparing
        an already prepared environment changes nothing.

        Raises:
            ValidationError: On bad config, a protected root dir or missing permissions
        """
        cfg = self.validate(cfg)
        check_root_dir(LocalConfig.from_environ_config(cfg).root_dir)

        environ = self.open(cfg)
        environ.prepare_dirs()

        if not cfg.ca_cert or not cfg.ca_private_key:
            ctx.info(f"Generating CA certificate for environment {cfg.name!r}")
            ca_cert, ca_key = generate_ca(cfg.name)
            cfg = cfg.apply({"ca-cert": ca_cert, "ca-private-key": ca_key})
            environ = self.open(cfg)
        logger.info("local environment prepared", environment=cfg.name, root_dir=str(cfg.get("root-dir")))
        return environ
