"""Bootstrap lifecycle of an environment.

The orchestrator reserves the environment's info record, launches the
bootstrap machine, injects the first admin credential into the state
database and only then persists the record. Any failure on the way
unwinds everything that was created.

    UNPREPARED -> PREPARED -> INSTANCE_LAUNCHING -> DATABASE_BOOTSTRAPPING
        -> RECORD_WRITING -> BOOTSTRAPPED

and from any non-terminal state ABORTING -> DESTROYED.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..config import EnvironConfig, Environments, load_environments
from ..configstore.disk import DiskStore, EnvironInfo
from ..configstore.interface import APICredentials
from ..errors import (
    AlreadyExistsError,
    AlreadyRemovedError,
    CPBootError,
    InvariantViolation,
    NotBootstrappedError,
    ValidationError,
)
from ..mongo.admin import AdminBootstrapper
from ..shared.logging import get_logger
from .constraints import ConstraintsValidator
from .interface import (
    BootstrapContext,
    BootstrapParams,
    Environ,
    EnvironProvider,
    Finalizer,
    HardwareCharacteristics,
    attrs_summary,
)
from .machineconfig import MachineConfig, finish_machine_config, new_bootstrap_machine_config
from .registry import provider as lookup_provider

logger = get_logger(__name__)

ADMIN_USER = "admin"


class BootstrapPhase(Enum):
    """Lifecycle states of an environment during bootstrap."""

    UNPREPARED = "unprepared"
    PREPARED = "prepared"
    INSTANCE_LAUNCHING = "instance_launching"
    DATABASE_BOOTSTRAPPING = "database_bootstrapping"
    RECORD_WRITING = "record_writing"
    BOOTSTRAPPED = "bootstrapped"
    ABORTING = "aborting"
    DESTROYED = "destroyed"


@dataclass
class BootstrapOutcome:
    """Result of a successful bootstrap."""

    instance_id: str
    hardware: HardwareCharacteristics
    finalizer: Finalizer
    machine_config: MachineConfig

    def finalize(self, ctx: BootstrapContext) -> None:
        """Run the finalizer with the computed machine config."""
        self.finalizer(ctx, self.machine_config)


class BootstrapOrchestrator:
    """Drives one environment from configuration to a bootstrapped control plane."""

    def __init__(
        self,
        provider: EnvironProvider,
        store: DiskStore,
        admin: AdminBootstrapper | None = None,
    ):
        """Initialize orchestrator.

        Args:
            provider: Provider for the environment's type
            store: Environment info store
            admin: State database admin bootstrapper
        """
        self.provider = provider
        self.store = store
        self.admin = admin or AdminBootstrapper()
        self.phase = BootstrapPhase.UNPREPARED
        self.environ: Environ | None = None
        self.info: EnvironInfo | None = None

    @classmethod
    def for_config(cls, cfg: EnvironConfig, store: DiskStore, admin: AdminBootstrapper | None = None):
        """Orchestrator using the registered provider for cfg's type."""
        return cls(lookup_provider(cfg.type), store, admin)

    def _require(self, *phases: BootstrapPhase) -> None:
        if self.phase not in phases:
            raise InvariantViolation(
                f"operation not allowed in phase {self.phase.value}; "
                f"expected one of {[p.value for p in phases]}"
            )

    def _set_phase(self, phase: BootstrapPhase) -> None:
        logger.debug("bootstrap phase", phase=phase.value, previous=self.phase.value)
        self.phase = phase

    def prepare(self, ctx: BootstrapContext, cfg: EnvironConfig) -> Environ:
        """Reserve the environment's record and prepare its infrastructure.

        Repeating prepare on the same orchestrator is safe: its own
        reservation is released and taken again.

        Raises:
            AlreadyExistsError: If the name is reserved by another bootstrap
                or the environment is already bootstrapped
        """
        self._require(BootstrapPhase.UNPREPARED, BootstrapPhase.PREPARED)
        if self.info is not None and self.info.created:
            self._release(self.info)
            self.info = None

        logger.debug("preparing environment", environment=cfg.name, attrs=attrs_summary(cfg))
        info = self._reserve(cfg.name)
        try:
            environ = self.provider.prepare(ctx, cfg)
        except BaseException:
            self._release(info)
            raise

        self.info = info
        self.environ = environ
        self._set_phase(BootstrapPhase.PREPARED)
        logger.info("environment prepared", environment=cfg.name, type=cfg.type)
        return environ

    def _reserve(self, name: str) -> EnvironInfo:
        try:
            return self.store.create_info(name)
        except AlreadyExistsError as e:
            existing = self.store.read_info(name)
            if existing.initialized:
                raise
            # Another bootstrap holds the name, or one crashed holding it.
            raise AlreadyExistsError(
                message=f"environment {name!r} is being bootstrapped or a previous bootstrap "
                f"did not finish; run: cpboot destroy-environment {name}",
                data=e.data,
            ) from e

    def bootstrap(self, ctx: BootstrapContext, params: BootstrapParams) -> BootstrapOutcome:
        """Bootstrap the prepared environment.

        The info record is written only after the admin credential is in
        the state database. The returned finalizer is left for the caller
        to run.

        Raises:
            CPBootError: On any failure, after the environment was destroyed
        """
        self._require(BootstrapPhase.PREPARED)
        environ = self.environ
        info = self.info
        cfg = environ.config

        try:
            if not cfg.admin_secret:
                raise ValidationError(message="environment configuration has no admin-secret")

            unsupported = environ.constraints_validator().validate(params.constraints)
            if unsupported:
                ctx.warn(f"unsupported constraints: {', '.join(unsupported)}")
                logger.warning("unsupported constraints", constraints=unsupported)

            series = params.series or cfg.default_series
            self._set_phase(BootstrapPhase.INSTANCE_LAUNCHING)
            ctx.info(f"Launching instance for environment {cfg.name!r}")
            result = environ.bootstrap(
                ctx,
                BootstrapParams(constraints=params.constraints, series=series, placement=params.placement),
            )
            logger.info("instance launched", instance=result.instance_id, hardware=str(result.hardware))

            self._set_phase(BootstrapPhase.DATABASE_BOOTSTRAPPING)
            ctx.info("Adding admin user to the state database")
            added = self.admin.ensure_admin_user(environ.admin_bootstrap_params(ADMIN_USER, cfg.admin_secret))
            logger.info("state database secured", user=ADMIN_USER, added=added)

            self._set_phase(BootstrapPhase.RECORD_WRITING)
            info.set_bootstrap_config(cfg.all_attrs())
            info.set_api_endpoint(environ.api_endpoint())
            info.set_api_credentials(APICredentials(user=ADMIN_USER, password=cfg.admin_secret))
            info.write()
            logger.info("environment info written", environment=cfg.name, path=info.location)

            mcfg = new_bootstrap_machine_config(params.constraints, series)
            finish_machine_config(mcfg, cfg)
        except BaseException as e:
            self._abort(e)
            raise

        self._set_phase(BootstrapPhase.BOOTSTRAPPED)
        return BootstrapOutcome(
            instance_id=result.instance_id,
            hardware=result.hardware,
            finalizer=self._wrap_finalizer(result.finalizer),
            machine_config=mcfg,
        )

    def _wrap_finalizer(self, finalizer: Finalizer) -> Finalizer:
        name = self.environ.name

        def finalize(ctx: BootstrapContext, mcfg: MachineConfig) -> None:
            logger.info("finalizing bootstrap", environment=name, machine=mcfg.machine_id)
            finalizer(ctx, mcfg)
            ctx.info(f"Bootstrap of environment {name!r} complete")

        return finalize

    def _abort(self, err: BaseException) -> None:
        self._set_phase(BootstrapPhase.ABORTING)
        logger.error("bootstrap failed, destroying environment", environment=self.environ.name, error=str(err))
        try:
            self.environ.destroy()
        except Exception as e:
            logger.error("cannot destroy environment", environment=self.environ.name, error=str(e))
        self._release(self.info)
        self._set_phase(BootstrapPhase.DESTROYED)

    def _release(self, info: EnvironInfo) -> None:
        try:
            info.destroy()
        except AlreadyRemovedError:
            logger.debug("environment info already removed", path=info.location)
        except CPBootError as e:
            logger.error("cannot remove environment info", path=info.location, error=e.message)

    def state_server_instances(self) -> list[str]:
        self._require_environ()
        return self.environ.state_server_instances()

    def constraints_validator(self) -> ConstraintsValidator:
        self._require_environ()
        return self.environ.constraints_validator()

    def _require_environ(self) -> None:
        if self.environ is None:
            raise InvariantViolation("environment not prepared")

    def destroy(self) -> None:
        """Tear down a prepared or bootstrapped environment and its record."""
        self._require(BootstrapPhase.PREPARED, BootstrapPhase.BOOTSTRAPPED)
        self.environ.destroy()
        self.info.destroy()
        self._set_phase(BootstrapPhase.DESTROYED)
        logger.info("environment destroyed", environment=self.environ.name)


def open_environ(store: DiskStore, name: str) -> tuple[Environ, EnvironInfo]:
    """Open an environment from its stored bootstrap config.

    Raises:
        NotFoundError: If there is no record for name
        NotBootstrappedError: If the record was never written
    """
    info = store.read_info(name)
    if not info.initialized or not info.bootstrap_config:
        raise NotBootstrappedError(
            message=f"environment {name!r} is not bootstrapped",
            data={"environment": name},
        )
    cfg = EnvironConfig.from_attrs(info.bootstrap_config)
    return lookup_provider(cfg.type).open(cfg), info


def destroy_environ(
    store: DiskStore,
    name: str,
    force: bool = False,
    environments: Environments | None = None,
) -> None:
    """Destroy an environment and then its record.

    A record that was never written belongs to a bootstrap that did not
    finish (or is being unwound by an escalated destroy). Such an
    environment is torn down using its definition in environments.yaml.

    Args:
        store: Environment info store
        name: Environment name
        force: Remove the record even if tearing down the environment fails
        environments: Environment definitions (default: loaded from the cpboot home)

    Raises:
        NotFoundError: If there is no record for name
        CPBootError: If teardown fails and force is not set
    """
    info = store.read_info(name)
    try:
        cfg = _teardown_config(info, name, environments)
        if cfg is None:
            logger.info("environment has no definition; removing its info", environment=name)
        else:
            lookup_provider(cfg.type).open(cfg).destroy()
    except CPBootError as e:
        if not force:
            raise
        logger.error("cannot destroy environment; removing its info anyway", environment=name, error=e.message)
    try:
        info.destroy()
    except AlreadyRemovedError:
        # An escalated destroy removes the info itself.
        logger.debug("environment info already removed", environment=name)
    logger.info("environment destroyed", environment=name)


def _teardown_config(info: EnvironInfo, name: str, environments: Environments | None) -> EnvironConfig | None:
    if info.initialized and info.bootstrap_config:
        return EnvironConfig.from_attrs(info.bootstrap_config)
    if environments is None:
        environments = load_environments()
    if name not in environments.environments:
        return None
    logger.info("environment was never bootstrapped; tearing down from its definition", environment=name)
    return environments.config(name)
