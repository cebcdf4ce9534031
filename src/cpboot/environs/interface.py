"""Provider-facing interfaces.

An EnvironProvider turns configuration into an Environ: a handle on the
infrastructure of one environment, able to launch the bootstrap machine
and to tear everything down again.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from rich.console import Console

from ..config import EnvironConfig
from ..configstore.interface import APIEndpoint
from ..mongo.admin import EnsureAdminUserParams
from .constraints import Constraints, ConstraintsValidator
from .machineconfig import MachineConfig


@dataclass
class BootstrapContext:
    """Where long-running operations report progress to the user."""

    console: Console = field(default_factory=lambda: Console(stderr=True))
    verbose: bool = False

    def info(self, message: str) -> None:
        self.console.print(message)

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]WARNING:[/yellow] {message}")

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]")


@dataclass
class BootstrapParams:
    """Options for launching the bootstrap machine."""

    constraints: Constraints = field(default_factory=Constraints)
    series: str | None = None
    placement: str = ""


@dataclass
class HardwareCharacteristics:
    """What is known about a provisioned machine."""

    arch: str | None = None
    mem: int | None = None
    cpu_cores: int | None = None
    root_disk: int | None = None

    def __str__(self) -> str:
        parts = []
        if self.arch:
            parts.append(f"arch={self.arch}")
        if self.cpu_cores is not None:
            parts.append(f"cpu-cores={self.cpu_cores}")
        if self.mem is not None:
            parts.append(f"mem={self.mem}M")
        if self.root_disk is not None:
            parts.append(f"root-disk={self.root_disk}M")
        return " ".join(parts)


# Completes a bootstrap once the machine config is known.
Finalizer = Callable[[BootstrapContext, MachineConfig], None]


@dataclass
class BootstrapResult:
    """Outcome of launching the bootstrap machine."""

    instance_id: str
    hardware: HardwareCharacteristics
    finalizer: Finalizer


class EnvironStorage(Protocol):
    """Minimal blob storage an environment offers."""

    def put(self, name: str, data: bytes) -> None: ...

    def get(self, name: str) -> bytes: ...

    def list(self, prefix: str = "") -> list[str]: ...

    def remove(self, name: str) -> None: ...

    def remove_all(self) -> None: ...

    def url(self, name: str) -> str: ...


class Environ(Protocol):
    """The infrastructure of one environment."""

    @property
    def name(self) -> str: ...

    @property
    def config(self) -> EnvironConfig: ...

    def prepare_dirs(self) -> None: ...

    def bootstrap(self, ctx: BootstrapContext, params: BootstrapParams) -> BootstrapResult: ...

    def destroy(self) -> None: ...

    def state_server_instances(self) -> list[str]: ...

    def constraints_validator(self) -> ConstraintsValidator: ...

    def storage(self) -> EnvironStorage: ...

    def admin_bootstrap_params(self, user: str, password: str) -> EnsureAdminUserParams: ...

    def api_endpoint(self) -> APIEndpoint: ...

    def supported_architectures(self) -> list[str]: ...


class EnvironProvider(Protocol):
    """A kind of infrastructure (local host, a cloud)."""

    def prepare(self, ctx: BootstrapContext, cfg: EnvironConfig) -> Environ: ...

    def open(self, cfg: EnvironConfig) -> Environ: ...

    def validate(self, cfg: EnvironConfig, old: EnvironConfig | None = None) -> EnvironConfig: ...


def attrs_summary(cfg: EnvironConfig) -> dict[str, Any]:
    """Config attributes safe to show or log (secrets removed)."""
    hidden = {"admin-secret", "ca-private-key"}
    return {k: v for k, v in cfg.all_attrs().items() if k not in hidden}
