"""Service control capability consumed by bootstrap and destroy."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class ServiceConf:
    """Definition of an OS background service."""

    desc: str
    cmd: str
    env: dict[str, str] = field(default_factory=dict)
    out: str | None = None


class ServiceController(Protocol):
    """Install/start/stop/query one named OS service."""

    name: str

    def install(self, conf: ServiceConf) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def installed(self) -> bool: ...

    def remove(self) -> None: ...


# Builds a controller for the service with the given name.
ServiceFactory = Callable[[str], ServiceController]
