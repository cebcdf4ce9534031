"""Types shared by environment info stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class APICredentials:
    """Admin principal for the state database."""

    user: str = ""
    password: str = ""


@dataclass
class APIEndpoint:
    """Where the control plane can be reached, and how to trust it."""

    addresses: list[str] = field(default_factory=list)
    ca_cert: str = ""


class EnvironInfoHandle(Protocol):
    """Operations available on one environment's stored info."""

    @property
    def initialized(self) -> bool: ...

    @property
    def bootstrap_config(self) -> dict[str, Any]: ...

    @property
    def api_credentials(self) -> APICredentials: ...

    @property
    def api_endpoint(self) -> APIEndpoint: ...

    def set_bootstrap_config(self, attrs: dict[str, Any]) -> None: ...

    def set_api_endpoint(self, endpoint: APIEndpoint) -> None: ...

    def set_api_credentials(self, creds: APICredentials) -> None: ...

    def write(self) -> None: ...

    def destroy(self) -> None: ...


class Storage(Protocol):
    """Stores environment info keyed by environment name."""

    def create_info(self, env_name: str) -> EnvironInfoHandle: ...

    def read_info(self, env_name: str) -> EnvironInfoHandle: ...
