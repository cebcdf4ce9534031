"""Environment configuration management.

Environments are defined in <CPBOOT_HOME>/environments.yaml:

    default: dev
    environments:
      dev:
        type: local
        admin-secret: s3cret

The selected environment is, in order of precedence: the name given on
the command line, $CPBOOT_ENV, then the file's ``default`` entry (or the
only environment defined).
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import NotFoundError, ValidationError
from .shared.paths import environments_file

ENV_VAR = "CPBOOT_ENV"

DEFAULT_SERIES = "trusty"

# Attributes held as EnvironConfig fields; everything else is provider-specific
# and lives in EnvironConfig.attrs.
COMMON_KEYS = {
    "name": "name",
    "type": "type",
    "admin-secret": "admin_secret",
    "ca-cert": "ca_cert",
    "ca-private-key": "ca_private_key",
    "default-series": "default_series",
    "enable-os-refresh-update": "enable_os_refresh_update",
    "enable-os-upgrade": "enable_os_upgrade",
}

BOOL_KEYS = {"enable-os-refresh-update", "enable-os-upgrade"}


@dataclass
class EnvironConfig:
    """Validated configuration of a single environment."""

    name: str
    type: str
    admin_secret: str = ""
    ca_cert: str = ""
    ca_private_key: str = ""
    default_series: str = DEFAULT_SERIES
    enable_os_refresh_update: bool = False
    enable_os_upgrade: bool = False
    attrs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_attrs(cls, attrs: dict[str, Any]) -> EnvironConfig:
        """Build a config from a flat attribute mapping (dashed keys).

        Raises:
            ValidationError: If name or type is missing, or a toggle is not a bool
        """
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in attrs.items():
            if key in COMMON_KEYS:
                values[COMMON_KEYS[key]] = value
            else:
                extra[key] = value

        for key in ("name", "type"):
            if not values.get(key):
                raise ValidationError(message=f"{key}: expected non-empty string, got nothing")
            values[key] = str(values[key])
        for key in BOOL_KEYS:
            value = values.get(COMMON_KEYS[key])
            if value is not None and not isinstance(value, bool):
                raise ValidationError(message=f"{key}: expected bool, got {value!r}")

        for key in ("admin_secret", "ca_cert", "ca_private_key", "default_series"):
            if values.get(key) is None:
                values.pop(key, None)
            else:
                values[key] = str(values[key])
        for key in ("enable_os_refresh_update", "enable_os_upgrade"):
            if values.get(key) is None:
                values.pop(key, None)
        return cls(attrs=extra, **values)

    def all_attrs(self) -> dict[str, Any]:
        """Flat attribute mapping, suitable for storing and reloading."""
        attrs = {key: getattr(self, name) for key, name in COMMON_KEYS.items()}
        attrs.update(self.attrs)
        return attrs

    def get(self, key: str, default: Any = None) -> Any:
        """Look up an attribute by its dashed name."""
        if key in COMMON_KEYS:
            return getattr(self, COMMON_KEYS[key])
        return self.attrs.get(key, default)

    def apply(self, updates: dict[str, Any]) -> EnvironConfig:
        """Return a new config with updates applied."""
        attrs = self.all_attrs()
        attrs.update(updates)
        return EnvironConfig.from_attrs(attrs)

    def with_admin_secret(self) -> EnvironConfig:
        """Return the config, generating an admin secret if there is none."""
        if self.admin_secret:
            return self
        return replace(self, admin_secret=secrets.token_hex(16))


@dataclass
class Environments:
    """Parsed environments.yaml."""

    default: str | None = None
    environments: dict[str, dict[str, Any]] = field(default_factory=dict)

    def names(self) -> list[str]:
        return sorted(self.environments)

    def select(self, name: str | None = None) -> str:
        """Resolve the environment name to use.

        Raises:
            ValidationError: If no environment is selected and none is obvious
        """
        name = name or os.environ.get(ENV_VAR) or self.default
        if name:
            return name
        if len(self.environments) == 1:
            return next(iter(self.environments))
        raise ValidationError(
            message="no default environment found; use -e or set " + ENV_VAR,
            data={"environments": self.names()},
        )

    def config(self, name: str | None = None) -> EnvironConfig:
        """Config for the selected environment.

        Raises:
            NotFoundError: If the environment is not defined
            ValidationError: If its definition is invalid
        """
        name = self.select(name)
        if name not in self.environments:
            raise NotFoundError(
                message=f"environment {name!r} not found",
                data={"environment": name},
            )
        attrs = dict(self.environments[name])
        attrs["name"] = name
        return EnvironConfig.from_attrs(attrs)


def load_environments(path: Path | None = None) -> Environments:
    """Load environment definitions.

    Args:
        path: File to read (default: <CPBOOT_HOME>/environments.yaml)

    Returns:
        Environments; empty if the file does not exist

    Raises:
        ValidationError: If the file cannot be parsed
    """
    path = path or environments_file()
    if not path.exists():
        return Environments()

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(
            message=f"cannot parse {str(path)!r}: {e}",
            data={"path": str(path)},
        ) from e

    if not isinstance(data, dict):
        raise ValidationError(message=f"{str(path)!r}: expected a mapping", data={"path": str(path)})

    envs = data.get("environments") or {}
    if not isinstance(envs, dict) or not all(isinstance(v, dict) for v in envs.values()):
        raise ValidationError(
            message=f"{str(path)!r}: environments must map names to attributes",
            data={"path": str(path)},
        )
    default = data.get("default")
    return Environments(default=str(default) if default else None, environments=envs)

