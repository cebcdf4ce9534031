"""Local provider configuration."""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass
from pathlib import Path

from ...config import EnvironConfig
from ...errors import ValidationError
from ...shared.paths import cpboot_home

PROVIDER_TYPE = "local"

DEFAULT_STATE_PORT = 37017
DEFAULT_API_PORT = 17070
DEFAULT_STORAGE_PORT = 8040
DEFAULT_CONTAINER = "docker"

CONTAINER_TYPES = ["docker"]

# Root directories must not live under these.
PROTECTED_PREFIXES = ["/usr", "/bin", "/sbin", "/lib", "/etc", "/boot", "/proc", "/sys", "/dev"]

# Attributes that cannot change once an environment exists.
IMMUTABLE_KEYS = ["root-dir", "namespace", "state-port", "api-port", "storage-port", "container"]

AGENT_SERVICE_PREFIX = "cpboot-agent"


def current_user() -> str:
    """Invoking user, looking through sudo."""
    return os.environ.get("SUDO_USER") or getpass.getuser()


def agent_service_name(namespace: str) -> str:
    return f"{AGENT_SERVICE_PREFIX}-{namespace}"


@dataclass
class LocalConfig:
    """Typed view of a validated local environment config."""

    name: str
    root_dir: Path
    namespace: str
    state_port: int
    api_port: int
    storage_port: int
    log_dir: Path
    container: str

    @classmethod
    def from_environ_config(cls, cfg: EnvironConfig) -> LocalConfig:
        return cls(
            name=cfg.name,
            root_dir=Path(cfg.get("root-dir")),
            namespace=str(cfg.get("namespace")),
            state_port=int(cfg.get("state-port")),
            api_port=int(cfg.get("api-port")),
            storage_port=int(cfg.get("storage-port")),
            log_dir=Path(cfg.get("log-dir")),
            container=str(cfg.get("container")),
        )

    @property
    def storage_dir(self) -> Path:
        return self.root_dir / "storage"

    @property
    def agents_dir(self) -> Path:
        return self.root_dir / "agents"

    @property
    def root_log_dir(self) -> Path:
        return self.root_dir / "log"

    @property
    def cloud_init_output_log(self) -> Path:
        return self.root_dir / "cloud-init-output.log"


def validate_config(cfg: EnvironConfig, old: EnvironConfig | None = None) -> EnvironConfig:
    """Fill in defaults and check local provider attributes.

    Raises:
        ValidationError: On a bad value or a change to an immutable attribute
    """
    if cfg.type != PROVIDER_TYPE:
        raise ValidationError(message=f"expected environment type {PROVIDER_TYPE!r}, got {cfg.type!r}")

    root_dir = cfg.get("root-dir") or str(cpboot_home() / cfg.name)
    root_dir = os.path.abspath(os.path.expanduser(str(root_dir)))
    namespace = cfg.get("namespace") or f"{current_user()}-{cfg.name}"
    updates = {
        "root-dir": root_dir,
        "namespace": str(namespace),
        "state-port": _port(cfg, "state-port", DEFAULT_STATE_PORT),
        "api-port": _port(cfg, "api-port", DEFAULT_API_PORT),
        "storage-port": _port(cfg, "storage-port", DEFAULT_STORAGE_PORT),
        "log-dir": str(cfg.get("log-dir") or f"/var/log/cpboot-{namespace}"),
        "container": str(cfg.get("container") or DEFAULT_CONTAINER),
    }
    updates["storage-dir"] = os.path.join(root_dir, "storage")
    if updates["container"] not in CONTAINER_TYPES:
        raise ValidationError(
            message=f"container: unsupported container type {updates['container']!r}",
            data={"valid": CONTAINER_TYPES},
        )
    ports = [updates["state-port"], updates["api-port"], updates["storage-port"]]
    if len(set(ports)) != len(ports):
        raise ValidationError(message=f"state-port, api-port and storage-port must differ, got {ports}")

    validated = cfg.apply(updates)
    if old is not None:
        for key in IMMUTABLE_KEYS:
            if old.get(key) is not None and old.get(key) != validated.get(key):
                raise ValidationError(
                    message=f"cannot change {key} from {old.get(key)!r} to {validated.get(key)!r}"
                )
    return validated


def _port(cfg: EnvironConfig, key: str, default: int) -> int:
    value = cfg.get(key)
    if value is None or value == "":
        return default
    try:
        port = int(value)
    except (TypeError, ValueError):
        port = -1
    if not 0 < port < 65536:
        raise ValidationError(message=f"{key}: expected a port number, got {value!r}")
    return port


def check_root_dir(root_dir: Path) -> None:
    """Reject root directories under protected system prefixes.

    Raises:
        ValidationError: If root_dir is, or is inside, a protected directory
    """
    resolved = os.path.abspath(str(root_dir))
    for prefix in PROTECTED_PREFIXES:
        if resolved == prefix or resolved.startswith(prefix + os.sep):
            raise ValidationError(
                message=f"root-dir {resolved!r} is inside protected directory {prefix!r}",
                data={"root-dir": resolved, "protected": prefix},
            )
