"""Disk-backed environment info storage.

One YAML file per environment lives under <home>/environments/. An empty
file is a reservation: the name is claimed but nothing was written yet.
Reservation relies on exclusive create, so two processes can never both
believe they created the same environment.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from ..errors import (
    AlreadyExistsError,
    AlreadyRemovedError,
    InvariantViolation,
    NotFoundError,
    StorageIOError,
    wrap_os_error,
)
from ..shared.logging import get_logger
from ..shared.paths import cpboot_home
from .interface import APICredentials, APIEndpoint

logger = get_logger(__name__)

ENVIRONMENTS_DIR = "environments"


class EnvironInfo:
    """Stored info for a single environment."""

    def __init__(self, path: Path, created: bool = False):
        self.path = path
        # Set once the info has been written or read back from a non-empty file.
        self._initialized = False
        # Only the handle returned by create_info may set bootstrap config.
        self._created = created
        self.user = ""
        self.password = ""
        self.state_servers: list[str] = []
        self.ca_cert = ""
        self.config: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def created(self) -> bool:
        return self._created

    @property
    def location(self) -> str:
        return str(self.path)

    @property
    def bootstrap_config(self) -> dict[str, Any]:
        return self.config

    @property
    def api_credentials(self) -> APICredentials:
        return APICredentials(user=self.user, password=self.password)

    @property
    def api_endpoint(self) -> APIEndpoint:
        return APIEndpoint(addresses=list(self.state_servers), ca_cert=self.ca_cert)

    def set_bootstrap_config(self, attrs: dict[str, Any]) -> None:
        if not self._created:
            raise InvariantViolation(
                "bootstrap config set on environment info that has not just been created"
            )
        self.config = dict(attrs)

    def set_api_endpoint(self, endpoint: APIEndpoint) -> None:
        self.state_servers = list(endpoint.addresses)
        self.ca_cert = endpoint.ca_cert

    def set_api_credentials(self, creds: APICredentials) -> None:
        self.user = creds.user
        self.password = creds.password

    def to_dict(self) -> dict[str, Any]:
        """Serializable form of the record."""
        data: dict[str, Any] = {
            "user": self.user,
            "password": self.password,
            "state-servers": list(self.state_servers),
            "ca-cert": self.ca_cert,
        }
        if self.config:
            data["bootstrap-config"] = dict(self.config)
        return data

    def _load(self, data: dict[str, Any]) -> None:
        self.user = str(data.get("user") or "")
        self.password = str(data.get("password") or "")
        self.state_servers = [str(addr) for addr in data.get("state-servers") or []]
        self.ca_cert = str(data.get("ca-cert") or "")
        self.config = dict(data.get("bootstrap-config") or {})

    def write(self) -> None:
        """Atomically replace the on-disk file with the current contents.

        The data goes to a temporary file in the same directory first and
        is renamed over the target, so readers see either the old file or
        the new one.

        Raises:
            StorageIOError: If the data could not be written or renamed
        """
        try:
            data = yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        except yaml.YAMLError as e:
            raise StorageIOError(
                message=f"cannot marshal environment info: {e}",
                data={"path": str(self.path)},
            ) from e

        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.stem}-")
        except OSError as e:
            raise wrap_os_error("cannot create temporary file", self.path.parent, e) from e

        try:
            with os.fdopen(fd, "w") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            _remove_quietly(tmp_name)
            raise wrap_os_error("cannot write temporary file", tmp_name, e) from e

        try:
            os.replace(tmp_name, self.path)
        except OSError as e:
            _remove_quietly(tmp_name)
            raise wrap_os_error("cannot rename new environment info file", self.path, e) from e

        self._initialized = True
        self._created = False
        logger.debug("environment info written", path=str(self.path))

    def destroy(self) -> None:
        """Remove the stored file.

        Raises:
            AlreadyRemovedError: If there is nothing to remove
            StorageIOError: On any other failure
        """
        try:
            self.path.unlink()
        except FileNotFoundError as e:
            raise AlreadyRemovedError(data={"path": str(self.path)}) from e
        except OSError as e:
            raise wrap_os_error("cannot remove environment info", self.path, e) from e
        logger.debug("environment info removed", path=str(self.path))


class DiskStore:
    """Environment info storage rooted at a directory."""

    def __init__(self, directory: Path):
        """Initialize the store.

        Args:
            directory: Root directory. It must already exist; the
                environments subdirectory is created on demand.

        Raises:
            NotFoundError: If the directory does not exist
        """
        if not directory.is_dir():
            raise NotFoundError(
                message=f"config store directory {str(directory)!r} not found",
                data={"path": str(directory)},
            )
        self.directory = directory

    def env_path(self, env_name: str) -> Path:
        return self.directory / ENVIRONMENTS_DIR / f"{env_name}.yaml"

    def _mk_environments_dir(self) -> None:
        path = self.directory / ENVIRONMENTS_DIR
        try:
            path.mkdir(mode=0o700, exist_ok=True)
        except OSError as e:
            raise wrap_os_error("cannot create environments directory", path, e) from e

    def create_info(self, env_name: str) -> EnvironInfo:
        """Reserve env_name by creating an empty file.

        Raises:
            AlreadyExistsError: If info for env_name exists, written or not
            StorageIOError: On filesystem failure
        """
        self._mk_environments_dir()
        path = self.env_path(env_name)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError as e:
            raise AlreadyExistsError(
                message=f"environment info for {env_name!r} already exists",
                data={"path": str(path), "environment": env_name},
            ) from e
        except OSError as e:
            raise wrap_os_error("cannot create environment info", path, e) from e
        os.close(fd)
        logger.debug("environment info reserved", environment=env_name, path=str(path))
        return EnvironInfo(path, created=True)

    def read_info(self, env_name: str) -> EnvironInfo:
        """Load stored info for env_name.

        An empty file yields an uninitialized handle with empty fields.

        Raises:
            NotFoundError: If nothing is stored for env_name
            StorageIOError: If the file cannot be read or parsed
        """
        path = self.env_path(env_name)
        try:
            raw = path.read_text()
        except FileNotFoundError as e:
            raise NotFoundError(
                message=f"environment {env_name!r} not found",
                data={"environment": env_name},
            ) from e
        except OSError as e:
            raise wrap_os_error("cannot read environment info", path, e) from e

        info = EnvironInfo(path)
        if not raw:
            return info

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise StorageIOError(
                message=f"error unmarshalling {str(path)!r}: {e}",
                data={"path": str(path)},
            ) from e
        if not isinstance(data, dict):
            raise StorageIOError(
                message=f"error unmarshalling {str(path)!r}: expected a mapping",
                data={"path": str(path)},
            )
        info._load(data)
        info._initialized = True
        return info


def default_store() -> DiskStore:
    """Disk store rooted at the cpboot home directory."""
    return DiskStore(cpboot_home())


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("cannot remove temporary file", path=path, error=str(e))
