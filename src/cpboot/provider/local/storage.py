"""Directory-backed storage for the local provider.

Files are served to machines over HTTP on the environment's storage
port; this class only manages the directory behind it.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath

from ...errors import NotFoundError, ValidationError, wrap_os_error


class LocalStorage:
    """Named blobs under a directory."""

    def __init__(self, directory: Path, port: int, host: str = "localhost"):
        self.directory = directory
        self.port = port
        self.host = host

    def _path(self, name: str) -> Path:
        rel = PurePosixPath(name)
        if not name or rel.is_absolute() or ".." in rel.parts:
            raise ValidationError(message=f"invalid storage name {name!r}")
        return self.directory.joinpath(*rel.parts)

    def put(self, name: str, data: bytes) -> None:
        """Store data under name, replacing any previous content."""
        path = self._path(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except OSError as e:
            raise wrap_os_error("cannot store file", path, e) from e

    def get(self, name: str) -> bytes:
        """Raises NotFoundError if nothing is stored under name."""
        path = self._path(name)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(message=f"file {name!r} not found", data={"name": name}) from e
        except OSError as e:
            raise wrap_os_error("cannot read file", path, e) from e

    def list(self, prefix: str = "") -> list[str]:
        """Sorted names starting with prefix."""
        if not self.directory.is_dir():
            return []
        names = []
        for path in self.directory.rglob("*"):
            if not path.is_file() or path.name.startswith("."):
                continue
            name = path.relative_to(self.directory).as_posix()
            if name.startswith(prefix):
                names.append(name)
        return sorted(names)

    def remove(self, name: str) -> None:
        """Remove name; removing a missing file is not an error."""
        path = self._path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise wrap_os_error("cannot remove file", path, e) from e

    def remove_all(self) -> None:
        if not self.directory.is_dir():
            return
        for child in self.directory.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as e:
                raise wrap_os_error("cannot remove file", child, e) from e

    def url(self, name: str) -> str:
        self._path(name)
        return f"http://{self.host}:{self.port}/{name}"
