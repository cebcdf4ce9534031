"""pymongo-backed sessions against the state database admin database."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import pymongo
from pymongo.errors import OperationFailure, PyMongoError

from ..errors import AuthorizationError, StorageIOError

# Server error codes
UNAUTHORIZED = 13
USER_NOT_FOUND = 11

DEFAULT_DIAL_TIMEOUT = 10.0


@dataclass
class DialInfo:
    """How to reach the state database."""

    addresses: list[str] = field(default_factory=lambda: ["127.0.0.1:37017"])
    timeout: float = DEFAULT_DIAL_TIMEOUT
    username: str | None = None
    password: str | None = None
    tls: bool = True
    ca_file: str | None = None


class AdminSession(Protocol):
    """The admin-database operations the bootstrap flows need."""

    def user_names(self) -> list[str]: ...

    def upsert_user(self, user: str, password: str, roles: list[str]) -> None: ...

    def database(self, name: str) -> Any: ...

    def close(self) -> None: ...


SessionFactory = Callable[[DialInfo], AdminSession]


def _translate(err: PyMongoError, action: str) -> Exception:
    if isinstance(err, OperationFailure) and err.code == UNAUTHORIZED:
        errmsg = (err.details or {}).get("errmsg") or str(err)
        if not errmsg.startswith("not authorized"):
            errmsg = f"not authorized ({errmsg})"
        return AuthorizationError(message=errmsg, data={"action": action})
    return StorageIOError(message=f"{action}: {err}", data={"action": action})


class PyMongoAdminSession:
    """AdminSession implementation over a direct pymongo connection."""

    def __init__(self, dial_info: DialInfo, client: pymongo.MongoClient | None = None):
        """Initialize session.

        Args:
            dial_info: Connection parameters; the first address is used.
            client: Pre-built client (tests); built from dial_info otherwise.
        """
        self.dial_info = dial_info
        self._client = client or self._connect(dial_info)

    @staticmethod
    def _connect(dial_info: DialInfo) -> pymongo.MongoClient:
        if not dial_info.addresses:
            raise StorageIOError(message="no state database addresses to dial")
        host, _, port = dial_info.addresses[0].rpartition(":")
        kwargs: dict[str, Any] = {
            "host": host or "127.0.0.1",
            "port": int(port),
            "directConnection": True,
            "serverSelectionTimeoutMS": int(dial_info.timeout * 1000),
            "connectTimeoutMS": int(dial_info.timeout * 1000),
        }
        if dial_info.tls:
            kwargs["tls"] = True
            if dial_info.ca_file:
                kwargs["tlsCAFile"] = dial_info.ca_file
            else:
                kwargs["tlsAllowInvalidCertificates"] = True
        if dial_info.username:
            kwargs["username"] = dial_info.username
            kwargs["password"] = dial_info.password or ""
            kwargs["authSource"] = "admin"
        return pymongo.MongoClient(**kwargs)

    def user_names(self) -> list[str]:
        try:
            info = self._client.admin.command("usersInfo")
        except PyMongoError as e:
            raise _translate(e, "cannot list admin users") from e
        return [u.get("user", "") for u in info.get("users", [])]

    def upsert_user(self, user: str, password: str, roles: list[str]) -> None:
        admin = self._client.admin
        try:
            try:
                admin.command("updateUser", user, pwd=password, roles=roles)
            except OperationFailure as e:
                if e.code != USER_NOT_FOUND:
                    raise
                admin.command("createUser", user, pwd=password, roles=roles)
        except PyMongoError as e:
            raise _translate(e, f"cannot upsert user {user!r}") from e

    def database(self, name: str) -> Any:
        return self._client[name]

    def close(self) -> None:
        self._client.close()


def pymongo_session_factory(dial_info: DialInfo) -> AdminSession:
    """Default SessionFactory."""
    return PyMongoAdminSession(dial_info)
