"""State database service definition and process arguments."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..cert import generate_server_cert
from ..errors import wrap_os_error
from ..service.base import ServiceConf

MONGOD_ENV_VAR = "CPBOOT_MONGOD"
DEFAULT_MONGOD_PATH = "/usr/bin/mongod"

# Key password passed to mongod. The key file is unencrypted, so the value
# is never used, but mongod insists on it when given --sslPEMKeyFile.
SSL_KEY_PASSWORD = "ignored"

SERVICE_PREFIX = "cpboot-db"


def mongod_path() -> str:
    """Locate the mongod binary ($CPBOOT_MONGOD, then $PATH, then default)."""
    override = os.environ.get(MONGOD_ENV_VAR)
    if override:
        return override
    return shutil.which("mongod") or DEFAULT_MONGOD_PATH


def service_name(namespace: str) -> str:
    """Name of the state database service for a namespace."""
    if namespace:
        return f"{SERVICE_PREFIX}-{namespace}"
    return SERVICE_PREFIX


def db_dir(data_dir: str | Path) -> Path:
    return Path(data_dir) / "db"


def ssl_key_path(data_dir: str | Path) -> Path:
    return Path(data_dir) / "server.pem"


def common_args(data_dir: str | Path, port: int, bind_ip: str) -> list[str]:
    return [
        "--dbpath",
        str(db_dir(data_dir)),
        "--sslOnNormalPorts",
        "--sslPEMKeyFile",
        str(ssl_key_path(data_dir)),
        "--sslPEMKeyPassword",
        SSL_KEY_PASSWORD,
        "--bind_ip",
        bind_ip,
        "--port",
        str(port),
        "--noprealloc",
        "--syslog",
        "--smallfiles",
        "--journal",
    ]


def mongod_args(data_dir: str | Path, port: int, bind_ip: str, auth: bool) -> list[str]:
    """Full mongod argument list, with --auth or --noauth first."""
    return ["--auth" if auth else "--noauth", *common_args(data_dir, port, bind_ip)]


def noauth_args(data_dir: str | Path, port: int, bind_ip: str = "127.0.0.1") -> list[str]:
    """Arguments for the transient unauthenticated mongod."""
    return mongod_args(data_dir, port, bind_ip, auth=False)


def mongo_service_conf(
    data_dir: str | Path,
    port: int,
    namespace: str,
    mongod: str | None = None,
    bind_ip: str = "0.0.0.0",
) -> ServiceConf:
    """Permanent, authenticated state database service definition."""
    args = mongod_args(data_dir, port, bind_ip, auth=True)
    return ServiceConf(
        desc=f"cpboot state database ({namespace or 'default'})",
        cmd=" ".join([mongod or mongod_path(), *args]),
    )


def ensure_server_pem(data_dir: str | Path, ca_cert: str, ca_key: str) -> Path:
    """Write server.pem (key + cert signed by the CA) if it is missing.

    Returns:
        Path of the PEM file
    """
    path = ssl_key_path(data_dir)
    if path.exists():
        return path
    cert_pem, key_pem = generate_server_cert(ca_cert, ca_key, ["localhost"])
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        db_dir(data_dir).mkdir(parents=True, exist_ok=True)
        path.write_text(key_pem + cert_pem)
        path.chmod(0o600)
    except OSError as e:
        raise wrap_os_error("cannot write server certificate", path, e) from e
    return path
