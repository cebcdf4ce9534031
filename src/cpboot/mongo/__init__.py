"""State database (MongoDB) bootstrap support."""

from .admin import (
    ADMIN_ROLES,
    AdminBootstrapper,
    DatabaseAuthState,
    EnsureAdminUserParams,
    PopenHandle,
    SubprocessLauncher,
    set_admin_mongo_password,
)
from .service import (
    ensure_server_pem,
    mongo_service_conf,
    mongod_args,
    mongod_path,
    noauth_args,
    service_name,
)
from .session import AdminSession, DialInfo, PyMongoAdminSession, pymongo_session_factory
from .wait import ReadinessPoller, ReadinessResult

__all__ = [
    "ADMIN_ROLES",
    "AdminBootstrapper",
    "AdminSession",
    "DatabaseAuthState",
    "DialInfo",
    "EnsureAdminUserParams",
    "PopenHandle",
    "PyMongoAdminSession",
    "ReadinessPoller",
    "ReadinessResult",
    "SubprocessLauncher",
    "ensure_server_pem",
    "mongo_service_conf",
    "mongod_args",
    "mongod_path",
    "noauth_args",
    "pymongo_session_factory",
    "service_name",
    "set_admin_mongo_password",
]
