"""Admin user bootstrap for the state database.

A freshly installed state database has no users. To create the first
admin principal without ever exposing an unauthenticated database on the
network, the permanent service is stopped, a transient mongod is run with
--noauth bound to loopback, the user is inserted, the transient process
is shut down, and the permanent (authenticated) service is started again.
Re-running the whole protocol is safe: an existing admin user is left
alone and reported as not added.
"""

from __future__ import annotations

import signal
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..errors import (
    AuthorizationError,
    BootstrapTimeoutError,
    CPBootError,
    StorageIOError,
)
from ..service.base import ServiceConf, ServiceFactory
from ..service.systemd import systemd_factory
from ..shared.logging import get_logger
from .service import mongod_path, noauth_args, service_name
from .session import AdminSession, DialInfo, SessionFactory, pymongo_session_factory
from .wait import ReadinessPoller

logger = get_logger(__name__)

ADMIN_ROLES = [
    "readWriteAnyDatabase",
    "dbAdminAnyDatabase",
    "userAdminAnyDatabase",
    "clusterAdmin",
]

DEFAULT_STOP_TIMEOUT = 30.0


class DatabaseAuthState(Enum):
    """Authentication mode of the state database process."""

    NO_AUTH = "no_auth"
    AUTHENTICATED = "authenticated"


@dataclass
class EnsureAdminUserParams:
    """Request to ensure the first admin user exists."""

    namespace: str
    data_dir: str
    port: int
    user: str
    password: str
    dial_info: DialInfo = field(default_factory=DialInfo)
    bind_ip: str = "127.0.0.1"
    # Permanent service definition, reinstalled before the service restarts.
    service_conf: ServiceConf | None = None


class ProcessHandle(Protocol):
    pid: int

    def terminate(self) -> None: ...

    def wait(self, timeout: float) -> int: ...


class ProcessLauncher(Protocol):
    def launch(self, args: list[str]) -> ProcessHandle: ...


class PopenHandle:
    """ProcessHandle around subprocess.Popen."""

    def __init__(self, popen: subprocess.Popen):
        self._popen = popen
        self.pid = popen.pid

    def terminate(self) -> None:
        # SIGTERM rather than SIGKILL, so mongod can flush its journal.
        self._popen.send_signal(signal.SIGTERM)

    def wait(self, timeout: float) -> int:
        try:
            return self._popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise BootstrapTimeoutError(
                message=f"process {self.pid} did not exit within {timeout}s",
                data={"pid": self.pid},
            ) from e


class SubprocessLauncher:
    """ProcessLauncher starting real processes."""

    def launch(self, args: list[str]) -> PopenHandle:
        try:
            popen = subprocess.Popen(
                args,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise StorageIOError(
                message=f"cannot start {args[0]}: {e}",
                data={"args": args},
            ) from e
        return PopenHandle(popen)


def set_admin_mongo_password(session: AdminSession, user: str, password: str) -> None:
    """Set the admin principal's password, creating the user if needed.

    The password is forwarded as given; whether an empty password is
    acceptable is for the database to decide.

    Raises:
        AuthorizationError: If the session may not manage users
        StorageIOError: On any other database failure
    """
    try:
        session.upsert_user(user, password, list(ADMIN_ROLES))
    except AuthorizationError as e:
        raise AuthorizationError(
            message=f"cannot set admin password: {e.message}", data=e.data
        ) from e
    except StorageIOError as e:
        raise StorageIOError(message=f"cannot set admin password: {e.message}", data=e.data) from e


class AdminBootstrapper:
    """Drives the NoAuth -> Authenticated transition of the state database."""

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        launcher: ProcessLauncher | None = None,
        session_factory: SessionFactory | None = None,
        mongod: str | None = None,
        poller: ReadinessPoller | None = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        """Initialize the bootstrapper.

        Args:
            service_factory: Builds the controller for the database service
            launcher: Starts the transient mongod
            session_factory: Opens admin sessions on the transient mongod
            mongod: Path of the mongod binary
            poller: Waits for the transient mongod to accept connections
            stop_timeout: Seconds to wait for the transient mongod to exit
        """
        self.service_factory = service_factory or systemd_factory()
        self.launcher = launcher or SubprocessLauncher()
        self.session_factory = session_factory or pymongo_session_factory
        self.mongod = mongod or mongod_path()
        self.poller = poller or ReadinessPoller()
        self.stop_timeout = stop_timeout
        self.auth_state = DatabaseAuthState.AUTHENTICATED

    def ensure_admin_user(self, params: EnsureAdminUserParams) -> bool:
        """Make sure the admin user exists.

        Returns:
            True if the user was added, False if an admin user already existed

        Raises:
            AuthorizationError: If the database unexpectedly enforced auth
            BootstrapTimeoutError: If the transient mongod did not start or stop in time
            StorageIOError: On process, service or database failure
        """
        svc = self.service_factory(service_name(params.namespace))
        if svc.installed():
            logger.info("stopping state database service", service=svc.name)
            svc.stop()

        args = [self.mongod, *noauth_args(params.data_dir, params.port, params.bind_ip)]
        logger.info("starting transient state database", port=params.port, bind_ip=params.bind_ip)
        proc = self.launcher.launch(args)
        self.auth_state = DatabaseAuthState.NO_AUTH

        try:
            added = self._add_admin_user(params)
        except BaseException:
            self._stop_transient_after_failure(proc)
            raise
        self._stop_transient(proc)

        if params.service_conf is not None:
            svc.install(params.service_conf)
        logger.info("starting state database service", service=svc.name)
        svc.start()
        self.auth_state = DatabaseAuthState.AUTHENTICATED
        return added

    def _add_admin_user(self, params: EnsureAdminUserParams) -> bool:
        result = self.poller.wait_for_port(params.bind_ip, params.port)
        if not result.ready:
            raise BootstrapTimeoutError(
                message=f"transient state database did not start: {result.error}",
                data={"port": params.port, "attempts": result.attempts},
            )

        dial_info = DialInfo(
            addresses=[f"{params.bind_ip}:{params.port}"],
            timeout=params.dial_info.timeout,
            tls=params.dial_info.tls,
            ca_file=params.dial_info.ca_file,
        )
        session = self.session_factory(dial_info)
        try:
            try:
                existing = session.user_names()
            except AuthorizationError as e:
                raise AuthorizationError(
                    message=f'failed to add "{params.user}" to admin database: '
                    f"cannot set admin password: {e.message}",
                    data=e.data,
                ) from e
            if existing:
                logger.info("admin user already present", users=len(existing))
                return False

            try:
                set_admin_mongo_password(session, params.user, params.password)
            except CPBootError as e:
                raise type(e)(
                    message=f'failed to add "{params.user}" to admin database: {e.message}',
                    data=e.data,
                ) from e
            logger.info("admin user added", user=params.user)
            return True
        finally:
            session.close()

    def _stop_transient(self, proc: ProcessHandle) -> None:
        logger.info("stopping transient state database", pid=proc.pid)
        proc.terminate()
        code = proc.wait(self.stop_timeout)
        if code:
            logger.warning("transient state database exited with error", pid=proc.pid, code=code)

    def _stop_transient_after_failure(self, proc: ProcessHandle) -> None:
        try:
            self._stop_transient(proc)
        except CPBootError as e:
            logger.error("cannot stop transient state database", pid=proc.pid, error=e.message)
