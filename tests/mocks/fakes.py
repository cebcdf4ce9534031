"""Fakes for the collaborators the bootstrap and destroy flows drive.

- FakeServiceFactory / FakeService: OS service control, recording every call
- FakeLauncher / FakeProcess: the transient mongod process
- FakeSession: an admin session on the state database
- FakeContainerManager: containers in an environment namespace
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import DuplicateKeyError

from cpboot.configstore.interface import APIEndpoint
from cpboot.environs.constraints import ConstraintsValidator
from cpboot.environs.interface import BootstrapResult, HardwareCharacteristics
from cpboot.errors import AuthorizationError
from cpboot.mongo.admin import EnsureAdminUserParams
from cpboot.service.base import ServiceConf


# =============================================================================
# Service control
# =============================================================================


class FakeService:
    """ServiceController recording calls into a shared event list."""

    def __init__(self, name: str, events: list[tuple[str, str]], installed: bool = False):
        self.name = name
        self.events = events
        self._installed = installed
        self.conf: ServiceConf | None = None
        self.running = False

    def install(self, conf: ServiceConf) -> None:
        self.events.append((self.name, "install"))
        self.conf = conf
        self._installed = True

    def start(self) -> None:
        self.events.append((self.name, "start"))
        self.running = True

    def stop(self) -> None:
        self.events.append((self.name, "stop"))
        self.running = False

    def installed(self) -> bool:
        return self._installed

    def remove(self) -> None:
        self.events.append((self.name, "remove"))
        self._installed = False


class FakeServiceFactory:
    """ServiceFactory handing out one FakeService per name."""

    def __init__(self, installed: tuple[str, ...] = ()):
        self.events: list[tuple[str, str]] = []
        self.services: dict[str, FakeService] = {}
        self._installed = set(installed)

    def __call__(self, name: str) -> FakeService:
        if name not in self.services:
            self.services[name] = FakeService(name, self.events, installed=name in self._installed)
        return self.services[name]

    def actions(self, name: str) -> list[str]:
        return [action for svc, action in self.events if svc == name]


# =============================================================================
# Transient process
# =============================================================================


class FakeProcess:
    def __init__(self, pid: int, events: list[str], exit_code: int = 0, wait_error: Exception | None = None):
        self.pid = pid
        self.events = events
        self.exit_code = exit_code
        self.wait_error = wait_error
        self.terminated = False

    def terminate(self) -> None:
        self.events.append("terminate")
        self.terminated = True

    def wait(self, timeout: float) -> int:
        self.events.append("wait")
        if self.wait_error is not None:
            raise self.wait_error
        return self.exit_code


class FakeLauncher:
    """ProcessLauncher recording launched argument lists."""

    def __init__(self, wait_error: Exception | None = None):
        self.launched: list[list[str]] = []
        self.events: list[str] = []
        self.processes: list[FakeProcess] = []
        self.wait_error = wait_error

    def launch(self, args: list[str]) -> FakeProcess:
        self.launched.append(list(args))
        self.events.append("launch")
        proc = FakeProcess(1000 + len(self.processes), self.events, wait_error=self.wait_error)
        self.processes.append(proc)
        return proc


# =============================================================================
# State database session
# =============================================================================


class FakeCollection:
    def __init__(self):
        self.docs: dict[Any, dict[str, Any]] = {}
        # Raised once by the next insert.
        self.insert_error: Exception | None = None

    def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        return self.docs.get(query.get("_id"))

    def insert_one(self, doc: dict[str, Any]) -> None:
        if self.insert_error is not None:
            error, self.insert_error = self.insert_error, None
            raise error
        if doc["_id"] in self.docs:
            raise DuplicateKeyError(f"E11000 duplicate key error: {doc['_id']!r}", code=11000)
        self.docs[doc["_id"]] = dict(doc)

    def delete_one(self, query: dict[str, Any]) -> None:
        self.docs.pop(query.get("_id"), None)


class FakeDatabase:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@dataclass
class FakeSession:
    """AdminSession over in-memory users and databases."""

    users: list[str] = field(default_factory=list)
    upsert_error: Exception | None = None
    list_error: Exception | None = None
    upserts: list[tuple[str, str, list[str]]] = field(default_factory=list)
    databases: dict[str, FakeDatabase] = field(default_factory=dict)
    dialed: list[Any] = field(default_factory=list)
    closed: int = 0

    def user_names(self) -> list[str]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.users)

    def upsert_user(self, user: str, password: str, roles: list[str]) -> None:
        if self.upsert_error is not None:
            raise self.upsert_error
        self.upserts.append((user, password, list(roles)))
        if user not in self.users:
            self.users.append(user)

    def database(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase())

    def close(self) -> None:
        self.closed += 1

    def factory(self, dial_info: Any) -> FakeSession:
        self.dialed.append(dial_info)
        return self


def unauthorized(message: str = "not authorized on admin to execute command") -> AuthorizationError:
    return AuthorizationError(message=message)


# =============================================================================
# Containers
# =============================================================================


class FakeContainerManager:
    def __init__(self, namespace: str = "test-ns", containers: list[str] | None = None, events=None):
        self.namespace = namespace
        self.containers = list(containers or [])
        self.destroyed: list[str] = []
        self.events = events if events is not None else []

    def list_containers(self) -> list[str]:
        return list(self.containers)

    def destroy_container(self, container_id: str) -> None:
        self.events.append((container_id, "destroy"))
        self.destroyed.append(container_id)
        self.containers.remove(container_id)


# =============================================================================
# Providers
# =============================================================================


class FakeEnviron:
    """Environ recording the calls the orchestrator makes."""

    def __init__(self, cfg, events: list[str], bootstrap_error: Exception | None = None, destroy_error=None):
        self._config = cfg
        self.events = events
        self.bootstrap_error = bootstrap_error
        self.destroy_error = destroy_error
        self.validator = ConstraintsValidator()
        self.validator.register_unsupported(["tags"])
        self.validator.register_vocabulary("arch", ["amd64"])
        self.bootstrap_params = None
        self.finalized: list[Any] = []

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self):
        return self._config

    def prepare_dirs(self) -> None:
        self.events.append("prepare_dirs")

    def bootstrap(self, ctx, params):
        self.events.append("bootstrap")
        self.bootstrap_params = params
        if self.bootstrap_error is not None:
            raise self.bootstrap_error
        return BootstrapResult(
            instance_id="i-0",
            hardware=HardwareCharacteristics(arch="amd64"),
            finalizer=lambda ctx, mcfg: self.finalized.append(mcfg),
        )

    def destroy(self) -> None:
        self.events.append("destroy")
        if self.destroy_error is not None:
            raise self.destroy_error

    def state_server_instances(self) -> list[str]:
        return ["i-0"]

    def constraints_validator(self):
        return self.validator

    def storage(self):
        raise NotImplementedError

    def admin_bootstrap_params(self, user: str, password: str):
        self.events.append("admin_bootstrap_params")
        return EnsureAdminUserParams(namespace="ns", data_dir="/tmp/x", port=37017, user=user, password=password)

    def api_endpoint(self):
        return APIEndpoint(addresses=["i-0:17070"], ca_cert=self._config.ca_cert)

    def supported_architectures(self) -> list[str]:
        return ["amd64"]


class FakeProvider:
    """EnvironProvider handing out FakeEnvirons."""

    def __init__(self, prepare_error: Exception | None = None, **environ_kwargs):
        self.events: list[str] = []
        self.prepare_error = prepare_error
        self.environ_kwargs = environ_kwargs
        self.environs: list[FakeEnviron] = []

    def validate(self, cfg, old=None):
        return cfg

    def open(self, cfg) -> FakeEnviron:
        environ = FakeEnviron(cfg, self.events, **self.environ_kwargs)
        self.environs.append(environ)
        return environ

    def prepare(self, ctx, cfg) -> FakeEnviron:
        self.events.append("prepare")
        if self.prepare_error is not None:
            raise self.prepare_error
        return self.open(cfg.apply({"ca-cert": "CERT"}))


class FakeAdmin:
    """AdminBootstrapper stand-in."""

    def __init__(self, events: list[str], error: Exception | None = None, added: bool = True):
        self.events = events
        self.error = error
        self.added = added
        self.calls: list[Any] = []

    def ensure_admin_user(self, params) -> bool:
        self.events.append("ensure_admin_user")
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.added
