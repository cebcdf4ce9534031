"""Teardown of a local environment.

Teardown needs root. When run unprivileged the sequencer re-runs the
destroy-environment command through sudo, forwarding the cpboot home so
the escalated process finds the same environment info.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path

from ...container.base import ContainerManager
from ...errors import StorageIOError, wrap_os_error
from ...mongo.service import service_name as db_service_name
from ...service.base import ServiceFactory
from ...shared.logging import get_logger
from ...shared.paths import HOME_ENV_VAR, cpboot_home, destroy_log_file
from .config import agent_service_name

logger = get_logger(__name__)

# Files and directories under the root dir removed on teardown.
ROOT_ARTIFACTS = ["agents", "db", "log", "storage", "server.pem", "cloud-init-output.log"]


def is_root() -> bool:
    return os.geteuid() == 0


def run_escalated(args: list[str]) -> int:
    """Run args in the foreground, so sudo can prompt for a password."""
    try:
        return subprocess.run(args).returncode
    except FileNotFoundError as e:
        raise StorageIOError(message=f"cannot run {args[0]}: {e}", data={"args": args}) from e


def program_path() -> str:
    """Path of the running cpboot executable."""
    argv0 = sys.argv[0]
    return shutil.which(argv0) or os.path.abspath(argv0)


class DestroySequencer:
    """Removes everything a local environment created on the host."""

    def __init__(
        self,
        root_dir: Path,
        namespace: str,
        env_name: str,
        service_factory: ServiceFactory,
        container_manager: ContainerManager,
        is_root: Callable[[], bool] = is_root,
        escalate: Callable[[list[str]], int] = run_escalated,
        home: Path | None = None,
        argv0: str | None = None,
    ):
        """Initialize sequencer.

        Args:
            root_dir: Environment root directory
            namespace: Environment namespace (service and container names)
            env_name: Environment name, passed on when escalating
            service_factory: Builds OS service controllers
            container_manager: Lists and destroys the namespace's containers
            is_root: Whether the current process is privileged
            escalate: Runs a command line with privileges, returning its exit code
            home: cpboot home forwarded when escalating
            argv0: cpboot executable re-run when escalating
        """
        self.root_dir = root_dir
        self.namespace = namespace
        self.env_name = env_name
        self.service_factory = service_factory
        self.container_manager = container_manager
        self.is_root = is_root
        self.escalate = escalate
        self.home = home
        self.argv0 = argv0

    def escalation_command(self) -> list[str]:
        """sudo command line re-running this destroy; its log is appended to the home's destroy.log."""
        home = self.home or cpboot_home()
        return [
            "sudo",
            "env",
            f"{HOME_ENV_VAR}={home}",
            self.argv0 or program_path(),
            "--log-file",
            str(destroy_log_file(home)),
            "destroy-environment",
            "-y",
            "--force",
            self.env_name,
        ]

    def destroy(self) -> None:
        """Tear down services, then containers, then files.

        Raises:
            StorageIOError: If escalation fails or something cannot be removed
        """
        agents = self.root_dir / "agents"
        try:
            agents.lstat()
        except FileNotFoundError:
            logger.info("environment never bootstrapped; nothing to destroy", environment=self.env_name)
            return
        except OSError as e:
            raise wrap_os_error("cannot check agents directory", agents, e) from e

        if not self.is_root():
            args = self.escalation_command()
            logger.info("escalating destroy", command=" ".join(args))
            code = self.escalate(args)
            if code != 0:
                raise StorageIOError(
                    message=f"failed to destroy environment {self.env_name!r}: "
                    f"sudo exited with status {code}",
                    data={"environment": self.env_name, "returncode": code},
                )
            return

        self._remove_services()
        self._remove_containers()
        self._remove_files()
        logger.info("local environment destroyed", environment=self.env_name)

    def _remove_services(self) -> None:
        for name in (agent_service_name(self.namespace), db_service_name(self.namespace)):
            svc = self.service_factory(name)
            if not svc.installed():
                continue
            svc.stop()
            svc.remove()
            logger.info("service removed", service=name)

    def _remove_containers(self) -> None:
        for container_id in self.container_manager.list_containers():
            self.container_manager.destroy_container(container_id)

    def _remove_files(self) -> None:
        for name in ROOT_ARTIFACTS:
            remove_path(self.root_dir / name)


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree; absent paths are skipped."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise wrap_os_error("cannot remove", path, e) from e
    logger.debug("removed", path=str(path))
