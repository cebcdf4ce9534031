"""Docker-backed container manager.

Machines provisioned for an environment are labelled with the
environment namespace, so teardown can find every one of them.
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable

from ..errors import StorageIOError
from ..shared.logging import get_logger

logger = get_logger(__name__)

NAMESPACE_LABEL = "cpboot.namespace"


class DockerContainerManager:
    """Manage containers labelled with a namespace."""

    def __init__(
        self,
        namespace: str,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """Initialize container manager.

        Args:
            namespace: Environment namespace used as the label value
            runner: subprocess.run compatible callable used for docker
        """
        self.namespace = namespace
        self._run = runner

    def _docker(self, *args: str) -> subprocess.CompletedProcess:
        try:
            return self._run(["docker", *args], capture_output=True, text=True)
        except FileNotFoundError as e:
            raise StorageIOError(
                message="Docker not found. Is Docker installed?",
                data={"namespace": self.namespace},
            ) from e

    def list_containers(self) -> list[str]:
        """Return ids of all containers (running or not) in the namespace."""
        result = self._docker(
            "ps",
            "-a",
            "--filter",
            f"label={NAMESPACE_LABEL}={self.namespace}",
            "--format",
            "json",
        )
        if result.returncode != 0:
            raise StorageIOError(
                message=f"Failed to list containers: {(result.stderr or '').strip()}",
                data={"namespace": self.namespace},
            )

        # docker ps --format json returns one JSON object per line
        ids = []
        for line in (result.stdout or "").splitlines():
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("unparseable docker ps line", line=line)
                continue
            container_id = entry.get("ID") or entry.get("Names")
            if container_id:
                ids.append(container_id)
        return ids

    def destroy_container(self, container_id: str) -> None:
        """Force-remove one container."""
        result = self._docker("rm", "-f", container_id)
        if result.returncode != 0:
            raise StorageIOError(
                message=f"Failed to remove container {container_id}: "
                f"{(result.stderr or '').strip()}",
                data={"namespace": self.namespace, "container": container_id},
            )
        logger.info("container removed", container=container_id, namespace=self.namespace)
