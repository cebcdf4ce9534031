"""Container runtime capability consumed by destroy."""

from __future__ import annotations

from typing import Protocol


class ContainerManager(Protocol):
    """Lists and removes containers created under one namespace."""

    namespace: str

    def list_containers(self) -> list[str]: ...

    def destroy_container(self, container_id: str) -> None: ...
