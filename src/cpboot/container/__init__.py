"""Container runtime capability."""

from .base import ContainerManager
from .docker import NAMESPACE_LABEL, DockerContainerManager

__all__ = ["ContainerManager", "DockerContainerManager", "NAMESPACE_LABEL"]
