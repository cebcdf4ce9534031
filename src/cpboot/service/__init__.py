"""OS service control (install/start/stop/remove)."""

from .base import ServiceConf, ServiceController, ServiceFactory
from .systemd import SystemdService, systemd_factory

__all__ = [
    "ServiceConf",
    "ServiceController",
    "ServiceFactory",
    "SystemdService",
    "systemd_factory",
]
