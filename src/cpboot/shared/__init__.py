"""Shared helpers for cpboot: home directory layout and logging."""

from .logging import bind_context, configure_logging, get_logger
from .paths import (
    DEFAULT_HOME,
    HOME_ENV_VAR,
    cpboot_home,
    destroy_log_file,
    ensure_home,
    environments_file,
)

__all__ = [
    # Paths
    "DEFAULT_HOME",
    "HOME_ENV_VAR",
    "cpboot_home",
    "destroy_log_file",
    "ensure_home",
    "environments_file",
    # Logging
    "bind_context",
    "configure_logging",
    "get_logger",
]
