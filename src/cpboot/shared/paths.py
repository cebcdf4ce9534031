"""Path management for cpboot.

Manages the cpboot home directory layout. The home defaults to
~/.cpboot and can be moved with the CPBOOT_HOME environment variable,
which privilege-escalated commands forward explicitly.
"""

import os
from pathlib import Path

HOME_ENV_VAR = "CPBOOT_HOME"

DEFAULT_HOME = Path.home() / ".cpboot"


def cpboot_home() -> Path:
    """Return the cpboot home directory.

    Returns:
        $CPBOOT_HOME if set, ~/.cpboot otherwise
    """
    value = os.environ.get(HOME_ENV_VAR)
    if value:
        return Path(value).expanduser()
    return DEFAULT_HOME


def environments_file() -> Path:
    """Path of the environments definition file."""
    return cpboot_home() / "environments.yaml"


def ensure_home() -> Path:
    """Create the home directory if missing (mode 0o700).

    Returns:
        The home directory path
    """
    home = cpboot_home()
    home.mkdir(mode=0o700, parents=True, exist_ok=True)
    return home



def destroy_log_file(home: Path | None = None) -> Path:
    """Log file of escalated destroy runs."""
    return (home or cpboot_home()) / "logs" / "destroy.log"
