"""Local host provider."""

from .config import PROVIDER_TYPE, LocalConfig, check_root_dir, validate_config
from .destroy import DestroySequencer
from .environ import LocalEnviron, ShellCloudConfigExecutor
from .environprovider import LocalProvider
from .storage import LocalStorage

__all__ = [
    "PROVIDER_TYPE",
    "DestroySequencer",
    "LocalConfig",
    "LocalEnviron",
    "LocalProvider",
    "LocalStorage",
    "ShellCloudConfigExecutor",
    "check_root_dir",
    "validate_config",
]
