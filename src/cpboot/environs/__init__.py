"""Environments: providers, constraints, machine config and the bootstrap lifecycle."""

from .constraints import Constraints, ConstraintsValidator
from .interface import (
    BootstrapContext,
    BootstrapParams,
    BootstrapResult,
    Environ,
    EnvironProvider,
    HardwareCharacteristics,
)
from .machineconfig import (
    JOB_MANAGE_ENVIRON,
    CloudConfig,
    MachineConfig,
    finish_machine_config,
    new_bootstrap_machine_config,
    new_cloud_config,
)
from .orchestrator import (
    BootstrapOrchestrator,
    BootstrapOutcome,
    BootstrapPhase,
    destroy_environ,
    open_environ,
)
from .registry import provider, register_provider, registered_providers

__all__ = [
    "JOB_MANAGE_ENVIRON",
    "BootstrapContext",
    "BootstrapOrchestrator",
    "BootstrapOutcome",
    "BootstrapParams",
    "BootstrapPhase",
    "BootstrapResult",
    "CloudConfig",
    "Constraints",
    "ConstraintsValidator",
    "Environ",
    "EnvironProvider",
    "HardwareCharacteristics",
    "MachineConfig",
    "destroy_environ",
    "finish_machine_config",
    "new_bootstrap_machine_config",
    "new_cloud_config",
    "open_environ",
    "provider",
    "register_provider",
    "registered_providers",
]
