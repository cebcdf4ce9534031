"""Error taxonomy for cpboot.

Every recoverable failure raised by the bootstrap and destroy flows is a
CPBootError subclass carrying a stable code, a human message, whether a
blind retry could help, and structured context for diagnosis.
"""

from dataclasses import dataclass, field
from typing import Any

# Error codes
VALIDATION_ERROR = "validation"
ALREADY_EXISTS = "already_exists"
NOT_FOUND = "not_found"
NOT_BOOTSTRAPPED = "not_bootstrapped"
ALREADY_REMOVED = "already_removed"
IO_ERROR = "io"
AUTHORIZATION_ERROR = "unauthorized"
TIMEOUT_ERROR = "timeout"
NOT_IMPLEMENTED = "not_implemented"


@dataclass
class CPBootError(Exception):
    """Base error class for cpboot errors."""

    code: str
    message: str
    retryable: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (for JSON output)."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


@dataclass
class ValidationError(CPBootError):
    """Bad or missing configuration."""

    code: str = VALIDATION_ERROR
    message: str = "Invalid configuration"


@dataclass
class AlreadyExistsError(CPBootError):
    """A record with the same name is already on disk."""

    code: str = ALREADY_EXISTS
    message: str = "Environment info already exists"


@dataclass
class NotFoundError(CPBootError):
    """Requested record or resource does not exist."""

    code: str = NOT_FOUND
    message: str = "Not found"


@dataclass
class NotBootstrappedError(CPBootError):
    """Environment was never bootstrapped."""

    code: str = NOT_BOOTSTRAPPED
    message: str = "Environment is not bootstrapped"
    instances: list[str] = field(default_factory=list)


@dataclass
class AlreadyRemovedError(CPBootError):
    """Record was destroyed before."""

    code: str = ALREADY_REMOVED
    message: str = "Environment info has already been removed"


@dataclass
class StorageIOError(CPBootError):
    """Filesystem, process or network failure."""

    code: str = IO_ERROR
    message: str = "I/O error"


@dataclass
class AuthorizationError(CPBootError):
    """State database rejected the command as not authorized."""

    code: str = AUTHORIZATION_ERROR
    message: str = "Not authorized"


@dataclass
class BootstrapTimeoutError(CPBootError):
    """A bounded wait ran out."""

    code: str = TIMEOUT_ERROR
    message: str = "Operation timed out"
    retryable: bool = True


@dataclass
class ProviderNotImplementedError(CPBootError):
    """Backend does not implement the requested operation."""

    code: str = NOT_IMPLEMENTED
    message: str = "Not implemented"


class InvariantViolation(AssertionError):
    """Raised on caller programming errors; never caught by cpboot."""


def wrap_os_error(step: str, path: Any, err: OSError) -> StorageIOError:
    """Build a StorageIOError naming the step and the resource.

    Args:
        step: What was being done (e.g. "cannot write temporary file")
        path: Resource the step operated on
        err: Original OS error

    Returns:
        StorageIOError carrying the original errno and path
    """
    return StorageIOError(
        message=f"{step}: {err}",
        data={"path": str(path), "errno": err.errno, "step": step},
    )
