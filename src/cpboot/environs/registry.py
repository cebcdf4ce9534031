"""Registry of environment providers by type name."""

from __future__ import annotations

from ..errors import InvariantViolation, ValidationError
from .interface import EnvironProvider

_providers: dict[str, EnvironProvider] = {}


def register_provider(provider_type: str, provider: EnvironProvider) -> None:
    """Register provider under provider_type. Registering a type twice is a bug."""
    if provider_type in _providers:
        raise InvariantViolation(f"duplicate provider type {provider_type!r}")
    _providers[provider_type] = provider


def provider(provider_type: str) -> EnvironProvider:
    """Look up the provider for provider_type.

    Raises:
        ValidationError: If no provider is registered for it
    """
    _load_builtin()
    try:
        return _providers[provider_type]
    except KeyError:
        raise ValidationError(
            message=f"no registered provider for {provider_type!r}",
            data={"type": provider_type, "registered": registered_providers()},
        ) from None


def registered_providers() -> list[str]:
    _load_builtin()
    return sorted(_providers)


def _load_builtin() -> None:
    # Importing the providers package registers the built-in providers.
    from .. import provider as _builtin  # noqa: F401
