"""Cloud providers that are registered but not implemented yet.

Selecting one fails loudly on every operation instead of half-working.
"""

from __future__ import annotations

from ..config import EnvironConfig
from ..environs.interface import BootstrapContext, Environ
from ..errors import ProviderNotImplementedError


class UnimplementedProvider:
    """EnvironProvider whose every operation raises ProviderNotImplementedError."""

    def __init__(self, provider_type: str):
        self.provider_type = provider_type

    def _fail(self, operation: str) -> ProviderNotImplementedError:
        return ProviderNotImplementedError(
            message=f"{self.provider_type} provider: {operation} not implemented",
            data={"type": self.provider_type, "operation": operation},
        )

    def prepare(self, ctx: BootstrapContext, cfg: EnvironConfig) -> Environ:
        raise self._fail("prepare")

    def open(self, cfg: EnvironConfig) -> Environ:
        raise self._fail("open")

    def validate(self, cfg: EnvironConfig, old: EnvironConfig | None = None) -> EnvironConfig:
        raise self._fail("validate")
