"""Unit tests for the provider registry."""

from __future__ import annotations

import pytest

from cpboot.config import EnvironConfig
from cpboot.environs.registry import provider, register_provider, registered_providers
from cpboot.errors import InvariantViolation, ProviderNotImplementedError, ValidationError
from cpboot.provider.local import LocalProvider


@pytest.mark.cli_unit
class TestRegistry:
    """Tests for provider lookup."""

    def test_builtin_providers(self):
        """Test the built-in providers are registered."""
        assert registered_providers() == ["azure", "ec2", "local"]
        assert isinstance(provider("local"), LocalProvider)

    def test_unknown_provider(self):
        """Test an unknown type is a validation error."""
        with pytest.raises(ValidationError, match="no registered provider"):
            provider("openstack")

    def test_duplicate_registration(self):
        """Test registering a type twice is a programming error."""
        with pytest.raises(InvariantViolation):
            register_provider("local", LocalProvider())

    @pytest.mark.parametrize("provider_type", ["azure", "ec2"])
    def test_unimplemented_providers_fail_loudly(self, provider_type):
        """Test every operation of a stub provider raises."""
        cfg = EnvironConfig.from_attrs({"name": "c", "type": provider_type})
        stub = provider(provider_type)

        with pytest.raises(ProviderNotImplementedError):
            stub.validate(cfg)
        with pytest.raises(ProviderNotImplementedError):
            stub.open(cfg)
        with pytest.raises(ProviderNotImplementedError, match=f"{provider_type} provider: prepare"):
            stub.prepare(None, cfg)
