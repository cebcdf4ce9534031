"""Shared test fixtures for cpboot tests."""

from __future__ import annotations

import pytest

from cpboot.cert import generate_ca
from cpboot.mongo.wait import ReadinessPoller
from tests.mocks import FakeLauncher, FakeServiceFactory, FakeSession


@pytest.fixture
def services() -> FakeServiceFactory:
    return FakeServiceFactory()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def ready_poller() -> ReadinessPoller:
    """Poller whose port is always ready."""
    return ReadinessPoller(max_attempts=3, interval_seconds=0, probe=lambda host, port, timeout: None)


@pytest.fixture
def cpboot_home(tmp_path, monkeypatch):
    """A fresh CPBOOT_HOME directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("CPBOOT_HOME", str(home))
    monkeypatch.delenv("CPBOOT_ENV", raising=False)
    return home


@pytest.fixture(scope="session")
def ca_pair() -> tuple[str, str]:
    """A CA certificate and key, generated once per test session."""
    return generate_ca("test")
