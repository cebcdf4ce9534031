"""Test doubles for cpboot."""

from .fakes import (
    FakeAdmin,
    FakeCollection,
    FakeContainerManager,
    FakeDatabase,
    FakeEnviron,
    FakeLauncher,
    FakeProcess,
    FakeProvider,
    FakeService,
    FakeServiceFactory,
    FakeSession,
    unauthorized,
)

__all__ = [
    "FakeAdmin",
    "FakeCollection",
    "FakeContainerManager",
    "FakeDatabase",
    "FakeEnviron",
    "FakeLauncher",
    "FakeProcess",
    "FakeProvider",
    "FakeService",
    "FakeServiceFactory",
    "FakeSession",
    "unauthorized",
]
