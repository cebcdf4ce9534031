"""Durable storage of per-environment endpoints and credentials."""

from .disk import DiskStore, EnvironInfo, default_store
from .interface import APICredentials, APIEndpoint, EnvironInfoHandle, Storage

__all__ = [
    "APICredentials",
    "APIEndpoint",
    "DiskStore",
    "EnvironInfo",
    "EnvironInfoHandle",
    "Storage",
    "default_store",
]
