"""Machine constraints and their validation.

Constraints are written as space-separated key=value pairs, e.g.
``arch=amd64 mem=4G tags=fast,ssd``. A key with an empty value is treated
as not set.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, fields
from typing import Any

from ..errors import InvariantViolation, ValidationError
from . import arch as arches

ARCH = "arch"
CONTAINER = "container"
CPU_CORES = "cpu-cores"
CPU_POWER = "cpu-power"
MEM = "mem"
ROOT_DISK = "root-disk"
TAGS = "tags"
INSTANCE_TYPE = "instance-type"
NETWORKS = "networks"

CONTAINER_TYPES = ["none", "lxc", "kvm", "docker"]

# Multipliers to megabytes
_SIZE_SUFFIXES = {"M": 1, "G": 1024, "T": 1024 * 1024, "P": 1024 * 1024 * 1024}


@dataclass
class Constraints:
    """Requirements a provisioned machine must satisfy."""

    arch: str | None = None
    container: str | None = None
    cpu_cores: int | None = None
    cpu_power: int | None = None
    mem: int | None = None
    root_disk: int | None = None
    tags: list[str] | None = None
    instance_type: str | None = None
    networks: list[str] | None = None

    @classmethod
    def parse(cls, *args: str) -> Constraints:
        """Parse one or more constraint strings.

        Raises:
            ValidationError: On an unknown key, a repeated key or a bad value
        """
        cons = cls()
        seen: set[str] = set()
        for arg in args:
            for item in arg.split():
                key, sep, value = item.partition("=")
                if not sep:
                    raise ValidationError(message=f"malformed constraint {item!r}")
                attr = _attr_name(key)
                if attr is None:
                    raise ValidationError(message=f"unknown constraint {key!r}")
                if key in seen:
                    raise ValidationError(message=f"bad {key!r} constraint: already set")
                seen.add(key)
                if value:
                    setattr(cons, attr, _parse_value(key, value))
        return cons

    def has(self, key: str) -> bool:
        """Whether the constraint named key is set."""
        return self.get(key) is not None

    def get(self, key: str) -> Any:
        attr = _attr_name(key)
        if attr is None:
            raise InvariantViolation(f"unknown constraint {key!r}")
        return getattr(self, attr)

    def to_dict(self) -> dict[str, Any]:
        """Set constraints keyed by their dashed names."""
        return {f.name.replace("_", "-"): getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def __str__(self) -> str:
        parts = []
        for key, value in self.to_dict().items():
            if key in (MEM, ROOT_DISK):
                value = f"{value}M"
            elif isinstance(value, list):
                value = ",".join(value)
            parts.append(f"{key}={value}")
        return " ".join(parts)


KEYS = [f.name.replace("_", "-") for f in fields(Constraints)]


def _attr_name(key: str) -> str | None:
    if key not in KEYS:
        return None
    return key.replace("-", "_")


def _parse_value(key: str, value: str) -> Any:
    if key == ARCH:
        if not arches.is_supported(value):
            raise ValidationError(message=f"bad {key!r} constraint: {value!r} not recognized")
        return value
    if key == CONTAINER:
        if value not in CONTAINER_TYPES:
            raise ValidationError(message=f"bad {key!r} constraint: invalid container type {value!r}")
        return value
    if key in (CPU_CORES, CPU_POWER):
        try:
            count = int(value)
        except ValueError:
            count = -1
        if count < 0:
            raise ValidationError(message=f"bad {key!r} constraint: must be a non-negative integer")
        return count
    if key in (MEM, ROOT_DISK):
        return _parse_size(key, value)
    if key in (TAGS, NETWORKS):
        return [v for v in value.split(",") if v]
    return value


def _parse_size(key: str, value: str) -> int:
    multiplier = 1
    number = value
    if value[-1].upper() in _SIZE_SUFFIXES:
        multiplier = _SIZE_SUFFIXES[value[-1].upper()]
        number = value[:-1]
    try:
        size = float(number)
    except ValueError:
        size = -1
    if not math.isfinite(size) or size < 0:
        raise ValidationError(message=f"bad {key!r} constraint: must be a non-negative float with optional M/G/T/P suffix")
    return int(size * multiplier + 0.5)


class ConstraintsValidator:
    """Checks constraints against what a provider can honour."""

    def __init__(self):
        self._unsupported: set[str] = set()
        self._vocabularies: dict[str, list[Any]] = {}

    def register_unsupported(self, keys: Iterable[str]) -> None:
        for key in keys:
            _check_key(key)
            self._unsupported.add(key)

    def register_vocabulary(self, key: str, values: Iterable[Any]) -> None:
        _check_key(key)
        self._vocabularies[key] = list(values)

    def validate(self, cons: Constraints) -> list[str]:
        """Validate cons.

        Returns:
            Sorted names of set constraints the provider ignores

        Raises:
            ValidationError: If a value is outside its registered vocabulary
        """
        for key, vocab in self._vocabularies.items():
            value = cons.get(key)
            if value is None:
                continue
            for item in value if isinstance(value, list) else [value]:
                if item not in vocab:
                    valid = " ".join(str(v) for v in vocab)
                    raise ValidationError(
                        message=f"invalid constraint value: {key}={item}\nvalid values are: [{valid}]",
                        data={"constraint": key, "value": item, "valid": list(vocab)},
                    )
        return sorted(key for key in self._unsupported if cons.has(key))


def _check_key(key: str) -> None:
    if key not in KEYS:
        raise InvariantViolation(f"unknown constraint {key!r}")
