"""Machine architectures."""

from __future__ import annotations

import platform

AMD64 = "amd64"
I386 = "i386"
ARM64 = "arm64"
ARMHF = "armhf"
PPC64EL = "ppc64el"
S390X = "s390x"

ALL_SUPPORTED = [AMD64, I386, ARMHF, ARM64, PPC64EL, S390X]

# uname -m values and their normalized names
_MACHINE_ALIASES = {
    "x86_64": AMD64,
    "amd64": AMD64,
    "i386": I386,
    "i686": I386,
    "aarch64": ARM64,
    "arm64": ARM64,
    "armv7l": ARMHF,
    "armhf": ARMHF,
    "ppc64le": PPC64EL,
    "ppc64el": PPC64EL,
    "s390x": S390X,
}


def normalize_arch(raw: str) -> str:
    """Map a uname-style machine name to an architecture name."""
    raw = raw.strip().lower()
    return _MACHINE_ALIASES.get(raw, raw)


def is_supported(arch: str) -> bool:
    return arch in ALL_SUPPORTED


def host_arch() -> str:
    """Architecture of the machine cpboot is running on."""
    return normalize_arch(platform.machine())
