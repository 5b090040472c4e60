"""Host platform detection, expressed in the compiler's GOOS/GOARCH terms.

Used for the defaults of ``config init`` and for the OS/arch family
checks of the build matrix.
"""

from __future__ import annotations

import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

__all__ = [
    "ARM_FAMILY",
    "LINUX_FAMILY",
    "HostPlatform",
    "detect",
    "is_arm_family",
    "is_linux_family",
]

LINUX_FAMILY = "linux"
ARM_FAMILY = "arm"


def is_linux_family(goos: str) -> bool:
    return goos == LINUX_FAMILY


def is_arm_family(goarch: str) -> bool:
    """32-bit ARM, the only architecture that takes a variant (GOARM)."""
    return goarch == ARM_FAMILY


class Os(Enum):
    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"
    FREEBSD = "freebsd"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


_MACHINE_TO_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


@dataclass(frozen=True, slots=True)
class HostPlatform:
    os: Os
    machine: str

    @property
    def goos(self) -> str:
        return self.os.value

    @property
    def goarch(self) -> str:
        return _MACHINE_TO_GOARCH.get(self.machine.lower(), self.machine.lower() or "unknown")


def _detect_os() -> Os:
    if _sys.platform.startswith("linux"):
        return Os.LINUX
    if _sys.platform == "darwin":
        return Os.DARWIN
    if _sys.platform in ("win32", "cygwin"):
        return Os.WINDOWS
    if _sys.platform.startswith("freebsd"):
        return Os.FREEBSD
    return Os.UNKNOWN


@lru_cache(maxsize=1)
def detect() -> HostPlatform:
    """Detect the host platform (cached)."""
    return HostPlatform(os=_detect_os(), machine=_platform.machine())
