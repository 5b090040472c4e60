"""Platform abstraction layer."""

from .detection import HostPlatform, detect, is_arm_family, is_linux_family
from .paths import atomic_write_text, ensure_private_file, expand_user, home
from .process import ProcessError, run, run_streaming

__all__ = [
    # detection
    "HostPlatform",
    "detect",
    "is_arm_family",
    "is_linux_family",
    # paths
    "atomic_write_text",
    "ensure_private_file",
    "expand_user",
    "home",
    # process
    "ProcessError",
    "run",
    "run_streaming",
]
