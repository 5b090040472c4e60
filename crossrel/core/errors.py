"""Process exit codes.

A run is binary success/failure at the process level; the non-zero codes
only tell scripts which class of problem stopped the run.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (unknown sink/deploy name, bad template)
    - 2: Environment error (manifest missing or malformed, credentials missing)
    - 3: Build error (hook, compiler or archive failure)
    - 4: Network error (connection, upload or remote command failure)
    - 5: I/O error (output directory not writable, file not readable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
