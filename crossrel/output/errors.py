"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from crossrel.core.config import ConfigError
from crossrel.core.errors import ErrorCode
from crossrel.core.template import TemplateError
from crossrel.git.repository import GitError
from crossrel.output.console import Style
from crossrel.services.errors import (
    ArchiveError,
    CompileError,
    CredentialError,
    DeployNotFoundError,
    HookError,
    InvalidTargetError,
    OutputDirError,
    PipelineError,
    RemoteCommandError,
    RemoteConnectionError,
    SinkNotFoundError,
    StageError,
    UnsupportedProviderError,
    UploadError,
)

if TYPE_CHECKING:
    from crossrel.output.console import ConsoleProtocol

__all__ = ["exit_code", "print_error"]


def print_error(error: StageError | PipelineError | GitError, console: ConsoleProtocol) -> None:
    """Print an error and its hint, if any."""
    console.error(error.message)
    hint = getattr(error, "hint", None)
    if not hint:
        return
    first, *rest = str(hint).rstrip().splitlines() or [""]
    console.print(f"hint: {first}", Style.DIM)
    for line in rest:
        console.print(f"  {line}", Style.DIM)


def exit_code(error: StageError | PipelineError | GitError) -> int:
    """Exit code for an error (a StageError maps through its cause)."""
    match error:
        case StageError(cause=cause):
            return exit_code(cause)
        case SinkNotFoundError() | DeployNotFoundError() | TemplateError():
            return int(ErrorCode.USER_ERROR)
        case ConfigError() | CredentialError() | InvalidTargetError() | UnsupportedProviderError():
            return int(ErrorCode.ENV_ERROR)
        case GitError():
            return int(ErrorCode.ENV_ERROR)
        case HookError() | CompileError() | ArchiveError():
            return int(ErrorCode.BUILD_ERROR)
        case RemoteConnectionError() | UploadError() | RemoteCommandError():
            return int(ErrorCode.NETWORK_ERROR)
        case OutputDirError():
            return int(ErrorCode.IO_ERROR)
