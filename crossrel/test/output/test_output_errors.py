"""Tests for error presentation and exit codes."""

from __future__ import annotations

from pathlib import Path

import pytest

from crossrel.core.config import ConfigError
from crossrel.core.errors import ErrorCode
from crossrel.core.template import TemplateError
from crossrel.git.repository import GitError
from crossrel.output.console import MockConsole, Style
from crossrel.output.errors import exit_code, print_error
from crossrel.services.errors import (
    CompileError,
    CredentialError,
    DeployNotFoundError,
    HookError,
    OutputDirError,
    RemoteCommandError,
    RemoteConnectionError,
    SinkNotFoundError,
    StageError,
    UploadError,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (SinkNotFoundError(name="x"), ErrorCode.USER_ERROR),
        (TemplateError(template="{{", reason="unclosed action"), ErrorCode.USER_ERROR),
        (ConfigError(message="bad"), ErrorCode.ENV_ERROR),
        (CredentialError(variables=("A", "B")), ErrorCode.ENV_ERROR),
        (GitError(command="describe", message="no tags"), ErrorCode.ENV_ERROR),
        (HookError(hook="make", returncode=2), ErrorCode.BUILD_ERROR),
        (
            CompileError(binary="app", goos="linux", goarch="amd64", goarm=None, returncode=1),
            ErrorCode.BUILD_ERROR,
        ),
        (RemoteConnectionError(host="h", reason="refused"), ErrorCode.NETWORK_ERROR),
        (UploadError(source=Path("a"), destination="b", reason="c"), ErrorCode.NETWORK_ERROR),
        (RemoteCommandError(host="h", command="c", returncode=1), ErrorCode.NETWORK_ERROR),
        (OutputDirError(path=Path("dist"), reason="busy"), ErrorCode.IO_ERROR),
    ],
)
def test_exit_code(error: object, code: ErrorCode) -> None:
    assert exit_code(error) == int(code)  # type: ignore[arg-type]


def test_stage_error_maps_through_cause() -> None:
    error = StageError("deploy", DeployNotFoundError(name="staging"), "staging")
    assert exit_code(error) == int(ErrorCode.USER_ERROR)


def test_print_error_with_multiline_hint() -> None:
    console = MockConsole()
    error = ConfigError(message="Config file not found", hint="Run: crossrel config init\nor pass -c")

    print_error(error, console)

    assert console.messages == [
        "error: Config file not found",
        "hint: Run: crossrel config init",
        "  or pass -c",
    ]
    assert console.outputs[1].style == Style.DIM


def test_print_error_without_hint() -> None:
    console = MockConsole()
    print_error(GitError(command="log", message="bad range"), console)
    assert console.messages == ["error: bad range"]
