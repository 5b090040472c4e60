"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from crossrel.core.config import DEFAULT_CONFIG_NAME
from crossrel.core.result import Err, Result
from crossrel.git.repository import GitError
from crossrel.output.console import ConsoleProtocol
from crossrel.output.errors import exit_code, print_error
from crossrel.services.errors import PipelineError, StageError


def config_option() -> Any:
    return typer.Option(
        Path(DEFAULT_CONFIG_NAME),
        "--config",
        "-c",
        help="Path to the release manifest",
    )


def exit_on_error[T](
    result: Result[T, StageError | PipelineError | GitError],
    console: ConsoleProtocol,
) -> T:
    """Return the value of an Ok result; print the error and exit otherwise.

    Replaces the common pattern:
        match result:
            case Err(e):
                print_error(e, console)
                raise typer.Exit(code=exit_code(e))
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        print_error(result.error, console)
        raise typer.Exit(code=exit_code(result.error))
    return result.value
