from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from crossrel.core.config import Manifest, load_config
from crossrel.core.result import Err
from crossrel.git.repository import Repository
from crossrel.output.console import ConsoleProtocol, RichConsole
from crossrel.output.errors import exit_code, print_error


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config_path: Path
    manifest: Manifest
    repo: Repository
    console: ConsoleProtocol


def build_context(config_path: Path) -> CLIContext:
    """Load the manifest; exit with a diagnostic if it cannot be used.

    Relative paths in the manifest (``out_dir``, build entry points) are
    resolved against the manifest's directory.
    """
    console = RichConsole()
    path = config_path.expanduser()
    result = load_config(path)
    if isinstance(result, Err):
        print_error(result.error, console)
        raise typer.Exit(code=exit_code(result.error))

    root = path.resolve().parent
    return CLIContext(
        root=root,
        config_path=path,
        manifest=result.value,
        repo=Repository(root),
        console=console,
    )
