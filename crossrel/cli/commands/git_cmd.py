from __future__ import annotations

from pathlib import Path

import typer

from crossrel.git.repository import Repository
from crossrel.output.console import RichConsole
from crossrel.services.versioning import current_version

git_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Git helpers.")


@git_app.command("version")
def version_cmd() -> None:
    """Print the current git tag."""
    tag = current_version(Repository(Path.cwd()), RichConsole())
    typer.echo(f"Current git version: {tag}")
