from __future__ import annotations

from pathlib import Path

import typer

from crossrel.cli.commands._helpers import exit_on_error
from crossrel.git.repository import Repository
from crossrel.output.console import RichConsole
from crossrel.services.versioning import changelog

release_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Release notes.")


@release_app.command("changelog")
def changelog_cmd(
    stable: bool = typer.Option(
        False, "--stable", "-s", help="Compare against the previous vX.Y.Z tag"
    ),
) -> None:
    """Print the changelog since the previous tag."""
    console = RichConsole()
    text = exit_on_error(changelog(Repository(Path.cwd()), console, stable=stable), console)
    typer.echo(text)
