"""Config command - write a starter manifest."""

from __future__ import annotations

from pathlib import Path

import typer

from crossrel.cli.commands._helpers import config_option
from crossrel.core.config import default_manifest, dump_manifest
from crossrel.core.errors import ErrorCode
from crossrel.output.console import RichConsole
from crossrel.platform.detection import detect
from crossrel.platform.paths import atomic_write_text

config_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Manifest helpers.")

DEFAULT_MAIN = "./cmd/app"


@config_app.command("init")
def init(
    goos: str | None = typer.Option(
        None, "--os", "-o", help="Target operating system [default: host]", show_default=False
    ),
    goarch: str | None = typer.Option(
        None, "--arch", "-a", help="Target architecture [default: host]", show_default=False
    ),
    main: str = typer.Option(DEFAULT_MAIN, "--main", "-m", help="Path to the main package"),
    config: Path = config_option(),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Create a manifest with one build for the given platform."""
    console = RichConsole()
    if config.exists() and not force:
        console.error(f"{config} already exists. Use --force / -f to overwrite")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    host = detect()
    manifest = default_manifest(goos=goos or host.goos, goarch=goarch or host.goarch, main=main)
    try:
        atomic_write_text(config, dump_manifest(manifest))
    except OSError as e:
        console.error(f"failed to write config file: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    console.success(f"Created {config} with default configuration")
