"""Deploy command - run remote deploy commands and send alerts."""

from __future__ import annotations

from pathlib import Path

import typer

from crossrel.cli.commands._helpers import config_option, exit_on_error
from crossrel.cli.context import build_context
from crossrel.services.deploy import DeployService
from crossrel.services.versioning import current_version


def deploy(
    name: str | None = typer.Option(
        None, "--name", "-n", help="Run this deploy only", show_default=False
    ),
    config: Path = config_option(),
) -> None:
    """Execute deploy commands on the remote hosts."""
    ctx = build_context(config)
    service = DeployService(
        root=ctx.root,
        manifest=ctx.manifest,
        version=current_version(ctx.repo, ctx.console),
        console=ctx.console,
    )
    outcomes = exit_on_error(service.run(name), ctx.console)
    ctx.console.success(f"{len(outcomes)} deploy(s) succeeded")
