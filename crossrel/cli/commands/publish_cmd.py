"""Publish command - upload build outputs to the configured sinks."""

from __future__ import annotations

from pathlib import Path

import typer

from crossrel.cli.commands._helpers import config_option, exit_on_error
from crossrel.cli.context import build_context
from crossrel.services.publish import PublishService
from crossrel.services.versioning import current_version


def publish(
    name: str | None = typer.Option(
        None, "--name", "-n", help="Publish to this sink only", show_default=False
    ),
    config: Path = config_option(),
) -> None:
    """Upload the contents of the output directory."""
    ctx = build_context(config)
    service = PublishService(
        root=ctx.root,
        manifest=ctx.manifest,
        version=current_version(ctx.repo, ctx.console),
        console=ctx.console,
    )
    uploaded = exit_on_error(service.run(name), ctx.console)
    ctx.console.success(f"published {len(uploaded)} file(s)")
