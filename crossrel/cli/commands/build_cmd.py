"""Build command - cross-compile, archive, run hooks."""

from __future__ import annotations

from pathlib import Path

from crossrel.cli.commands._helpers import config_option, exit_on_error
from crossrel.cli.context import build_context
from crossrel.services.build import BuildService
from crossrel.services.versioning import resolve_release_info


def build(config: Path = config_option()) -> None:
    """Build every target of the manifest, then create the archives."""
    ctx = build_context(config)
    release = resolve_release_info(ctx.repo, ctx.console)

    service = BuildService(
        root=ctx.root,
        manifest=ctx.manifest,
        release=release,
        console=ctx.console,
    )
    report = exit_on_error(service.run(), ctx.console)

    summary = f"built {len(report.jobs)} target(s) for {release.version}"
    if report.archives:
        summary += f", {len(report.archives)} archive(s)"
    ctx.console.success(summary)
