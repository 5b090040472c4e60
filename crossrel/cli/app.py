from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv

from crossrel.cli.commands.build_cmd import build
from crossrel.cli.commands.config_cmd import config_app
from crossrel.cli.commands.deploy_cmd import deploy
from crossrel.cli.commands.git_cmd import git_app
from crossrel.cli.commands.publish_cmd import publish
from crossrel.cli.commands.release_cmd import release_app
from crossrel.core.metadata import BuildMetadata

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Cross-compile, package, publish and deploy binaries.",
)


# Commands
app.command()(build)
app.command()(publish)
app.command()(deploy)

# Sub-apps
app.add_typer(release_app, name="release")
app.add_typer(git_app, name="git")
app.add_typer(config_app, name="config")


@app.callback()
def _main(ctx: typer.Context) -> None:  # pyright: ignore[reportUnusedFunction]
    # Variables already set in the environment win over .env.
    load_dotenv(Path.cwd() / ".env", override=False)
    ctx.obj = BuildMetadata.detect()


@app.command()
def version(ctx: typer.Context) -> None:
    """Show the crossrel version."""
    metadata = ctx.obj if isinstance(ctx.obj, BuildMetadata) else BuildMetadata.detect()
    typer.echo(metadata.describe())


def main() -> None:
    app()
