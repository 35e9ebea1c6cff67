from __future__ import annotations

import os
from pathlib import Path

import typer

from relbuild import __version__
from relbuild.cli.commands.clean import clean
from relbuild.cli.commands.prune import prune
from relbuild.cli.commands.release import ci, ci_upload, pre_release
from relbuild.cli.commands.smoke import smoke
from relbuild.cli.commands.source import format_cmd, wc
from relbuild.cli.context import REPO_ENV
from relbuild.core.errors import ErrorCode
from relbuild.git.repository import Repository


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(smoke)
app.command("pre-release")(pre_release)
app.command()(ci)
app.command("ci-upload")(ci_upload)
app.command()(prune)
app.command()(clean)
app.command("format")(format_cmd)
app.command()(wc)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Source repository root (overrides auto detection)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if repo is not None:
        try:
            root = repo.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --repo: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not Repository(root).exists():
            typer.echo(f"error: --repo '{root}' is not a git repository", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[REPO_ENV] = str(root)


def main() -> None:
    app()
