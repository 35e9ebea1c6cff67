"""Source commands - clang-format and line counts."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from relbuild.cli.commands._helpers import exit_with_code
from relbuild.cli.context import build_context
from relbuild.core.result import Err
from relbuild.output.errors import pipeline_error_exit_code, print_pipeline_error
from relbuild.tools.source import count_lines, find_source_files, format_sources

_console = Console()


def format_cmd(
    clang_format: str | None = typer.Option(
        None, "--clang-format", help="clang-format executable (default: from PATH)"
    ),
) -> None:
    """Format source files in place with clang-format."""
    ctx = build_context()
    result = format_sources(ctx.root, ctx.config.source, ctx.console, clang_format=clang_format)
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(result.error))
    ctx.console.success(f"formatted {result.value} files")


def wc() -> None:
    """Show line counts of source files per extension."""
    ctx = build_context()
    counts = count_lines(find_source_files(ctx.root, ctx.config.source))
    if not counts:
        _console.print("[dim]No source files[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Ext")
    table.add_column("Files", justify="right")
    table.add_column("Lines", justify="right")
    for c in counts:
        table.add_row(c.extension, str(c.files), str(c.lines))
    table.add_row(
        "[bold]total[/bold]",
        str(sum(c.files for c in counts)),
        str(sum(c.lines for c in counts)),
    )
    _console.print(table)
