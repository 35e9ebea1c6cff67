"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from relbuild.core.result import Err, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.output.errors import pipeline_error_exit_code, print_pipeline_error
from relbuild.pipeline.errors import StageFailed
from relbuild.pipeline.orchestrator import RunReport


def report_run(result: Result[RunReport, StageFailed], console: ConsoleProtocol) -> RunReport:
    """Print the outcome of a pipeline run; exit non-zero on failure.

    The error line names the failing stage:
        error: [compile] msbuild: build failed (exit 1)
        hint: ...
    """
    if isinstance(result, Err):
        print_pipeline_error(result.error, console)
        raise typer.Exit(code=pipeline_error_exit_code(result.error))

    report = result.value
    if report.stages:
        console.print("stages: " + ", ".join(str(s) for s in report.stages), Style.DIM)
    if report.published:
        console.success(f"published {len(report.uploaded)} files")
    if report.pruned is not None:
        pruned = report.pruned
        console.print(f"pruned {len(pruned.deleted)} files", Style.DIM)
        if pruned.failed:
            console.warning(f"{len(pruned.failed)} deletes failed; the next prune retries them")
    return report


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
