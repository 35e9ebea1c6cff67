"""Clean command - remove build output and CI artifacts."""

from __future__ import annotations

from relbuild.cli.commands._helpers import report_run
from relbuild.cli.context import build_pipeline_context
from relbuild.pipeline.orchestrator import run_clean


def clean() -> None:
    """Remove out/ and artifacts/."""
    ctx = build_pipeline_context(with_versions=False)
    report_run(run_clean(ctx), ctx.console)
    ctx.console.success("clean")
