"""Smoke command - quick x64 build and self-test."""

from __future__ import annotations

from relbuild.cli.commands._helpers import report_run
from relbuild.cli.context import build_pipeline_context
from relbuild.pipeline.orchestrator import run_smoke


def smoke() -> None:
    """Build and test the 64-bit installer. Never publishes."""
    ctx = build_pipeline_context(with_versions=False)
    report_run(run_smoke(ctx), ctx.console)
    ctx.console.success("smoke build ok")
