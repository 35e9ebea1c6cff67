"""Prune command - delete old builds from the store."""

from __future__ import annotations

from enum import StrEnum

import typer

from relbuild.cli.commands._helpers import report_run
from relbuild.cli.context import build_pipeline_context
from relbuild.pipeline.orchestrator import run_prune
from relbuild.release.build_type import BuildType


class Channel(StrEnum):
    prerelease = "prerelease"
    daily = "daily"


def prune(
    build_type: Channel = typer.Option(Channel.prerelease, "--build-type", help="Builds to prune"),
) -> None:
    """Keep the newest builds and delete the rest (manifests are kept)."""
    ctx = build_pipeline_context(
        build_type=BuildType(build_type.value), with_versions=False, with_store=True
    )
    report_run(run_prune(ctx), ctx.console)
