"""Release commands - full builds and the CI upload step."""

from __future__ import annotations

import typer

from relbuild.cli.commands._helpers import report_run
from relbuild.cli.context import build_pipeline_context
from relbuild.pipeline.orchestrator import run_ci_build, run_ci_upload, run_pre_release
from relbuild.release.build_type import BuildType

_UPLOAD_HELP = "Upload the build (only from a push to the release branch)"
_ALLOW_DIRTY_HELP = "Allow uncommitted changes (for testing the build script)"


def pre_release(
    upload: bool = typer.Option(False, "--upload", help=_UPLOAD_HELP),
    allow_dirty: bool = typer.Option(False, "--allow-dirty", help=_ALLOW_DIRTY_HELP),
) -> None:
    """Build, test, sign and package all variants; publish as a pre-release."""
    ctx = build_pipeline_context(
        build_type=BuildType.PRE_RELEASE, upload=upload, allow_dirty=allow_dirty
    )
    report_run(run_pre_release(ctx), ctx.console)
    ctx.console.success("pre-release build ok")


def ci(
    upload: bool = typer.Option(False, "--upload", help=_UPLOAD_HELP),
    allow_dirty: bool = typer.Option(False, "--allow-dirty", help=_ALLOW_DIRTY_HELP),
) -> None:
    """CI build. Leaves the artifact set in artifacts/ for `ci-upload`."""
    ctx = build_pipeline_context(build_type=BuildType.DAILY, upload=upload, allow_dirty=allow_dirty)
    report_run(run_ci_build(ctx), ctx.console)
    ctx.console.success("ci build ok")


def ci_upload() -> None:
    """Publish the output of an earlier `ci` step as a daily build."""
    ctx = build_pipeline_context(build_type=BuildType.DAILY, upload=True)
    report = report_run(run_ci_upload(ctx), ctx.console)
    if report.published:
        ctx.console.success("upload ok")
