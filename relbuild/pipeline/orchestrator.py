"""Pipeline entry points.

    clean -> preflight -> compile (per variant) -> test -> sign -> package
          -> manifest -> publish -> prune

Stages run strictly in order and the first Err ends the run: nothing is
published unless every earlier stage succeeded. The only failures absorbed
here are a missing signer (the build ships unsigned) and individual prune
deletes.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.pipeline import stages
from relbuild.pipeline.build_config import build_config_override
from relbuild.pipeline.context import VARIANTS, PipelineContext
from relbuild.pipeline.errors import Stage, StageFailed
from relbuild.release.names import PUBLISHED_KINDS, ArtifactKind, BuildVariant
from relbuild.release.registry import PruneReport

__all__ = [
    "RunReport",
    "run_ci_upload",
    "run_clean",
    "run_prune",
    "run_ci_build",
    "run_pre_release",
    "run_release_build",
    "run_smoke",
]


@dataclass
class RunReport:
    """What a successful run did.

    Attributes:
        stages: Stages that ran to completion, in order.
        signed: False when signing was skipped.
        published: True if this run uploaded the artifact set.
        publish_skipped: Why publishing did not happen, if it did not.
        uploaded: Keys uploaded, in order.
        pruned: Outcome of the post-publish prune, if it ran.
    """

    stages: list[Stage] = field(default_factory=list[Stage])
    signed: bool = False
    published: bool = False
    publish_skipped: str | None = None
    uploaded: list[str] = field(default_factory=list[str])
    pruned: PruneReport | None = None


@contextmanager
def _timed(console: ConsoleProtocol, what: str) -> Iterator[None]:
    console.header(what)
    start = time.monotonic()
    try:
        yield
    finally:
        console.print(f"{what} took {time.monotonic() - start:.1f}s", Style.DIM)


def run_clean(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    report = RunReport()
    result = stages.clean(ctx)
    if isinstance(result, Err):
        return result
    report.stages.append(Stage.CLEAN)
    return Ok(report)


def run_smoke(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    """Quick local check that everything still builds: x64 only, no publish."""
    report = RunReport()
    variant = BuildVariant.X64
    with _timed(ctx.console, "smoke build"):
        steps = (
            (Stage.CLEAN, lambda: stages.clean(ctx)),
            (
                Stage.COMPILE,
                lambda: stages.compile_variant(ctx, variant, ctx.config.build.smoke_targets),
            ),
            (Stage.TEST, lambda: stages.self_test_variant(ctx, variant)),
            (
                Stage.PACKAGE,
                lambda: stages.package_variant(
                    ctx, variant, pdb_files=stages.SMOKE_PDB_FILES, with_zip=False
                ),
            ),
        )
        for stage, step in steps:
            result = step()
            if isinstance(result, Err):
                return result
            report.stages.append(stage)
    return Ok(report)


def _build(ctx: PipelineContext, report: RunReport) -> Result[None, StageFailed]:
    """Compile through manifest, with the build config header overridden."""
    versions = ctx.require_versions()
    targets = ctx.config.build.targets

    with build_config_override(
        ctx.repo,
        ctx.config.product.build_config_header,
        sha1=versions.source_revision_id,
        pre_release_ver=versions.counter_str,
        console=ctx.console,
    ) as written:
        if isinstance(written, Err):
            return Err(StageFailed(Stage.COMPILE, written.error))

        for variant in VARIANTS:
            with _timed(ctx.console, f"compile {variant.platform}"):
                result = stages.compile_variant(ctx, variant, targets)
            if isinstance(result, Err):
                return result
        report.stages.append(Stage.COMPILE)

        for variant in VARIANTS:
            result = stages.self_test_variant(ctx, variant)
            if isinstance(result, Err):
                return result
        report.stages.append(Stage.TEST)

        if ctx.tools.signer.available():
            for variant in VARIANTS:
                result = stages.sign_variant(ctx, variant)
                if isinstance(result, Err):
                    return result
            report.signed = True
            report.stages.append(Stage.SIGN)
        else:
            ctx.console.warning("signing not available; this build is unsigned")

        for variant in VARIANTS:
            result = stages.package_variant(ctx, variant)
            if isinstance(result, Err):
                return result
        copied = stages.copy_artifacts(ctx)
        if isinstance(copied, Err):
            return copied
        report.stages.append(Stage.PACKAGE)

        manifest = stages.write_manifest(ctx)
        if isinstance(manifest, Err):
            return manifest
        report.stages.append(Stage.MANIFEST)

    return Ok(None)


def _publish(ctx: PipelineContext, report: RunReport) -> Result[None, StageFailed]:
    """Publish unless not allowed or already published, then prune."""
    if not ctx.publish.allowed or ctx.store is None:
        report.publish_skipped = ctx.publish.reason
        ctx.console.info(f"skipping upload: {ctx.publish.reason}")
        return Ok(None)

    versions = ctx.require_versions()
    published = stages.check_published(ctx)
    if isinstance(published, Err):
        return published
    if published.value:
        report.publish_skipped = f"version {versions.counter_str} is already published"
        ctx.console.info(f"skipping upload: {report.publish_skipped}")
        return Ok(None)

    with _timed(ctx.console, f"upload {versions.counter_str}"):
        uploaded = stages.publish(ctx)
    if isinstance(uploaded, Err):
        return uploaded
    report.uploaded = uploaded.value
    report.published = True
    report.stages.append(Stage.PUBLISH)

    pruned = stages.prune(ctx, best_effort=True)
    if isinstance(pruned, Err):
        return pruned
    report.pruned = pruned.value
    report.stages.append(Stage.PRUNE)
    return Ok(None)


def run_release_build(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    """Full build: checks, compile, test, sign, package, then publish if allowed.

    Used for both pre-release and CI builds; the context's build type and
    publish decision make the difference.
    """
    report = RunReport()
    versions = ctx.require_versions()
    title = f"{ctx.build_type.channel} build {versions.counter_str} ({versions.product_version})"
    with _timed(ctx.console, title):
        result = stages.clean(ctx)
        if isinstance(result, Err):
            return result
        report.stages.append(Stage.CLEAN)

        result = stages.preflight(ctx)
        if isinstance(result, Err):
            return result
        report.stages.append(Stage.PREFLIGHT)

        result = _build(ctx, report)
        if isinstance(result, Err):
            return result

        result = _publish(ctx, report)
        if isinstance(result, Err):
            return result
    return Ok(report)


def run_pre_release(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    return run_release_build(ctx)


def run_ci_build(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    """CI build. Also copies the artifact set to artifacts/ for the CI runner.

    `ci-upload` later publishes from the same out/rel32 and out/rel64
    directories, so both steps must run in one checkout.
    """
    return run_release_build(ctx)


def run_ci_upload(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    """Publish outputs built by an earlier CI step."""
    report = RunReport()
    if not ctx.publish.allowed:
        report.publish_skipped = ctx.publish.reason
        ctx.console.info(f"skipping upload: {ctx.publish.reason}")
        return Ok(report)

    product = ctx.config.product.name
    names = [k.local_name(product) for k in PUBLISHED_KINDS]
    for variant in VARIANTS:
        verified = stages.verify_outputs(ctx.variant_dir(variant), names, tool="ci-upload")
        if isinstance(verified, Err):
            return Err(StageFailed(Stage.MANIFEST, verified.error))
    verified = stages.verify_outputs(
        ctx.artifacts_dir, [ArtifactKind.MANIFEST.local_name(product)], tool="ci-upload"
    )
    if isinstance(verified, Err):
        return Err(StageFailed(Stage.MANIFEST, verified.error))

    result = _publish(ctx, report)
    if isinstance(result, Err):
        return result
    return Ok(report)


def run_prune(ctx: PipelineContext) -> Result[RunReport, StageFailed]:
    """Delete old versions. A failed listing is fatal here."""
    report = RunReport()
    if ctx.store is None:
        report.publish_skipped = ctx.publish.reason
        ctx.console.info(f"skipping prune: {ctx.publish.reason}")
        return Ok(report)
    pruned = stages.prune(ctx, best_effort=False)
    if isinstance(pruned, Err):
        return pruned
    report.pruned = pruned.value
    report.stages.append(Stage.PRUNE)
    return Ok(report)
