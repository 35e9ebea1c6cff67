"""Pipeline stages.

Each stage takes the run's PipelineContext and returns Ok or
Err(StageFailed). Stages never retry; the orchestrator stops at the first
Err.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from relbuild.core.errors import PipelineError, PolicyViolation, ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import Style
from relbuild.pipeline.context import VARIANTS, PipelineContext
from relbuild.pipeline.errors import Stage, StageFailed
from relbuild.platform.files import atomic_write_text, copy_file, remove_tree
from relbuild.release.manifest import manifest_files, render_manifest
from relbuild.release.names import PUBLISHED_KINDS, ArtifactKind, BuildVariant
from relbuild.release.registry import (
    PruneReport,
    apply_deletes,
    is_version_published,
    prune_old_versions,
    scan_remote,
)
from relbuild.release.update_info import update_files

__all__ = [
    "check_published",
    "clean",
    "compile_variant",
    "copy_artifacts",
    "expected_outputs",
    "package_variant",
    "preflight",
    "prune",
    "publish",
    "sign_variant",
    "self_test_variant",
    "verify_outputs",
    "write_manifest",
]

# Build target -> files it must leave in the variant output directory.
# {p} is the product name.
_TARGET_OUTPUTS: dict[str, tuple[str, ...]] = {
    "{p}": ("{p}.exe",),
    "{p}-dll": ("{p}-dll.exe", "libmupdf.dll"),
    "PdfFilter": ("PdfFilter.dll",),
    "PdfPreview": ("PdfPreview.dll",),
    "test_util": ("test_util.exe",),
}

_SIGNED_FILES = ("{p}.exe", "libmupdf.dll", "PdfFilter.dll", "PdfPreview.dll", "{p}-dll.exe")
SMOKE_PDB_FILES = ("libmupdf.pdb", "{p}.pdb", "{p}-dll.pdb")
PDB_FILES = ("libmupdf.pdb", "Installer.pdb", "{p}-dll.pdb", "{p}.pdb")


def _fail(stage: Stage, error: PipelineError) -> Err[StageFailed]:
    return Err(StageFailed(stage=stage, cause=error))


def _names(templates: Sequence[str], product: str) -> list[str]:
    return [t.format(p=product) for t in templates]


def expected_outputs(targets: Sequence[str], product: str) -> list[str]:
    """Files the given build targets produce. Unknown targets add nothing."""
    out: list[str] = []
    for template, files in _TARGET_OUTPUTS.items():
        if template.format(p=product) in targets:
            out += _names(files, product)
    return out


def verify_outputs(directory: Path, names: Sequence[str], *, tool: str) -> Result[None, ToolError]:
    missing = [n for n in names if not (directory / n).is_file()]
    if missing:
        return Err(
            ToolError(
                tool,
                f"missing build output in {directory}: {', '.join(missing)}",
            )
        )
    return Ok(None)


def clean(ctx: PipelineContext) -> Result[None, StageFailed]:
    """Remove build output and CI artifacts. Nothing to remove is fine."""
    for d in (ctx.out_dir, ctx.artifacts_dir):
        try:
            if remove_tree(d):
                ctx.console.print(f"removed {d}", Style.DIM)
        except OSError as e:
            return _fail(Stage.CLEAN, ToolError("clean", f"cannot remove {d}: {e}"))
    return Ok(None)


def preflight(ctx: PipelineContext) -> Result[None, StageFailed]:
    """Cheap local checks that gate the expensive build."""
    if ctx.allow_dirty:
        ctx.console.warning("skipping clean tree check")
    else:
        status = ctx.repo.status()
        if isinstance(status, Err):
            return _fail(Stage.PREFLIGHT, PolicyViolation("clean_tree", status.error.message))
        if not status.value.is_clean:
            entries = status.value.entries
            for e in entries:
                ctx.console.print(f"  {e.pretty_xy()} {e.path}", Style.DIM)
            return _fail(
                Stage.PREFLIGHT,
                PolicyViolation(
                    "clean_tree",
                    f"working tree has {len(entries)} uncommitted changes",
                    hint="commit or stash them, or pass --allow-dirty",
                ),
            )

    expected = ctx.config.ci.release_branch
    branch = ctx.repo.current_branch()
    if isinstance(branch, Err):
        return _fail(Stage.PREFLIGHT, PolicyViolation("branch", branch.error.message))
    if branch.value != expected:
        return _fail(
            Stage.PREFLIGHT,
            PolicyViolation(
                "branch",
                f"must be on {expected} branch, not {branch.value or 'detached HEAD'}",
            ),
        )

    result = ctx.tools.translations.check()
    if isinstance(result, Err):
        return _fail(Stage.PREFLIGHT, result.error)
    return Ok(None)


def compile_variant(
    ctx: PipelineContext,
    variant: BuildVariant,
    targets: Sequence[str],
) -> Result[None, StageFailed]:
    build = ctx.config.build
    result = ctx.tools.toolchain.compile(
        solution=build.solution,
        targets=targets,
        configuration=build.configuration,
        platform=variant.platform,
    )
    if isinstance(result, Err):
        return _fail(Stage.COMPILE, result.error)

    expected = expected_outputs(targets, ctx.config.product.name)
    verified = verify_outputs(ctx.variant_dir(variant), expected, tool="msbuild")
    if isinstance(verified, Err):
        return _fail(Stage.COMPILE, verified.error)
    return Ok(None)


def self_test_variant(ctx: PipelineContext, variant: BuildVariant) -> Result[None, StageFailed]:
    result = ctx.tools.self_test.run(ctx.variant_dir(variant))
    if isinstance(result, Err):
        return _fail(Stage.TEST, result.error)
    return Ok(None)


def sign_variant(ctx: PipelineContext, variant: BuildVariant) -> Result[None, StageFailed]:
    """Sign the variant's binaries. Callers check signer availability first."""
    d = ctx.variant_dir(variant)
    for name in _names(_SIGNED_FILES, ctx.config.product.name):
        result = ctx.tools.signer.sign(d / name)
        if isinstance(result, Err):
            return _fail(Stage.SIGN, result.error)
    return Ok(None)


def package_variant(
    ctx: PipelineContext,
    variant: BuildVariant,
    *,
    pdb_files: Sequence[str] = PDB_FILES,
    with_zip: bool = True,
) -> Result[None, StageFailed]:
    """Create the debug symbol archives of one variant."""
    product = ctx.config.product.name
    d = ctx.variant_dir(variant)
    names = _names(pdb_files, product)
    pairs = [(n, n) for n in names]

    verified = verify_outputs(d, names, tool="package")
    if isinstance(verified, Err):
        return _fail(Stage.PACKAGE, verified.error)

    if with_zip:
        zipped = ctx.tools.zip.compress(d, pairs, ArtifactKind.PDB_ZIP.local_name(product))
        if isinstance(zipped, Err):
            return _fail(Stage.PACKAGE, zipped.error)

    lzsa = ctx.tools.lzsa.compress(d, pairs, ArtifactKind.PDB_LZSA.local_name(product))
    if isinstance(lzsa, Err):
        return _fail(Stage.PACKAGE, lzsa.error)
    return Ok(None)


def copy_artifacts(ctx: PipelineContext) -> Result[None, StageFailed]:
    """Copy the published files to artifacts/<32|64>/ for the CI runner."""
    product = ctx.config.product.name
    for variant in VARIANTS:
        src_dir = ctx.variant_dir(variant)
        dst_dir = ctx.artifacts_dir / variant.artifacts_subdir
        for kind in PUBLISHED_KINDS:
            name = kind.local_name(product)
            try:
                copy_file(src_dir / name, dst_dir / name)
            except OSError as e:
                return _fail(Stage.PACKAGE, ToolError("copy", f"cannot copy {name}: {e}"))
    return Ok(None)


def write_manifest(ctx: PipelineContext) -> Result[Path, StageFailed]:
    rendered = render_manifest(
        ctx.root,
        [ctx.variant_dir(v) for v in VARIANTS],
        manifest_files(ctx.config.product.name),
    )
    if isinstance(rendered, Err):
        return _fail(Stage.MANIFEST, rendered.error)
    try:
        atomic_write_text(ctx.manifest_path, rendered.value)
    except OSError as e:
        return _fail(Stage.MANIFEST, ToolError("manifest", f"cannot write manifest: {e}"))
    ctx.console.print(f"wrote {ctx.manifest_path}", Style.DIM)
    return Ok(ctx.manifest_path)


def check_published(ctx: PipelineContext) -> Result[bool, StageFailed]:
    """True if this run's version already has a manifest in the store."""
    assert ctx.store is not None
    result = is_version_published(
        ctx.store,
        prefix=ctx.remote_prefix,
        codec=ctx.codec,
        version=ctx.require_versions().pre_release_counter,
    )
    if isinstance(result, Err):
        return _fail(Stage.MANIFEST, result.error)
    return Ok(result.value)


def publish(ctx: PipelineContext) -> Result[list[str], StageFailed]:
    """Upload the artifact set, then the manifest, then the update info.

    Returns uploaded keys in upload order.
    """
    assert ctx.store is not None
    store = ctx.store
    versions = ctx.require_versions()
    codec = ctx.codec
    product = ctx.config.product.name
    uploaded: list[str] = []

    uploads: list[tuple[Path, str]] = []
    for variant in VARIANTS:
        for kind in PUBLISHED_KINDS:
            local = ctx.variant_dir(variant) / kind.local_name(product)
            key = ctx.remote_prefix + codec.encode(kind, versions.pre_release_counter, variant)
            uploads.append((local, key))
    # Manifest last: its presence marks the version as complete.
    uploads.append(
        (
            ctx.manifest_path,
            ctx.remote_prefix + codec.encode(ArtifactKind.MANIFEST, versions.pre_release_counter),
        )
    )

    for local, key in uploads:
        ctx.console.print(f"upload {local.relative_to(ctx.root).as_posix()} -> {key}", Style.DIM)
        result = store.upload(local, key)
        if isinstance(result, Err):
            return _fail(Stage.PUBLISH, result.error)
        uploaded.append(key)

    for f in update_files(
        build_type=ctx.build_type,
        codec=codec,
        bucket=ctx.config.store.bucket,
        remote_root=ctx.config.store.remote_root,
        version=versions.counter_str,
        built_on=ctx.today,
    ):
        ctx.console.print(f"upload {f.key}", Style.DIM)
        result = store.upload_string(f.key, f.content)
        if isinstance(result, Err):
            return _fail(Stage.PUBLISH, result.error)
        uploaded.append(f.key)

    return Ok(uploaded)


def prune(ctx: PipelineContext, *, best_effort: bool) -> Result[PruneReport | None, StageFailed]:
    """Delete versions beyond the retention limit.

    With best_effort, a failed listing is only a warning (used right after a
    publish, which already succeeded). Individual delete failures are always
    warnings.
    """
    assert ctx.store is not None
    listing = scan_remote(ctx.store, prefix=ctx.remote_prefix, codec=ctx.codec, console=ctx.console)
    if isinstance(listing, Err):
        if best_effort:
            ctx.console.warning(f"skipping prune: {listing.error.message}")
            return Ok(None)
        return _fail(Stage.PRUNE, listing.error)

    ops = prune_old_versions(listing.value.groups, ctx.config.store.retain)
    if not ops:
        ctx.console.print("nothing to prune", Style.DIM)
        return Ok(PruneReport())
    return Ok(apply_deletes(ctx.store, ops, ctx.console))
