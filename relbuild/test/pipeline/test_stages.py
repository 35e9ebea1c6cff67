"""Tests for individual pipeline stages."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from relbuild.core.errors import PolicyViolation, ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.git.repository import StatusEntry
from relbuild.pipeline import stages
from relbuild.pipeline.errors import Stage
from relbuild.release.names import BuildVariant
from relbuild.store.memory import MemoryStore
from relbuild.test.pipeline._fakes import (
    FakeRepository,
    FakeSigner,
    FakeToolchain,
    FakeTranslations,
    Harness,
    make_harness,
)

ALL_TARGETS = ("SumatraPDF", "SumatraPDF-dll", "PdfFilter", "PdfPreview", "test_util")


class SilentToolchain(FakeToolchain):
    """Reports success without producing anything."""

    def compile(
        self,
        *,
        solution: str,
        targets: Sequence[str],
        configuration: str,
        platform: str,
    ) -> Result[None, ToolError]:
        self.calls.append((platform, tuple(targets)))
        return Ok(None)


class TestExpectedOutputs:
    def test_full(self) -> None:
        assert stages.expected_outputs(ALL_TARGETS, "SumatraPDF") == [
            "SumatraPDF.exe",
            "SumatraPDF-dll.exe",
            "libmupdf.dll",
            "PdfFilter.dll",
            "PdfPreview.dll",
            "test_util.exe",
        ]

    def test_smoke(self) -> None:
        assert stages.expected_outputs(("SumatraPDF-dll", "test_util"), "SumatraPDF") == [
            "SumatraPDF-dll.exe",
            "libmupdf.dll",
            "test_util.exe",
        ]

    def test_unknown_target(self) -> None:
        assert stages.expected_outputs(("premake",), "SumatraPDF") == []


def test_verify_outputs(tmp_path: Path) -> None:
    (tmp_path / "a.exe").write_bytes(b"")

    assert stages.verify_outputs(tmp_path, ["a.exe"], tool="msbuild") == Ok(None)

    result = stages.verify_outputs(tmp_path, ["a.exe", "b.dll", "c.dll"], tool="msbuild")
    assert isinstance(result, Err)
    assert result.error.message.endswith("b.dll, c.dll")


class TestClean:
    def test_removes_out_and_artifacts(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)
        (tmp_path / "out" / "rel32").mkdir(parents=True)
        (tmp_path / "artifacts" / "64").mkdir(parents=True)

        assert stages.clean(h.ctx) == Ok(None)
        assert not (tmp_path / "out").exists()
        assert not (tmp_path / "artifacts").exists()

    def test_nothing_to_clean(self, tmp_path: Path) -> None:
        assert stages.clean(make_harness(tmp_path).ctx) == Ok(None)


class TestPreflight:
    def test_passes(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)
        assert stages.preflight(h.ctx) == Ok(None)
        assert h.translations.calls == 1

    def test_dirty_tree(self, tmp_path: Path) -> None:
        repo = FakeRepository(tmp_path, dirty=(StatusEntry(" M", "src/Version.h"),))
        h = make_harness(tmp_path, repo=repo)

        result = stages.preflight(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PREFLIGHT
        assert isinstance(result.error.cause, PolicyViolation)
        assert result.error.cause.check == "clean_tree"
        assert h.console.find(".M src/Version.h")
        assert h.translations.calls == 0

    def test_allow_dirty(self, tmp_path: Path) -> None:
        repo = FakeRepository(tmp_path, dirty=(StatusEntry("??", "scratch.txt"),))
        h = make_harness(tmp_path, repo=repo, allow_dirty=True)

        assert stages.preflight(h.ctx) == Ok(None)
        assert h.console.has_warning()

    def test_wrong_branch(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, repo=FakeRepository(tmp_path, branch="feature"))

        result = stages.preflight(h.ctx)

        assert isinstance(result, Err)
        assert isinstance(result.error.cause, PolicyViolation)
        assert result.error.cause.check == "branch"
        assert "feature" in result.error.cause.message

    def test_detached_head(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, repo=FakeRepository(tmp_path, branch=None))

        result = stages.preflight(h.ctx)

        assert isinstance(result, Err)
        assert "detached HEAD" in result.error.message

    def test_stale_translations(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, translations=FakeTranslations(stale=True))

        result = stages.preflight(h.ctx)

        assert isinstance(result, Err)
        assert isinstance(result.error.cause, PolicyViolation)
        assert result.error.cause.check == "translations"


class TestCompile:
    def test_verifies_outputs(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)

        assert stages.compile_variant(h.ctx, BuildVariant.X64, ALL_TARGETS) == Ok(None)
        assert h.toolchain.calls == [("x64", ALL_TARGETS)]

    def test_missing_output(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, toolchain=SilentToolchain(tmp_path))

        result = stages.compile_variant(h.ctx, BuildVariant.WIN32, ("SumatraPDF", "PdfFilter"))

        assert isinstance(result, Err)
        assert result.error.stage == Stage.COMPILE
        assert result.error.cause == ToolError(
            "msbuild",
            f"missing build output in {tmp_path / 'out' / 'rel32'}: SumatraPDF.exe, PdfFilter.dll",
        )

    def test_toolchain_failure(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, toolchain=FakeToolchain(tmp_path, fail_platform="Win32"))

        result = stages.compile_variant(h.ctx, BuildVariant.WIN32, ALL_TARGETS)

        assert isinstance(result, Err)
        assert result.error.cause.returncode == 1


class TestSign:
    def test_signs_five_files(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)

        assert stages.sign_variant(h.ctx, BuildVariant.X64) == Ok(None)
        assert [p.name for p in h.signer.signed] == [
            "SumatraPDF.exe",
            "libmupdf.dll",
            "PdfFilter.dll",
            "PdfPreview.dll",
            "SumatraPDF-dll.exe",
        ]
        assert all(p.parent == tmp_path / "out" / "rel64" for p in h.signer.signed)

    def test_failure(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, signer=FakeSigner(fail_on="PdfFilter.dll"))

        result = stages.sign_variant(h.ctx, BuildVariant.WIN32)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.SIGN


class TestPackage:
    def test_creates_both_archives(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)
        stages.compile_variant(h.ctx, BuildVariant.X64, ALL_TARGETS)

        assert stages.package_variant(h.ctx, BuildVariant.X64) == Ok(None)

        out = tmp_path / "out" / "rel64"
        assert (out / "SumatraPDF.pdb.zip").exists()
        assert (out / "SumatraPDF.pdb.lzsa").exists()

    def test_missing_pdb(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)
        (tmp_path / "out" / "rel64").mkdir(parents=True)

        result = stages.package_variant(h.ctx, BuildVariant.X64)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PACKAGE


class TestPublishStages:
    def test_prune_best_effort_listing_failure(self, tmp_path: Path) -> None:
        store = MemoryStore(objects={f"sumatrapdf/prerel/x{i}": b"" for i in range(3)}, max_keys=2)
        h = make_harness(tmp_path, store=store)

        assert stages.prune(h.ctx, best_effort=True) == Ok(None)
        assert h.console.has_warning()

    def test_prune_strict_listing_failure(self, tmp_path: Path) -> None:
        store = MemoryStore(objects={f"sumatrapdf/prerel/x{i}": b"" for i in range(3)}, max_keys=2)
        h = make_harness(tmp_path, store=store)

        result = stages.prune(h.ctx, best_effort=False)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PRUNE

    def test_check_published(self, tmp_path: Path) -> None:
        store = MemoryStore(
            objects={"sumatrapdf/prerel/SumatraPDF-prerelease-200-manifest.txt": b""}
        )
        assert stages.check_published(make_harness(tmp_path, store=store).ctx) == Ok(True)
        assert stages.check_published(
            make_harness(tmp_path, store=store, version=201).ctx
        ) == Ok(False)


def _built(tmp_path: Path, store: MemoryStore | None = None) -> Harness:
    """Harness whose two variants have been compiled and packaged."""
    h = make_harness(tmp_path, store=store)
    for variant in (BuildVariant.WIN32, BuildVariant.X64):
        assert stages.compile_variant(h.ctx, variant, ALL_TARGETS) == Ok(None)
        assert stages.package_variant(h.ctx, variant) == Ok(None)
    return h


def test_copy_artifacts(tmp_path: Path) -> None:
    h = _built(tmp_path)

    assert stages.copy_artifacts(h.ctx) == Ok(None)

    for sub in ("32", "64"):
        copied = sorted(p.name for p in (tmp_path / "artifacts" / sub).iterdir())
        assert copied == [
            "SumatraPDF-dll.exe",
            "SumatraPDF.exe",
            "SumatraPDF.pdb.lzsa",
            "SumatraPDF.pdb.zip",
        ]


def test_write_manifest(tmp_path: Path) -> None:
    h = _built(tmp_path)

    result = stages.write_manifest(h.ctx)

    assert result == Ok(tmp_path / "artifacts" / "manifest.txt")
    lines = (tmp_path / "artifacts" / "manifest.txt").read_text(encoding="utf-8").split("\n")
    assert len(lines) == 14
    assert lines[0] == f"out/rel32/SumatraPDF.exe: {len(b'SumatraPDF.exe') * 10}"
    assert lines[7].startswith("out/rel64/SumatraPDF.exe: ")


def test_write_manifest_missing_file(tmp_path: Path) -> None:
    h = _built(tmp_path)
    (tmp_path / "out" / "rel64" / "PdfPreview.dll").unlink()

    result = stages.write_manifest(h.ctx)

    assert isinstance(result, Err)
    assert result.error.stage == Stage.MANIFEST
    assert not (tmp_path / "artifacts" / "manifest.txt").exists()


def test_publish_order(tmp_path: Path) -> None:
    store = MemoryStore()
    h = _built(tmp_path, store=store)
    assert stages.write_manifest(h.ctx) == Ok(tmp_path / "artifacts" / "manifest.txt")

    result = stages.publish(h.ctx)

    p = "sumatrapdf/prerel/SumatraPDF-prerelease-200"
    assert result == Ok(
        [
            f"{p}.exe",
            f"{p}-install.exe",
            f"{p}.pdb.zip",
            f"{p}.pdb.lzsa",
            f"{p}-64.exe",
            f"{p}-install-64.exe",
            f"{p}.pdb-64.zip",
            f"{p}.pdb-64.lzsa",
            f"{p}-manifest.txt",
            "sumatrapdf/sumatralatest.js",
            "sumatrapdf/sumpdf-prerelease-latest.txt",
            "sumatrapdf/sumpdf-prerelease-update.txt",
        ]
    )
    assert store.uploaded == result.value
    assert store.objects["sumatrapdf/sumpdf-prerelease-latest.txt"] == b"200"


def test_publish_stops_at_first_failure(tmp_path: Path) -> None:
    store = MemoryStore(fail_uploads={"sumatrapdf/prerel/SumatraPDF-prerelease-200-64.exe"})
    h = _built(tmp_path, store=store)
    stages.write_manifest(h.ctx)

    result = stages.publish(h.ctx)

    assert isinstance(result, Err)
    assert result.error.stage == Stage.PUBLISH
    assert len(store.uploaded) == 4
    assert not any("manifest" in k for k in store.objects)
