"""End-to-end pipeline runs over fakes and an in-memory store."""

from __future__ import annotations

from pathlib import Path

from relbuild.core.errors import ErrorCode, PolicyViolation
from relbuild.core.result import Err, Ok
from relbuild.git.repository import StatusEntry
from relbuild.output.console import Style
from relbuild.output.errors import pipeline_error_exit_code
from relbuild.pipeline.errors import Stage
from relbuild.pipeline.gate import PublishDecision
from relbuild.pipeline.orchestrator import (
    run_ci_build,
    run_ci_upload,
    run_clean,
    run_pre_release,
    run_prune,
    run_smoke,
)
from relbuild.release.build_type import BuildType
from relbuild.store.memory import MemoryStore
from relbuild.test.pipeline._fakes import (
    BUILD_CONFIG,
    FakeRepository,
    FakeSelfTest,
    FakeSigner,
    FakeToolchain,
    make_harness,
)

FULL_RUN = [
    Stage.CLEAN,
    Stage.PREFLIGHT,
    Stage.COMPILE,
    Stage.TEST,
    Stage.SIGN,
    Stage.PACKAGE,
    Stage.MANIFEST,
]
PREFIX = "sumatrapdf/prerel/SumatraPDF-prerelease-"


def _seed_versions(store: MemoryStore, versions: range) -> None:
    """Put a complete published set for each version into the store."""
    for v in versions:
        for name in (
            f"{v}.exe",
            f"{v}-64.exe",
            f"{v}-install.exe",
            f"{v}-install-64.exe",
            f"{v}.pdb.zip",
            f"{v}.pdb-64.zip",
            f"{v}.pdb.lzsa",
            f"{v}.pdb-64.lzsa",
            f"{v}-manifest.txt",
        ):
            store.objects[PREFIX + name] = b"x"


class TestReleaseBuild:
    def test_without_publish(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        report = result.value
        assert report.stages == FULL_RUN
        assert report.signed
        assert not report.published
        assert report.publish_skipped == PublishDecision.denied_no_flag().reason
        assert h.toolchain.calls[0][0] == "Win32"
        assert h.toolchain.calls[1][0] == "x64"
        assert all("SVN_PRE_RELEASE_VER 200" in s for s in h.toolchain.build_config_seen)
        assert all("0123456789abcdef" in s for s in h.toolchain.build_config_seen)
        assert h.repo.checkouts == [BUILD_CONFIG]
        assert (tmp_path / "artifacts" / "manifest.txt").exists()
        assert (tmp_path / "artifacts" / "64" / "SumatraPDF.pdb.lzsa").exists()
        assert h.console.find("skipping upload")

    def test_publishes_new_version(self, tmp_path: Path) -> None:
        store = MemoryStore()
        h = make_harness(tmp_path, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        report = result.value
        assert report.stages == [*FULL_RUN, Stage.PUBLISH, Stage.PRUNE]
        assert report.published
        assert len(report.uploaded) == 12
        assert report.uploaded[8] == PREFIX + "200-manifest.txt"
        assert sorted(store.objects) == sorted(report.uploaded)
        manifest = store.objects[PREFIX + "200-manifest.txt"].decode()
        assert manifest == (tmp_path / "artifacts" / "manifest.txt").read_text(encoding="utf-8")

    def test_rerun_same_version_uploads_nothing(self, tmp_path: Path) -> None:
        store = MemoryStore()
        assert isinstance(run_pre_release(make_harness(tmp_path, store=store).ctx), Ok)
        store.uploaded.clear()

        h = make_harness(tmp_path, store=store)
        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        assert not result.value.published
        assert result.value.publish_skipped == "version 200 is already published"
        assert store.uploaded == []

    def test_dirty_tree_stops_before_compile(self, tmp_path: Path) -> None:
        repo = FakeRepository(tmp_path, dirty=(StatusEntry("M ", "src/Version.h"),))
        store = MemoryStore()
        h = make_harness(tmp_path, repo=repo, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PREFLIGHT
        assert isinstance(result.error.cause, PolicyViolation)
        assert pipeline_error_exit_code(result.error) == ErrorCode.USER_ERROR
        assert h.toolchain.calls == []
        assert store.uploaded == []
        assert h.repo.checkouts == []

    def test_compile_failure_restores_header(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, toolchain=FakeToolchain(tmp_path, fail_platform="x64"))

        result = run_pre_release(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.COMPILE
        assert pipeline_error_exit_code(result.error) == 3
        assert h.repo.checkouts == [BUILD_CONFIG]
        assert not (tmp_path / "artifacts").exists()

    def test_unwritable_build_config_fails_compile(self, tmp_path: Path) -> None:
        (tmp_path / BUILD_CONFIG).mkdir(parents=True)
        store = MemoryStore()
        h = make_harness(tmp_path, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.COMPILE
        assert pipeline_error_exit_code(result.error) == ErrorCode.BUILD_ERROR
        assert h.toolchain.calls == []
        assert h.repo.checkouts == []
        assert store.uploaded == []

    def test_self_test_failure(self, tmp_path: Path) -> None:
        store = MemoryStore()
        h = make_harness(tmp_path, store=store, self_test=FakeSelfTest(fail=True))

        result = run_pre_release(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.TEST
        assert h.signer.signed == []
        assert store.uploaded == []

    def test_unsigned_when_signer_unavailable(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, signer=FakeSigner(is_available=False))

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        assert not result.value.signed
        assert Stage.SIGN not in result.value.stages
        assert h.console.find("this build is unsigned")

    def test_upload_failure_leaves_version_unpublished(self, tmp_path: Path) -> None:
        store = MemoryStore(fail_uploads={PREFIX + "200.pdb-64.lzsa"})
        h = make_harness(tmp_path, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PUBLISH
        assert pipeline_error_exit_code(result.error) == ErrorCode.NETWORK_ERROR
        assert PREFIX + "200-manifest.txt" not in store.objects

    def test_prunes_old_versions(self, tmp_path: Path) -> None:
        store = MemoryStore()
        _seed_versions(store, range(185, 200))
        h = make_harness(tmp_path, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        pruned = result.value.pruned
        assert pruned is not None
        # 16 versions, 10 kept: 185..190 lose their 8 artifacts each.
        assert len(pruned.deleted) == 6 * 8
        assert pruned.failed == []
        for v in range(185, 191):
            assert PREFIX + f"{v}.exe" not in store.objects
            assert PREFIX + f"{v}-manifest.txt" in store.objects
        assert PREFIX + "191.exe" in store.objects

    def test_post_publish_listing_failure_only_warns(self, tmp_path: Path) -> None:
        store = MemoryStore(max_keys=20)
        h = make_harness(tmp_path, store=store)
        _seed_versions(store, range(190, 192))

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.published
        assert result.value.pruned is None
        assert h.console.find("skipping prune")

    def test_failed_deletes_are_reported(self, tmp_path: Path) -> None:
        store = MemoryStore(fail_deletes={PREFIX + "185.exe"})
        _seed_versions(store, range(185, 200))
        h = make_harness(tmp_path, store=store)

        result = run_pre_release(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.pruned is not None
        assert result.value.pruned.failed == [PREFIX + "185.exe"]
        assert h.console.count(Style.WARNING) == 1


class TestCiBuild:
    def test_daily_names(self, tmp_path: Path) -> None:
        store = MemoryStore()
        h = make_harness(tmp_path, store=store, build_type=BuildType.DAILY)

        result = run_ci_build(h.ctx)

        assert isinstance(result, Ok)
        assert "sumatrapdf/daily/SumatraPDF-daily-200-manifest.txt" in store.objects
        assert "sumatrapdf/sumadaily.js" in store.objects

    def test_upload_after_build(self, tmp_path: Path) -> None:
        build = make_harness(tmp_path, build_type=BuildType.DAILY)
        assert isinstance(run_ci_build(build.ctx), Ok)

        store = MemoryStore()
        h = make_harness(tmp_path, store=store, build_type=BuildType.DAILY)
        result = run_ci_upload(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.published
        assert len(store.uploaded) == 12
        assert h.toolchain.calls == []

    def test_upload_without_build(self, tmp_path: Path) -> None:
        store = MemoryStore()
        h = make_harness(tmp_path, store=store, build_type=BuildType.DAILY)

        result = run_ci_upload(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.MANIFEST
        assert store.uploaded == []

    def test_upload_not_allowed(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path, build_type=BuildType.DAILY)

        result = run_ci_upload(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.publish_skipped is not None
        assert result.value.stages == []


class TestSmoke:
    def test_x64_only(self, tmp_path: Path) -> None:
        h = make_harness(tmp_path)

        result = run_smoke(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.stages == [Stage.CLEAN, Stage.COMPILE, Stage.TEST, Stage.PACKAGE]
        assert h.toolchain.calls == [("x64", ("SumatraPDF-dll", "test_util"))]
        assert h.self_test.dirs == [tmp_path / "out" / "rel64"]
        out = tmp_path / "out" / "rel64"
        assert (out / "SumatraPDF.pdb.lzsa").exists()
        assert not (out / "SumatraPDF.pdb.zip").exists()
        assert h.signer.signed == []
        assert h.repo.checkouts == []


def test_clean(tmp_path: Path) -> None:
    (tmp_path / "out" / "rel64").mkdir(parents=True)

    result = run_clean(make_harness(tmp_path).ctx)

    assert isinstance(result, Ok)
    assert result.value.stages == [Stage.CLEAN]
    assert not (tmp_path / "out").exists()


class TestPrune:
    def test_prunes(self, tmp_path: Path) -> None:
        store = MemoryStore()
        _seed_versions(store, range(100, 112))
        h = make_harness(tmp_path, store=store)

        result = run_prune(h.ctx)

        assert isinstance(result, Ok)
        assert result.value.pruned is not None
        assert len(result.value.pruned.deleted) == 16
        assert store.uploaded == []

    def test_truncated_listing_is_fatal(self, tmp_path: Path) -> None:
        store = MemoryStore(max_keys=5)
        _seed_versions(store, range(100, 102))
        h = make_harness(tmp_path, store=store)

        result = run_prune(h.ctx)

        assert isinstance(result, Err)
        assert result.error.stage == Stage.PRUNE
        assert pipeline_error_exit_code(result.error) == ErrorCode.NETWORK_ERROR
        assert store.deleted == []

    def test_no_store(self, tmp_path: Path) -> None:
        result = run_prune(make_harness(tmp_path).ctx)

        assert isinstance(result, Ok)
        assert result.value.pruned is None
