"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

import pytest

import relbuild.git.repository as repository
from relbuild.core.result import Err, Ok, Result
from relbuild.git.repository import GitStatus, Repository, StatusEntry
from relbuild.platform.process import ProcessError

SHA = "0123456789abcdef0123456789abcdef01234567"


class FakeGit:
    """Replaces run_process; answers by git subcommand."""

    def __init__(self, replies: dict[str, Result[str, ProcessError]]) -> None:
        self.replies = replies
        self.calls: list[list[str]] = []

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        self.calls.append(cmd)
        # cmd = ["git", "-C", <path>, <subcommand>, ...]
        return self.replies[cmd[3]]


def _install(monkeypatch: pytest.MonkeyPatch, **replies: Result[str, ProcessError]) -> FakeGit:
    fake = FakeGit(dict(replies))
    monkeypatch.setattr(repository, "run_process", fake)
    return fake


def _failed(stderr: str, code: int = 128) -> Err[ProcessError]:
    return Err(ProcessError(("git",), code, "", stderr))


# =============================================================================
# StatusEntry / GitStatus
# =============================================================================


class TestStatusEntry:
    def test_pretty_xy(self) -> None:
        assert StatusEntry(xy="M ", path="f").pretty_xy() == "M."
        assert StatusEntry(xy=" M", path="f").pretty_xy() == ".M"
        assert StatusEntry(xy="??", path="f").pretty_xy() == "??"


class TestGitStatus:
    def test_clean(self) -> None:
        assert GitStatus(branch="master").is_clean is True

    def test_dirty(self) -> None:
        status = GitStatus(
            branch="master",
            entries=(StatusEntry(" M", "src/Version.h"), StatusEntry("??", "tmp.txt")),
        )
        assert status.is_clean is False
        assert status.changed_paths == ["src/Version.h", "tmp.txt"]


# =============================================================================
# Repository
# =============================================================================


class TestRepositoryStatus:
    def test_parses_branch_and_entries(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        out = "## master...origin/master [ahead 1]\n M src/Version.h\n?? scratch.txt\n"
        _install(monkeypatch, status=Ok(out))

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        st = result.value
        assert st.branch == "master"
        assert st.upstream == "origin/master"
        assert [e.path for e in st.entries] == ["src/Version.h", "scratch.txt"]
        assert st.entries[1].xy == "??"

    def test_clean_tree(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, status=Ok("## master\n"))

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.is_clean
        assert result.value.upstream is None

    def test_limited_to_paths(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = _install(monkeypatch, status=Ok("## master\n"))

        Repository(tmp_path).status(["translations"])

        assert fake.calls[0][-2:] == ["--", "translations"]

    def test_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, status=_failed("fatal: not a git repository"))

        result = Repository(tmp_path).status()

        assert isinstance(result, Err)
        assert result.error.message == "fatal: not a git repository"
        assert result.error.returncode == 128


class TestRepositoryQueries:
    def test_current_branch(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, **{"rev-parse": Ok("master\n")})
        assert Repository(tmp_path).current_branch() == Ok("master")

    def test_detached_head(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, **{"rev-parse": Ok("HEAD\n")})
        assert Repository(tmp_path).current_branch() == Ok(None)

    def test_head_sha(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, **{"rev-parse": Ok(SHA + "\n")})
        assert Repository(tmp_path).head_sha() == Ok(SHA)

    def test_head_sha_rejects_garbage(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, **{"rev-parse": Ok("not-a-sha\n")})
        result = Repository(tmp_path).head_sha()
        assert isinstance(result, Err)
        assert "unexpected sha" in result.error.message

    def test_linear_count(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = _install(monkeypatch, **{"rev-list": Ok("9169\n")})

        assert Repository(tmp_path).linear_count() == Ok(9169)
        assert fake.calls[0][3:] == ["rev-list", "--count", "--first-parent", "HEAD"]

    def test_linear_count_not_a_number(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _install(monkeypatch, **{"rev-list": Ok("")})
        assert isinstance(Repository(tmp_path).linear_count(), Err)

    def test_checkout_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = _install(monkeypatch, checkout=Ok(""))

        assert Repository(tmp_path).checkout_file("src/utils/BuildConfig.h") == Ok(None)
        assert fake.calls[0][3:] == ["checkout", "--", "src/utils/BuildConfig.h"]

    def test_checkout_file_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, checkout=_failed("error: pathspec"))

        result = Repository(tmp_path).checkout_file("nope.h")

        assert isinstance(result, Err)
        assert "pathspec" in result.error.message


def test_exists(tmp_path: Path) -> None:
    assert Repository(tmp_path).exists() is False
    (tmp_path / ".git").mkdir()
    assert Repository(tmp_path).exists() is True
