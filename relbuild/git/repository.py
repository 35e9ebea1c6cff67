"""Git access for the release pipeline.

Version resolution reads the first-parent commit count and the HEAD sha1,
preflight reads branch and status, and the build config override restores
one file with `git checkout`. Every call runs `git -C <root>` through
`relbuild.platform.process` and returns a Result:

    repo = Repository(root)
    match repo.linear_count():
        case Ok(n):
            counter = n + 1000
        case Err(e):
            console.error(f"git {e.command}: {e.message}")
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from relbuild.core.result import Err, Ok, Result
from relbuild.platform.process import ProcessError
from relbuild.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_SHA1_RE = re.compile(r"^[0-9a-f]{40}$")

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    def pretty_xy(self) -> str:
        """Format XY with dots for spaces (". M" instead of " M")."""
        return self.xy.replace(" ", ".")


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed `git status --porcelain=v1 -b` output.

    Attributes:
        branch: Current branch name
        upstream: Upstream branch (e.g., "origin/master"), None if not set
        entries: All status entries (staged, unstaged, untracked)
    """

    branch: str
    upstream: str | None = None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        """True if working tree has no changes."""
        return len(self.entries) == 0

    @property
    def changed_paths(self) -> list[str]:
        return [e.path for e in self.entries]


class Repository:
    """Git repository rooted at `path`.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git checkout (.git dir or worktree file)."""
        return (self.path / ".git").exists()

    def status(self, paths: Sequence[str] = ()) -> Result[GitStatus, GitError]:
        """Get repository status, optionally limited to `paths`.

        Returns:
            Ok(GitStatus) on success
            Err(GitError) on failure
        """
        args = ["status", "--porcelain=v1", "-b"]
        if paths:
            args += ["--", *paths]
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="status",
                        message=e.stderr.strip() or "git status failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def current_branch(self) -> Result[str | None, GitError]:
        """Get current branch name; Ok(None) on a detached HEAD."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return Ok(None if branch == "HEAD" else branch)
            case Err(e):
                return Err(self._error("rev-parse --abbrev-ref HEAD", e))

    def head_sha(self) -> Result[str, GitError]:
        """Full sha1 of HEAD."""
        result = self._run(["rev-parse", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse HEAD", e))
            case Ok(stdout):
                sha = stdout.strip()
                if not _SHA1_RE.match(sha):
                    return Err(GitError(command="rev-parse HEAD", message=f"unexpected sha: {sha!r}"))
                return Ok(sha)

    def linear_count(self) -> Result[int, GitError]:
        """Number of commits on the first-parent chain of HEAD."""
        result = self._run(["rev-list", "--count", "--first-parent", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-list --count", e))
            case Ok(stdout):
                text = stdout.strip()
                if not text.isdigit():
                    return Err(
                        GitError(command="rev-list --count", message=f"unexpected count: {text!r}")
                    )
                return Ok(int(text))

    def checkout_file(self, path: str) -> Result[None, GitError]:
        """Restore `path` to its committed content."""
        result = self._run(["checkout", "--", path])
        if isinstance(result, Err):
            return Err(self._error(f"checkout -- {path}", result.error))
        return Ok(None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )

    def _error(self, command: str, e: ProcessError) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or f"git {command} failed",
            returncode=e.returncode,
        )

    def _parse_status(self, output: str) -> GitStatus:
        lines = [ln for ln in output.splitlines() if ln.strip()]
        if not lines:
            return GitStatus(branch="")

        # First line: ## branch...upstream [ahead N, behind M]
        branch, upstream = self._parse_branch_line(lines[0])

        entries: list[StatusEntry] = []
        for line in lines[1:]:
            entry = self._parse_entry(line)
            if entry:
                entries.append(entry)

        return GitStatus(branch=branch, upstream=upstream, entries=tuple(entries))

    def _parse_branch_line(self, line: str) -> tuple[str, str | None]:
        s = line.strip()
        if s.startswith("##"):
            s = s[2:].lstrip()
        s = s.split(" [", 1)[0].strip()
        if "..." in s:
            left, right = s.split("...", 1)
            return (left.strip(), right.strip())
        return (s, None)

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None
        if line.startswith("?? "):
            return StatusEntry(xy="??", path=line[3:])
        return StatusEntry(xy=line[:2], path=line[3:])
