"""Check that generated translation sources match the translation strings.

The configured command regenerates the sources; if that changes any of the
watched paths, the committed sources were stale.
"""

from __future__ import annotations

from pathlib import Path

from relbuild.core.errors import PolicyViolation
from relbuild.core.result import Err, Ok, Result
from relbuild.git.repository import Repository
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.process import format_command, run_silent

__all__ = ["CommandTranslationChecker"]


class CommandTranslationChecker:
    def __init__(
        self,
        *,
        repo: Repository,
        command: tuple[str, ...],
        paths: tuple[str, ...],
        console: ConsoleProtocol,
    ) -> None:
        self._repo = repo
        self._command = command
        self._paths = paths
        self._console = console

    def check(self) -> Result[None, PolicyViolation]:
        if not self._command:
            self._console.warning("translations check not configured; skipping")
            return Ok(None)

        cmd = list(self._command)
        self._console.print(format_command(cmd), Style.DIM)
        result = run_silent(cmd, cwd=Path(self._repo.path))
        if isinstance(result, Err):
            return Err(
                PolicyViolation(
                    "translations",
                    f"translation regeneration failed (exit {result.error.returncode})",
                )
            )

        status = self._repo.status(self._paths)
        if isinstance(status, Err):
            return Err(PolicyViolation("translations", status.error.message))
        if not status.value.is_clean:
            changed = ", ".join(status.value.changed_paths)
            return Err(
                PolicyViolation(
                    "translations",
                    f"translations are out of date: {changed}",
                    hint="commit the regenerated translation files",
                )
            )
        return Ok(None)
