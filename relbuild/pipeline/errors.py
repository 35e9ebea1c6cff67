"""Stage identifiers and the stage-level failure wrapper."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from relbuild.core.errors import PipelineError


class Stage(StrEnum):
    """Pipeline stages, in execution order."""

    CLEAN = "clean"
    PREFLIGHT = "preflight"
    COMPILE = "compile"
    TEST = "test"
    SIGN = "sign"
    PACKAGE = "package"
    MANIFEST = "manifest"
    PUBLISH = "publish"
    PRUNE = "prune"


@dataclass(frozen=True, slots=True)
class StageFailed:
    """A stage aborted the run.

    Attributes:
        stage: The stage that failed.
        cause: The underlying error.
    """

    stage: Stage
    cause: PipelineError

    @property
    def message(self) -> str:
        return f"[{self.stage}] {self.cause.message}"

    @property
    def hint(self) -> str | None:
        return self.cause.hint
