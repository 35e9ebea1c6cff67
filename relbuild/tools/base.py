"""Interfaces of the external tools the pipeline drives.

Each tool is one fallible operation returning a Result, so the orchestrator
can be exercised with fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from relbuild.core.errors import PolicyViolation, ToolError
from relbuild.core.result import Result

__all__ = [
    "Compressor",
    "SelfTestRunner",
    "Signer",
    "Toolchain",
    "TranslationChecker",
]


class Toolchain(Protocol):
    def compile(
        self,
        *,
        solution: str,
        targets: Sequence[str],
        configuration: str,
        platform: str,
    ) -> Result[None, ToolError]: ...


class SelfTestRunner(Protocol):
    def run(self, directory: Path) -> Result[None, ToolError]: ...


class Signer(Protocol):
    def available(self) -> bool:
        """False when the signing tool or credential is missing."""
        ...

    def sign(self, path: Path) -> Result[None, ToolError]:
        """Sign `path` in place."""
        ...


class Compressor(Protocol):
    def compress(
        self,
        directory: Path,
        pairs: Sequence[tuple[str, str]],
        out_name: str,
    ) -> Result[Path, ToolError]:
        """Archive files of `directory` as (local name, name in archive) pairs.

        The archive is written to `directory / out_name`.
        """
        ...


class TranslationChecker(Protocol):
    def check(self) -> Result[None, PolicyViolation]: ...
