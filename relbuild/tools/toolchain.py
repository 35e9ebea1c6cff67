"""msbuild toolchain and the produced self-test executable."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path

from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.process import format_command, run_silent

__all__ = ["MsbuildToolchain", "ProcessSelfTestRunner", "SELF_TEST_EXE", "locate_msbuild"]

SELF_TEST_EXE = "test_util.exe"

_VS_ROOT = Path(r"C:\Program Files (x86)\Microsoft Visual Studio\2019")
_VS_EDITIONS = ("Enterprise", "Professional", "Community", "BuildTools")


def locate_msbuild(configured: str | None) -> Path | None:
    """Configured path first, then PATH, then the standard VS 2019 locations."""
    if configured:
        p = Path(configured)
        return p if p.exists() else None
    found = shutil.which("msbuild")
    if found:
        return Path(found)
    for edition in _VS_EDITIONS:
        p = _VS_ROOT / edition / "MSBuild" / "Current" / "Bin" / "MSBuild.exe"
        if p.exists():
            return p
    return None


class MsbuildToolchain:
    """Builds solution targets with msbuild."""

    def __init__(self, *, repo_root: Path, msbuild: Path | None, console: ConsoleProtocol) -> None:
        self._root = repo_root
        self._msbuild = msbuild
        self._console = console

    def compile(
        self,
        *,
        solution: str,
        targets: Sequence[str],
        configuration: str,
        platform: str,
    ) -> Result[None, ToolError]:
        if self._msbuild is None:
            return Err(
                ToolError(
                    "msbuild",
                    "msbuild not found",
                    hint="install Visual Studio 2019 or set build.msbuild in relbuild.toml",
                )
            )

        cmd = [
            str(self._msbuild),
            solution,
            f"/t:{';'.join(targets)}",
            f"/p:Configuration={configuration};Platform={platform}",
            "/m",
        ]
        self._console.print(format_command(cmd), Style.DIM)
        result = run_silent(cmd, cwd=self._root)
        if isinstance(result, Err):
            return Err(
                ToolError(
                    "msbuild",
                    f"build of {platform} failed",
                    returncode=result.error.returncode,
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)


class ProcessSelfTestRunner:
    """Runs test_util.exe from a variant output directory."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def run(self, directory: Path) -> Result[None, ToolError]:
        exe = directory / SELF_TEST_EXE
        if not exe.exists():
            return Err(ToolError(SELF_TEST_EXE, f"missing build output {exe}"))

        cmd = [str(exe)]
        self._console.print(f"{format_command(cmd)} (in {directory})", Style.DIM)
        result = run_silent(cmd, cwd=directory)
        if isinstance(result, Err):
            return Err(
                ToolError(
                    SELF_TEST_EXE,
                    f"tests failed in {directory}",
                    returncode=result.error.returncode,
                )
            )
        return Ok(None)
