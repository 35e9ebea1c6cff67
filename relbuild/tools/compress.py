"""Debug-symbol archive codecs: zip (in-process) and LZSA (MakeLZSA.exe)."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.process import format_command, run_silent

__all__ = ["LzsaCompressor", "ZipCompressor"]


class ZipCompressor:
    def compress(
        self,
        directory: Path,
        pairs: Sequence[tuple[str, str]],
        out_name: str,
    ) -> Result[Path, ToolError]:
        out_path = directory / out_name
        out_path.unlink(missing_ok=True)
        try:
            # strict_timestamps=False: toolchain outputs can carry pre-1980 mtimes.
            with ZipFile(out_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
                for local, arc in pairs:
                    zf.write(directory / local, arcname=arc)
        except OSError as e:
            out_path.unlink(missing_ok=True)
            return Err(ToolError("zip", f"cannot create {out_path}: {e}"))
        return Ok(out_path)


class LzsaCompressor:
    """Wraps MakeLZSA.exe: `MakeLZSA.exe <out> <local>:<name> ...`."""

    def __init__(self, *, exe: Path, console: ConsoleProtocol) -> None:
        self._exe = exe
        self._console = console

    def compress(
        self,
        directory: Path,
        pairs: Sequence[tuple[str, str]],
        out_name: str,
    ) -> Result[Path, ToolError]:
        if not self._exe.exists():
            return Err(ToolError("MakeLZSA", f"file '{self._exe}' doesn't exist"))

        out_path = directory / out_name
        cmd = [str(self._exe), out_name, *[f"{local}:{arc}" for local, arc in pairs]]
        self._console.print(f"{format_command(cmd)} (in {directory})", Style.DIM)
        result = run_silent(cmd, cwd=directory)
        if isinstance(result, Err):
            return Err(
                ToolError(
                    "MakeLZSA",
                    f"failed to create {out_path}",
                    returncode=result.error.returncode,
                )
            )
        if not out_path.exists():
            return Err(ToolError("MakeLZSA", f"missing build output {out_path}"))
        return Ok(out_path)
