"""Source tree utilities: clang-format and line counts."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from relbuild.core.config import SourceConfig
from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.process import run

__all__ = ["LineCount", "count_lines", "find_source_files", "format_sources"]


@dataclass(frozen=True, slots=True)
class LineCount:
    extension: str
    files: int
    lines: int


def find_source_files(root: Path, config: SourceConfig) -> list[Path]:
    """Source files under the configured dirs, minus excluded subdirectories."""
    exts = set(config.extensions)
    out: list[Path] = []
    for d in config.dirs:
        base = root / d
        if not base.is_dir():
            continue
        for p in sorted(base.rglob("*")):
            if not p.is_file() or p.suffix not in exts:
                continue
            rel = p.relative_to(base)
            if rel.parts and rel.parts[0] in config.exclude:
                continue
            out.append(p)
    return out


def format_sources(
    root: Path,
    config: SourceConfig,
    console: ConsoleProtocol,
    *,
    clang_format: str | None = None,
) -> Result[int, ToolError]:
    """Run clang-format in place on every source file. Returns the file count."""
    exe = clang_format or shutil.which("clang-format")
    if exe is None:
        return Err(ToolError("clang-format", "clang-format not found", hint="add it to PATH"))

    files = find_source_files(root, config)
    for path in files:
        console.print(str(path.relative_to(root)), Style.DIM)
        result = run([exe, "-i", "-style=file", str(path)], cwd=root)
        if isinstance(result, Err):
            return Err(
                ToolError(
                    "clang-format",
                    f"failed on {path}",
                    returncode=result.error.returncode,
                    hint=result.error.stderr.strip() or None,
                )
            )
    return Ok(len(files))


def count_lines(files: list[Path]) -> list[LineCount]:
    """Per-extension file and line totals, largest first."""
    totals: dict[str, list[int]] = {}
    for path in files:
        with path.open("rb") as f:
            n = sum(1 for _ in f)
        entry = totals.setdefault(path.suffix, [0, 0])
        entry[0] += 1
        entry[1] += n
    counts = [LineCount(ext, files=v[0], lines=v[1]) for ext, v in totals.items()]
    return sorted(counts, key=lambda c: c.lines, reverse=True)
