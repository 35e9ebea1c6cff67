"""Size manifest written for every pre-release build.

One line per produced file, "<relative path>: <size in bytes>", joined with
newlines and no trailing newline. Downstream tooling reads it as a plain size
audit; its remote copy doubles as the "version published" marker.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result

__all__ = ["manifest_files", "render_manifest"]


def manifest_files(product: str) -> tuple[str, ...]:
    """Files listed per variant directory, in manifest order."""
    return (
        f"{product}.exe",
        f"{product}-dll.exe",
        "libmupdf.dll",
        "PdfFilter.dll",
        "PdfPreview.dll",
        f"{product}.pdb.zip",
        f"{product}.pdb.lzsa",
    )


def render_manifest(
    root: Path,
    dirs: Iterable[Path],
    files: Sequence[str],
) -> Result[str, ToolError]:
    """Render the manifest for `files` in each of `dirs`.

    Paths are written relative to `root` with forward slashes.
    """
    lines: list[str] = []
    for d in dirs:
        for name in files:
            path = d / name
            try:
                size = path.stat().st_size
            except OSError as e:
                return Err(ToolError("manifest", f"missing build output {path}: {e.strerror}"))
            rel = path.relative_to(root).as_posix()
            lines.append(f"{rel}: {size}")
    return Ok("\n".join(lines))
