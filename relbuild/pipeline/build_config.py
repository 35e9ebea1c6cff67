"""Temporary override of the build configuration header.

The compiled binaries embed the source revision and pre-release counter
through a generated header. It is written before compiling and always
restored to its committed content afterwards, whichever way the build ends.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.git.repository import Repository
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.files import atomic_write_text

__all__ = ["build_config_override", "render_build_config"]


def render_build_config(sha1: str, pre_release_ver: str | None) -> str:
    if not sha1:
        raise ValueError("sha1 must be set")
    s = f"#define GIT_COMMIT_ID {sha1}\n"
    if pre_release_ver:
        s += f"#define SVN_PRE_RELEASE_VER {pre_release_ver}\n"
    return s


@contextmanager
def build_config_override(
    repo: Repository,
    rel_path: str,
    *,
    sha1: str,
    pre_release_ver: str | None,
    console: ConsoleProtocol,
) -> Iterator[Result[Path, ToolError]]:
    """Write the build config header for the duration of the block.

    Yields Err if the header cannot be written; nothing is restored then.
    Otherwise, on exit (normal, Err-return or exception) the header is
    restored with `git checkout`; a failed restore is reported as a warning.
    """
    content = render_build_config(sha1, pre_release_ver)
    path = Path(repo.path) / rel_path
    console.print(f"write {rel_path}", Style.DIM)
    write_error: OSError | None = None
    try:
        atomic_write_text(path, content)
    except OSError as e:
        write_error = e
    if write_error is not None:
        yield Err(ToolError("build_config", f"cannot write {rel_path}: {write_error}"))
        return

    try:
        yield Ok(path)
    finally:
        console.print(f"git checkout -- {rel_path}", Style.DIM)
        result = repo.checkout_file(rel_path)
        if isinstance(result, Err):
            console.warning(f"failed to restore {rel_path}: {result.error.message}")
