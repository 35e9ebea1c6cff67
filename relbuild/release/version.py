"""Version identifiers shared by every artifact of a pipeline run.

A run is tagged with three values:

- pre-release counter: linear commit count of HEAD plus a fixed base for
  history that predates git; the primary key of pre-release artifacts
- source revision id: the HEAD sha1
- product version: `CURR_VERSION` from the versioned header (e.g. "3.2")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from relbuild.core.errors import ConfigError
from relbuild.core.result import Err, Ok, Result
from relbuild.git.repository import Repository

__all__ = [
    "VersionInfo",
    "extract_product_version",
    "parse_product_version",
    "resolve_versions",
]

_PRODUCT_VERSION_RE = re.compile(r"[0-9]+(\.[0-9]+){0,2}")
_CURR_VERSION_PREFIX = "#define CURR_VERSION "


@dataclass(frozen=True, slots=True)
class VersionInfo:
    pre_release_counter: int
    source_revision_id: str
    product_version: str

    @property
    def counter_str(self) -> str:
        return str(self.pre_release_counter)


def parse_product_version(text: str) -> Result[str, ConfigError]:
    """Validate a product version: 1 to 3 dot-separated integer groups."""
    if not _PRODUCT_VERSION_RE.fullmatch(text):
        return Err(
            ConfigError(
                "version",
                f"{text!r} is not a valid version number",
                hint="expected x, x.y or x.y.z",
            )
        )
    return Ok(text)


def extract_product_version(header: Path) -> Result[str, ConfigError]:
    """Read `#define CURR_VERSION <ver>` from the version header."""
    try:
        content = header.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(ConfigError("version", f"cannot read {header}: {e}"))

    for line in content.splitlines():
        line = line.strip()
        if line.startswith(_CURR_VERSION_PREFIX):
            return parse_product_version(line[len(_CURR_VERSION_PREFIX) :].strip())

    return Err(ConfigError("version", f"couldn't extract CURR_VERSION from {header}"))


def resolve_versions(
    repo: Repository,
    *,
    version_header: Path,
    counter_base: int,
) -> Result[VersionInfo, ConfigError]:
    """Derive the run's VersionInfo. Reads only; safe to call repeatedly."""
    product = extract_product_version(version_header)
    if isinstance(product, Err):
        return product

    count = repo.linear_count()
    if isinstance(count, Err):
        return Err(
            ConfigError(
                "version",
                f"cannot compute pre-release counter: {count.error.message}",
                hint="run from inside the source repository",
            )
        )

    sha = repo.head_sha()
    if isinstance(sha, Err):
        return Err(
            ConfigError(
                "version",
                f"cannot read source revision: {sha.error.message}",
                hint="run from inside the source repository",
            )
        )

    return Ok(
        VersionInfo(
            pre_release_counter=count.value + counter_base,
            source_revision_id=sha.value,
            product_version=product.value,
        )
    )
