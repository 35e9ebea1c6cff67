"""Published versions in the remote store.

The store holds one group of files per pre-release counter. This module
groups a listing by version, answers "is this version already published"
and plans/applies the retention policy.

Publishing uploads the manifest last, so its presence is the only signal that
a version is complete. Pruning never touches manifests: they stay behind as a
record of every version ever published.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass, field

from relbuild.core.errors import StoreError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.release.names import ArtifactKind, NameCodec, is_manifest_name
from relbuild.store.base import RemoteStore

__all__ = [
    "DeleteOp",
    "Listing",
    "PruneReport",
    "VersionGroup",
    "apply_deletes",
    "is_version_published",
    "list_versions",
    "manifest_key",
    "prune_old_versions",
    "scan_remote",
]


@dataclass(frozen=True, slots=True)
class VersionGroup:
    """All remote files of one version.

    Attributes:
        version: Pre-release counter shared by every name in the group.
        version_str: The counter as it appears in the names.
        names: Base names, in listing order.
        paths: Full keys, parallel to names.
    """

    version: int
    version_str: str
    names: tuple[str, ...]
    paths: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Listing:
    """Remote listing grouped by version, newest first."""

    groups: tuple[VersionGroup, ...]
    unrecognized: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DeleteOp:
    key: str
    version: int


@dataclass
class PruneReport:
    deleted: list[str] = field(default_factory=list[str])
    failed: list[str] = field(default_factory=list[str])


def list_versions(keys: Iterable[str], *, codec: NameCodec) -> Listing:
    """Group keys by the version decoded from their base name.

    Keys whose base name does not decode are returned as unrecognized; they
    are reported, never acted on.
    """
    names: dict[int, list[str]] = {}
    version_strs: dict[int, str] = {}
    paths: dict[int, list[str]] = {}
    unrecognized: list[str] = []

    for key in keys:
        name = posixpath.basename(key)
        decoded = codec.decode(name)
        if decoded is None:
            unrecognized.append(key)
            continue
        version_strs.setdefault(decoded.version, decoded.version_str)
        names.setdefault(decoded.version, []).append(name)
        paths.setdefault(decoded.version, []).append(key)

    groups = [
        VersionGroup(
            version=ver,
            version_str=version_strs[ver],
            names=tuple(names[ver]),
            paths=tuple(paths[ver]),
        )
        for ver in sorted(names, reverse=True)
    ]
    return Listing(groups=tuple(groups), unrecognized=tuple(unrecognized))


def scan_remote(
    store: RemoteStore,
    *,
    prefix: str,
    codec: NameCodec,
    console: ConsoleProtocol,
) -> Result[Listing, StoreError]:
    """List `prefix` in the store and group it by version."""
    result = store.list(prefix)
    if isinstance(result, Err):
        return result

    listing = list_versions((obj.key for obj in result.value), codec=codec)
    for key in listing.unrecognized:
        console.warning(f"unrecognized file in store: {key}")
    for group in listing.groups:
        console.print(f"ver {group.version_str}: {len(group.names)} files", Style.DIM)
    return Ok(listing)


def manifest_key(*, prefix: str, codec: NameCodec, version: int | str) -> str:
    return prefix + codec.encode(ArtifactKind.MANIFEST, version)


def is_version_published(
    store: RemoteStore,
    *,
    prefix: str,
    codec: NameCodec,
    version: int | str,
) -> Result[bool, StoreError]:
    """True iff the manifest of `version` exists in the store."""
    return store.exists(manifest_key(prefix=prefix, codec=codec, version=version))


def prune_old_versions(groups: Iterable[VersionGroup], retain: int) -> list[DeleteOp]:
    """Plan deletions for every group past the newest `retain`.

    `groups` must be in registry order (newest first). Manifest files are never
    scheduled.

    Raises:
        ValueError: If retain < 1.
    """
    if retain < 1:
        raise ValueError(f"retain must be >= 1, got {retain}")

    ops: list[DeleteOp] = []
    for rank, group in enumerate(groups):
        if rank < retain:
            continue
        for name, path in zip(group.names, group.paths, strict=True):
            if is_manifest_name(name):
                continue
            ops.append(DeleteOp(key=path, version=group.version))
    return ops


def apply_deletes(
    store: RemoteStore,
    ops: Iterable[DeleteOp],
    console: ConsoleProtocol,
) -> PruneReport:
    """Delete every planned key. Failures are reported and skipped.

    Whatever is left over is planned again by the next prune.
    """
    report = PruneReport()
    for op in ops:
        console.print(f"delete {op.key}", Style.DIM)
        result = store.delete(op.key)
        if isinstance(result, Err):
            console.warning(f"failed to delete {op.key}: {result.error.message}")
            report.failed.append(op.key)
            continue
        report.deleted.append(op.key)
    return report
