"""Release domain: versions, artifact names, the version registry."""

from relbuild.release.build_type import BuildType
from relbuild.release.names import ArtifactKind, BuildVariant, DecodedName, NameCodec
from relbuild.release.registry import (
    DeleteOp,
    Listing,
    VersionGroup,
    is_version_published,
    list_versions,
    prune_old_versions,
)
from relbuild.release.version import VersionInfo, resolve_versions

__all__ = [
    "ArtifactKind",
    "BuildType",
    "BuildVariant",
    "DecodedName",
    "DeleteOp",
    "Listing",
    "NameCodec",
    "VersionGroup",
    "VersionInfo",
    "is_version_published",
    "list_versions",
    "prune_old_versions",
    "resolve_versions",
]
