"""Kinds of published builds and where each one lives in the store."""

from __future__ import annotations

from enum import Enum


class BuildType(Enum):
    PRE_RELEASE = "prerelease"
    DAILY = "daily"

    @property
    def channel(self) -> str:
        """Channel word embedded in artifact names."""
        return self.value

    @property
    def remote_dir(self) -> str:
        return "prerel" if self is BuildType.PRE_RELEASE else "daily"

    def prefix(self, remote_root: str) -> str:
        """Store key prefix for artifacts of this build type, with trailing slash."""
        return f"{remote_root}/{self.remote_dir}/"
