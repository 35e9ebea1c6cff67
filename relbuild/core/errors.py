"""Error codes and error payloads.

ErrorCode maps onto process exit status. The dataclasses below are the error
payloads carried in Err values by every layer of the pipeline; the CLI turns
them into a diagnostic line and an exit code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

__all__ = [
    "ErrorCode",
    "ConfigError",
    "ToolError",
    "StoreError",
    "PolicyViolation",
    "PipelineError",
]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: Policy violation (dirty tree, wrong branch, stale translations)
    - 2: Environment/config error (bad version string, missing credentials)
    - 3: Build error (toolchain, tests, signing, packaging)
    - 4: Network error (remote store)
    - 5: I/O error
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Malformed version string, bad config file, missing credential."""

    kind: Literal["version", "config", "credentials", "environment"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ToolError:
    """External tool exited nonzero or did not produce its expected output."""

    tool: str
    message: str
    returncode: int | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class StoreError:
    """Remote object store operation failed."""

    operation: Literal["list", "exists", "upload", "delete"]
    message: str
    key: str | None = None

    @property
    def hint(self) -> str | None:
        return f"key: {self.key}" if self.key else None


@dataclass(frozen=True, slots=True)
class PolicyViolation:
    """A preflight invariant does not hold."""

    check: Literal["clean_tree", "branch", "translations"]
    message: str
    hint: str | None = None


PipelineError = ConfigError | ToolError | StoreError | PolicyViolation
