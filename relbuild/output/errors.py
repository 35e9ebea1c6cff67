"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relbuild.core.errors import (
    ConfigError,
    ErrorCode,
    PipelineError,
    PolicyViolation,
    StoreError,
    ToolError,
)
from relbuild.output.console import Style
from relbuild.pipeline.errors import StageFailed

if TYPE_CHECKING:
    from relbuild.output.console import ConsoleProtocol

__all__ = ["print_pipeline_error", "pipeline_error_exit_code"]


def _describe(error: PipelineError) -> str:
    match error:
        case ConfigError(kind=kind, message=message):
            return f"{kind} error: {message}"
        case ToolError(tool=tool, message=message, returncode=rc):
            suffix = f" (exit {rc})" if rc is not None else ""
            return f"{tool}: {message}{suffix}"
        case StoreError(operation=op, message=message):
            return f"store {op} failed: {message}"
        case PolicyViolation(check=check, message=message):
            return f"{check} check failed: {message}"
    return str(error)


def print_pipeline_error(error: StageFailed | PipelineError, console: ConsoleProtocol) -> None:
    """Print the failing stage (if known), the cause and an optional hint."""
    if isinstance(error, StageFailed):
        console.error(f"[{error.stage}] {_describe(error.cause)}")
        hint = error.cause.hint
    else:
        console.error(_describe(error))
        hint = error.hint
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def pipeline_error_exit_code(error: StageFailed | PipelineError) -> int:
    """Get exit code for a pipeline error."""
    cause = error.cause if isinstance(error, StageFailed) else error
    match cause:
        case PolicyViolation():
            return int(ErrorCode.USER_ERROR)
        case ConfigError():
            return int(ErrorCode.ENV_ERROR)
        case ToolError():
            return int(ErrorCode.BUILD_ERROR)
        case StoreError():
            return int(ErrorCode.NETWORK_ERROR)
    return int(ErrorCode.BUILD_ERROR)
