"""Core types: results, errors and configuration."""

from .config import Config, load_config, load_config_or_default
from .errors import ConfigError, ErrorCode, PipelineError, PolicyViolation, StoreError, ToolError
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "Config",
    "load_config",
    "load_config_or_default",
    # errors
    "ConfigError",
    "ErrorCode",
    "PipelineError",
    "PolicyViolation",
    "StoreError",
    "ToolError",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
