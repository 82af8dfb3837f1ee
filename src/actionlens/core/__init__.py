"""Core module exports."""

from actionlens.core.errors import (
    ActionLensError,
    ConfigError,
    ErrorCode,
    ParseError,
    ResolutionError,
)
from actionlens.core.logging import (
    clear_pass_id,
    configure_logging,
    get_logger,
    get_pass_id,
    set_pass_id,
)

__all__ = [
    # Errors
    "ActionLensError",
    "ConfigError",
    "ErrorCode",
    "ParseError",
    "ResolutionError",
    # Logging
    "clear_pass_id",
    "configure_logging",
    "get_logger",
    "get_pass_id",
    "set_pass_id",
]
