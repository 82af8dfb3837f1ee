"""Config module exports."""

from actionlens.config.loader import load_config
from actionlens.config.models import (
    ActionLensConfig,
    FilesConfig,
    LoggingConfig,
    LogOutputConfig,
    ResolutionBounds,
    ResolverConfig,
)

__all__ = [
    "load_config",
    "ActionLensConfig",
    "FilesConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ResolutionBounds",
    "ResolverConfig",
]
