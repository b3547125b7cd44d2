"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    AnalysisConfig,
    BlastRadiusConfig,
    LoggingConfig,
    ReviewConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "ReviewConfig",
    # Sections
    "AnalysisConfig",
    "BlastRadiusConfig",
    "LoggingConfig",
]
