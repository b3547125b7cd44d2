"""Utility functions and helpers.

This module provides various utilities for change-review:
- security: Secret redaction for log output
- logging: Structured logging with secret sanitization
- metrics: Parse, analysis and review metrics
"""

from change_review.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
)
from change_review.utils.metrics import (
    Counter,
    Histogram,
    MetricsRegistry,
    Timer,
    get_metrics,
)
from change_review.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Metrics
    "Counter",
    "Histogram",
    # Logging
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "MetricsRegistry",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "Timer",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_metrics",
]
