"""
Core module: Configuration, logging, and exception handling.
"""

from .config import RETENTION_WINDOW, Config, config
from .exceptions import (
    CollectorError,
    ConfigurationError,
    InvalidField,
    InvalidLevel,
    InvalidParameters,
    InvalidTimestamp,
    LogStatsError,
    MalformedSource,
    MissingField,
    RecordValidationError,
    StoreUnavailable,
)

__all__ = [
    "Config",
    "config",
    "RETENTION_WINDOW",
    "LogStatsError",
    "RecordValidationError",
    "InvalidTimestamp",
    "InvalidLevel",
    "MissingField",
    "InvalidField",
    "InvalidParameters",
    "MalformedSource",
    "StoreUnavailable",
    "CollectorError",
    "ConfigurationError",
]
