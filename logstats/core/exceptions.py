"""
Custom exceptions for the log stats service.

These exceptions provide clear error semantics across the system.
Record-level validation failures are tolerated per item during batch
ingestion; everything else aborts the call that raised it.
"""


class LogStatsError(Exception):
    """Base exception for the log stats service."""
    pass


class RecordValidationError(LogStatsError):
    """Raised when a candidate record fails validation."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class InvalidTimestamp(RecordValidationError):
    """Raised when a timestamp is absent or cannot be parsed."""
    pass


class InvalidLevel(RecordValidationError):
    """Raised when level is not one of error, warn, info, debug."""
    pass


class MissingField(RecordValidationError):
    """Raised when a required text field is absent or empty."""
    pass


class InvalidField(RecordValidationError):
    """Raised when an optional field has the wrong type."""
    pass


class InvalidParameters(LogStatsError):
    """Raised when stats query parameters are malformed, out of range or repeated."""
    pass


class MalformedSource(LogStatsError):
    """Raised when a source blob is unreadable or does not decode to an array."""
    pass


class StoreUnavailable(LogStatsError):
    """Raised when the record store is not open."""
    pass


class CollectorError(LogStatsError):
    """Raised when the remote collector fails to produce text."""
    pass


class ConfigurationError(LogStatsError):
    """Raised when configuration is invalid or missing."""
    pass
