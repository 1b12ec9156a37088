"""
Canonical log record schema and aggregation result models.

This module defines the single record shape the service stores, plus the
typed rows produced by each of the three aggregations.

Design rationale:
- One record shape; the store adds identity and bookkeeping timestamps
- All timestamps are timezone-aware UTC
- Level is a closed set of four lowercase values
- ``context`` is an opaque mapping, stored and echoed verbatim
- Wire names (errorCode, createdAt, ...) are pydantic aliases, so
  ``model_dump(by_alias=True)`` yields the JSON shape clients expect
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """
    Convert a datetime to timezone-aware UTC.

    Naive values are taken as UTC.

    Raises:
        ValueError: If the converted instant falls outside the datetime range
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"instant out of range: {value.isoformat()}") from e


class LogLevel(str, Enum):
    """
    Recognized log severity levels.

    Values are the exact lowercase strings accepted on input.
    """
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class LogRecord(BaseModel):
    """
    A validated log record.

    Attributes:
        timestamp: UTC datetime when the event occurred
        level: Severity level (error, warn, info, debug)
        message: Log message text (no length cap)
        source: Name of the component that emitted the record
        error_code: Application-specific error code (optional)
        context: Arbitrary structured payload, never interpreted (optional)

    Notes:
        - Instances are frozen; a record never changes after ingestion
        - Empty-string error_code is a distinct value from None
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(
        ...,
        description="UTC timestamp of the event"
    )

    level: LogLevel = Field(
        ...,
        description="Severity level"
    )

    message: str = Field(
        ...,
        min_length=1,
        description="Log message text"
    )

    source: str = Field(
        ...,
        min_length=1,
        description="Component that emitted the record"
    )

    error_code: Optional[str] = Field(
        default=None,
        alias="errorCode",
        description="Application-specific error code"
    )

    context: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Opaque structured payload"
    )

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class StoredRecord(LogRecord):
    """
    A record as held by the store.

    Attributes:
        id: Store-assigned identity, increasing in insertion order
        created_at: When the store accepted the record
        updated_at: Last bookkeeping modification (equals created_at on insert)
    """

    id: int = Field(..., ge=1, description="Store-assigned identity")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _bookkeeping_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    def to_record(self) -> LogRecord:
        """Strip store bookkeeping and return the plain record."""
        return LogRecord(
            timestamp=self.timestamp,
            level=self.level,
            message=self.message,
            source=self.source,
            error_code=self.error_code,
            context=self.context,
        )


class TopErrorGroup(BaseModel):
    """
    One row of the top-errors aggregation.

    error_code is None for the group of error records that carry no code.
    """

    model_config = ConfigDict(populate_by_name=True)

    error_code: Optional[str] = Field(default=None, alias="errorCode")
    count: int = Field(..., ge=1)
    sample_messages: List[str] = Field(default_factory=list, alias="sampleMessages")
    sources: List[str] = Field(default_factory=list)


class TimeSeriesBucket(BaseModel):
    """
    One bucket of the time-series aggregation.

    ``timestamp`` is the bucket start. Debug records count toward ``total``
    only.
    """

    timestamp: datetime
    total: int = Field(..., ge=0)
    errors: int = Field(0, ge=0)
    warnings: int = Field(0, ge=0)
    info: int = Field(0, ge=0)


class LevelShare(BaseModel):
    """One row of the level-distribution aggregation."""

    level: LogLevel
    count: int = Field(..., ge=1)
    percentage: int = Field(..., ge=0, le=100)


class BatchResult(BaseModel):
    """Per-call ingestion outcome."""

    success: int = Field(0, ge=0)
    errors: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.success + self.errors
