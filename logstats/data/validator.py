"""
Candidate record validation.

Turns an untrusted mapping (decoded JSON, a request body item, a test dict)
into a ``LogRecord`` or raises one of the ``RecordValidationError``
subclasses. Validation is pure: no logging, no I/O.

Accepted input:
    {
        "timestamp": "2025-02-07T10:30:45Z" | datetime,
        "level": "error" | "warn" | "info" | "debug",
        "message": "non-empty text",
        "source": "non-empty text",
        "errorCode": "optional text",        # or "error_code"
        "context": {"optional": "mapping"}
    }

Unknown keys are ignored.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from logstats.core.exceptions import (
    InvalidField,
    InvalidLevel,
    InvalidTimestamp,
    MissingField,
)
from logstats.data.schema import LogLevel, LogRecord, to_utc

_LEVELS = {level.value: level for level in LogLevel}


# date "T" time with seconds, optional fraction, optional Z or +HH:MM offset
_INSTANT = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))?",
    re.ASCII,
)


def _parse_iso(text: str) -> datetime:
    match = _INSTANT.fullmatch(text)
    if match is None:
        raise ValueError(f"not an ISO 8601 date-time: {text!r}")

    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()
    tzinfo = None
    if zulu:
        tzinfo = timezone.utc
    elif sign:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tzinfo = timezone(-offset if sign == "-" else offset)

    # fractions beyond microseconds are truncated
    microsecond = int((fraction or "0").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day),
        int(hour), int(minute), int(second), microsecond,
        tzinfo=tzinfo,
    )


def parse_instant(value: Any) -> datetime:
    """
    Parse an instant into a timezone-aware UTC datetime.

    Supports:
    - datetime objects (naive values are taken as UTC)
    - ISO 8601 date-time text with seconds: 2025-02-07T10:30:45Z,
      2025-02-07T10:30:45.123+02:00, 2025-02-07T10:30:45 (naive, taken as UTC)

    Date-only text, missing seconds, compact offsets (+0200) and week dates
    are rejected.

    Args:
        value: datetime or ISO 8601 string

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ValueError: If the value is not a datetime or parsable ISO 8601 text,
            or the instant is outside the representable range once in UTC
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        dt = _parse_iso(text)
    else:
        raise ValueError(f"unsupported timestamp type: {type(value).__name__}")

    return to_utc(dt)


def _require_text(candidate: Mapping[str, Any], field: str) -> str:
    value = candidate.get(field)
    if value is None:
        raise MissingField(field, "required")
    if not isinstance(value, str):
        raise MissingField(field, f"expected text, got {type(value).__name__}")
    if not value:
        raise MissingField(field, "must not be empty")
    return value


def _error_code(candidate: Mapping[str, Any]) -> Optional[str]:
    if "errorCode" in candidate:
        value = candidate["errorCode"]
    else:
        value = candidate.get("error_code")
    if value is not None and not isinstance(value, str):
        raise InvalidField("errorCode", f"expected text, got {type(value).__name__}")
    return value


def validate(candidate: Any) -> LogRecord:
    """
    Validate a candidate record.

    Args:
        candidate: Mapping of raw fields, or an already-built LogRecord

    Returns:
        Validated LogRecord

    Raises:
        InvalidTimestamp: timestamp absent or unparsable
        InvalidLevel: level outside the recognized set
        MissingField: message/source absent or empty, or candidate not a mapping
        InvalidField: errorCode or context of the wrong type
    """
    if isinstance(candidate, LogRecord):
        return candidate
    if not isinstance(candidate, Mapping):
        raise MissingField("record", f"expected an object, got {type(candidate).__name__}")

    raw_ts = candidate.get("timestamp")
    if raw_ts is None:
        raise InvalidTimestamp("timestamp", "required")
    try:
        timestamp = parse_instant(raw_ts)
    except ValueError as e:
        raise InvalidTimestamp("timestamp", str(e)) from e

    raw_level = candidate.get("level")
    if isinstance(raw_level, LogLevel):
        level = raw_level
    elif isinstance(raw_level, str) and raw_level in _LEVELS:
        level = _LEVELS[raw_level]
    else:
        raise InvalidLevel("level", f"unrecognized level: {raw_level!r}")

    message = _require_text(candidate, "message")
    source = _require_text(candidate, "source")
    error_code = _error_code(candidate)

    context = candidate.get("context")
    if context is not None and not isinstance(context, Mapping):
        raise InvalidField("context", f"expected an object, got {type(context).__name__}")

    try:
        return LogRecord(
            timestamp=timestamp,
            level=level,
            message=message,
            source=source,
            error_code=error_code,
            context=dict(context) if context is not None else None,
        )
    except ValidationError as e:
        # context keys must be text
        raise InvalidField("context", str(e)) from e
