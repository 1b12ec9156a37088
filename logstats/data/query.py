"""
Stats query parameters.

Parses the string parameters handed over by the routing layer into a typed
``StatsQuery``. Every problem (malformed instant, non-integer or out-of-range
limit, unknown bucket, a parameter given more than once) collapses into a
single ``InvalidParameters``.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Sequence, Union
from urllib.parse import parse_qs

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from logstats.core.config import (
    DEFAULT_TOP_ERRORS_LIMIT,
    MAX_TOP_ERRORS_LIMIT,
    MIN_TOP_ERRORS_LIMIT,
)
from logstats.core.exceptions import InvalidParameters
from logstats.data.validator import parse_instant

QueryParams = Mapping[str, Union[str, Sequence[str]]]

_INTEGER = re.compile(r"[+-]?\d+")


class Bucket(str, Enum):
    """Time-series bucket width."""
    HOUR = "hour"
    DAY = "day"


class StatsQuery(BaseModel):
    """Validated parameters shared by the three stats queries."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None
    limit: int = Field(
        DEFAULT_TOP_ERRORS_LIMIT,
        ge=MIN_TOP_ERRORS_LIMIT,
        le=MAX_TOP_ERRORS_LIMIT,
    )
    bucket: Bucket = Bucket.HOUR

    def period(self) -> dict:
        return {
            "from": self.from_.isoformat() if self.from_ else None,
            "to": self.to.isoformat() if self.to else None,
        }


def _single(params: QueryParams, name: str) -> Optional[str]:
    if name not in params:
        return None
    raw = params[name]
    if isinstance(raw, (list, tuple)):
        if len(raw) != 1:
            raise InvalidParameters(f"parameter {name!r} must be given exactly once")
        raw = raw[0]
    if not isinstance(raw, str):
        raise InvalidParameters(f"parameter {name!r} must be text")
    return raw


def _instant(name: str, raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    try:
        return parse_instant(raw)
    except ValueError as e:
        raise InvalidParameters(f"parameter {name!r}: {e}") from e


def parse_stats_query(params: QueryParams) -> StatsQuery:
    """
    Parse raw query parameters.

    Args:
        params: name -> value, or name -> list of values (``parse_qs`` output).
            Unknown names are ignored.

    Returns:
        StatsQuery

    Raises:
        InvalidParameters: On any malformed, out-of-range or repeated value
    """
    values = {
        "from": _instant("from", _single(params, "from")),
        "to": _instant("to", _single(params, "to")),
    }

    raw_limit = _single(params, "limit")
    if raw_limit is not None:
        if not _INTEGER.fullmatch(raw_limit.strip()):
            raise InvalidParameters(f"parameter 'limit' must be an integer, got {raw_limit!r}")
        values["limit"] = int(raw_limit)

    raw_bucket = _single(params, "bucket")
    if raw_bucket is not None:
        try:
            values["bucket"] = Bucket(raw_bucket)
        except ValueError as e:
            raise InvalidParameters(f"parameter 'bucket' must be hour or day, got {raw_bucket!r}") from e

    try:
        return StatsQuery(**values)
    except ValidationError as e:
        raise InvalidParameters(str(e)) from e


def parse_query_string(query_string: str) -> StatsQuery:
    """Parse a raw URL query string (``limit=5&bucket=day``)."""
    return parse_stats_query(parse_qs(query_string, keep_blank_values=True))
