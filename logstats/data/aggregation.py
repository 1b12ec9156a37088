"""
Read-side aggregations over the record store.

Three fixed aggregations, each an explicit scan -> group -> sort -> limit
over the records the store currently considers live:

- top errors: error records grouped by error code
- time series: all records bucketed by hour or day
- level distribution: all records grouped by level, with percentages

Design:
- Grouping helpers are pure functions over record lists
- Group iteration order is first-seen order; sorts are stable, so ties keep it
- Expired records never reach these functions (the store filters them)
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from logstats.core.config import (
    DEFAULT_TOP_ERRORS_LIMIT,
    MAX_TOP_ERRORS_LIMIT,
    MIN_TOP_ERRORS_LIMIT,
    TOP_ERRORS_SAMPLE_SIZE,
)
from logstats.core.exceptions import InvalidParameters
from logstats.data.query import Bucket
from logstats.data.schema import (
    LevelShare,
    LogLevel,
    LogRecord,
    TimeSeriesBucket,
    TopErrorGroup,
)
from logstats.data.store import RecordFilter, RetentionStore

logger = logging.getLogger(__name__)


def truncate_to_bucket(ts: datetime, bucket: Bucket) -> datetime:
    """
    Truncate a timestamp to the start of its bucket.

    Example:
    - 10:45:30, hour -> 10:00:00
    - 10:45:30, day  -> 00:00:00 same day

    Args:
        ts: Timezone-aware UTC timestamp
        bucket: Bucket width

    Returns:
        Bucket start (UTC)
    """
    if bucket == Bucket.DAY:
        return ts.replace(hour=0, minute=0, second=0, microsecond=0)
    return ts.replace(minute=0, second=0, microsecond=0)


def round_half_up(numerator: int, denominator: int) -> int:
    """Round 100 * numerator / denominator to the nearest integer, halves up."""
    return (200 * numerator + denominator) // (2 * denominator)


def group_top_errors(
    records: Iterable[LogRecord],
    limit: int = DEFAULT_TOP_ERRORS_LIMIT,
    sample_size: int = TOP_ERRORS_SAMPLE_SIZE,
) -> List[TopErrorGroup]:
    """
    Group error records by error code.

    Records without a code form one group keyed by None; an empty-string code
    is its own group.

    Args:
        records: Records in insertion order (non-error levels are ignored)
        limit: Maximum number of groups returned
        sample_size: Maximum messages kept per group

    Returns:
        Groups sorted by count descending, ties in first-seen order
    """
    groups: Dict[Optional[str], TopErrorGroup] = {}
    seen_sources: Dict[Optional[str], set] = {}

    for record in records:
        if record.level != LogLevel.ERROR:
            continue

        key = record.error_code
        group = groups.get(key)
        if group is None:
            group = TopErrorGroup(error_code=key, count=1)
            groups[key] = group
            seen_sources[key] = set()
        else:
            group.count += 1

        if len(group.sample_messages) < sample_size:
            group.sample_messages.append(record.message)
        if record.source not in seen_sources[key]:
            seen_sources[key].add(record.source)
            group.sources.append(record.source)

    ordered = sorted(groups.values(), key=lambda g: g.count, reverse=True)
    return ordered[:limit]


def bucket_records(records: Iterable[LogRecord], bucket: Bucket = Bucket.HOUR) -> List[TimeSeriesBucket]:
    """
    Count records per time bucket.

    Returns:
        Buckets in ascending time order; empty buckets are not emitted
    """
    buckets: Dict[datetime, TimeSeriesBucket] = {}

    for record in records:
        start = truncate_to_bucket(record.timestamp, bucket)
        row = buckets.get(start)
        if row is None:
            row = TimeSeriesBucket(timestamp=start, total=0)
            buckets[start] = row

        row.total += 1
        if record.level == LogLevel.ERROR:
            row.errors += 1
        elif record.level == LogLevel.WARN:
            row.warnings += 1
        elif record.level == LogLevel.INFO:
            row.info += 1

    return [buckets[start] for start in sorted(buckets)]


def level_shares(records: Iterable[LogRecord]) -> List[LevelShare]:
    """
    Count records per level with rounded percentages.

    Returns:
        Levels sorted by count descending; [] when there are no records
    """
    counts: Dict[LogLevel, int] = {}
    for record in records:
        counts[record.level] = counts.get(record.level, 0) + 1

    total = sum(counts.values())
    if total == 0:
        return []

    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        LevelShare(level=level, count=count, percentage=round_half_up(count, total))
        for level, count in ordered
    ]


class AggregationEngine:
    """
    Runs the three stats aggregations against a store.

    All methods are read-only and take optional inclusive time bounds.
    """

    def __init__(self, store: RetentionStore):
        self.store = store

    def top_errors(
        self,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
        limit: int = DEFAULT_TOP_ERRORS_LIMIT,
    ) -> List[TopErrorGroup]:
        if not MIN_TOP_ERRORS_LIMIT <= limit <= MAX_TOP_ERRORS_LIMIT:
            raise InvalidParameters(
                f"limit must be between {MIN_TOP_ERRORS_LIMIT} and {MAX_TOP_ERRORS_LIMIT}, got {limit}"
            )

        records = self.store.query(RecordFilter(from_=from_, to=to, level=LogLevel.ERROR))
        groups = group_top_errors(records, limit=limit)
        logger.info("Top errors computed: groups=%d records=%d", len(groups), len(records))
        return groups

    def time_series(
        self,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
        bucket: Bucket = Bucket.HOUR,
    ) -> List[TimeSeriesBucket]:
        records = self.store.query(RecordFilter(from_=from_, to=to))
        series = bucket_records(records, Bucket(bucket))
        logger.info("Time series computed: buckets=%d bucket=%s", len(series), Bucket(bucket).value)
        return series

    def level_distribution(
        self,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[LevelShare]:
        records = self.store.query(RecordFilter(from_=from_, to=to))
        shares = level_shares(records)
        logger.info("Level distribution computed: levels=%d total=%d", len(shares), len(records))
        return shares
