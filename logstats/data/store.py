"""
In-memory retention store for validated log records.

Holds records behind a single lock, assigns identity and bookkeeping
timestamps on insert, and serves range/level reads from timestamp-ordered
indexes. Retention is a read-time predicate: any record whose event timestamp
is older than ``now - RETENTION_WINDOW`` is never returned, whether or not
``expire()`` has purged it yet.

Design:
- Append is O(1); indexes are re-sorted lazily on the next read
- One global time index plus one per level, so level reads skip other levels
- Reads return records in insertion order
- Explicit lifecycle: open() before use, close() at shutdown
"""

import logging
import threading
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from logstats.core.config import RETENTION_WINDOW
from logstats.core.exceptions import StoreUnavailable
from logstats.data.schema import LogLevel, LogRecord, StoredRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RecordFilter:
    """
    Read filter for ``RetentionStore.query``.

    Both bounds are inclusive; None means unbounded on that side.
    """

    from_: Optional[datetime] = None
    to: Optional[datetime] = None
    level: Optional[LogLevel] = None


class _TimeIndex:
    """Timestamp-ordered (timestamp, id) pairs, sorted lazily on read."""

    def __init__(self) -> None:
        self._entries: List[Tuple[datetime, int]] = []
        self._dirty = False

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, timestamp: datetime, record_id: int) -> None:
        entry = (timestamp, record_id)
        if self._entries and entry < self._entries[-1]:
            self._dirty = True
        self._entries.append(entry)

    def _ensure_sorted(self) -> None:
        if self._dirty:
            self._entries.sort()
            self._dirty = False

    def range(self, lo: Optional[datetime], hi: Optional[datetime]) -> List[int]:
        self._ensure_sorted()
        start = 0 if lo is None else bisect_left(self._entries, (lo, 0))
        end = len(self._entries) if hi is None else bisect_right(self._entries, (hi, float("inf")))
        return [record_id for _, record_id in self._entries[start:end]]

    def drop_before(self, cutoff: datetime) -> List[int]:
        self._ensure_sorted()
        idx = bisect_left(self._entries, (cutoff, 0))
        dropped = [record_id for _, record_id in self._entries[:idx]]
        del self._entries[:idx]
        return dropped

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = False


class RetentionStore:
    """
    Thread-safe, retention-bounded record store.

    Example:
        with RetentionStore() as store:
            stored = store.insert(record)
            recent_errors = store.query(RecordFilter(level=LogLevel.ERROR))
    """

    def __init__(
        self,
        retention: timedelta = RETENTION_WINDOW,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize an empty, closed store.

        Args:
            retention: Age (by event timestamp) after which records are invisible
            clock: Callable returning the current aware UTC datetime
        """
        self.retention = retention
        self._clock = clock or utc_now
        self._lock = threading.RLock()
        self._open = False
        self._next_id = 1
        self._records: Dict[int, StoredRecord] = {}
        self._by_time = _TimeIndex()
        self._by_level: Dict[LogLevel, _TimeIndex] = {level: _TimeIndex() for level in LogLevel}

    # lifecycle

    def open(self) -> "RetentionStore":
        with self._lock:
            self._open = True
        logger.info("Record store opened (retention=%s)", self.retention)
        return self

    def close(self) -> None:
        with self._lock:
            self._open = False
            self._records.clear()
            self._by_time.clear()
            for index in self._by_level.values():
                index.clear()
        logger.info("Record store closed")

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "RetentionStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if not self._open:
            raise StoreUnavailable("record store is not open")

    # writes

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """Oldest event timestamp still inside the retention window."""
        return (now or self._clock()) - self.retention

    def insert(self, record: LogRecord) -> StoredRecord:
        """
        Store a validated record.

        Args:
            record: LogRecord produced by the validator

        Returns:
            StoredRecord with id, created_at and updated_at assigned

        Raises:
            StoreUnavailable: If the store is not open
            TypeError: If record is not a LogRecord
        """
        if not isinstance(record, LogRecord):
            raise TypeError(f"expected LogRecord, got {type(record).__name__}")

        with self._lock:
            self._check_open()
            now = self._clock()
            stored = StoredRecord(
                id=self._next_id,
                timestamp=record.timestamp,
                level=record.level,
                message=record.message,
                source=record.source,
                error_code=record.error_code,
                context=record.context,
                created_at=now,
                updated_at=now,
            )
            # indexes first: a failed add must not leave an unindexed record
            self._by_time.add(stored.timestamp, stored.id)
            self._by_level[stored.level].add(stored.timestamp, stored.id)
            self._records[stored.id] = stored
            self._next_id += 1
        return stored

    def insert_many(self, records: Iterable[LogRecord]) -> List[StoredRecord]:
        """
        Store each record independently.

        A record that fails to insert is logged and skipped; the rest are
        still stored. StoreUnavailable is not per-record and propagates.

        Returns:
            The records that were stored, in input order
        """
        stored: List[StoredRecord] = []
        for idx, record in enumerate(records):
            try:
                stored.append(self.insert(record))
            except StoreUnavailable:
                raise
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping record at index {idx}: {e}")
        return stored

    def touch(self, record_id: int) -> StoredRecord:
        """Bump updated_at on a stored record. Raises KeyError if unknown."""
        with self._lock:
            self._check_open()
            current = self._records[record_id]
            updated = current.model_copy(update={"updated_at": self._clock()})
            self._records[record_id] = updated
        return updated

    def expire(self, now: Optional[datetime] = None) -> int:
        """
        Purge records older than the retention window.

        Reads already hide such records; this only reclaims memory.

        Returns:
            Number of records purged
        """
        cutoff = self.cutoff(now)
        with self._lock:
            self._check_open()
            dropped = self._by_time.drop_before(cutoff)
            for index in self._by_level.values():
                index.drop_before(cutoff)
            for record_id in dropped:
                del self._records[record_id]

        if dropped:
            logger.info("Expired %d records older than %s", len(dropped), cutoff.isoformat())
        return len(dropped)

    def clear(self) -> None:
        with self._lock:
            self._check_open()
            self._records.clear()
            self._by_time.clear()
            for index in self._by_level.values():
                index.clear()

    # reads

    def get(self, record_id: int) -> Optional[StoredRecord]:
        """Return a live record by id, or None if unknown or expired."""
        with self._lock:
            self._check_open()
            record = self._records.get(record_id)
            if record is None or record.timestamp < self.cutoff():
                return None
            return record

    def query(self, record_filter: Optional[RecordFilter] = None) -> List[StoredRecord]:
        """
        Return non-expired records matching the filter, in insertion order.

        Args:
            record_filter: Optional time bounds (inclusive) and level

        Returns:
            List of StoredRecord
        """
        record_filter = record_filter or RecordFilter()
        with self._lock:
            self._check_open()
            lo = self.cutoff()
            if record_filter.from_ is not None and record_filter.from_ > lo:
                lo = record_filter.from_

            if record_filter.level is None:
                index = self._by_time
            else:
                index = self._by_level[record_filter.level]

            ids = index.range(lo, record_filter.to)
            ids.sort()
            return [self._records[record_id] for record_id in ids]

    def count(self) -> int:
        """Number of non-expired records."""
        with self._lock:
            self._check_open()
            return len(self._by_time.range(self.cutoff(), None))
