"""
Log ingestion pipeline.

Validates candidate records and writes the survivors to the store. Accepts
single records, in-memory batches, JSON array blobs, local files, whole
directories of batch files, and text produced by a remote collector.

Design:
- Per-record failures (validation, bad types) are counted, never raised
  out of a batch
- Structural failures (undecodable source, store not open, collector
  down) abort the call that hit them
- Records already committed stay committed when a later one fails
- Per-record cost is one validation plus one O(1) store append
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from logstats.core.config import config
from logstats.core.exceptions import (
    CollectorError,
    MalformedSource,
    RecordValidationError,
    StoreUnavailable,
)
from logstats.data.schema import BatchResult, LogRecord, StoredRecord
from logstats.data.sources import Blob, RemoteCollector, decode_array, decode_collected
from logstats.data.store import RetentionStore
from logstats.data.validator import validate

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Validate-and-store pipeline bound to one store.

    Example:
        pipeline = IngestionPipeline(store)
        result = pipeline.ingest_from_file("logs_in/batch.json")
        print(result.success, result.errors)
    """

    def __init__(
        self,
        store: RetentionStore,
        validator: Callable[[Any], LogRecord] = validate,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            store: Open RetentionStore to write into
            validator: Candidate -> LogRecord callable
            max_workers: Threads used by ingest_batch (default from config)
        """
        self.store = store
        self.validator = validator
        self.max_workers = max_workers or config.ingest_workers

    def ingest_one(self, candidate: Any) -> StoredRecord:
        """
        Validate and store a single candidate.

        Raises:
            RecordValidationError: If the candidate is invalid
            StoreUnavailable: If the store is not open
        """
        try:
            record = self.validator(candidate)
        except RecordValidationError as e:
            logger.error(f"Failed to ingest record: {e}")
            raise

        stored = self.store.insert(record)
        logger.info(
            "Ingested record id=%d level=%s source=%s",
            stored.id,
            stored.level.value,
            stored.source,
        )
        return stored

    def _ingest_item(self, candidate: Any) -> bool:
        try:
            self.ingest_one(candidate)
        except StoreUnavailable:
            raise
        except (RecordValidationError, TypeError, ValueError) as e:
            logger.debug(f"Batch item rejected: {e}")
            return False
        return True

    def ingest_batch(self, candidates: Iterable[Any]) -> BatchResult:
        """
        Ingest every candidate independently.

        Args:
            candidates: Sequence of candidate records

        Returns:
            BatchResult with success and error counts

        Raises:
            StoreUnavailable: If the store is not open (earlier inserts are kept)
            TypeError: If candidates is a mapping or a string rather than a sequence
        """
        if isinstance(candidates, (str, bytes, bytearray, Mapping)):
            raise TypeError(f"expected a sequence of records, got {type(candidates).__name__}")

        items = list(candidates)
        if not items:
            return BatchResult(success=0, errors=0)

        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes: List[bool] = list(pool.map(self._ingest_item, items))
        else:
            outcomes = [self._ingest_item(item) for item in items]

        success = sum(1 for ok in outcomes if ok)
        result = BatchResult(success=success, errors=len(outcomes) - success)

        logger.info(
            "Batch processing complete: success=%d errors=%d total=%d",
            result.success,
            result.errors,
            result.total,
        )
        return result

    def ingest_from_source(self, blob: Blob) -> BatchResult:
        """
        Ingest a blob holding a JSON array of candidates.

        Raises:
            MalformedSource: If the blob is not JSON or not an array
        """
        try:
            candidates = decode_array(blob)
        except MalformedSource as e:
            logger.error(f"Rejected log source: {e}")
            raise
        return self.ingest_batch(candidates)

    def ingest_from_file(self, filepath: Union[str, Path]) -> BatchResult:
        """
        Ingest a local JSON array file.

        Raises:
            MalformedSource: If the file is unreadable or not a JSON array
        """
        filepath = Path(filepath)
        try:
            content = filepath.read_bytes()
        except OSError as e:
            logger.error(f"Error reading log file {filepath}: {e}")
            raise MalformedSource(f"Failed to read {filepath}: {e}") from e

        logger.info("Ingesting log file %s", filepath)
        return self.ingest_from_source(content)

    def ingest_directory(
        self,
        directory: Union[str, Path],
        pattern: str = "*.json",
    ) -> Dict[str, BatchResult]:
        """
        Ingest every matching file in a directory (non-recursive, sorted).

        Malformed files are logged and skipped.

        Returns:
            Mapping of file name -> BatchResult for files that were ingested
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"Log directory not found: {directory}")
            return {}

        files = sorted(p for p in directory.glob(pattern) if p.is_file())
        if not files:
            logger.info(f"No log files matching {pattern} in {directory}")
            return {}

        results: Dict[str, BatchResult] = {}
        for filepath in files:
            try:
                results[filepath.name] = self.ingest_from_file(filepath)
            except MalformedSource:
                continue
            logger.info(
                "Processed %s: success=%d errors=%d",
                filepath.name,
                results[filepath.name].success,
                results[filepath.name].errors,
            )
        return results

    def ingest_from_remote(
        self,
        collector: RemoteCollector,
        path: str,
        pattern: str = "*.log",
        max_lines: int = 1000,
    ) -> BatchResult:
        """
        Fetch text from a collector and ingest it.

        The text is a JSON array if it starts with ``[``, otherwise NDJSON.
        Undecodable NDJSON lines count as errors.

        Raises:
            CollectorError: If the collector fails
            MalformedSource: If array-shaped text does not decode to an array
        """
        logger.info("Fetching remote logs from %s (pattern=%s, max_lines=%d)", path, pattern, max_lines)
        try:
            text = collector.fetch(path, pattern, max_lines)
        except CollectorError as e:
            logger.error(f"Error fetching remote logs from {path}: {e}")
            raise

        candidates, undecodable = decode_collected(text)
        result = self.ingest_batch(candidates)
        if undecodable:
            result = BatchResult(success=result.success, errors=result.errors + undecodable)
        return result
