"""
Data module: validation, storage, ingestion, and aggregation of log records.

Pipeline:

    Candidate records (dicts, JSON files, collector text)
        ↓
    Validation (logstats/data/validator.py) → LogRecord
        ↓
    Storage (logstats/data/store.py) → StoredRecord, 10-day retention
        ↓
    Aggregation (logstats/data/aggregation.py) → top errors, time series, levels
        ↓
    Response envelopes (logstats/data/stats.py)
"""

from logstats.data.aggregation import (
    AggregationEngine,
    bucket_records,
    group_top_errors,
    level_shares,
    truncate_to_bucket,
)
from logstats.data.ingestion import IngestionPipeline
from logstats.data.query import Bucket, StatsQuery, parse_query_string, parse_stats_query
from logstats.data.schema import (
    BatchResult,
    LevelShare,
    LogLevel,
    LogRecord,
    StoredRecord,
    TimeSeriesBucket,
    TopErrorGroup,
)
from logstats.data.sources import (
    LocalFileCollector,
    RemoteCollector,
    decode_array,
    decode_collected,
    decode_lines,
)
from logstats.data.stats import levels_response, time_series_response, top_errors_response
from logstats.data.store import RecordFilter, RetentionStore
from logstats.data.validator import parse_instant, validate

__all__ = [
    # Schema
    "LogLevel",
    "LogRecord",
    "StoredRecord",
    "TopErrorGroup",
    "TimeSeriesBucket",
    "LevelShare",
    "BatchResult",

    # Validation
    "validate",
    "parse_instant",

    # Storage
    "RetentionStore",
    "RecordFilter",

    # Sources
    "RemoteCollector",
    "LocalFileCollector",
    "decode_array",
    "decode_lines",
    "decode_collected",

    # Ingestion
    "IngestionPipeline",

    # Queries
    "Bucket",
    "StatsQuery",
    "parse_stats_query",
    "parse_query_string",

    # Aggregation
    "AggregationEngine",
    "group_top_errors",
    "bucket_records",
    "level_shares",
    "truncate_to_bucket",

    # Responses
    "top_errors_response",
    "time_series_response",
    "levels_response",
]
