"""
Log stats service: ingest structured log records, keep them for ten days,
and answer top-errors, time-series and level-distribution queries.
"""

__version__ = "1.0.0"
