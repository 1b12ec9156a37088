"""
Stats response envelopes.

Maps raw query parameters to a complete JSON-ready response for each
aggregation. A request either yields a full result or the single uniform
failure envelope; there are no partial results.
"""

import logging
from typing import Any, Dict, List

from pydantic import BaseModel

from logstats.core.exceptions import InvalidParameters
from logstats.data.aggregation import AggregationEngine
from logstats.data.query import QueryParams, parse_stats_query

logger = logging.getLogger(__name__)

INVALID_PARAMETERS = {"success": False, "error": "invalid parameters"}


def _dump(rows: List[BaseModel]) -> List[Dict[str, Any]]:
    return [row.model_dump(mode="json", by_alias=True) for row in rows]


def top_errors_response(engine: AggregationEngine, params: QueryParams) -> Dict[str, Any]:
    try:
        query = parse_stats_query(params)
        groups = engine.top_errors(query.from_, query.to, query.limit)
    except InvalidParameters as e:
        logger.error(f"Invalid top-errors parameters: {e}")
        return dict(INVALID_PARAMETERS)

    return {
        "success": True,
        "data": _dump(groups),
        "meta": {"total": len(groups), "period": query.period()},
    }


def time_series_response(engine: AggregationEngine, params: QueryParams) -> Dict[str, Any]:
    try:
        query = parse_stats_query(params)
    except InvalidParameters as e:
        logger.error(f"Invalid time-series parameters: {e}")
        return dict(INVALID_PARAMETERS)

    series = engine.time_series(query.from_, query.to, query.bucket)
    return {
        "success": True,
        "data": _dump(series),
        "meta": {"bucket": query.bucket.value, "period": query.period()},
    }


def levels_response(engine: AggregationEngine, params: QueryParams) -> Dict[str, Any]:
    try:
        query = parse_stats_query(params)
    except InvalidParameters as e:
        logger.error(f"Invalid levels parameters: {e}")
        return dict(INVALID_PARAMETERS)

    shares = engine.level_distribution(query.from_, query.to)
    return {
        "success": True,
        "data": _dump(shares),
        "meta": {"total": sum(share.count for share in shares), "period": query.period()},
    }
