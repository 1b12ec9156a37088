"""
Integration test for the full ingestion -> storage -> stats flow.

Tests end-to-end behaviour from JSON files and collector output to the
response envelopes.
"""

import json

import pytest
from datetime import datetime, timedelta, timezone

from logstats.data import (
    AggregationEngine,
    IngestionPipeline,
    LocalFileCollector,
    RetentionStore,
    levels_response,
    time_series_response,
    top_errors_response,
)


NOW = datetime(2025, 2, 7, 12, 0, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


@pytest.mark.integration
class TestFullPipeline:
    """Test end-to-end pipeline from raw files to stats."""

    def test_directory_and_remote_to_stats(self, tmp_path):
        batch_dir = tmp_path / "logs_in"
        batch_dir.mkdir()
        (batch_dir / "errors.json").write_text(json.dumps(
            [
                {
                    "timestamp": _iso(NOW - timedelta(minutes=m)),
                    "level": "error",
                    "message": f"Database connection failed ({m})",
                    "source": "api-server" if m % 2 else "worker",
                    "errorCode": "DB_CONN_001",
                }
                for m in range(1, 7)
            ]
            + [
                {"timestamp": "garbage", "level": "error", "message": "x", "source": "y"},
            ]
        ))
        (batch_dir / "mixed.json").write_text(json.dumps([
            {"timestamp": _iso(NOW - timedelta(hours=2)), "level": "info", "message": "ok", "source": "web"},
            {"timestamp": _iso(NOW - timedelta(days=12)), "level": "error", "message": "ancient",
             "source": "web", "errorCode": "OLD_001"},
        ]))

        remote_dir = tmp_path / "remote"
        remote_dir.mkdir()
        (remote_dir / "app.log").write_text("\n".join([
            json.dumps({"timestamp": _iso(NOW - timedelta(hours=2, minutes=5)), "level": "warn",
                        "message": "slow", "source": "db"}),
            "Tue Feb  7 09:00:00 plain text line",
            json.dumps({"timestamp": _iso(NOW - timedelta(minutes=3)), "level": "debug",
                        "message": "tick", "source": "db"}),
        ]))

        with RetentionStore(clock=lambda: NOW) as store:
            pipeline = IngestionPipeline(store)

            # Step 1: Ingest local batches
            results = pipeline.ingest_directory(batch_dir)
            assert results["errors.json"].success == 6
            assert results["errors.json"].errors == 1
            assert results["mixed.json"].success == 2

            # Step 2: Ingest collector output
            remote = pipeline.ingest_from_remote(LocalFileCollector(), str(remote_dir))
            assert (remote.success, remote.errors) == (2, 1)

            engine = AggregationEngine(store)

            # Step 3: Top errors (expired OLD_001 must not appear)
            top = top_errors_response(engine, {"limit": ["5"]})
            assert top["success"] is True
            assert [row["errorCode"] for row in top["data"]] == ["DB_CONN_001"]
            assert top["data"][0]["count"] == 6
            assert len(top["data"][0]["sampleMessages"]) == 5
            assert top["data"][0]["sources"] == ["api-server", "worker"]

            # Step 4: Time series by hour
            series = time_series_response(engine, {"bucket": ["hour"]})
            totals = [row["total"] for row in series["data"]]
            assert sum(totals) == 9
            stamps = [row["timestamp"] for row in series["data"]]
            assert stamps == sorted(stamps)

            # Step 5: Level distribution
            levels = levels_response(engine, {})
            by_level = {row["level"]: row for row in levels["data"]}
            assert by_level["error"]["count"] == 6
            assert levels["meta"]["total"] == 9
            assert abs(sum(row["percentage"] for row in levels["data"]) - 100) <= len(levels["data"])

            # Step 6: Compaction reclaims only the expired record
            assert store.expire() == 1
            assert levels_response(engine, {})["meta"]["total"] == 9

    def test_window_narrowing(self, tmp_path):
        with RetentionStore(clock=lambda: NOW) as store:
            pipeline = IngestionPipeline(store)
            pipeline.ingest_batch([
                {"timestamp": _iso(NOW - timedelta(hours=h)), "level": "info", "message": "m", "source": "s"}
                for h in range(24)
            ])
            engine = AggregationEngine(store)

            params = {"from": [_iso(NOW - timedelta(hours=5))], "to": [_iso(NOW - timedelta(hours=1))]}
            series = time_series_response(engine, params)

            assert len(series["data"]) == 5
            assert all(row["total"] == 1 for row in series["data"])
            assert series["meta"]["period"]["from"].startswith("2025-02-07T07:00:00")
