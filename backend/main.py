"""
Backend HTTP server for the log stats service.

Thin request/response mapping over the ingestion pipeline and the stats
envelopes. Routes:

    GET  /health
    GET  /stats/top-errors?from=&to=&limit=
    GET  /stats/time-series?from=&to=&bucket=
    GET  /stats/levels?from=&to=
    POST /logs                (JSON array body)
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
import time
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from dotenv import load_dotenv

from logstats.core.config import config
from logstats.core.exceptions import MalformedSource, StoreUnavailable
from logstats.core.logging_config import setup_logging
from logstats.data import (
    AggregationEngine,
    IngestionPipeline,
    RetentionStore,
    levels_response,
    time_series_response,
    top_errors_response,
)

load_dotenv()

logger = logging.getLogger("backend")

STATS_ROUTES: Dict[str, Callable] = {
    "/stats/top-errors": top_errors_response,
    "/stats/time-series": time_series_response,
    "/stats/levels": levels_response,
}


class StatsServer(ThreadingHTTPServer):
    """Threaded HTTP server bound to one store."""

    daemon_threads = True

    def __init__(self, address: Tuple[str, int], store: RetentionStore) -> None:
        super().__init__(address, BackendHandler)
        self.store = store
        self.pipeline = IngestionPipeline(store)
        self.engine = AggregationEngine(store)
        self.started_at = time.monotonic()


class BackendHandler(BaseHTTPRequestHandler):
    server_version = "LogStats/1.0"
    server: StatsServer

    def _send_json(self, status: int, payload: Dict[str, object]) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logger.info("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        url = urlsplit(self.path)

        if url.path == "/health":
            self._send_json(
                200,
                {
                    "status": "ok",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "uptime": round(time.monotonic() - self.server.started_at, 3),
                },
            )
            return

        handler = STATS_ROUTES.get(url.path)
        if handler is None:
            self._send_json(404, {"success": False, "error": "not found"})
            return

        params = parse_qs(url.query, keep_blank_values=True)
        try:
            payload = handler(self.server.engine, params)
        except StoreUnavailable as exc:
            logger.error("Stats query failed: %s", exc)
            self._send_json(503, {"success": False, "error": "store unavailable"})
            return

        self._send_json(200 if payload["success"] else 400, payload)

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.end_headers()

    def do_POST(self) -> None:
        if urlsplit(self.path).path != "/logs":
            self._send_json(404, {"success": False, "error": "not found"})
            return

        length = int(self.headers.get("Content-Length", "0"))
        body = self.rfile.read(length) if length > 0 else b""

        try:
            result = self.server.pipeline.ingest_from_source(body)
        except MalformedSource:
            self._send_json(400, {"success": False, "error": "malformed source"})
            return
        except StoreUnavailable as exc:
            logger.error("Ingest failed: %s", exc)
            self._send_json(503, {"success": False, "error": "store unavailable"})
            return

        self._send_json(200, {"success": True, "data": result.model_dump()})


def start_compaction(store: RetentionStore, interval_seconds: int) -> Optional[threading.Event]:
    """
    Run ``store.expire()`` every ``interval_seconds`` on a daemon thread.

    Returns:
        Event that stops the loop when set, or None if disabled (interval 0)
    """
    if interval_seconds <= 0:
        return None

    stop = threading.Event()

    def _loop() -> None:
        while not stop.wait(interval_seconds):
            try:
                store.expire()
            except StoreUnavailable:
                return

    threading.Thread(target=_loop, name="store-compaction", daemon=True).start()
    return stop


def run(host: str, port: int, ingest_dir: Optional[Path] = None) -> None:
    setup_logging()
    store = RetentionStore().open()

    if ingest_dir is not None:
        results = IngestionPipeline(store).ingest_directory(ingest_dir)
        logger.info("Preloaded %d file(s) from %s, %d live records", len(results), ingest_dir, store.count())

    server = StatsServer((host, port), store)
    stop_compaction = start_compaction(store, config.compaction_interval_seconds)

    def _terminate(signum, frame) -> None:
        logger.info("Signal %s received, shutting down", signum)
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _terminate)

    logger.info("Starting backend server on %s:%s", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        if stop_compaction is not None:
            stop_compaction.set()
        server.server_close()
        store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Log stats backend server")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument(
        "--ingest-dir",
        type=Path,
        default=config.ingest_dir,
        help="Directory of *.json batches to load at startup",
    )
    parser.add_argument("--no-ingest", action="store_true", help="Skip the startup directory load")
    args = parser.parse_args()

    run(args.host, args.port, None if args.no_ingest else args.ingest_dir)


if __name__ == "__main__":
    main()
