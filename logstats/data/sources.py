"""
Source decoding and log collectors.

A *source* is a text blob holding candidate records. Two layouts are
understood:

- JSON array: ``[{...}, {...}]`` (local batch files, request bodies)
- NDJSON: one JSON object per line (tail output from a collector)

A *collector* produces such text from somewhere else. The service only
depends on the ``RemoteCollector`` shape; ``LocalFileCollector`` implements
it over the local filesystem so the remote ingest path works without any
network transport.
"""

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any, List, Protocol, Tuple, Union

from logstats.core.exceptions import CollectorError, MalformedSource

logger = logging.getLogger(__name__)

Blob = Union[str, bytes, bytearray]


def _as_text(blob: Blob) -> str:
    if isinstance(blob, (bytes, bytearray)):
        try:
            blob = bytes(blob).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedSource(f"Source is not valid UTF-8: {e}") from e
    if not isinstance(blob, str):
        raise MalformedSource(f"Unsupported source type: {type(blob).__name__}")
    return blob.lstrip("\ufeff")


def decode_array(blob: Blob) -> List[Any]:
    """
    Decode a blob that must hold a JSON array.

    Args:
        blob: Text or UTF-8 bytes

    Returns:
        The decoded list (items are not validated here)

    Raises:
        MalformedSource: If the blob is not JSON or not an array
    """
    text = _as_text(blob)
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSource(f"Invalid JSON: {e}") from e

    if not isinstance(decoded, list):
        raise MalformedSource(f"Source must be a JSON array, got {type(decoded).__name__}")
    return decoded


def decode_lines(blob: Blob) -> Tuple[List[Any], int]:
    """
    Decode NDJSON text, one candidate per non-blank line.

    Lines that are not valid JSON are logged and counted, not raised.

    Returns:
        Tuple of (decoded candidates, number of undecodable lines)
    """
    candidates: List[Any] = []
    undecodable = 0
    for line_num, line in enumerate(_as_text(blob).splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            candidates.append(json.loads(line))
        except json.JSONDecodeError:
            undecodable += 1
            logger.warning(f"Malformed JSON at line {line_num}: {line[:100]}")
    return candidates, undecodable


def decode_collected(blob: Blob) -> Tuple[List[Any], int]:
    """
    Decode collector output: a JSON array if it looks like one, else NDJSON.

    Returns:
        Tuple of (decoded candidates, number of undecodable lines)
    """
    text = _as_text(blob).strip()
    if text.startswith("["):
        return decode_array(text), 0
    return decode_lines(text)


class RemoteCollector(Protocol):
    """Anything that can hand back log text for a path."""

    def fetch(self, path: str, pattern: str = "*.log", max_lines: int = 1000) -> str:
        """
        Return the last ``max_lines`` lines of each file under ``path``
        matching ``pattern``, concatenated.

        Raises:
            CollectorError: On any transport or lookup failure
        """
        ...


class LocalFileCollector:
    """
    Collector backed by the local filesystem.

    Mirrors ``find PATH -name PATTERN -type f -exec tail -n MAX_LINES``: files
    are visited recursively in sorted order and only their tails are read.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def fetch(self, path: str, pattern: str = "*.log", max_lines: int = 1000) -> str:
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")

        root = Path(path)
        if not root.exists():
            raise CollectorError(f"Path not found: {root}")

        files = [root] if root.is_file() else sorted(p for p in root.rglob(pattern) if p.is_file())
        logger.info("Collecting %d file(s) from %s (pattern=%s, max_lines=%d)", len(files), root, pattern, max_lines)

        chunks: List[str] = []
        for file_path in files:
            try:
                with open(file_path, "r", encoding=self.encoding) as f:
                    tail = deque(f, maxlen=max_lines)
            except (OSError, UnicodeDecodeError) as e:
                raise CollectorError(f"Failed to read {file_path}: {e}") from e
            chunks.append("".join(tail).rstrip("\n"))

        return "\n".join(chunk for chunk in chunks if chunk)
