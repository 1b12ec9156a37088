"""
Unit tests for source decoding and the local file collector.
"""

import json

import pytest

from logstats.core.exceptions import CollectorError, MalformedSource
from logstats.data.sources import (
    LocalFileCollector,
    decode_array,
    decode_collected,
    decode_lines,
)


class TestDecodeArray:
    """Test strict JSON array decoding."""

    def test_array(self):
        assert decode_array('[{"a": 1}, {"b": 2}]') == [{"a": 1}, {"b": 2}]

    def test_bytes_and_bom(self):
        assert decode_array("\ufeff[]".encode("utf-8")) == []

    @pytest.mark.parametrize("blob", ['{"level": "info"}', '"text"', "42", "null"])
    def test_non_array_rejected(self, blob):
        with pytest.raises(MalformedSource):
            decode_array(blob)

    @pytest.mark.parametrize("blob", ["", "not json", "[{]"])
    def test_undecodable_rejected(self, blob):
        with pytest.raises(MalformedSource):
            decode_array(blob)

    def test_invalid_utf8_rejected(self):
        with pytest.raises(MalformedSource):
            decode_array(b"\xff\xfe[")


class TestDecodeLines:
    """Test NDJSON decoding."""

    def test_counts_bad_lines(self):
        text = '{"a": 1}\n\nnot json\n{"b": 2}\n'

        candidates, undecodable = decode_lines(text)

        assert candidates == [{"a": 1}, {"b": 2}]
        assert undecodable == 1

    def test_empty_text(self):
        assert decode_lines("") == ([], 0)


class TestDecodeCollected:
    """Test layout detection for collector output."""

    def test_array_layout(self):
        assert decode_collected('  [{"a": 1}]') == ([{"a": 1}], 0)

    def test_ndjson_layout(self):
        assert decode_collected('{"a": 1}\n{"b": 2}') == ([{"a": 1}, {"b": 2}], 0)

    def test_broken_array_layout_raises(self):
        with pytest.raises(MalformedSource):
            decode_collected("[{")


class TestLocalFileCollector:
    """Test the filesystem-backed collector."""

    def test_tails_matching_files(self, tmp_path):
        (tmp_path / "a.log").write_text("\n".join(f"a{i}" for i in range(5)) + "\n")
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "b.log").write_text("b0\nb1\n")
        (tmp_path / "skip.txt").write_text("ignored\n")

        text = LocalFileCollector().fetch(str(tmp_path), "*.log", max_lines=2)

        assert text.splitlines() == ["a3", "a4", "b0", "b1"]

    def test_single_file_path(self, tmp_path):
        path = tmp_path / "one.log"
        path.write_text(json.dumps({"x": 1}) + "\n")

        assert LocalFileCollector().fetch(str(path)) == '{"x": 1}'

    def test_missing_path(self, tmp_path):
        with pytest.raises(CollectorError):
            LocalFileCollector().fetch(str(tmp_path / "missing"))

    def test_no_matches_yields_empty_text(self, tmp_path):
        assert LocalFileCollector().fetch(str(tmp_path)) == ""

    def test_invalid_max_lines(self, tmp_path):
        with pytest.raises(ValueError):
            LocalFileCollector().fetch(str(tmp_path), max_lines=0)
