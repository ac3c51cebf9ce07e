"""Tests for the JSONL event stream reader."""
from __future__ import annotations

from pathlib import Path

import pytest

from minio_statemap.errors import ErrorCode, ParseError
from minio_statemap.trace.event_model import Phase, TraceEvent
from minio_statemap.trace.event_reader import iter_event_lines, parse_event, read_event_stream


class TestParseEvent:
    """Tests for parse_event."""

    def test_canonical_fields(self) -> None:
        event = parse_event(
            {"entity": "n1", "op": "s3.GetObject", "phase": "begin", "timestamp": 10, "request_id": "r1"}
        )
        assert event == TraceEvent("n1", "s3.GetObject", Phase.BEGIN, 10, "r1")
        assert event.is_begin
        assert event.key == ("n1", "r1")

    def test_alternative_field_names(self) -> None:
        event = parse_event({"host": "n1", "api": "s3.PutObject", "ph": "E", "ts": 5, "requestId": 42})
        assert event == TraceEvent("n1", "s3.PutObject", Phase.END, 5, "42")

    def test_rfc3339_timestamp(self) -> None:
        event = parse_event(
            {"entity": "n1", "op": "x", "phase": "end", "time": "1970-01-01T00:00:01.5Z", "id": "r"}
        )
        assert event.timestamp == 1_500_000_000

    def test_numeric_string_timestamp(self) -> None:
        event = parse_event({"entity": "n1", "op": "x", "phase": "begin", "timestamp": "77", "id": "r"})
        assert event.timestamp == 77

    @pytest.mark.parametrize(
        "obj",
        [
            {"op": "x", "phase": "begin", "timestamp": 1, "request_id": "r"},
            {"entity": "n", "phase": "begin", "timestamp": 1, "request_id": "r"},
            {"entity": "n", "op": "x", "timestamp": 1, "request_id": "r"},
            {"entity": "n", "op": "x", "phase": "middle", "timestamp": 1, "request_id": "r"},
            {"entity": "n", "op": "x", "phase": "begin", "timestamp": 1},
            {"entity": "", "op": "x", "phase": "begin", "timestamp": 1, "request_id": "r"},
        ],
    )
    def test_missing_or_bad_fields(self, obj: dict) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_event(obj)
        assert exc_info.value.code is ErrorCode.E202

    @pytest.mark.parametrize("ts", [None, True, 1.5, "soon", -1])
    def test_bad_timestamp(self, ts: object) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_event({"entity": "n", "op": "x", "phase": "begin", "timestamp": ts, "request_id": "r"})
        assert exc_info.value.code is ErrorCode.E203

    def test_idle_op_is_reserved(self) -> None:
        with pytest.raises(ParseError, match="reserved"):
            parse_event({"entity": "n", "op": "idle", "phase": "begin", "timestamp": 1, "request_id": "r"})

    def test_non_object(self) -> None:
        with pytest.raises(ParseError):
            parse_event(["n", "x"])


class TestReadEventStream:
    """Tests for streaming JSONL files."""

    def test_read_sample(self, sample_events_path: Path) -> None:
        events = list(read_event_stream(sample_events_path))
        assert len(events) == 6
        assert [e.timestamp for e in events] == [100, 150, 200, 250, 300, 400]
        assert events[1] == TraceEvent("node-2", "s3.HeadObject", Phase.BEGIN, 150, "r1")

    def test_order_is_preserved(self) -> None:
        lines = [
            '{"entity": "n", "op": "x", "phase": "begin", "timestamp": 9, "request_id": "a"}',
            '{"entity": "n", "op": "x", "phase": "end", "timestamp": 3, "request_id": "a"}',
        ]
        assert [e.timestamp for e in iter_event_lines(lines)] == [9, 3]

    def test_invalid_json_line(self) -> None:
        lines = ['{"entity": "n", "op": "x", "phase": "begin", "timestamp": 1, "request_id": "a"}', "", "{oops"]
        with pytest.raises(ParseError) as exc_info:
            list(iter_event_lines(lines))
        assert exc_info.value.code is ErrorCode.E201
        assert exc_info.value.record_index == 1
        assert "line 3" in str(exc_info.value)

    def test_bad_record_keeps_index(self) -> None:
        lines = ['{"entity": "n"}']
        with pytest.raises(ParseError) as exc_info:
            list(iter_event_lines(lines))
        assert exc_info.value.record_index == 0
        assert "line 1" in str(exc_info.value)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError) as exc_info:
            list(read_event_stream(tmp_path / "missing.jsonl"))
        assert exc_info.value.code is ErrorCode.E200
