"""MinIO trace ingestion.

Reads the output of ``mc admin trace --json``: a sequence of JSON objects,
one per completed API call. MinIO logs each call when it *ends* and reports
only its duration, so the begin time is inferred as ``time - duration`` and
the records are re-serialized into BEGIN/END events by capture time.
"""
from __future__ import annotations

import calendar
import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Optional

from jsonschema import Draft202012Validator

from minio_statemap.errors import ErrorCode, ParseError
from minio_statemap.state.policy import IDLE_LABEL
from minio_statemap.trace.event_model import Phase, TraceEvent

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "minio_trace.schema.json"

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d{1,9}))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)

_WHITESPACE = re.compile(r"\s*")


@dataclass(frozen=True)
class MinioTraceRecord:
    """One completed MinIO API call."""

    index: int
    host: str
    api: str
    end_ns: int
    duration_ns: int
    client: Optional[str] = None
    path: Optional[str] = None
    query: Optional[str] = None
    status_code: Optional[int] = None
    status_msg: Optional[str] = None

    @property
    def begin_ns(self) -> int:
        return self.end_ns - self.duration_ns

    def to_events(self) -> tuple[TraceEvent, TraceEvent]:
        """Return the BEGIN/END pair for this call."""
        request_id = str(self.index)
        return (
            TraceEvent(self.host, self.api, Phase.BEGIN, self.begin_ns, request_id),
            TraceEvent(self.host, self.api, Phase.END, self.end_ns, request_id),
        )


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def parse_rfc3339_ns(value: str) -> int:
    """Parse an RFC 3339 timestamp into nanoseconds since the Unix epoch.

    Keeps the full nanosecond fraction that MinIO emits, which datetime
    would truncate to microseconds.

    Raises:
        ValueError: If value is not an RFC 3339 timestamp
    """
    m = _RFC3339.match(value.strip())
    if not m:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    if not (1 <= month <= 12 and hour <= 23 and minute <= 59 and second <= 60):
        raise ValueError(f"timestamp field out of range: {value!r}")
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        raise ValueError(f"no such day in month: {value!r}")
    fraction = (m.group(7) or "").ljust(9, "0")

    seconds = calendar.timegm((year, month, day, hour, minute, second, 0, 0, 0))
    if m.group(9):
        offset = int(m.group(10)) * 3600 + int(m.group(11)) * 60
        seconds -= offset if m.group(9) == "+" else -offset
    return seconds * 1_000_000_000 + int(fraction)


def iter_json_values(text: str) -> Iterator[tuple[int, Any]]:
    """Yield (line_number, value) for each JSON value in a concatenated stream.

    Values may be separated by any whitespace, so both JSONL and
    pretty-printed concatenated objects are accepted.

    Raises:
        ParseError: On the first value that is not valid JSON
    """
    decoder = json.JSONDecoder()
    pos = _WHITESPACE.match(text, 0).end()
    index = 0
    while pos < len(text):
        line_num = text.count("\n", 0, pos) + 1
        try:
            value, pos = decoder.raw_decode(text, pos)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"line {line_num}: {e.msg}", ErrorCode.E201, record_index=index
            ) from e
        yield line_num, value
        index += 1
        pos = _WHITESPACE.match(text, pos).end()


def parse_minio_record(obj: Any, index: int, line_num: Optional[int] = None) -> MinioTraceRecord:
    """Validate a decoded JSON value and build a MinioTraceRecord.

    Raises:
        ParseError: If obj violates the trace schema or has a bad timestamp
    """
    where = f"line {line_num}: " if line_num is not None else ""

    errors = sorted(_validator().iter_errors(obj), key=lambda e: e.json_path)
    if errors:
        details = "; ".join(f"{e.json_path}: {e.message}" for e in errors[:3])
        raise ParseError(where + details, ErrorCode.E202, record_index=index)

    if obj["api"] == IDLE_LABEL:
        raise ParseError(f"{where}api '{IDLE_LABEL}' is reserved", ErrorCode.E202, record_index=index)

    try:
        end_ns = parse_rfc3339_ns(obj["time"])
    except ValueError as e:
        raise ParseError(where + str(e), ErrorCode.E203, record_index=index) from e

    duration_ns = int(obj["callStats"]["duration"])
    if duration_ns > end_ns:
        raise ParseError(
            f"{where}duration {duration_ns} ns reaches before the epoch",
            ErrorCode.E203,
            record_index=index,
        )

    return MinioTraceRecord(
        index=index,
        host=obj["host"],
        api=obj["api"],
        end_ns=end_ns,
        duration_ns=duration_ns,
        client=obj.get("client"),
        path=obj.get("path"),
        query=obj.get("query"),
        status_code=obj.get("statusCode"),
        status_msg=obj.get("statusMsg"),
    )


def load_minio_trace(path: Path) -> list[MinioTraceRecord]:
    """Load every record of a MinIO JSON trace file, in file order.

    Raises:
        ParseError: If the file cannot be read or any record is malformed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"{path}: {e}", ErrorCode.E200) from e

    records: list[MinioTraceRecord] = []
    for index, (line_num, obj) in enumerate(iter_json_values(text)):
        records.append(parse_minio_record(obj, index, line_num))
    return records


def _capture_order(event: TraceEvent) -> tuple[int, int, int]:
    # BEGIN before END at equal timestamps so zero-duration calls open first
    return (event.timestamp, 0 if event.is_begin else 1, int(event.request_id))


def records_to_events(records: list[MinioTraceRecord]) -> list[TraceEvent]:
    """Expand records into BEGIN/END events serialized by capture time."""
    events: list[TraceEvent] = []
    for record in records:
        events.extend(record.to_events())
    events.sort(key=_capture_order)
    return events


def read_minio_trace(path: Path) -> list[TraceEvent]:
    """Load a MinIO trace file as a capture-ordered event stream."""
    return records_to_events(load_minio_trace(path))
