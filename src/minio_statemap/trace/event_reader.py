from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator

from minio_statemap.errors import ErrorCode, ParseError
from minio_statemap.state.policy import IDLE_LABEL
from minio_statemap.trace.event_model import Phase, TraceEvent
from minio_statemap.trace.minio_reader import parse_rfc3339_ns


# Field name mappings: canonical name -> accepted alternatives
FIELD_MAPPINGS = {
    "entity": ["entity", "entity_id", "entityId", "host"],
    "op": ["op", "op_kind", "opKind", "api"],
    "phase": ["phase", "ph"],
    "timestamp": ["timestamp", "ts", "time"],
    "request_id": ["request_id", "requestId", "req_id", "id"],
}

PHASE_ALIASES = {
    "begin": Phase.BEGIN,
    "b": Phase.BEGIN,
    "start": Phase.BEGIN,
    "end": Phase.END,
    "e": Phase.END,
}


def extract_field(obj: dict[str, Any], canonical_name: str) -> Any:
    """Extract a field using any of its accepted names."""
    for name in FIELD_MAPPINGS.get(canonical_name, [canonical_name]):
        if name in obj:
            return obj[name]
    return None


def _require_str(obj: dict[str, Any], name: str, where: str) -> str:
    value = extract_field(obj, name)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value:
        raise ParseError(f"{where}: missing or empty '{name}'", ErrorCode.E202)
    return value


def parse_event(obj: Any, where: str = "record") -> TraceEvent:
    """Build a TraceEvent from one decoded JSON object.

    Timestamps are integer nanoseconds or RFC 3339 strings.

    Raises:
        ParseError: If a field is missing or has the wrong type
    """
    if not isinstance(obj, dict):
        raise ParseError(f"{where}: expected a JSON object, got {type(obj).__name__}", ErrorCode.E202)

    entity = _require_str(obj, "entity", where)
    op = _require_str(obj, "op", where)
    if op == IDLE_LABEL:
        raise ParseError(f"{where}: op '{IDLE_LABEL}' is reserved", ErrorCode.E202)
    request_id = _require_str(obj, "request_id", where)

    raw_phase = extract_field(obj, "phase")
    phase = PHASE_ALIASES.get(raw_phase.lower()) if isinstance(raw_phase, str) else None
    if phase is None:
        raise ParseError(f"{where}: phase must be 'begin' or 'end', got {raw_phase!r}", ErrorCode.E202)

    raw_ts = extract_field(obj, "timestamp")
    if isinstance(raw_ts, int) and not isinstance(raw_ts, bool):
        timestamp = raw_ts
    elif isinstance(raw_ts, str):
        try:
            timestamp = int(raw_ts) if raw_ts.strip().isdigit() else parse_rfc3339_ns(raw_ts)
        except ValueError as e:
            raise ParseError(f"{where}: {e}", ErrorCode.E203) from e
    else:
        raise ParseError(f"{where}: invalid timestamp {raw_ts!r}", ErrorCode.E203)
    if timestamp < 0:
        raise ParseError(f"{where}: negative timestamp {timestamp}", ErrorCode.E203)

    return TraceEvent(
        entity_id=entity,
        op_kind=op,
        phase=phase,
        timestamp=timestamp,
        request_id=request_id,
    )


def iter_event_lines(lines: Iterable[str]) -> Iterator[TraceEvent]:
    """Parse JSONL event lines lazily, preserving order.

    Blank lines are skipped; anything else that fails to parse aborts.
    """
    index = 0
    for line_num, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"line {line_num}: {e.msg}", ErrorCode.E201, record_index=index) from e
        try:
            yield parse_event(obj, where=f"line {line_num}")
        except ParseError as e:
            raise ParseError(str(e), e.code, record_index=index) from e
        index += 1


def read_event_stream(path: Path) -> Iterator[TraceEvent]:
    """Stream TraceEvents from a JSONL file in file order."""
    try:
        handle = path.open(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"{path}: {e}", ErrorCode.E200) from e
    with handle:
        try:
            yield from iter_event_lines(handle)
        except UnicodeDecodeError as e:
            raise ParseError(f"{path}: {e}", ErrorCode.E200) from e
