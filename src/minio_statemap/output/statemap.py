"""Statemap output.

A statemap file is a metadata object followed by one state record per
state change, in time order:

    {"start": [1585736430, 0], "title": "MinIO", "host": "minio cluster",
     "entityKind": "Host", "states": {"idle": {"value": 0, "color": "white"}}, ...}
    {"time": "0", "entity": "minio-1:9000", "state": 1}
    {"time": "1500000", "entity": "minio-1:9000", "state": 0}

Record times are nanoseconds since ``start`` as strings. A record's state
lasts until the entity's next record, so every row ends with an idle record
at the stream end.
"""
from __future__ import annotations

import heapq
import json
from typing import Any, Iterator, TextIO

from minio_statemap.convert import ConversionResult
from minio_statemap.errors import ErrorCode, StatemapError
from minio_statemap.state.legend import Legend
from minio_statemap.state.policy import IDLE_LABEL
from minio_statemap.state.timeline import Interval

ENTITY_KIND = "Host"

NS_PER_SEC = 1_000_000_000


def build_metadata(result: ConversionResult, title: str, cluster_name: str) -> dict[str, Any]:
    """Build the statemap metadata header."""
    start = result.start_timestamp or 0
    return {
        "start": [start // NS_PER_SEC, start % NS_PER_SEC],
        "title": title,
        "host": cluster_name,
        "entityKind": ENTITY_KIND,
        "states": result.legend.to_dict(),
        "entities": {entity: {"description": entity} for entity in result.entities},
    }


def _ordered_intervals(result: ConversionResult) -> Iterator[Interval]:
    # Per-entity lists are already time ordered; merge them, ties by entity order.
    streams = [
        [(interval.start_timestamp, order, seq, interval) for seq, interval in enumerate(timeline)]
        for order, timeline in enumerate(result.intervals.values())
    ]
    for _, _, _, interval in heapq.merge(*streams):
        yield interval


def _record(offset: int, entity: str, label: str, legend: Legend) -> str:
    if label not in legend:
        raise StatemapError(f"interval references unregistered state {label!r}", ErrorCode.E220)
    return json.dumps({"time": str(offset), "entity": entity, "state": legend.value_of(label)})


def render_statemap(result: ConversionResult, title: str, cluster_name: str) -> Iterator[str]:
    """Yield the statemap file line by line (without newlines)."""
    start = result.start_timestamp or 0
    legend = result.legend
    yield json.dumps(build_metadata(result, title, cluster_name))

    for interval in _ordered_intervals(result):
        yield _record(interval.start_timestamp - start, interval.entity_id, interval.state_label, legend)

    # Records carry no end time, so close each row at the stream end.
    end = result.end_timestamp
    if end is None:
        return
    for entity, timeline in result.intervals.items():
        if timeline and timeline[-1].end_timestamp == end:
            yield _record(end - start, entity, IDLE_LABEL, legend)


def write_statemap(result: ConversionResult, stream: TextIO, title: str, cluster_name: str) -> None:
    """Write a complete statemap file to stream.

    The whole file is rendered before the first write so a failure never
    leaves a partial statemap behind.
    """
    lines = list(render_statemap(result, title, cluster_name))
    _write_lines(stream, lines)


def render_intervals(result: ConversionResult) -> Iterator[str]:
    """Yield one JSON object per interval, grouped by entity."""
    for timeline in result.intervals.values():
        for interval in timeline:
            yield json.dumps(
                {
                    "entity": interval.entity_id,
                    "state": interval.state_label,
                    "start": interval.start_timestamp,
                    "end": interval.end_timestamp,
                    "duration": interval.duration,
                }
            )


def write_intervals_jsonl(result: ConversionResult, stream: TextIO) -> None:
    """Write every interval as JSONL."""
    _write_lines(stream, list(render_intervals(result)))


def _write_lines(stream: TextIO, lines: list[str]) -> None:
    try:
        for line in lines:
            stream.write(line)
            stream.write("\n")
        stream.flush()
    except OSError as e:
        raise StatemapError(str(e), ErrorCode.E300) from e
