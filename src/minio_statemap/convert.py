"""Conversion driver: event stream -> legend + per-entity intervals."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from minio_statemap.config import Config
from minio_statemap.state.legend import Legend
from minio_statemap.state.policy import IDLE_LABEL
from minio_statemap.state.timeline import EntityTimelineBuilder, Interval
from minio_statemap.trace.event_model import TraceEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """Finished output of one conversion run."""

    legend: Legend
    # entity -> intervals, entities in first-seen order
    intervals: dict[str, list[Interval]] = field(default_factory=dict)
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    event_count: int = 0

    @property
    def entities(self) -> list[str]:
        return list(self.intervals)

    def is_empty(self) -> bool:
        return not self.intervals


def run(
    events: Iterable[TraceEvent],
    config: Optional[Config] = None,
    end_timestamp: Optional[int] = None,
) -> ConversionResult:
    """Convert a serialized event stream into per-entity intervals.

    Events are consumed strictly in the order given. Each entity gets its
    own EntityTimelineBuilder on first sight; at the end of the stream every
    builder is flushed in first-seen order, so the same input always yields
    the same legend and intervals. Labels enter the legend in the order
    they first became active, skipping any whose interval was coalesced
    away; a dropped orphan END does not move the stream end.

    Args:
        events: TraceEvents in capture order
        config: Reduction and policy settings; defaults apply when None
        end_timestamp: Where to close still-active intervals; defaults to
            the greatest timestamp in the stream

    Returns:
        ConversionResult with a frozen legend

    Raises:
        ParseError: Propagated from the event source
        ProtocolError: On the first event that breaks BEGIN/END pairing or
            per-entity ordering; no partial result is produced
    """
    config = config or Config()
    table = config.priority_table()
    legend = Legend(colors=config.colors)
    builders: dict[str, EntityTimelineBuilder] = {}
    # labels in the order they first became active
    seen: dict[str, None] = {}

    start: Optional[int] = None
    latest: Optional[int] = None
    count = 0

    for index, event in enumerate(events):
        count += 1
        builder = builders.get(event.entity_id)
        if builder is None:
            builder = EntityTimelineBuilder(
                event.entity_id,
                table,
                orphan_policy=config.orphan_policy,
                coalesce_zero_length=config.coalesce_zero_length,
            )
            builders[event.entity_id] = builder

        dropped = builder.orphans_dropped
        builder.on_event(event, record_index=index)
        if builder.orphans_dropped != dropped:
            continue

        seen.setdefault(builder.active_label)
        if start is None or event.timestamp < start:
            start = event.timestamp
        if latest is None or event.timestamp > latest:
            latest = event.timestamp

    if end_timestamp is None:
        end_timestamp = latest

    intervals: dict[str, list[Interval]] = {}
    orphans = 0
    if end_timestamp is not None:
        for entity_id, builder in builders.items():
            builder.flush(end_timestamp)
            orphans += builder.orphans_dropped
            timeline = builder.intervals
            if timeline:
                intervals[entity_id] = timeline

    # Only labels that survived into an interval get an id; idle always
    # does, since it closes every row.
    used = {i.state_label for timeline in intervals.values() for i in timeline}
    if used:
        used.add(IDLE_LABEL)
        seen.setdefault(IDLE_LABEL)
    for label in seen:
        if label in used:
            legend.register(label)
    legend.freeze()
    logger.debug(
        "Converted %d event(s) into %d interval(s) across %d entit(ies), %d state(s)",
        count,
        sum(len(t) for t in intervals.values()),
        len(intervals),
        len(legend),
    )
    if orphans:
        logger.warning("Dropped %d END event(s) without a matching BEGIN", orphans)

    return ConversionResult(
        legend=legend,
        intervals=intervals,
        start_timestamp=start if intervals else None,
        end_timestamp=end_timestamp if intervals else None,
        event_count=count,
    )
