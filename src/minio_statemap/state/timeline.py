"""Per-entity timeline reconstruction.

An EntityTimelineBuilder folds one entity's BEGIN/END events into a
sequence of intervals, each a maximal span during which the entity's
reduced state did not change. Once an entity has been seen its row never
has a gap: with nothing open it sits in the idle state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from minio_statemap.errors import ErrorCode, ProtocolError
from minio_statemap.state.policy import PriorityTable, reduce_state
from minio_statemap.trace.event_model import Phase, TraceEvent

logger = logging.getLogger(__name__)


class OrphanPolicy(str, Enum):
    """What to do with an END that has no open BEGIN."""

    STRICT = "strict"  # raise ProtocolError
    LENIENT = "lenient"  # drop the END and log a warning


@dataclass(frozen=True)
class Interval:
    """A span of time during which an entity held one state."""

    entity_id: str
    state_label: str
    start_timestamp: int
    end_timestamp: int

    @property
    def duration(self) -> int:
        return self.end_timestamp - self.start_timestamp


class EntityTimelineBuilder:
    """Track one entity's open requests and emit its intervals.

    With zero-length coalescing on, a closed interval is held back until
    the next one is known to last; a state replaced at the instant it
    began is dropped and, when the state before it comes back, that
    earlier interval is resumed instead of split.
    """

    def __init__(
        self,
        entity_id: str,
        table: PriorityTable,
        *,
        orphan_policy: OrphanPolicy = OrphanPolicy.STRICT,
        coalesce_zero_length: bool = True,
    ) -> None:
        self.entity_id = entity_id
        self._table = table
        self._orphan_policy = orphan_policy
        self._coalesce = coalesce_zero_length

        # request_id -> op_kind
        self._open: dict[str, str] = {}
        # op_kind -> number of open requests of that kind
        self._kind_counts: dict[str, int] = {}

        self._active_label: Optional[str] = None
        self._active_start: Optional[int] = None
        self._pending: Optional[Interval] = None
        self._last_timestamp: Optional[int] = None
        self._intervals: list[Interval] = []
        self.orphans_dropped = 0

    @property
    def active_label(self) -> Optional[str]:
        return self._active_label

    @property
    def open_count(self) -> int:
        return len(self._open)

    @property
    def intervals(self) -> list[Interval]:
        """Intervals emitted so far, in time order."""
        return list(self._intervals)

    def on_event(self, event: TraceEvent, record_index: Optional[int] = None) -> list[Interval]:
        """Apply one event and return the intervals it finalized.

        Raises:
            ProtocolError: On an orphan END (strict policy), a repeated
                BEGIN, or a timestamp earlier than the previous event
        """
        if event.entity_id != self.entity_id:
            raise ValueError(f"event for {event.entity_id} routed to builder for {self.entity_id}")

        if self._last_timestamp is not None and event.timestamp < self._last_timestamp:
            raise ProtocolError(
                f"event at {event.timestamp} follows event at {self._last_timestamp}",
                ErrorCode.E212,
                entity_id=self.entity_id,
                timestamp=event.timestamp,
                record_index=record_index,
            )

        if event.phase is Phase.BEGIN:
            if event.request_id in self._open:
                raise ProtocolError(
                    f"request {event.request_id} is already open",
                    ErrorCode.E211,
                    entity_id=self.entity_id,
                    timestamp=event.timestamp,
                    record_index=record_index,
                )
            self._open[event.request_id] = event.op_kind
            self._kind_counts[event.op_kind] = self._kind_counts.get(event.op_kind, 0) + 1
        else:
            op_kind = self._open.pop(event.request_id, None)
            if op_kind is None:
                if self._orphan_policy is OrphanPolicy.LENIENT:
                    self.orphans_dropped += 1
                    logger.warning(
                        "Dropping END without BEGIN: entity=%s request=%s timestamp=%d record=%s",
                        self.entity_id,
                        event.request_id,
                        event.timestamp,
                        record_index,
                    )
                    return []
                raise ProtocolError(
                    f"request {event.request_id} has no open BEGIN",
                    ErrorCode.E210,
                    entity_id=self.entity_id,
                    timestamp=event.timestamp,
                    record_index=record_index,
                )
            remaining = self._kind_counts[op_kind] - 1
            if remaining:
                self._kind_counts[op_kind] = remaining
            else:
                del self._kind_counts[op_kind]

        self._last_timestamp = event.timestamp
        label = reduce_state(self._kind_counts, self._table)
        return self._transition(label, event.timestamp)

    def flush(self, end_timestamp: int) -> list[Interval]:
        """Close the active interval at end_timestamp and reset.

        Raises:
            ProtocolError: If end_timestamp precedes the entity's last event
        """
        if self._active_label is None or self._active_start is None:
            return []
        if self._last_timestamp is not None and end_timestamp < self._last_timestamp:
            raise ProtocolError(
                f"stream end {end_timestamp} precedes last event at {self._last_timestamp}",
                ErrorCode.E213,
                entity_id=self.entity_id,
                timestamp=end_timestamp,
            )

        if self._open:
            logger.debug(
                "%s: %d request(s) still open at stream end", self.entity_id, len(self._open)
            )

        final = Interval(self.entity_id, self._active_label, self._active_start, end_timestamp)
        emitted: list[Interval] = []
        if self._pending is not None:
            emitted.append(self._pending)
        # A trailing zero-length state adds nothing once a real interval precedes it.
        if not (self._coalesce and final.duration == 0 and self._pending is not None):
            emitted.append(final)

        self._open.clear()
        self._kind_counts.clear()
        self._active_label = None
        self._active_start = None
        self._pending = None
        self._intervals.extend(emitted)
        return emitted

    def _transition(self, label: str, timestamp: int) -> list[Interval]:
        if self._active_label is None or self._active_start is None:
            self._active_label = label
            self._active_start = timestamp
            return []
        if label == self._active_label:
            return []

        emitted: list[Interval] = []
        if self._coalesce and timestamp == self._active_start:
            # The active state never lasted; drop it.
            pending = self._pending
            if pending is not None and pending.state_label == label:
                self._pending = None
                self._active_label = label
                self._active_start = pending.start_timestamp
                return []
        else:
            closed = Interval(self.entity_id, self._active_label, self._active_start, timestamp)
            if self._pending is not None:
                emitted.append(self._pending)
            if self._coalesce:
                self._pending = closed
            else:
                self._pending = None
                emitted.append(closed)

        self._active_label = label
        self._active_start = timestamp
        self._intervals.extend(emitted)
        return emitted
