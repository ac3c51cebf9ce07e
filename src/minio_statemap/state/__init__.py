"""State reconstruction: reduction policy, per-entity timelines, legend."""
from minio_statemap.state.legend import Legend, LegendEntry
from minio_statemap.state.policy import IDLE_LABEL, PriorityTable, reduce_state
from minio_statemap.state.timeline import EntityTimelineBuilder, Interval, OrphanPolicy

__all__ = [
    "IDLE_LABEL",
    "EntityTimelineBuilder",
    "Interval",
    "Legend",
    "LegendEntry",
    "OrphanPolicy",
    "PriorityTable",
    "reduce_state",
]
