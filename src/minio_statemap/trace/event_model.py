from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    """Whether an event opens or closes a request."""

    BEGIN = "begin"
    END = "end"


@dataclass(frozen=True)
class TraceEvent:
    """One request boundary on one entity."""

    entity_id: str  # MinIO host, e.g. minio-1:9000
    op_kind: str  # e.g. s3.PutObject
    phase: Phase
    timestamp: int  # nanoseconds since the Unix epoch
    request_id: str  # unique among the entity's open requests

    @property
    def is_begin(self) -> bool:
        return self.phase is Phase.BEGIN

    @property
    def key(self) -> tuple[str, str]:
        return (self.entity_id, self.request_id)
