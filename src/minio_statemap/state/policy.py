"""State reduction: many concurrently open requests, one displayed state.

A statemap row shows exactly one state per instant, while a MinIO host
serves hundreds of requests at once. The reduction picks the most
significant operation in the open set according to an ordered table of
op-kind patterns: writes outrank reads, reads outrank housekeeping.

The result depends only on which op kinds are open. Insertion order and
how many requests share a kind never matter, so two open sets with the
same contents always reduce to the same label.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Iterable, Sequence

from minio_statemap.errors import ConfigError


# Reserved label for an entity with no open requests
IDLE_LABEL = "idle"

# Highest priority first
DEFAULT_PRIORITY: tuple[str, ...] = (
    # write class
    "s3.Put*",
    "s3.Copy*",
    "s3.*MultipartUpload*",
    "s3.Delete*",
    # read class
    "s3.Get*",
    "s3.Select*",
    "s3.Head*",
    "s3.List*",
    # housekeeping
    "admin.*",
    "*Health*",
)


@dataclass(frozen=True)
class PriorityTable:
    """Ordered op-kind patterns, highest priority first.

    Patterns use shell-style wildcards and are matched case-sensitively.
    An op kind takes the rank of the first pattern it matches; op kinds
    that match nothing rank below every pattern.
    """

    patterns: tuple[str, ...] = DEFAULT_PRIORITY
    _ranks: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        patterns = tuple(self.patterns)
        seen: set[str] = set()
        for pattern in patterns:
            if not isinstance(pattern, str) or not pattern:
                raise ConfigError(f"priority patterns must be non-empty strings, got {pattern!r}")
            if pattern in seen:
                raise ConfigError(f"duplicate priority pattern: {pattern}")
            seen.add(pattern)
        object.__setattr__(self, "patterns", patterns)

    @classmethod
    def from_list(cls, patterns: Sequence[str]) -> PriorityTable:
        return cls(patterns=tuple(patterns))

    @property
    def unmatched_rank(self) -> int:
        return len(self.patterns)

    def rank(self, op_kind: str) -> int:
        """Return the rank of op_kind; lower is more significant."""
        cached = self._ranks.get(op_kind)
        if cached is not None:
            return cached
        rank = self.unmatched_rank
        for i, pattern in enumerate(self.patterns):
            if fnmatchcase(op_kind, pattern):
                rank = i
                break
        self._ranks[op_kind] = rank
        return rank


def reduce_state(open_kinds: Iterable[str], table: PriorityTable) -> str:
    """Reduce the op kinds of an entity's open requests to one label.

    Args:
        open_kinds: Op kinds of the currently open requests; duplicates and
            ordering are irrelevant
        table: Priority table to rank op kinds with

    Returns:
        IDLE_LABEL for an empty open set, otherwise the op kind with the
        lowest rank. Op kinds sharing a rank are ordered lexically.
    """
    kinds = set(open_kinds)
    if not kinds:
        return IDLE_LABEL
    return min(kinds, key=lambda kind: (table.rank(kind), kind))
