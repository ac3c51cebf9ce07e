"""Tests for the state reduction policy."""
from __future__ import annotations

import itertools

import pytest

from minio_statemap.errors import ConfigError
from minio_statemap.state.policy import (
    DEFAULT_PRIORITY,
    IDLE_LABEL,
    PriorityTable,
    reduce_state,
)


class TestPriorityTable:
    """Tests for PriorityTable ranking."""

    def test_default_table_is_default_priority(self) -> None:
        assert PriorityTable().patterns == DEFAULT_PRIORITY

    def test_rank_uses_first_matching_pattern(self) -> None:
        table = PriorityTable.from_list(["s3.Put*", "s3.*"])
        assert table.rank("s3.PutObject") == 0
        assert table.rank("s3.GetObject") == 1

    def test_unmatched_ranks_below_every_pattern(self) -> None:
        table = PriorityTable.from_list(["s3.Put*", "s3.Get*"])
        assert table.rank("admin.ServerInfo") == table.unmatched_rank == 2

    def test_matching_is_case_sensitive(self) -> None:
        table = PriorityTable.from_list(["s3.put*"])
        assert table.rank("s3.PutObject") == table.unmatched_rank

    def test_writes_outrank_reads_outrank_housekeeping(self) -> None:
        table = PriorityTable()
        assert table.rank("s3.PutObject") < table.rank("s3.GetObject")
        assert table.rank("s3.DeleteObject") < table.rank("s3.ListObjectsV2")
        assert table.rank("s3.CompleteMultipartUpload") < table.rank("s3.HeadObject")
        assert table.rank("s3.GetObject") < table.rank("admin.ServerInfo")
        assert table.rank("s3.ListBuckets") < table.rank("s3.HealthCheck")

    def test_patterns_become_tuple(self) -> None:
        table = PriorityTable(patterns=["a", "b"])  # type: ignore[arg-type]
        assert table.patterns == ("a", "b")

    def test_duplicate_pattern_rejected(self) -> None:
        with pytest.raises(ConfigError, match="duplicate"):
            PriorityTable.from_list(["s3.Get*", "s3.Get*"])

    def test_empty_pattern_rejected(self) -> None:
        with pytest.raises(ConfigError):
            PriorityTable.from_list(["s3.Get*", ""])


class TestReduceState:
    """Tests for reduce_state."""

    def test_empty_set_is_idle(self) -> None:
        assert reduce_state([], PriorityTable()) == IDLE_LABEL

    def test_single_kind(self) -> None:
        assert reduce_state(["s3.GetObject"], PriorityTable()) == "s3.GetObject"

    def test_highest_priority_wins(self) -> None:
        kinds = ["s3.GetObject", "s3.PutObject", "s3.ListObjectsV2"]
        assert reduce_state(kinds, PriorityTable()) == "s3.PutObject"

    def test_order_and_counts_do_not_matter(self) -> None:
        table = PriorityTable()
        kinds = ["s3.GetObject", "s3.HeadObject", "admin.ServerInfo", "s3.PutObject"]
        results = {
            reduce_state(list(perm) * count, table)
            for perm in itertools.permutations(kinds)
            for count in (1, 3)
        }
        assert results == {"s3.PutObject"}

    def test_duplicates_of_one_kind_collapse(self) -> None:
        table = PriorityTable()
        assert reduce_state(["s3.GetObject"] * 50, table) == reduce_state(["s3.GetObject"], table)

    def test_same_pattern_ties_break_lexically(self) -> None:
        table = PriorityTable()
        assert reduce_state(["s3.PutObjectPart", "s3.PutObject"], table) == "s3.PutObject"
        assert reduce_state(["s3.PutObject", "s3.PutObjectPart"], table) == "s3.PutObject"

    def test_unmatched_kinds_tie_break_lexically(self) -> None:
        table = PriorityTable.from_list(["s3.Put*"])
        assert reduce_state(["zeta", "alpha"], table) == "alpha"

    def test_accepts_mapping_keys(self) -> None:
        counts = {"s3.GetObject": 4, "s3.DeleteObject": 1}
        assert reduce_state(counts, PriorityTable()) == "s3.DeleteObject"
