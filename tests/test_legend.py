"""Tests for the state legend."""
from __future__ import annotations

import pytest

from minio_statemap.errors import LegendFrozenError
from minio_statemap.state.legend import DEFAULT_PALETTE, Legend
from minio_statemap.state.policy import IDLE_LABEL


class TestLegend:
    """Tests for Legend registration and rendering."""

    def test_ids_follow_first_registration(self) -> None:
        legend = Legend()
        assert legend.register("s3.GetObject").value == 0
        assert legend.register(IDLE_LABEL).value == 1
        assert legend.register("s3.PutObject").value == 2
        assert legend.register("s3.GetObject").value == 0
        assert len(legend) == 3

    def test_idle_is_white_by_default(self) -> None:
        assert Legend().register(IDLE_LABEL).color == "white"

    def test_palette_assigned_in_order(self) -> None:
        legend = Legend()
        legend.register(IDLE_LABEL)
        assert legend.register("a").color == DEFAULT_PALETTE[0]
        assert legend.register("b").color == DEFAULT_PALETTE[1]

    def test_configured_colors_do_not_consume_palette(self) -> None:
        legend = Legend(colors={"a": "red"})
        assert legend.register("a").color == "red"
        assert legend.register("b").color == DEFAULT_PALETTE[0]

    def test_idle_color_overridable(self) -> None:
        assert Legend(colors={IDLE_LABEL: "#eeeeee"}).register(IDLE_LABEL).color == "#eeeeee"

    def test_palette_wraps(self) -> None:
        legend = Legend(palette=("red", "blue"))
        colors = [legend.register(label).color for label in ("a", "b", "c")]
        assert colors == ["red", "blue", "red"]

    def test_frozen_rejects_new_labels(self) -> None:
        legend = Legend()
        legend.register("a")
        legend.freeze()
        assert legend.frozen
        assert legend.register("a").value == 0
        with pytest.raises(LegendFrozenError):
            legend.register("b")

    def test_to_dict_preserves_order(self) -> None:
        legend = Legend()
        legend.register(IDLE_LABEL)
        legend.register("s3.GetObject")
        assert legend.to_dict() == {
            IDLE_LABEL: {"value": 0, "color": "white"},
            "s3.GetObject": {"value": 1, "color": DEFAULT_PALETTE[0]},
        }
        assert [e.label for e in legend] == [IDLE_LABEL, "s3.GetObject"]
        assert "s3.GetObject" in legend
        assert legend.get("missing") is None
