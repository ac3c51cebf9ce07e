"""Legend: state label -> stable numeric id and display color."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from minio_statemap.errors import LegendFrozenError
from minio_statemap.state.policy import IDLE_LABEL


# Colors handed out to labels without a configured color, in order
DEFAULT_PALETTE: tuple[str, ...] = (
    "#e41a1c",
    "#377eb8",
    "#4daf4a",
    "#984ea3",
    "#ff7f00",
    "#a65628",
    "#f781bf",
    "#999999",
    "#66c2a5",
    "#fc8d62",
    "#8da0cb",
    "#e78ac3",
    "#a6d854",
    "#ffd92f",
    "#e5c494",
    "#b3b3b3",
)

DEFAULT_COLORS: dict[str, str] = {IDLE_LABEL: "white"}


@dataclass(frozen=True)
class LegendEntry:
    """A registered state."""

    label: str
    value: int
    color: str


class Legend:
    """Append-only registry of the states seen during a conversion.

    Ids are assigned from 0 in first-registration order. Labels without a
    configured color take the next unused palette color. After freeze()
    the legend is read-only.
    """

    def __init__(
        self,
        colors: Optional[Mapping[str, str]] = None,
        palette: tuple[str, ...] = DEFAULT_PALETTE,
    ) -> None:
        self._colors = dict(DEFAULT_COLORS)
        if colors:
            self._colors.update(colors)
        self._palette = palette
        self._next_palette = 0
        self._entries: dict[str, LegendEntry] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, label: str) -> LegendEntry:
        """Return the entry for label, adding it if new."""
        entry = self._entries.get(label)
        if entry is not None:
            return entry
        if self._frozen:
            raise LegendFrozenError(label)
        entry = LegendEntry(label=label, value=len(self._entries), color=self._color_for(label))
        self._entries[label] = entry
        return entry

    def freeze(self) -> Legend:
        self._frozen = True
        return self

    def value_of(self, label: str) -> int:
        return self._entries[label].value

    def get(self, label: str) -> Optional[LegendEntry]:
        return self._entries.get(label)

    def entries(self) -> list[LegendEntry]:
        return list(self._entries.values())

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Render as the statemap metadata "states" object."""
        return {e.label: {"value": e.value, "color": e.color} for e in self._entries.values()}

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __iter__(self) -> Iterator[LegendEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._entries)

    def _color_for(self, label: str) -> str:
        configured = self._colors.get(label)
        if configured is not None:
            return configured
        color = self._palette[self._next_palette % len(self._palette)]
        self._next_palette += 1
        return color
