"""
GOURMET FUN — Weighted Tables & Reel Strips

A WeightedTable is an ordered list of (value, weight) entries. Drawing
scales one uniform float by the total weight and walks the cumulative
buckets. A ReelStrip treats the same table as a cyclic strip where each
value occupies `weight` consecutive positions, so one random offset yields
a window of correlated symbols.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Iterable

from rtp_engine.errors import ConfigError
from rtp_engine.random_source import RandomSource


@dataclass(frozen=True)
class WeightedEntry:
    value: Any
    weight: int


@dataclass(frozen=True)
class WeightedTable:
    entries: tuple[WeightedEntry, ...]
    cumulative: tuple[int, ...] = field(repr=False)

    @property
    def total(self) -> int:
        return self.cumulative[-1]

    @property
    def values(self) -> list:
        return [e.value for e in self.entries]

    def probability(self, value) -> float:
        """Share of the total weight carried by `value` (summed over entries)."""
        return sum(e.weight for e in self.entries if e.value == value) / self.total

    def value_at(self, position: int):
        """Value of the bucket containing integer strip position `position`."""
        idx = bisect_right(self.cumulative, position % self.total)
        return self.entries[idx].value

    def draw(self, rng: RandomSource):
        return draw(self, rng)


def build(entries: Iterable[tuple[Any, int]]) -> WeightedTable:
    """Build a WeightedTable from (value, weight) pairs."""
    items = list(entries)
    if not items:
        raise ConfigError("Weighted table needs at least one entry")
    built = []
    cumulative = []
    running = 0
    for value, weight in items:
        if isinstance(weight, bool) or not isinstance(weight, int):
            raise ConfigError(f"Weight for {value!r} must be an integer, got {weight!r}")
        if weight <= 0:
            raise ConfigError(f"Weight for {value!r} must be positive, got {weight}")
        running += weight
        built.append(WeightedEntry(value, weight))
        cumulative.append(running)
    return WeightedTable(entries=tuple(built), cumulative=tuple(cumulative))


def draw(table: WeightedTable, rng: RandomSource):
    """Pick the entry whose cumulative bucket contains next() * total."""
    u = rng.next() * table.total
    for entry, upper in zip(table.entries, table.cumulative):
        if u < upper:
            return entry.value
    # u == total only when next() breaks its [0, 1) contract by rounding up
    return table.entries[-1].value


# ═══════════════════════════════════════════════════════════════
# Reel strip
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReelStrip:
    """Cyclic virtual reel laid out from a WeightedTable."""
    table: WeightedTable

    def __len__(self) -> int:
        return self.table.total

    def offset(self, rng: RandomSource) -> int:
        return min(int(rng.next() * self.table.total), self.table.total - 1)

    def window(self, rng: RandomSource, rows: int) -> list:
        """`rows` consecutive symbols starting at one random offset."""
        start = self.offset(rng)
        return [self.table.value_at(start + j) for j in range(rows)]
