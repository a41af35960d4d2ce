"""
GOURMET FUN — Fruit Frenzy slot reels and payline evaluator.

Each reel is a cyclic virtual strip laid out from its weight table. A spin
picks one random offset per reel and shows `rows` consecutive symbols, so
rows on one reel are correlated while reels are independent.

Every row is a payline. On a line, each start position whose symbol has a
pay table entry is scanned for its run of identical symbols; the line pays
the single best run it finds. Lines pay independently and their payouts
add up.
"""

from __future__ import annotations

from itertools import product
from typing import Mapping, Sequence

from config.game_schema import SlotConfig
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import LineResult, SlotWin
from rtp_engine.random_source import RandomSource
from rtp_engine.weighted import ReelStrip, build

PayTable = Mapping[str, Mapping[int, float]]


# ═══════════════════════════════════════════════════════════════
# Payline evaluation
# ═══════════════════════════════════════════════════════════════

def run_length(line: Sequence[str], start: int) -> int:
    """Length of the run of identical symbols starting at `start`."""
    symbol = line[start]
    n = 1
    for s in line[start + 1:]:
        if s != symbol:
            break
        n += 1
    return n


def evaluate_line(line: Sequence[str], paytable: PayTable, row: int = 0,
                  left_aligned: bool = False) -> LineResult:
    """Best-paying run on one payline; near miss when a 2-run has no 2-entry."""
    result = LineResult(row=row, symbols=list(line))
    starts = range(1) if left_aligned else range(len(line))
    saw_pair = False
    for start in starts:
        pays = paytable.get(line[start])
        if not pays:
            continue
        count = run_length(line, start)
        mult = pays.get(count)
        if mult is None:
            if count == 2:
                saw_pair = True
            continue
        if mult > result.multiplier:
            result.multiplier = mult
            result.symbol = line[start]
            result.start = start
            result.run_length = count
    result.near_miss = saw_pair and result.multiplier == 0
    return result


def paylines(grid: Sequence[Sequence[str]]) -> list[list[str]]:
    """Rows of a reel-major grid, each read left to right."""
    rows = len(grid[0]) if grid else 0
    return [[reel[r] for reel in grid] for r in range(rows)]


def evaluate_grid(grid: Sequence[Sequence[str]], paytable: PayTable, wager: float = 1.0,
                  left_aligned: bool = False) -> tuple[float, list[LineResult]]:
    """Total payout and per-line results for a reel-major grid."""
    results = [
        evaluate_line(line, paytable, row=r, left_aligned=left_aligned)
        for r, line in enumerate(paylines(grid))
    ]
    payout = sum(wager * line.multiplier for line in results)
    return payout, results


# ═══════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════

class SlotEngine(BaseGameEngine):
    game_type = "slots"
    display_name = "Fruit Frenzy"
    config_model = SlotConfig

    def __init__(self, config=None, **overrides):
        super().__init__(config, **overrides)
        self.tables = [build(reel.items()) for reel in self.config.reels]
        self.strips = [ReelStrip(t) for t in self.tables]

    def spin(self, rng: RandomSource) -> list[list[str]]:
        """Reel-major grid: grid[reel][row]."""
        return [strip.window(rng, self.config.rows) for strip in self.strips]

    def evaluate(self, grid: Sequence[Sequence[str]], wager: float = 1.0) -> SlotWin:
        _, lines = evaluate_grid(grid, self.config.paytable, wager,
                                 left_aligned=self.config.left_aligned)
        return SlotWin(
            wager=wager,
            multiplier=sum(line.multiplier for line in lines),
            grid=[list(reel) for reel in grid],
            lines=lines,
        )

    def play_round(self, rng: RandomSource, wager: float = 1.0) -> SlotWin:
        return self.evaluate(self.spin(rng), wager)

    def line_expectation(self) -> float:
        """Expected multiplier of one payline.

        A uniform strip offset makes every visible cell marginally distributed
        by its reel's weights, so one line is exact over symbol combinations.
        """
        reels = [
            [(value, t.probability(value)) for value in dict.fromkeys(t.values)]
            for t in self.tables
        ]
        expected = 0.0
        for combo in product(*reels):
            p = 1.0
            for _, prob in combo:
                p *= prob
            line = [symbol for symbol, _ in combo]
            mult = evaluate_line(line, self.config.paytable,
                                 left_aligned=self.config.left_aligned).multiplier
            expected += p * mult
        return expected

    def theoretical_rtp(self) -> float:
        # The wager covers every line and each line pays wager * multiplier.
        return self.config.rows * self.line_expectation()
