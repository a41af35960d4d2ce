"""
GOURMET FUN — Sour Apple mines game.

The multiplier after `picks` good reveals is the fair odds of surviving that
many reveals, discounted by the house edge and rounded to cents:

    fair_odds(picks)  = C(total, picks) / C(safe, picks)
    multiplier(picks) = round2(fair_odds(picks) * (1 - house_edge))

multiplier(0) is 1.00. Revealing a bad tile forfeits the wager. Only the
count of good reveals matters, not which tiles were revealed.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Iterator, Optional

from config.game_schema import MinesConfig
from rtp_engine.combinatorics import combinations, survival_probability
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import MinesReveal
from rtp_engine.random_source import RandomSource


def fair_odds(total: int, num_bad: int, picks: int) -> Fraction:
    safe = total - num_bad
    if picks < 0 or picks > safe:
        raise ValueError(f"picks={picks} outside 0..{safe}")
    return Fraction(combinations(total, picks), combinations(safe, picks))


def mines_multiplier(picks: int, num_bad: int, grid_size: int = 5,
                     house_edge_percent: float = 10.0) -> float:
    """Cash-out multiplier after `picks` good reveals. 0 when picks exceeds the safe tiles."""
    total = grid_size * grid_size
    if picks == 0:
        return 1.0
    if picks < 0 or picks > total - num_bad:
        return 0.0
    edge_factor = 1.0 - house_edge_percent / 100.0
    return round(float(fair_odds(total, num_bad, picks)) * edge_factor, 2)


class MinesEngine(BaseGameEngine):
    game_type = "mines"
    display_name = "Sour Apple"
    config_model = MinesConfig

    def multiplier(self, picks: int) -> float:
        cfg = self.config
        return mines_multiplier(picks, cfg.num_bad, cfg.grid_size, cfg.house_edge_percent)

    def multiplier_table(self) -> list[float]:
        """multiplier(picks) for picks = 0..safe."""
        return [self.multiplier(k) for k in range(self.config.safe_tiles + 1)]

    def place_bad_tiles(self, rng: RandomSource) -> frozenset[int]:
        """Sample num_bad distinct tile indices by rejection."""
        total = self.config.total_tiles
        bad: set[int] = set()
        while len(bad) < self.config.num_bad:
            bad.add(min(int(rng.next() * total), total - 1))
        return frozenset(bad)

    def reveal_order(self, rng: RandomSource, count: int) -> Iterator[int]:
        """First `count` tiles of a random permutation (partial Fisher-Yates).

        One draw per yielded tile, so a round that stops early leaves the
        remaining draws untouched.
        """
        tiles = list(range(self.config.total_tiles))
        n = len(tiles)
        for i in range(count):
            j = i + min(int(rng.next() * (n - i)), n - i - 1)
            tiles[i], tiles[j] = tiles[j], tiles[i]
            yield tiles[i]

    def play_round(self, rng: RandomSource, wager: float = 1.0,
                   picks: Optional[int] = None) -> MinesReveal:
        """Reveal tiles in random order, cashing out after `picks` good ones."""
        target = self.config.auto_cashout_picks if picks is None else picks
        if not 0 <= target <= self.config.safe_tiles:
            raise ValueError(f"picks={target} outside 0..{self.config.safe_tiles}")
        bad = self.place_bad_tiles(rng)
        revealed = []
        for tile in self.reveal_order(rng, target):
            revealed.append(tile)
            if tile in bad:
                return MinesReveal(
                    wager=wager, multiplier=0.0, picks=len(revealed) - 1, hit_bad=True,
                    bad_tiles=tuple(sorted(bad)), revealed=tuple(revealed),
                )
        return MinesReveal(
            wager=wager, multiplier=self.multiplier(target), picks=target,
            bad_tiles=tuple(sorted(bad)), revealed=tuple(revealed),
        )

    def theoretical_rtp(self, picks: Optional[int] = None) -> float:
        cfg = self.config
        target = cfg.auto_cashout_picks if picks is None else picks
        p = survival_probability(cfg.total_tiles, cfg.safe_tiles, target)
        return float(p) * self.multiplier(target)
