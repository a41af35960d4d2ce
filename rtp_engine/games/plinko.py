"""
GOURMET FUN — Candy Drop Plinko board.

A ball starts at the centre column and moves half a column left or right at
each of `rows` pegs. Its final column, floored and clamped, picks a bucket
in the risk tier's multiplier row. The bucket follows Binomial(rows, 0.5),
so the outer buckets and their large multipliers are exponentially rare.
"""

from __future__ import annotations

import math
from typing import Optional

from config.game_schema import PlinkoConfig
from rtp_engine.combinatorics import binomial_pmf
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import PlinkoBucket
from rtp_engine.random_source import RandomSource


def bucket_for_column(col: float, rows: int) -> int:
    return max(0, min(rows, math.floor(col)))


def bucket_distribution(rows: int) -> list[float]:
    """P(bucket = k) for a ball started at rows / 2."""
    return [binomial_pmf(rows, k) for k in range(rows + 1)]


def analytic_rtp(multipliers: list[float]) -> float:
    """Σ P(bucket) × multiplier for a row of length rows + 1."""
    rows = len(multipliers) - 1
    return sum(p * m for p, m in zip(bucket_distribution(rows), multipliers))


class PlinkoEngine(BaseGameEngine):
    game_type = "plinko"
    display_name = "Candy Drop"
    config_model = PlinkoConfig

    def multipliers(self, risk: Optional[str] = None) -> list[float]:
        risk = risk or self.config.risk
        try:
            return self.config.multipliers[risk]
        except KeyError:
            raise KeyError(f"Unknown risk '{risk}'. Available: {list(self.config.multipliers)}") from None

    def drop_bucket(self, rng: RandomSource) -> int:
        """Bucket index for one ball, without building the path."""
        col = self.config.centre
        for _ in range(self.config.rows):
            col += -0.5 if rng.next() < 0.5 else 0.5
        return bucket_for_column(col, self.config.rows)

    def drop_path(self, rng: RandomSource) -> list[tuple[int, float]]:
        """(row, column) positions, rows + 1 of them, for animating one ball.

        Consumes the same draws as drop_bucket, so the path's last column
        always lands in the bucket drop_bucket would have returned.
        """
        col = self.config.centre
        path = [(0, col)]
        for row in range(1, self.config.rows + 1):
            col += -0.5 if rng.next() < 0.5 else 0.5
            path.append((row, col))
        return path

    def play_round(self, rng: RandomSource, wager: float = 1.0,
                   risk: Optional[str] = None, with_path: bool = False) -> PlinkoBucket:
        row = self.multipliers(risk)
        if with_path:
            path = self.drop_path(rng)
            bucket = bucket_for_column(path[-1][1], self.config.rows)
        else:
            path = None
            bucket = self.drop_bucket(rng)
        return PlinkoBucket(
            wager=wager,
            multiplier=row[bucket],
            bucket=bucket,
            risk=risk or self.config.risk,
            path=path,
        )

    def drop_batch(self, rng: RandomSource, wager: float, balls: int,
                   risk: Optional[str] = None) -> list[PlinkoBucket]:
        """Independent drops sharing one multiplier row. Each ball stakes `wager`."""
        return [self.play_round(rng, wager, risk) for _ in range(balls)]

    def theoretical_rtp(self, risk: Optional[str] = None) -> float:
        cfg = self.config
        row = self.multipliers(risk)
        if cfg.centre == cfg.rows / 2:
            return analytic_rtp(row)
        # Off-centre start: bucket = floor(start + 0.5*(rights - lefts)), clamped
        total = 0.0
        for rights in range(cfg.rows + 1):
            col = cfg.centre + 0.5 * (2 * rights - cfg.rows)
            total += binomial_pmf(cfg.rows, rights) * row[bucket_for_column(col, cfg.rows)]
        return total
