"""
GOURMET FUN — Icicle Pop crash game.

One uniform draw per round fixes the crash point. The live multiplier grows
as e^(k t) and the round busts the instant it reaches the crash point.
Cashing out strictly before the bust pays wager * current multiplier.
"""

from __future__ import annotations

import math
from typing import Optional

from config.game_schema import CrashConfig, CrashFormula
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import CrashBust
from rtp_engine.random_source import RandomSource


def crash_point(r: float, house_edge_percent: float = 10.0,
                formula: CrashFormula = CrashFormula.CLASSIC,
                max_multiplier: Optional[float] = None) -> float:
    """Crash point for uniform draw r in [0, 1). Never below 1.00."""
    if formula == CrashFormula.CLASSIC:
        keep = 100.0 - house_edge_percent
        raw = keep / (100.0 - r * keep)
    else:
        raw = (1.0 - house_edge_percent / 100.0) / (1.0 - r)
    point = max(raw, 1.0)
    if max_multiplier is not None:
        point = min(point, max_multiplier)
    return point


def multiplier_at(t: float, growth_rate: float = 0.25) -> float:
    return math.exp(growth_rate * t)


def time_to_multiplier(m: float, growth_rate: float = 0.25) -> float:
    """Seconds until the live multiplier reaches m."""
    if m < 1.0:
        raise ValueError(f"Multiplier {m} is below the starting multiplier 1.00")
    return math.log(m) / growth_rate


def cash_out(wager: float, point: float, cashout_multiplier: float) -> float:
    """Payout for cashing out at `cashout_multiplier` in a round crashing at `point`."""
    if cashout_multiplier < point:
        return wager * cashout_multiplier
    return 0.0


def survival(m: float, house_edge_percent: float = 10.0,
             formula: CrashFormula = CrashFormula.CLASSIC,
             max_multiplier: Optional[float] = None) -> float:
    """P(crash point > m) for m >= 1."""
    if max_multiplier is not None and m >= max_multiplier:
        return 0.0
    keep = 100.0 - house_edge_percent
    if formula == CrashFormula.CLASSIC:
        # raw > m  <=>  r > 100/keep - 1/m
        p = 1.0 - (100.0 / keep - 1.0 / m)
    else:
        p = keep / (100.0 * m)
    return min(max(p, 0.0), 1.0)


class CrashEngine(BaseGameEngine):
    game_type = "crash"
    display_name = "Icicle Pop"
    config_model = CrashConfig

    def draw_crash_point(self, rng: RandomSource) -> float:
        cfg = self.config
        return crash_point(rng.next(), cfg.house_edge_percent, cfg.formula, cfg.max_multiplier)

    def multiplier_at(self, t: float) -> float:
        return multiplier_at(t, self.config.growth_rate)

    def play_round(self, rng: RandomSource, wager: float = 1.0,
                   cashout_at: Optional[float] = None) -> CrashBust:
        """Round with an auto cash-out target (config.auto_cashout by default)."""
        target = self.config.auto_cashout if cashout_at is None else cashout_at
        point = self.draw_crash_point(rng)
        won = target < point
        return CrashBust(
            wager=wager,
            multiplier=target if won else 0.0,
            crash_point=point,
            cashout_at=target,
        )

    def theoretical_rtp(self, cashout_at: Optional[float] = None) -> float:
        """P(crash > target) * target for a fixed auto cash-out."""
        cfg = self.config
        target = cfg.auto_cashout if cashout_at is None else cashout_at
        return target * survival(target, cfg.house_edge_percent, cfg.formula, cfg.max_multiplier)

    @property
    def ceiling(self) -> float:
        """Largest reachable crash point."""
        cfg = self.config
        if cfg.max_multiplier is not None:
            bound = cfg.max_multiplier
        else:
            bound = math.inf
        if cfg.formula == CrashFormula.CLASSIC and cfg.house_edge_percent > 0:
            keep = 100.0 - cfg.house_edge_percent
            bound = min(bound, keep / cfg.house_edge_percent)
        return bound
