"""
GOURMET FUN — Game Configuration Schema

Pydantic models for every game's configuration surface: reel weights, pay
tables, house edges, Plinko multiplier rows, mines grid, scratch-card
distribution and blackjack payouts. Defaults reproduce the shipped games
(Fruit Frenzy, Icicle Pop, Candy Drop, Sour Apple, Sugar Scratch).

Everything is validated when loaded. Use load_config() so a malformed
table surfaces as ConfigError instead of a pydantic ValidationError.

Usage:
    from config.game_schema import PlinkoConfig, load_config
    cfg = load_config(PlinkoConfig, {"risk": "high"})
    print(cfg.config_hash)
"""

from __future__ import annotations

import hashlib
import logging
import math
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from rtp_engine.errors import ConfigError
from rtp_engine.weighted import build as build_weighted

logger = logging.getLogger("gourmet.config")


# ═══════════════════════════════════════════════════════════════
# Shipped tables
# ═══════════════════════════════════════════════════════════════

FRUIT_FRENZY_SYMBOLS = ["CHERRY", "LEMON", "ORANGE", "GRAPE", "DIAMOND", "SEVEN", "SCATTER"]

# Virtual reel weights, one dict per reel. Heavy on CHERRY/LEMON for frequent small wins.
FRUIT_FRENZY_REELS = [
    {"CHERRY": 50, "LEMON": 40, "ORANGE": 25, "GRAPE": 15, "DIAMOND": 5, "SEVEN": 1, "SCATTER": 2},
    {"CHERRY": 48, "LEMON": 38, "ORANGE": 23, "GRAPE": 14, "DIAMOND": 4, "SEVEN": 1, "SCATTER": 2},
    {"CHERRY": 45, "LEMON": 35, "ORANGE": 22, "GRAPE": 12, "DIAMOND": 3, "SEVEN": 1, "SCATTER": 2},
    {"CHERRY": 40, "LEMON": 32, "ORANGE": 20, "GRAPE": 10, "DIAMOND": 3, "SEVEN": 2, "SCATTER": 3},
    {"CHERRY": 38, "LEMON": 30, "ORANGE": 18, "GRAPE": 10, "DIAMOND": 2, "SEVEN": 2, "SCATTER": 4},
]

FRUIT_FRENZY_PAYTABLE = {
    "SEVEN":   {5: 500, 4: 25, 3: 3},
    "DIAMOND": {5: 20, 4: 3, 3: 0.8},
    "GRAPE":   {5: 8, 4: 1.5, 3: 0.6},
    "ORANGE":  {5: 5, 4: 1.2, 3: 0.5},
    "LEMON":   {5: 3, 4: 0.8, 3: 0.4},
    "CHERRY":  {5: 2, 4: 0.6, 3: 0.3},
}

CANDY_DROP_MULTIPLIERS = {
    "low":    [5.5, 3, 2, 1.2, 0.9, 0.6, 0.5, 0.5, 0.6, 0.9, 1.2, 2, 3, 5.5],
    "medium": [22, 9, 4, 2, 0.8, 0.4, 0.3, 0.3, 0.4, 0.8, 2, 4, 9, 22],
    "high":   [130, 35, 10, 1.5, 0, 0, 0, 0, 0, 0, 1.5, 10, 35, 130],
}

# Walked in this order when sampling, rarest first.
SUGAR_SCRATCH_DISTRIBUTION = {4: 0.01, 3: 0.04, 2: 0.15, 1: 0.30, 0: 0.50}
SUGAR_SCRATCH_PAYOUTS = {1: 0.5, 2: 2, 3: 5, 4: 25}


# ═══════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════

class GameConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    game_type: str = "base"

    @property
    def config_hash(self) -> str:
        """SHA-256 prefix of the canonical JSON, for audit trails."""
        return hashlib.sha256(self.model_dump_json().encode()).hexdigest()[:16]


def _check_house_edge(v: float) -> float:
    if not 0.0 <= v < 100.0:
        raise ConfigError(f"House edge must be in [0, 100) percent, got {v}")
    return v


# ═══════════════════════════════════════════════════════════════
# Per-game configs
# ═══════════════════════════════════════════════════════════════

class SlotConfig(GameConfig):
    """Fruit Frenzy — reels x rows grid, every row is a payline."""
    game_type: Literal["slots"] = "slots"
    rows: int = Field(3, ge=1)
    reels: list[dict[str, int]] = Field(
        default_factory=lambda: [dict(r) for r in FRUIT_FRENZY_REELS]
    )
    paytable: dict[str, dict[int, float]] = Field(
        default_factory=lambda: {s: dict(p) for s, p in FRUIT_FRENZY_PAYTABLE.items()}
    )
    left_aligned: bool = False          # only runs starting on reel 1 pay

    @field_validator("reels")
    @classmethod
    def reels_have_weights(cls, v):
        if not v:
            raise ConfigError("Slot machine needs at least one reel")
        for i, reel in enumerate(v):
            try:
                build_weighted(reel.items())
            except ConfigError as e:
                raise ConfigError(f"Reel {i + 1}: {e}") from e
        return v

    @model_validator(mode="after")
    def paytable_fits_reels(self):
        n_reels = len(self.reels)
        for symbol, pays in self.paytable.items():
            if not pays:
                raise ConfigError(f"Pay table entry for {symbol} is empty")
            for count, mult in pays.items():
                if not 2 <= count <= n_reels:
                    raise ConfigError(
                        f"{symbol}: match count {count} outside 2..{n_reels}"
                    )
                if mult < 0:
                    raise ConfigError(f"{symbol}: negative multiplier {mult} for {count} matches")
            ordered = [pays[c] for c in sorted(pays)]
            if any(b < a for a, b in zip(ordered, ordered[1:])):
                logger.warning("Pay table for %s decreases with match count: %s", symbol, pays)
            if not any(symbol in reel for reel in self.reels):
                logger.warning("Pay table symbol %s never appears on any reel", symbol)
        return self


class CrashFormula(str, Enum):
    CLASSIC = "classic"            # (100-he) / (100 - r*(100-he)), bounded above
    INVERSE_CDF = "inverse_cdf"    # (1 - he/100) / (1 - r), unbounded


class CrashConfig(GameConfig):
    """Icicle Pop — multiplier grows as e^(k t) until the drawn crash point."""
    game_type: Literal["crash"] = "crash"
    house_edge_percent: float = 10.0
    growth_rate: float = Field(0.25, gt=0)      # k, per second
    formula: CrashFormula = CrashFormula.CLASSIC
    max_multiplier: Optional[float] = Field(None, gt=1.0)
    auto_cashout: float = Field(2.0, ge=1.0)    # batch-estimation player strategy

    @field_validator("house_edge_percent")
    @classmethod
    def house_edge_in_range(cls, v):
        return _check_house_edge(v)


class PlinkoConfig(GameConfig):
    """Candy Drop — ball walks ±0.5 column per row into a multiplier bucket."""
    game_type: Literal["plinko"] = "plinko"
    rows: int = Field(13, ge=1)
    risk: str = "medium"
    multipliers: dict[str, list[float]] = Field(
        default_factory=lambda: {k: list(v) for k, v in CANDY_DROP_MULTIPLIERS.items()}
    )
    start_column: Optional[float] = None        # defaults to rows / 2

    @model_validator(mode="after")
    def rows_are_symmetric(self):
        if not self.multipliers:
            raise ConfigError("Plinko needs at least one multiplier row")
        for risk, row in self.multipliers.items():
            if len(row) != self.rows + 1:
                raise ConfigError(
                    f"Risk '{risk}': {len(row)} multipliers for {self.rows} rows "
                    f"(need {self.rows + 1})"
                )
            if any(m < 0 for m in row):
                raise ConfigError(f"Risk '{risk}': negative multiplier in {row}")
            for i in range(len(row) // 2):
                if not math.isclose(row[i], row[self.rows - i]):
                    raise ConfigError(
                        f"Risk '{risk}': row is not symmetric "
                        f"(bucket {i}={row[i]} vs bucket {self.rows - i}={row[self.rows - i]})"
                    )
        if self.risk not in self.multipliers:
            raise ConfigError(f"Unknown risk '{self.risk}'. Available: {list(self.multipliers)}")
        return self

    @property
    def centre(self) -> float:
        return self.start_column if self.start_column is not None else self.rows / 2


class MinesConfig(GameConfig):
    """Sour Apple — reveal good tiles, cash out before hitting a bad one."""
    game_type: Literal["mines"] = "mines"
    grid_size: int = Field(5, ge=2, le=10)
    num_bad: int = Field(3, ge=1)
    house_edge_percent: float = 10.0
    auto_cashout_picks: int = Field(3, ge=1)    # batch-estimation player strategy

    @field_validator("house_edge_percent")
    @classmethod
    def house_edge_in_range(cls, v):
        return _check_house_edge(v)

    @model_validator(mode="after")
    def board_has_safe_tiles(self):
        total = self.grid_size * self.grid_size
        if self.num_bad >= total:
            raise ConfigError(f"{self.num_bad} bad tiles leave no safe tile on a {total}-tile board")
        if self.auto_cashout_picks > total - self.num_bad:
            raise ConfigError(
                f"Cannot cash out after {self.auto_cashout_picks} picks: "
                f"only {total - self.num_bad} safe tiles"
            )
        return self

    @property
    def total_tiles(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def safe_tiles(self) -> int:
        return self.total_tiles - self.num_bad


class ScratchConfig(GameConfig):
    """Sugar Scratch — match count drawn from a fixed distribution."""
    game_type: Literal["scratch"] = "scratch"
    distribution: dict[int, float] = Field(default_factory=lambda: dict(SUGAR_SCRATCH_DISTRIBUTION))
    payouts: dict[int, float] = Field(default_factory=lambda: dict(SUGAR_SCRATCH_PAYOUTS))
    card_size: int = Field(12, ge=1)
    winning_count: int = Field(4, ge=1)
    number_pool: int = Field(50, ge=2)
    near_miss_chance: float = Field(0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def distribution_is_normalised(self):
        if not self.distribution:
            raise ConfigError("Scratch distribution is empty")
        max_matches = min(self.card_size, self.winning_count)
        for matches, p in self.distribution.items():
            if not 0 <= matches <= max_matches:
                raise ConfigError(f"Match count {matches} outside 0..{max_matches}")
            if p < 0:
                raise ConfigError(f"Negative probability {p} for {matches} matches")
        total = sum(self.distribution.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ConfigError(f"Scratch distribution sums to {total}, not 1")
        for matches, mult in self.payouts.items():
            if mult < 0:
                raise ConfigError(f"Negative payout {mult} for {matches} matches")
        if self.payouts.get(0, 0) != 0:
            raise ConfigError("A card with no matches must pay 0")
        if self.card_size + self.winning_count > self.number_pool:
            raise ConfigError(
                f"Number pool of {self.number_pool} cannot fill {self.winning_count} winning "
                f"and {self.card_size} player numbers"
            )
        return self


class BlackjackConfig(GameConfig):
    """Blackjack — returned-stake multipliers per hand result."""
    game_type: Literal["blackjack"] = "blackjack"
    blackjack_payout: float = Field(2.5, ge=0)   # 3:2 plus stake
    win_payout: float = Field(2.0, ge=0)
    push_payout: float = Field(1.0, ge=0)
    dealer_hits_soft_17: bool = False
    dealer_wins_ties: bool = False
    player_stand_on: int = Field(17, ge=12, le=21)


CONFIG_MODELS: dict[str, type[GameConfig]] = {
    "slots": SlotConfig,
    "crash": CrashConfig,
    "plinko": PlinkoConfig,
    "mines": MinesConfig,
    "scratch": ScratchConfig,
    "blackjack": BlackjackConfig,
}


# ═══════════════════════════════════════════════════════════════
# Loading
# ═══════════════════════════════════════════════════════════════

def load_config(model_cls: type[GameConfig], data: Optional[dict] = None, **overrides) -> GameConfig:
    """Validate `data` (plus keyword overrides) into `model_cls`.

    Raises ConfigError for any malformed table.
    """
    payload = dict(data or {})
    payload.update(overrides)
    try:
        cfg = model_cls.model_validate(payload)
    except ValidationError as e:
        raise ConfigError(f"Invalid {model_cls.__name__}: {e}") from e
    logger.debug("Loaded %s (hash=%s)", model_cls.__name__, cfg.config_hash)
    return cfg


def load_game_config(game_type: str, data: Optional[dict] = None, **overrides) -> GameConfig:
    model_cls = CONFIG_MODELS.get(game_type.lower())
    if model_cls is None:
        raise ConfigError(f"Unknown game type: {game_type}. Available: {list(CONFIG_MODELS)}")
    return load_config(model_cls, data, **overrides)
