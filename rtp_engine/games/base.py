"""
GOURMET FUN — Base Game Engine

Abstract base for every mini-game outcome model. An engine is built once
from a validated configuration and is stateless between rounds: a round is
a pure function of (configuration, draws from the RandomSource, wager).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from config.game_schema import GameConfig, load_config
from rtp_engine.outcomes import Outcome
from rtp_engine.random_source import RandomSource

logger = logging.getLogger("gourmet.games")


class BaseGameEngine(ABC):
    """Abstract base for all mini-game math models."""

    game_type: str = "base"
    display_name: str = "Base Game"
    config_model: type[GameConfig] = GameConfig

    def __init__(self, config: GameConfig | dict | None = None, **overrides):
        if isinstance(config, GameConfig) and not overrides:
            self.config = config
        else:
            data = config.model_dump() if isinstance(config, GameConfig) else config
            self.config = load_config(self.config_model, data, **overrides)
        logger.debug("%s engine ready (config=%s)", self.game_type, self.config.config_hash)

    @abstractmethod
    def play_round(self, rng: RandomSource, wager: float = 1.0) -> Outcome:
        """Play one round. The outcome's payout is 0 on a loss."""
        ...

    def theoretical_rtp(self) -> Optional[float]:
        """Analytic RTP as a fraction of the wager, or None when only Monte Carlo applies."""
        return None

    def get_metadata(self) -> dict:
        """Return game metadata for the presentation layer."""
        return {
            "game_type": self.game_type,
            "display_name": self.display_name,
            "config_hash": self.config.config_hash,
            "theoretical_rtp": self.theoretical_rtp(),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(config_hash={self.config.config_hash!r})"
