"""
GOURMET FUN — Round settlement.

The thin boundary between a game model and the application holding the
balance: reject a bad wager before any draw, debit it, credit the payout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from rtp_engine.errors import InvalidWager
from rtp_engine.outcomes import Outcome
from rtp_engine.random_source import RandomSource

logger = logging.getLogger("gourmet.settlement")


@dataclass
class Settlement:
    outcome: Outcome
    balance_before: float
    balance_after: float

    @property
    def net(self) -> float:
        return self.balance_after - self.balance_before


def validate_wager(wager: float, balance: Optional[float] = None) -> float:
    """Return the wager, or raise InvalidWager if it is <= 0 or above the balance."""
    if not wager > 0:
        raise InvalidWager(wager, balance)
    if balance is not None and wager > balance:
        raise InvalidWager(wager, balance)
    return wager


def settle_round(engine, wager: float, balance: float, rng: RandomSource, **play_kwargs) -> Settlement:
    """Validate, play one round and settle it against `balance`."""
    validate_wager(wager, balance)
    outcome = engine.play_round(rng, wager, **play_kwargs)
    after = balance - wager + outcome.payout
    logger.debug("%s round: wager=%.2f payout=%.2f balance %.2f -> %.2f",
                 engine.game_type, wager, outcome.payout, balance, after)
    return Settlement(outcome=outcome, balance_before=balance, balance_after=after)
