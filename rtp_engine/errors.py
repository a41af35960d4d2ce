"""
GOURMET FUN — Engine Error Taxonomy

Only misconfiguration, bad wagers and an exhausted random source are errors.
Busts, near misses and zero payouts are normal outcomes with payout 0.
"""


class GameEngineError(Exception):
    """Base class for every error raised by the outcome engine."""


class ConfigError(GameEngineError, ValueError):
    """Malformed game configuration. Fatal at load time."""


class InvalidWager(GameEngineError, ValueError):
    """Wager is non-positive or exceeds the available balance."""

    def __init__(self, wager, balance=None):
        self.wager = wager
        self.balance = balance
        if balance is None:
            msg = f"Invalid wager {wager!r}: must be positive"
        else:
            msg = f"Invalid wager {wager!r}: must be positive and at most balance {balance!r}"
        super().__init__(msg)


class ExhaustedRandomSource(GameEngineError, RuntimeError):
    """The random source cannot produce another value."""
