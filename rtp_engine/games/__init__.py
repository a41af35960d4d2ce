"""
GOURMET FUN — Game Outcome Models

Each game type exposes play_round(rng, wager) -> Outcome and, where a
closed form exists, theoretical_rtp().

Usage:
    from rtp_engine.games import get_game_engine
    from rtp_engine.random_source import SeededRandomSource

    engine = get_game_engine("plinko", risk="high")
    outcome = engine.play_round(SeededRandomSource(7), wager=10)
    print(outcome.bucket, outcome.payout)
"""

from rtp_engine.games.blackjack import BlackjackEngine
from rtp_engine.games.crash import CrashEngine
from rtp_engine.games.mines import MinesEngine
from rtp_engine.games.plinko import PlinkoEngine
from rtp_engine.games.scratch import ScratchEngine
from rtp_engine.games.slots import SlotEngine

GAME_ENGINES = {
    "slots": SlotEngine,
    "crash": CrashEngine,
    "plinko": PlinkoEngine,
    "mines": MinesEngine,
    "scratch": ScratchEngine,
    "blackjack": BlackjackEngine,
}

GAME_TYPES = list(GAME_ENGINES.keys())


def get_game_engine(game_type: str, config=None, **overrides):
    """Get the outcome engine for a game type."""
    cls = GAME_ENGINES.get(game_type.lower())
    if cls is None:
        raise ValueError(f"Unknown game type: {game_type}. Available: {GAME_TYPES}")
    return cls(config, **overrides)
