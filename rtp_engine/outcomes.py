"""
GOURMET FUN — Round Outcomes

One tagged variant per game. Every variant carries the wager, the payout
multiplier and the derived payout; settlement only ever reads `payout`.
The remaining fields describe what happened (which line, bucket or tile)
for the presentation layer and carry no financial meaning of their own.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Optional


@dataclass
class Outcome:
    wager: float
    multiplier: float
    payout: float = field(init=False)

    game_type: ClassVar[str] = "base"

    def __post_init__(self):
        self.payout = self.wager * self.multiplier

    @property
    def is_win(self) -> bool:
        return self.payout > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["game_type"] = self.game_type
        return data


@dataclass
class LineResult:
    """Evaluation of one payline."""
    row: int
    symbols: list[str]
    multiplier: float = 0.0
    symbol: Optional[str] = None       # symbol of the paying run
    start: Optional[int] = None        # reel index the paying run starts on
    run_length: int = 0
    near_miss: bool = False


@dataclass
class SlotWin(Outcome):
    grid: list[list[str]] = field(default_factory=list)   # grid[reel][row]
    lines: list[LineResult] = field(default_factory=list)

    game_type: ClassVar[str] = "slots"

    @property
    def winning_rows(self) -> list[int]:
        return [line.row for line in self.lines if line.multiplier > 0]

    @property
    def near_miss(self) -> bool:
        return any(line.near_miss for line in self.lines)


@dataclass
class CrashBust(Outcome):
    crash_point: float = 1.0
    cashout_at: Optional[float] = None

    game_type: ClassVar[str] = "crash"

    @property
    def cashed_out(self) -> bool:
        return self.multiplier > 0


@dataclass
class PlinkoBucket(Outcome):
    bucket: int = 0
    risk: str = ""
    path: Optional[list[tuple[int, float]]] = None

    game_type: ClassVar[str] = "plinko"


@dataclass
class MinesReveal(Outcome):
    picks: int = 0
    hit_bad: bool = False
    bad_tiles: tuple[int, ...] = ()
    revealed: tuple[int, ...] = ()

    game_type: ClassVar[str] = "mines"


@dataclass
class ScratchCard:
    """Cosmetic scratch card layout. Never used to compute a payout."""
    winning_numbers: list[int]
    player_numbers: list[int]

    @property
    def match_count(self) -> int:
        winners = set(self.winning_numbers)
        return sum(1 for n in self.player_numbers if n in winners)


@dataclass
class ScratchMatch(Outcome):
    match_count: int = 0
    card: Optional[ScratchCard] = None

    game_type: ClassVar[str] = "scratch"


@dataclass
class BlackjackHand(Outcome):
    player_cards: list[int] = field(default_factory=list)
    dealer_cards: list[int] = field(default_factory=list)
    result: str = "lose"        # blackjack | win | push | lose | bust

    game_type: ClassVar[str] = "blackjack"
