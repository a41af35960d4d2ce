"""
GOURMET FUN — Sugar Scratch scratch cards.

The payout depends only on a match count drawn from a fixed distribution.
The numbers printed on the card are chosen afterwards to show that many
matches (with some losing numbers nudged next to winners for a near-miss
look) and never influence the payout.
"""

from __future__ import annotations

from config.game_schema import ScratchConfig
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import ScratchCard, ScratchMatch
from rtp_engine.random_source import RandomSource, randint


class ScratchEngine(BaseGameEngine):
    game_type = "scratch"
    display_name = "Sugar Scratch"
    config_model = ScratchConfig

    def draw_match_count(self, rng: RandomSource) -> int:
        r = rng.next()
        cumulative = 0.0
        outcomes = list(self.config.distribution.items())
        for matches, p in outcomes:
            cumulative += p
            if r < cumulative:
                return matches
        # Rounding left the cumulative sum just under 1
        return outcomes[-1][0]

    def payout_multiplier(self, match_count: int) -> float:
        return self.config.payouts.get(match_count, 0.0)

    def play_round(self, rng: RandomSource, wager: float = 1.0,
                   card_rng: RandomSource | None = None) -> ScratchMatch:
        """Draw the match count; build the cosmetic card only when card_rng is given."""
        matches = self.draw_match_count(rng)
        card = self.build_card(matches, card_rng) if card_rng is not None else None
        return ScratchMatch(
            wager=wager,
            multiplier=self.payout_multiplier(matches),
            match_count=matches,
            card=card,
        )

    def build_card(self, match_count: int, rng: RandomSource) -> ScratchCard:
        cfg = self.config
        pool = list(range(1, cfg.number_pool + 1))
        # Fisher-Yates
        for i in range(len(pool) - 1, 0, -1):
            j = randint(rng, 0, i)
            pool[i], pool[j] = pool[j], pool[i]
        winners = pool[:cfg.winning_count]
        losers = pool[cfg.winning_count:]
        numbers = winners[:match_count] + losers[:cfg.card_size - match_count]

        winner_set = set(winners)
        for idx, n in enumerate(numbers):
            if n in winner_set or rng.next() >= cfg.near_miss_chance:
                continue
            target = winners[randint(rng, 0, len(winners) - 1)]
            nudged = target + (1 if rng.next() < 0.5 else -1)
            if nudged < 1:
                nudged = target + 1
            if nudged > cfg.number_pool:
                nudged = target - 1
            if nudged not in winner_set and nudged not in numbers:
                numbers[idx] = nudged

        for i in range(len(numbers) - 1, 0, -1):
            j = randint(rng, 0, i)
            numbers[i], numbers[j] = numbers[j], numbers[i]
        return ScratchCard(winning_numbers=winners, player_numbers=numbers)

    def theoretical_rtp(self) -> float:
        return sum(p * self.payout_multiplier(m) for m, p in self.config.distribution.items())
