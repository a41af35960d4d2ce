"""
GOURMET FUN — Blackjack hand model.

Cards come from an infinite shoe (each rank equally likely per draw). The
player follows a fixed stand-on threshold and the dealer stands on 17.
Payouts are returned-stake multipliers: blackjack 2.5 (3:2), win 2, push 1.
There is no closed form here; RTP comes from the Monte Carlo estimator.
"""

from __future__ import annotations

from config.game_schema import BlackjackConfig
from rtp_engine.games.base import BaseGameEngine
from rtp_engine.outcomes import BlackjackHand
from rtp_engine.random_source import RandomSource, randint

def card_value(rank: int) -> int:
    if rank == 1:
        return 11
    return min(rank, 10)


def hand_value(cards: list[int]) -> tuple[int, bool]:
    """(best total, is_soft). Soft means an ace still counts 11."""
    total = sum(card_value(c) for c in cards)
    aces = sum(1 for c in cards if c == 1)
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total, aces > 0


def is_blackjack(cards: list[int]) -> bool:
    return len(cards) == 2 and hand_value(cards)[0] == 21


class BlackjackEngine(BaseGameEngine):
    game_type = "blackjack"
    display_name = "Blackjack"
    config_model = BlackjackConfig

    def deal(self, rng: RandomSource) -> int:
        return randint(rng, 1, 13)

    def dealer_should_hit(self, cards: list[int]) -> bool:
        total, soft = hand_value(cards)
        if total < 17:
            return True
        return total == 17 and soft and self.config.dealer_hits_soft_17

    def play_round(self, rng: RandomSource, wager: float = 1.0) -> BlackjackHand:
        cfg = self.config
        player = [self.deal(rng)]
        dealer = [self.deal(rng)]
        player.append(self.deal(rng))
        dealer.append(self.deal(rng))

        def settle(result: str, multiplier: float) -> BlackjackHand:
            return BlackjackHand(wager=wager, multiplier=multiplier, player_cards=player,
                                 dealer_cards=dealer, result=result)

        if is_blackjack(player):
            if is_blackjack(dealer):
                return settle("push", cfg.push_payout)
            return settle("blackjack", cfg.blackjack_payout)
        if is_blackjack(dealer):
            return settle("lose", 0.0)

        while hand_value(player)[0] < cfg.player_stand_on:
            player.append(self.deal(rng))
        player_total = hand_value(player)[0]
        if player_total > 21:
            return settle("bust", 0.0)

        while self.dealer_should_hit(dealer):
            dealer.append(self.deal(rng))
        dealer_total = hand_value(dealer)[0]

        if dealer_total > 21 or player_total > dealer_total:
            return settle("win", cfg.win_payout)
        if player_total == dealer_total and not cfg.dealer_wins_ties:
            return settle("push", cfg.push_payout)
        return settle("lose", 0.0)
