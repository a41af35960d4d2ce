#!/usr/bin/env python3
"""
GOURMET FUN — Unit & Integration Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestMinesModel  # run specific class

Test categories:
  TestRandomSources      — seeded, scripted, locked and provably fair streams
  TestWeightedTable      — table validation, cumulative draws, reel strips
  TestPaylineEvaluator   — max-per-line, near misses, slot engine
  TestCrashModel         — crash point floor, cash-out, closed-form RTP
  TestPlinkoModel        — bucket walk, path/bucket agreement, analytic RTP
  TestMinesModel         — multiplier table, board placement, rounds
  TestScratchModel       — match-count draw, cosmetic card, 90% RTP
  TestBlackjackModel     — hand values, scripted hands, house rules
  TestConfigValidation   — ConfigError cases, idempotent loading
  TestSettlement         — wager validation, balance settlement
  TestEstimator          — RTP statistics, parallel merge
  TestValidatorTools     — RTPValidator, tuning helpers, settings
"""

import json
import logging
import math
import os
import sys
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.game_schema import (
    CrashConfig, CrashFormula, MinesConfig, PlinkoConfig, ScratchConfig, SlotConfig,
    load_config, load_game_config,
)
from config.settings import EngineSettings
from rtp_engine.combinatorics import binomial_pmf, combinations, factorial, survival_probability
from rtp_engine.errors import ConfigError, ExhaustedRandomSource, InvalidWager
from rtp_engine.estimator import RunningTotals, estimate_rtp, estimate_rtp_parallel
from rtp_engine.games import GAME_TYPES, get_game_engine
from rtp_engine.games.blackjack import BlackjackEngine, hand_value, is_blackjack
from rtp_engine.games.crash import (
    CrashEngine, cash_out, crash_point, multiplier_at, survival, time_to_multiplier,
)
from rtp_engine.games.mines import MinesEngine, fair_odds, mines_multiplier
from rtp_engine.games.plinko import PlinkoEngine, analytic_rtp, bucket_distribution
from rtp_engine.games.scratch import ScratchEngine
from rtp_engine.games.slots import SlotEngine, evaluate_grid, evaluate_line
from rtp_engine.outcomes import ScratchMatch
from rtp_engine.random_source import (
    LockedRandomSource, ProvablyFairSource, SeededRandomSource, SequenceRandomSource,
    SplitMixSource, SystemRandomSource, derive_seed, randint,
)
from rtp_engine.settlement import settle_round, validate_wager
from rtp_engine.weighted import ReelStrip, build, draw
from tools.rtp_validator import (
    RTPValidator, adjustment_factor, scale_multipliers, uniformity_check,
)

HIGH_ROW = [130, 35, 10, 1.5, 0, 0, 0, 0, 0, 0, 1.5, 10, 35, 130]


# ============================================================
# Random Sources
# ============================================================

class TestRandomSources(unittest.TestCase):

    def test_seeded_source_is_reproducible(self):
        a = SeededRandomSource(42)
        b = SeededRandomSource(42)
        self.assertEqual([a.next() for _ in range(50)], [b.next() for _ in range(50)])

    def test_splitmix_range_and_determinism(self):
        a = SplitMixSource(7)
        b = SplitMixSource(7)
        values = [a.next() for _ in range(1000)]
        self.assertEqual(values, [b.next() for _ in range(1000)])
        self.assertTrue(all(0.0 <= v < 1.0 for v in values))

    def test_system_source_range(self):
        rng = SystemRandomSource()
        values = [rng.next() for _ in range(1000)]
        self.assertTrue(all(0.0 <= v < 1.0 for v in values))
        self.assertGreater(len(set(values)), 990)

    def test_sequence_source_exhausts(self):
        rng = SequenceRandomSource([0.25, 0.75])
        self.assertEqual(rng.next(), 0.25)
        self.assertEqual(rng.remaining, 1)
        self.assertEqual(rng.next(), 0.75)
        with self.assertRaises(ExhaustedRandomSource):
            rng.next()

    def test_sequence_source_rejects_out_of_range(self):
        for bad in (1.0, -0.1, 3):
            with self.assertRaises(ConfigError):
                SequenceRandomSource([0.5, bad])

    def test_randint_bounds(self):
        rng = SequenceRandomSource([0.0, 0.999999, 0.5])
        self.assertEqual(randint(rng, 1, 13), 1)
        self.assertEqual(randint(rng, 1, 13), 13)
        self.assertEqual(randint(rng, 0, 9), 5)
        with self.assertRaises(ValueError):
            randint(SeededRandomSource(1), 5, 4)

    def test_derive_seed(self):
        self.assertEqual(derive_seed(42, "plinko"), derive_seed(42, "plinko"))
        self.assertNotEqual(derive_seed(42, "plinko"), derive_seed(42, "crash"))
        self.assertNotEqual(derive_seed(42, "plinko"), derive_seed(43, "plinko"))

    def test_provably_fair_verification(self):
        pf = ProvablyFairSource(server_seed="server", client_seed="player-1", nonce=3)
        again = ProvablyFairSource(server_seed="server", client_seed="player-1", nonce=3)
        # More than eight draws crosses into the second digest
        first = [pf.next() for _ in range(12)]
        self.assertEqual(first, [again.next() for _ in range(12)])
        self.assertTrue(all(0.0 <= v < 1.0 for v in first))
        self.assertEqual(pf.cursor, 2)
        self.assertTrue(ProvablyFairSource.verify_server_seed("server", pf.server_seed_hash))
        self.assertFalse(ProvablyFairSource.verify_server_seed("other", pf.server_seed_hash))

    def test_provably_fair_new_round(self):
        pf = ProvablyFairSource(server_seed="s", client_seed="c")
        round_one = [pf.next() for _ in range(3)]
        pf.new_round()
        self.assertEqual(pf.nonce, 1)
        self.assertNotEqual(round_one, [pf.next() for _ in range(3)])

    def test_locked_source_shares_one_sequence(self):
        shared = LockedRandomSource(SeededRandomSource(9))
        drawn = []
        drawn_lock = threading.Lock()

        def worker():
            local = [shared.next() for _ in range(500)]
            with drawn_lock:
                drawn.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        reference = SeededRandomSource(9)
        self.assertEqual(sorted(drawn), sorted(reference.next() for _ in range(2000)))


# ============================================================
# Weighted Tables
# ============================================================

class TestWeightedTable(unittest.TestCase):

    def setUp(self):
        self.table = build([("A", 1), ("B", 2), ("C", 7)])

    def test_cumulative_walk(self):
        rng = SequenceRandomSource([0.05, 0.1, 0.29, 0.35, 0.99])
        self.assertEqual([draw(self.table, rng) for _ in range(5)], ["A", "B", "B", "C", "C"])

    def test_build_rejects_bad_tables(self):
        for entries in ([], [("A", 0)], [("A", 3), ("B", -1)], [("A", 1.5)], [("A", True)]):
            with self.assertRaises(ConfigError, msg=str(entries)):
                build(entries)

    def test_equal_entries_build_equal_tables(self):
        self.assertEqual(self.table, build([("A", 1), ("B", 2), ("C", 7)]))
        self.assertEqual(self.table.total, 10)
        self.assertAlmostEqual(self.table.probability("C"), 0.7)

    def test_draw_frequencies_chi_squared(self):
        """Observed frequencies fit weight / total (χ², 2 d.o.f., α=0.001)."""
        rng = SeededRandomSource(123)
        n = 100_000
        counts = {"A": 0, "B": 0, "C": 0}
        for _ in range(n):
            counts[self.table.draw(rng)] += 1
        chi2 = sum(
            (counts[v] - n * self.table.probability(v)) ** 2 / (n * self.table.probability(v))
            for v in counts
        )
        self.assertLess(chi2, 13.82)

    def test_reel_strip_window_wraps(self):
        strip = ReelStrip(self.table)
        self.assertEqual(len(strip), 10)
        # Offset 9 is the last C; the window wraps to positions 0 and 1
        self.assertEqual(strip.window(SequenceRandomSource([0.95]), 3), ["C", "A", "B"])


# ============================================================
# Payline Evaluator / Slots
# ============================================================

class TestPaylineEvaluator(unittest.TestCase):

    def test_pays_best_run_only(self):
        paytable = {"CHERRY": {2: 0.5}, "LEMON": {3: 1.5}}
        line = ["CHERRY", "CHERRY", "LEMON", "LEMON", "LEMON"]
        result = evaluate_line(line, paytable)
        self.assertEqual(result.multiplier, 1.5)
        self.assertEqual(result.symbol, "LEMON")
        self.assertEqual(result.start, 2)
        self.assertEqual(result.run_length, 3)

    def test_max_across_symbols_not_sum(self):
        paytable = {"GRAPE": {3: 2.0}, "LEMON": {2: 5.0}}
        result = evaluate_line(["GRAPE", "GRAPE", "GRAPE", "LEMON", "LEMON"], paytable)
        self.assertEqual(result.multiplier, 5.0)
        self.assertEqual(result.symbol, "LEMON")

        result = evaluate_line(["LEMON", "LEMON", "GRAPE", "GRAPE", "GRAPE"],
                               {"GRAPE": {3: 7.0}, "LEMON": {2: 5.0}})
        self.assertEqual(result.multiplier, 7.0)

    def test_near_miss(self):
        paytable = SlotConfig().paytable
        result = evaluate_line(["SEVEN", "SEVEN", "CHERRY", "LEMON", "GRAPE"], paytable)
        self.assertEqual(result.multiplier, 0)
        self.assertTrue(result.near_miss)

        result = evaluate_line(["CHERRY", "CHERRY", "CHERRY", "SEVEN", "SEVEN"], paytable)
        self.assertGreater(result.multiplier, 0)
        self.assertFalse(result.near_miss)

    def test_left_aligned_rule(self):
        paytable = SlotConfig().paytable
        line = ["LEMON", "CHERRY", "CHERRY", "CHERRY", "GRAPE"]
        self.assertEqual(evaluate_line(line, paytable).multiplier, 0.3)
        self.assertEqual(evaluate_line(line, paytable, left_aligned=True).multiplier, 0)

    def test_lines_add_up(self):
        paytable = {"CHERRY": {5: 2.0}}
        grid = [["CHERRY", "LEMON"]] * 5          # reel-major: row 0 all CHERRY
        payout, lines = evaluate_grid(grid, paytable, wager=3.0)
        self.assertEqual(payout, 6.0)
        self.assertEqual([line.multiplier for line in lines], [2.0, 0.0])

    def test_slot_round_all_cherries(self):
        engine = SlotEngine()
        outcome = engine.play_round(SequenceRandomSource([0.0] * 5), wager=1.0)
        self.assertEqual(outcome.grid, [["CHERRY"] * 3] * 5)
        self.assertEqual(outcome.winning_rows, [0, 1, 2])
        self.assertAlmostEqual(outcome.payout, 6.0)

    def test_slot_theoretical_rtp(self):
        engine = SlotEngine()
        rtp = engine.theoretical_rtp()
        self.assertAlmostEqual(rtp, 3 * engine.line_expectation())
        self.assertTrue(0 < rtp < 2, rtp)


# ============================================================
# Crash
# ============================================================

class TestCrashModel(unittest.TestCase):

    def test_midpoint_draw(self):
        self.assertAlmostEqual(crash_point(0.5, 10), 90 / 55)

    def test_never_below_one(self):
        self.assertEqual(crash_point(0.0, 10), 1.0)
        rng = SeededRandomSource(5)
        self.assertTrue(all(crash_point(rng.next(), 10) >= 1.0 for _ in range(10_000)))

    def test_cap(self):
        self.assertEqual(crash_point(0.999, 10, max_multiplier=5.0), 5.0)
        self.assertEqual(survival(5.0, 10, max_multiplier=5.0), 0.0)

    def test_cash_out_strictly_before_bust(self):
        self.assertEqual(cash_out(10, 1.64, 1.5), 15.0)
        self.assertEqual(cash_out(10, 1.5, 1.5), 0.0)
        self.assertEqual(cash_out(10, 1.0, 1.01), 0.0)

    def test_growth_curve(self):
        self.assertAlmostEqual(multiplier_at(4.0), math.e)
        self.assertAlmostEqual(time_to_multiplier(math.e), 4.0)
        with self.assertRaises(ValueError):
            time_to_multiplier(0.5)

    def test_engine_round(self):
        engine = CrashEngine()
        won = engine.play_round(SequenceRandomSource([0.5]), wager=2.0, cashout_at=1.5)
        self.assertTrue(won.cashed_out)
        self.assertAlmostEqual(won.payout, 3.0)
        lost = engine.play_round(SequenceRandomSource([0.5]), wager=2.0, cashout_at=2.0)
        self.assertEqual(lost.payout, 0.0)
        self.assertAlmostEqual(lost.crash_point, 90 / 55)

    def test_closed_form_rtp(self):
        classic = CrashEngine()
        self.assertAlmostEqual(classic.ceiling, 9.0)
        self.assertAlmostEqual(classic.theoretical_rtp(2.0), 2 * (1 - (100 / 90 - 0.5)))
        inverse = CrashEngine(formula="inverse_cdf")
        self.assertEqual(inverse.config.formula, CrashFormula.INVERSE_CDF)
        for target in (1.5, 2.0, 10.0):
            self.assertAlmostEqual(inverse.theoretical_rtp(target), 0.9)
        self.assertEqual(inverse.ceiling, math.inf)


# ============================================================
# Plinko
# ============================================================

class TestPlinkoModel(unittest.TestCase):

    def test_extreme_paths(self):
        engine = PlinkoEngine(risk="high")
        self.assertEqual(engine.drop_bucket(SequenceRandomSource([0.1] * 13)), 0)
        self.assertEqual(engine.drop_bucket(SequenceRandomSource([0.9] * 13)), 13)
        outcome = engine.play_round(SequenceRandomSource([0.9] * 13), wager=2.0)
        self.assertEqual(outcome.payout, 260.0)

    def test_path_matches_bucket(self):
        engine = PlinkoEngine()
        for seed in range(20):
            path = engine.drop_path(SeededRandomSource(seed))
            bucket = engine.drop_bucket(SeededRandomSource(seed))
            self.assertEqual(len(path), 14)
            self.assertEqual(path[0], (0, 6.5))
            self.assertEqual(max(0, min(13, math.floor(path[-1][1]))), bucket)
            outcome = engine.play_round(SeededRandomSource(seed), with_path=True)
            self.assertEqual(outcome.bucket, bucket)

    def test_binomial_symmetry(self):
        dist = bucket_distribution(13)
        self.assertAlmostEqual(sum(dist), 1.0)
        for k in range(14):
            self.assertAlmostEqual(dist[k], dist[13 - k])
        self.assertAlmostEqual(dist[0], 1 / 8192)

    def test_analytic_rtp_high(self):
        self.assertAlmostEqual(analytic_rtp(HIGH_ROW), 3588 / 8192)
        self.assertAlmostEqual(PlinkoEngine().theoretical_rtp("high"), 3588 / 8192)

    def test_off_centre_start(self):
        engine = PlinkoEngine(start_column=0)
        self.assertEqual(engine.drop_bucket(SequenceRandomSource([0.1] * 13)), 0)
        self.assertEqual(engine.drop_bucket(SequenceRandomSource([0.9] * 13)), 6)
        self.assertGreater(engine.theoretical_rtp("high"), 0)

    def test_drop_batch(self):
        engine = PlinkoEngine()
        balls = engine.drop_batch(SeededRandomSource(3), wager=0.5, balls=25, risk="low")
        self.assertEqual(len(balls), 25)
        row = engine.multipliers("low")
        self.assertTrue(all(b.payout == 0.5 * row[b.bucket] for b in balls))

    def test_unknown_risk(self):
        with self.assertRaises(KeyError):
            PlinkoEngine().multipliers("extreme")


# ============================================================
# Mines
# ============================================================

class TestMinesModel(unittest.TestCase):

    def test_first_pick_multiplier(self):
        self.assertEqual(mines_multiplier(0, num_bad=3), 1.0)
        self.assertEqual(mines_multiplier(1, num_bad=3), round(25 / 22 * 0.9, 2))
        self.assertEqual(mines_multiplier(1, num_bad=3), 1.02)

    def test_exact_combinatorics(self):
        self.assertEqual(combinations(25, 3), 2300)
        self.assertEqual(combinations(22, 3), 1540)
        self.assertEqual(combinations(5, 7), 0)
        self.assertEqual(fair_odds(25, 3, 3) * 1540, 2300)
        self.assertEqual(survival_probability(25, 22, 3) * 2300, 1540)
        self.assertAlmostEqual(binomial_pmf(13, 0), 1 / 8192)

    def test_factorial_agrees_with_combinations(self):
        self.assertEqual(factorial(0), 1)
        self.assertEqual(factorial(5), 120)
        for k in range(26):
            self.assertEqual(combinations(25, k), factorial(25) // (factorial(k) * factorial(25 - k)))
        with self.assertRaises(ValueError):
            factorial(-1)

    def test_strictly_increasing(self):
        table = MinesEngine().multiplier_table()
        self.assertEqual(len(table), 23)
        self.assertTrue(all(a < b for a, b in zip(table, table[1:])))

    def test_beyond_safe_tiles(self):
        self.assertEqual(mines_multiplier(23, num_bad=3), 0.0)
        self.assertEqual(MinesEngine().multiplier(22), round(2300 * 0.9, 2))

    def test_theoretical_rtp_near_edge(self):
        engine = MinesEngine()
        for picks in range(1, 23):
            self.assertAlmostEqual(engine.theoretical_rtp(picks), 0.9, delta=0.01)

    def test_scripted_rounds(self):
        engine = MinesEngine()
        # Bad tiles 0, 1, 2; reveals tiles 12 then 13
        safe = engine.play_round(SequenceRandomSource([0.0, 0.05, 0.09, 0.5, 0.5]), wager=10, picks=2)
        self.assertFalse(safe.hit_bad)
        self.assertEqual(safe.bad_tiles, (0, 1, 2))
        self.assertEqual(safe.revealed, (12, 13))
        self.assertAlmostEqual(safe.payout, 10 * mines_multiplier(2, 3))

        # Bad tiles 12, 13, 14; first reveal is tile 12
        bust = engine.play_round(SequenceRandomSource([0.5, 0.53, 0.57, 0.5]), wager=10, picks=2)
        self.assertTrue(bust.hit_bad)
        self.assertEqual(bust.picks, 0)
        self.assertEqual(bust.payout, 0.0)

    def test_bust_stops_drawing(self):
        engine = MinesEngine()
        # Bad tiles 12, 13, 14; the single reveal draw lands on 12
        rng = SequenceRandomSource([0.5, 0.53, 0.57, 0.5])
        bust = engine.play_round(rng, picks=5)
        self.assertTrue(bust.hit_bad)
        self.assertEqual(bust.revealed, (12,))
        self.assertEqual(rng.remaining, 0)

        order = engine.reveal_order(SequenceRandomSource([0.0]), 22)
        self.assertEqual(next(order), 0)
        with self.assertRaises(ExhaustedRandomSource):
            next(order)

    def test_bad_tiles_distinct(self):
        engine = MinesEngine(num_bad=8)
        rng = SeededRandomSource(11)
        for _ in range(50):
            self.assertEqual(len(engine.place_bad_tiles(rng)), 8)

    def test_invalid_picks(self):
        with self.assertRaises(ValueError):
            MinesEngine().play_round(SeededRandomSource(1), picks=23)


# ============================================================
# Scratch
# ============================================================

class TestScratchModel(unittest.TestCase):

    def test_analytic_rtp_is_ninety(self):
        self.assertAlmostEqual(ScratchEngine().theoretical_rtp(), 0.90)

    def test_match_count_walk(self):
        engine = ScratchEngine()
        rng = SequenceRandomSource([0.005, 0.03, 0.1, 0.3, 0.9])
        self.assertEqual([engine.draw_match_count(rng) for _ in range(5)], [4, 3, 2, 1, 0])

    def test_round_payout(self):
        outcome = ScratchEngine().play_round(SequenceRandomSource([0.005]), wager=2.0)
        self.assertEqual(outcome.match_count, 4)
        self.assertEqual(outcome.payout, 50.0)
        self.assertIsNone(outcome.card)

    def test_card_preserves_match_count(self):
        engine = ScratchEngine()
        rng = SeededRandomSource(77)
        for matches in range(5):
            for _ in range(20):
                card = engine.build_card(matches, rng)
                self.assertEqual(card.match_count, matches)
                self.assertEqual(len(card.player_numbers), 12)
                self.assertEqual(len(set(card.player_numbers)), 12)
                self.assertEqual(len(set(card.winning_numbers)), 4)
                self.assertTrue(all(1 <= n <= 50 for n in card.player_numbers))

    def test_card_does_not_touch_payout_draws(self):
        engine = ScratchEngine()
        plain = engine.play_round(SeededRandomSource(5))
        with_card = engine.play_round(SeededRandomSource(5), card_rng=SeededRandomSource(6))
        self.assertEqual(plain.payout, with_card.payout)
        self.assertEqual(with_card.card.match_count, with_card.match_count)


# ============================================================
# Blackjack
# ============================================================

class TestBlackjackModel(unittest.TestCase):

    def test_hand_values(self):
        self.assertEqual(hand_value([1, 13]), (21, True))
        self.assertEqual(hand_value([1, 1, 9]), (21, True))
        self.assertEqual(hand_value([1, 10, 5]), (16, False))
        self.assertTrue(is_blackjack([1, 12]))
        self.assertFalse(is_blackjack([5, 6, 10]))

    def test_player_blackjack(self):
        hand = BlackjackEngine().play_round(SequenceRandomSource([0.0, 0.32, 0.99, 0.40]))
        self.assertEqual(hand.result, "blackjack")
        self.assertEqual(hand.multiplier, 2.5)

    def test_both_blackjack_push(self):
        hand = BlackjackEngine().play_round(SequenceRandomSource([0.0, 0.0, 0.99, 0.99]))
        self.assertEqual(hand.result, "push")
        self.assertEqual(hand.payout, 1.0)

    def test_tie_rules(self):
        draws = [0.72, 0.99, 0.99, 0.90]      # player 10+K, dealer K+Q
        self.assertEqual(BlackjackEngine().play_round(SequenceRandomSource(draws)).result, "push")
        strict = BlackjackEngine(dealer_wins_ties=True)
        hand = strict.play_round(SequenceRandomSource(draws))
        self.assertEqual(hand.result, "lose")
        self.assertEqual(hand.payout, 0.0)

    def test_player_bust(self):
        hand = BlackjackEngine().play_round(SequenceRandomSource([0.72, 0.40, 0.40, 0.72, 0.99]))
        self.assertEqual(hand.result, "bust")
        self.assertEqual(len(hand.player_cards), 3)

    def test_dealer_bust(self):
        hand = BlackjackEngine().play_round(SequenceRandomSource([0.72, 0.72, 0.99, 0.40, 0.99]),
                                            wager=5)
        self.assertEqual(hand.result, "win")
        self.assertEqual(hand.payout, 10.0)


# ============================================================
# Configuration
# ============================================================

class TestConfigValidation(unittest.TestCase):

    def test_defaults_load(self):
        for game_type in GAME_TYPES:
            cfg = load_game_config(game_type)
            self.assertEqual(cfg.game_type, game_type)

    def test_idempotent_loading(self):
        a, b = load_config(SlotConfig), load_config(SlotConfig)
        self.assertEqual(a, b)
        self.assertEqual(a.config_hash, b.config_hash)
        self.assertEqual(SlotEngine(a).tables, SlotEngine(b).tables)

    def test_invalid_always_raises(self):
        bad_cases = [
            (SlotConfig, {"reels": [{"CHERRY": 0}]}),
            (SlotConfig, {"reels": []}),
            (SlotConfig, {"paytable": {"CHERRY": {6: 1.0}}}),
            (SlotConfig, {"paytable": {"CHERRY": {3: -1.0}}}),
            (CrashConfig, {"house_edge_percent": 100}),
            (CrashConfig, {"house_edge_percent": -1}),
            (PlinkoConfig, {"multipliers": {"high": [1, 2, 3]}}),
            (PlinkoConfig, {"multipliers": {"high": [2] + [1] * 13}, "risk": "high"}),
            (PlinkoConfig, {"risk": "extreme"}),
            (MinesConfig, {"num_bad": 25}),
            (MinesConfig, {"auto_cashout_picks": 23}),
            (ScratchConfig, {"distribution": {0: 0.5, 1: 0.4}}),
            (ScratchConfig, {"payouts": {0: 1.0, 1: 0.5}}),
        ]
        for model_cls, data in bad_cases:
            for _ in range(3):
                with self.assertRaises(ConfigError, msg=f"{model_cls.__name__} {data}"):
                    load_config(model_cls, data)

    def test_unknown_field_rejected(self):
        with self.assertRaises(ConfigError):
            load_config(CrashConfig, {"house_edge": 10})
        with self.assertRaises(ConfigError):
            load_game_config("roulette")

    def test_decreasing_paytable_warns(self):
        previous = logging.root.manager.disable
        logging.disable(logging.NOTSET)
        try:
            with self.assertLogs("gourmet.config", level="WARNING"):
                load_config(SlotConfig, {"paytable": {"CHERRY": {3: 2.0, 4: 1.0}}})
        finally:
            logging.disable(previous)

    def test_engine_overrides(self):
        engine = get_game_engine("mines", num_bad=5)
        self.assertEqual(engine.config.num_bad, 5)
        self.assertEqual(engine.get_metadata()["display_name"], "Sour Apple")
        with self.assertRaises(ValueError):
            get_game_engine("roulette")


# ============================================================
# Settlement
# ============================================================

class TestSettlement(unittest.TestCase):

    def test_invalid_wager_rejected_before_draw(self):
        engine = ScratchEngine()
        for wager in (0, -1, float("nan")):
            with self.assertRaises(InvalidWager):
                settle_round(engine, wager, 100.0, SequenceRandomSource([]))
        with self.assertRaises(InvalidWager):
            settle_round(engine, 200.0, 100.0, SequenceRandomSource([]))

    def test_settle_win(self):
        result = settle_round(ScratchEngine(), 2.0, 10.0, SequenceRandomSource([0.005]))
        self.assertEqual(result.balance_after, 58.0)
        self.assertEqual(result.net, 48.0)
        self.assertIsInstance(result.outcome, ScratchMatch)

    def test_validate_wager(self):
        self.assertEqual(validate_wager(5.0, 5.0), 5.0)
        self.assertEqual(validate_wager(0.01), 0.01)

    def test_outcome_to_dict(self):
        data = ScratchMatch(wager=2.0, multiplier=25, match_count=4).to_dict()
        self.assertEqual(data["game_type"], "scratch")
        self.assertEqual(data["payout"], 50.0)


# ============================================================
# Estimator
# ============================================================

class TestEstimator(unittest.TestCase):

    def test_constant_payout(self):
        est = estimate_rtp(lambda rng, wager: wager * 0.5, trials=1000, wager=2.0, seed=1)
        self.assertAlmostEqual(est.rtp, 50.0)
        self.assertEqual(est.std_dev, 0.0)
        self.assertEqual(est.hit_frequency, 1.0)
        self.assertTrue(est.within_band(49, 51))
        self.assertFalse(est.within_band(89, 91))

    def test_band_judged_on_interval(self):
        est = estimate_rtp(ScratchEngine(), trials=2_000, seed=3)
        lo, hi = est.confidence_95
        self.assertLess(lo, est.rtp)
        self.assertGreater(hi, est.rtp)
        # A band just around the point estimate is narrower than the interval
        self.assertFalse(est.within_band(est.rtp - 0.01, est.rtp + 0.01))

    def test_scratch_converges(self):
        est = estimate_rtp(ScratchEngine(), trials=200_000, seed=42)
        self.assertTrue(est.consistent_with(90.0), est.summary())
        self.assertGreater(est.rtp_stderr, 0)

    def test_rejects_bad_arguments(self):
        with self.assertRaises(ValueError):
            estimate_rtp(ScratchEngine(), trials=0)
        with self.assertRaises(InvalidWager):
            estimate_rtp(ScratchEngine(), trials=10, wager=-1)

    def test_running_totals_merge(self):
        payouts = [0, 0.5, 2, 0, 25, 1]
        whole = RunningTotals()
        left, right = RunningTotals(), RunningTotals()
        for i, p in enumerate(payouts):
            whole.add(p)
            (left if i < 3 else right).add(p)
        merged = left.merge(right)
        self.assertEqual(merged, whole)
        self.assertEqual(merged.hits, 4)
        self.assertEqual(merged.max_payout, 25)

    def test_parallel_independent_of_workers(self):
        engine = ScratchEngine()
        inline = estimate_rtp_parallel(engine, 4_000, workers=1, seed=7, chunks=2)
        pooled = estimate_rtp_parallel(engine, 4_000, workers=2, seed=7, chunks=2)
        self.assertEqual(inline.trials, 4_000)
        self.assertAlmostEqual(inline.total_payout, pooled.total_payout)

    def test_to_dict_is_json(self):
        est = estimate_rtp(PlinkoEngine(), trials=500, seed=1)
        data = json.loads(json.dumps(est.to_dict()))
        self.assertEqual(data["game_type"], "plinko")
        self.assertIn("RTP", est.summary())


# ============================================================
# Validator & Settings
# ============================================================

class TestValidatorTools(unittest.TestCase):

    def test_adjustment_factor(self):
        self.assertAlmostEqual(adjustment_factor(45.0, 90.0), 2.0)
        self.assertEqual(scale_multipliers([1.5, 10], 2.0), [3.0, 20.0])
        self.assertEqual(scale_multipliers([1.0], 1 / 3, ndigits=2), [0.33])
        with self.assertRaises(ValueError):
            adjustment_factor(0.0)

    def test_uniformity(self):
        chi2, ok = uniformity_check(SeededRandomSource(4))
        self.assertLess(chi2, 200)
        chi2, ok = uniformity_check(SequenceRandomSource([0.5] * 1000), n_samples=1000)
        self.assertFalse(ok)

    def test_validate_game(self):
        v = RTPValidator(trials=20_000, seed=1, settings=EngineSettings())
        check = v.validate_game("scratch")
        self.assertAlmostEqual(check.theoretical_rtp, 90.0)
        self.assertTrue(check.analytic_pass)
        self.assertIn(check.status, ("GOOD", "INCONCLUSIVE", "NEEDS ADJUSTMENT"))

    def test_validate_all_report(self):
        v = RTPValidator(trials=2_000, seed=1, settings=EngineSettings())
        report = v.validate_all()
        labels = [c.label for c in report.checks]
        self.assertEqual(labels, ["slots", "scratch", "crash", "plinko:low",
                                  "plinko:medium", "plinko:high", "mines", "blackjack"])
        data = json.loads(report.to_json())
        self.assertEqual(len(data["games"]), 8)
        self.assertIsNone(data["games"][-1]["theoretical_rtp_pct"])
        self.assertIn("RTP VALIDATION", report.summary())

    def test_plinko_tiers_need_adjustment(self):
        v = RTPValidator(trials=50_000, seed=2, settings=EngineSettings())
        high = v.validate_game("plinko", risk="high")
        self.assertEqual(high.status, "NEEDS ADJUSTMENT")

    def test_candy_drop_script_rows(self):
        from tools import candy_drop_rtp
        rows = candy_drop_rtp.run(2_000, 1, ["low", "high"], (89.0, 91.0), 90.0)
        self.assertEqual([r["risk"] for r in rows], ["low", "high"])
        for r in rows:
            self.assertAlmostEqual(r["factor"], 90.0 / r["check"].estimate.rtp)
            self.assertEqual(len(r["adjusted"]), 14)

    def test_analysis_breakdowns(self):
        from tools import rtp_analysis
        scratch = rtp_analysis.scratch_breakdown()
        self.assertAlmostEqual(sum(r["contribution"] for r in scratch), 0.9)
        mines = rtp_analysis.mines_breakdown()
        self.assertEqual(mines[0]["picks"], 1)
        self.assertEqual(mines[0]["multiplier"], 1.02)
        crash = rtp_analysis.crash_breakdown()
        self.assertAlmostEqual(crash["instant_bust"], 1 / 9)
        self.assertAlmostEqual(crash["ceiling"], 9.0)

    def test_analysis_json_safe_and_titles(self):
        from tools import rtp_analysis
        unbounded = rtp_analysis.crash_breakdown(formula="inverse_cdf")
        self.assertIsNone(unbounded["ceiling"])
        unbounded["rtp_by_cashout"] = {str(k): v for k, v in unbounded["rtp_by_cashout"].items()}
        self.assertIn('"ceiling": null', json.dumps(unbounded, allow_nan=False))
        self.assertEqual(rtp_analysis.mines_title(), "Sour Apple (5×5, 3 bad tiles)")
        self.assertEqual(rtp_analysis.mines_title(grid_size=4, num_bad=1), "Sour Apple (4×4, 1 bad tile)")

    def test_settings_from_env(self):
        env = {"RTP_TRIALS": "5_000", "RTP_SEED": "9", "RTP_BAND_LOW": "88",
               "RTP_BAND_HIGH": "92", "LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env):
            s = EngineSettings.from_env()
        self.assertEqual(s.trials, 5000)
        self.assertEqual(s.seed, 9)
        self.assertEqual(s.band, (88.0, 92.0))
        self.assertEqual(s.log_level, "DEBUG")

    def test_settings_reject_bad_values(self):
        with patch.dict(os.environ, {"RTP_TRIALS": "lots"}):
            with self.assertRaises(ConfigError):
                EngineSettings.from_env()
        with self.assertRaises(ConfigError):
            EngineSettings(band_low=91, band_high=89)


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
