#!/usr/bin/env python3
"""
Tests for RTP convergence: Monte Carlo vs closed form

Validates:
1.  Candy Drop high tier: 10^6 drops within ±1 pp of the Binomial(13, 0.5) RTP
2.  10^6 Candy Drop balls fill buckets as Binomial(13, 0.5), mirror-symmetric
3.  Every Candy Drop tier agrees with its analytic RTP in standard errors
4.  Icicle Pop classic formula converges to target × P(crash > target)
5.  Icicle Pop inverse-CDF formula converges to 90% at any cash-out
6.  Crash points never fall below 1.00 and never exceed the ceiling
7.  Sour Apple converges to P(survive) × multiplier for several cash-out picks
8.  Sugar Scratch converges to exactly 90%
9.  Fruit Frenzy converges to the enumerated line expectation
10. Blackjack house rules lower RTP draw-for-draw
11. Parallel estimation agrees with the analytic RTP
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from rtp_engine.estimator import estimate_rtp, estimate_rtp_parallel
from rtp_engine.games import get_game_engine
from rtp_engine.games.plinko import analytic_rtp, bucket_distribution
from rtp_engine.random_source import SeededRandomSource, SplitMixSource

HIGH_ROW = [130, 35, 10, 1.5, 0, 0, 0, 0, 0, 0, 1.5, 10, 35, 130]


def test_plinko_high_million_drops():
    engine = get_game_engine("plinko", risk="high")
    assert engine.multipliers() == HIGH_ROW
    expected = analytic_rtp(HIGH_ROW) * 100
    est = estimate_rtp(engine, 1_000_000, 1.0, rng=SeededRandomSource(2024))
    assert abs(est.rtp - expected) <= 1.0, f"{est.rtp:.3f}% vs analytic {expected:.3f}%"
    print(f"✅ Candy Drop high: {est.rtp:.3f}% (analytic {expected:.3f}%)")


def test_plinko_bucket_distribution():
    engine = get_game_engine("plinko")
    rows = engine.config.rows
    rng = SplitMixSource(13)
    drops = 1_000_000
    counts = [0] * (rows + 1)
    for _ in range(drops):
        counts[engine.drop_bucket(rng)] += 1

    expected = [p * drops for p in bucket_distribution(rows)]
    chi2 = sum((o - e) ** 2 / e for o, e in zip(counts, expected))
    # 99.9th percentile of chi-squared with 13 degrees of freedom
    assert chi2 < 34.53, f"chi2={chi2:.2f} counts={counts}"

    # Mirrored buckets k and rows - k share one probability; 7 pairs
    pairs = [(counts[k], counts[rows - k]) for k in range((rows + 1) // 2)]
    mirror = sum((a - b) ** 2 / (a + b) for a, b in pairs)
    assert mirror < 24.32, f"mirror chi2={mirror:.2f} pairs={pairs}"
    print(f"✅ Candy Drop buckets: chi2={chi2:.2f}, mirror chi2={mirror:.2f}")


def test_plinko_tiers_match_analytic():
    for risk in ("low", "medium", "high"):
        engine = get_game_engine("plinko", risk=risk)
        est = estimate_rtp(engine, 200_000, 1.0, rng=SplitMixSource(11))
        expected = engine.theoretical_rtp() * 100
        assert est.consistent_with(expected), f"{risk}: {est.rtp:.3f}% vs {expected:.3f}%"
    print("✅ Candy Drop tiers agree with Binomial PMF")


def test_crash_classic_converges():
    engine = get_game_engine("crash")
    for target in (1.5, 2.0, 4.0):
        est = estimate_rtp(lambda rng, w: engine.play_round(rng, w, cashout_at=target),
                           200_000, 1.0, rng=SeededRandomSource(7))
        expected = engine.theoretical_rtp(target) * 100
        assert est.consistent_with(expected), f"cash-out {target}: {est.rtp:.3f}% vs {expected:.3f}%"
    print("✅ Icicle Pop classic formula converges")


def test_crash_inverse_cdf_is_ninety():
    engine = get_game_engine("crash", formula="inverse_cdf")
    for target in (1.2, 2.0, 5.0):
        est = estimate_rtp(lambda rng, w: engine.play_round(rng, w, cashout_at=target),
                           200_000, 1.0, rng=SeededRandomSource(8))
        assert est.consistent_with(90.0), f"cash-out {target}: {est.rtp:.3f}%"
    print("✅ Icicle Pop inverse-CDF formula converges to 90%")


def test_crash_point_range():
    engine = get_game_engine("crash")
    rng = SeededRandomSource(99)
    points = [engine.draw_crash_point(rng) for _ in range(100_000)]
    assert min(points) == 1.0
    assert max(points) <= engine.ceiling
    instant = sum(1 for p in points if p == 1.0) / len(points)
    assert abs(instant - 1 / 9) < 0.01, instant
    print(f"✅ Crash points in [1.00, {engine.ceiling:.2f}], instant bust {instant:.3%}")


def test_mines_converges():
    engine = get_game_engine("mines")
    for picks in (1, 3, 6):
        est = estimate_rtp(lambda rng, w: engine.play_round(rng, w, picks=picks),
                           100_000, 1.0, rng=SeededRandomSource(picks))
        expected = engine.theoretical_rtp(picks) * 100
        assert est.consistent_with(expected), f"picks {picks}: {est.rtp:.3f}% vs {expected:.3f}%"
    print("✅ Sour Apple converges")


def test_scratch_converges_to_ninety():
    est = estimate_rtp(get_game_engine("scratch"), 500_000, 1.0, rng=SeededRandomSource(5))
    assert est.consistent_with(90.0), est.summary()
    assert abs(est.hit_frequency - 0.5) < 0.01
    print(f"✅ Sugar Scratch: {est.rtp:.3f}%")


def test_slots_converge_to_enumeration():
    engine = get_game_engine("slots")
    est = estimate_rtp(engine, 100_000, 1.0, rng=SeededRandomSource(3))
    expected = engine.theoretical_rtp() * 100
    assert est.consistent_with(expected), f"{est.rtp:.3f}% vs {expected:.3f}%"
    print(f"✅ Fruit Frenzy: {est.rtp:.3f}% (exact {expected:.3f}%)")


def test_blackjack_house_rules_lower_rtp():
    standard = estimate_rtp(get_game_engine("blackjack"), 100_000, 1.0, seed=21)
    ties = estimate_rtp(get_game_engine("blackjack", dealer_wins_ties=True), 100_000, 1.0, seed=21)
    six_five = estimate_rtp(get_game_engine("blackjack", blackjack_payout=2.2), 100_000, 1.0, seed=21)
    # Same seed, same cards: only the payout rule differs
    assert ties.rtp < standard.rtp
    assert six_five.rtp < standard.rtp
    assert 85.0 < standard.rtp < 100.0, standard.rtp
    print(f"✅ Blackjack: standard {standard.rtp:.2f}%, ties {ties.rtp:.2f}%, 6:5 {six_five.rtp:.2f}%")


def test_parallel_matches_analytic():
    engine = get_game_engine("plinko", risk="low")
    est = estimate_rtp_parallel(engine, 200_000, 1.0, workers=2, seed=42)
    assert est.trials == 200_000
    assert est.consistent_with(engine.theoretical_rtp() * 100), est.summary()
    print(f"✅ Parallel Candy Drop low: {est.rtp:.3f}%")


if __name__ == "__main__":
    tests = [
        test_plinko_high_million_drops,
        test_plinko_bucket_distribution,
        test_plinko_tiers_match_analytic,
        test_crash_classic_converges,
        test_crash_inverse_cdf_is_ninety,
        test_crash_point_range,
        test_mines_converges,
        test_scratch_converges_to_ninety,
        test_slots_converge_to_enumeration,
        test_blackjack_house_rules_lower_rtp,
        test_parallel_matches_analytic,
    ]

    print(f"\n{'='*60}")
    print(f"RTP Convergence Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1
        print()

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
