"""
GOURMET FUN — Monte Carlo RTP Estimator

Plays N independent rounds of any outcome model at a fixed wager and reports
the empirical RTP together with its standard error, so a claim such as
"RTP within [89%, 91%]" is judged on a confidence interval rather than on a
point estimate.

Trials are independent, so runs split across processes and recombine by
summing payouts and squared payouts.

Usage:
    from rtp_engine.estimator import estimate_rtp
    from rtp_engine.games import get_game_engine

    est = estimate_rtp(get_game_engine("scratch"), trials=200_000, wager=1.0, seed=42)
    print(est.summary())
    est.within_band(89, 91)
"""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from rtp_engine.outcomes import Outcome
from rtp_engine.random_source import RandomSource, SeededRandomSource, derive_seed
from rtp_engine.settlement import validate_wager

logger = logging.getLogger("gourmet.estimator")

Z_95 = 1.959963984540054

Model = Union[object, Callable[[RandomSource, float], Union[float, Outcome]]]


# ═══════════════════════════════════════════════════════════════
# Accumulation
# ═══════════════════════════════════════════════════════════════

@dataclass
class RunningTotals:
    """Sufficient statistics of a run. Mergeable by summation."""
    count: int = 0
    total: float = 0.0
    total_sq: float = 0.0
    hits: int = 0
    max_payout: float = 0.0

    def add(self, payout: float) -> None:
        self.count += 1
        self.total += payout
        self.total_sq += payout * payout
        if payout > 0:
            self.hits += 1
        if payout > self.max_payout:
            self.max_payout = payout

    def merge(self, other: "RunningTotals") -> "RunningTotals":
        return RunningTotals(
            count=self.count + other.count,
            total=self.total + other.total,
            total_sq=self.total_sq + other.total_sq,
            hits=self.hits + other.hits,
            max_payout=max(self.max_payout, other.max_payout),
        )

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0

    @property
    def variance(self) -> float:
        """Sample variance of the payout."""
        if self.count < 2:
            return 0.0
        return max(0.0, (self.total_sq - self.count * self.mean ** 2) / (self.count - 1))


# ═══════════════════════════════════════════════════════════════
# Result
# ═══════════════════════════════════════════════════════════════

@dataclass
class RTPEstimate:
    """Monte Carlo estimate of one model's RTP."""
    game_type: str
    trials: int
    wager: float
    total_wagered: float
    total_payout: float
    avg_payout: float
    rtp: float                     # percent
    std_dev: float                 # of the per-round payout
    stderr: float                  # std_dev / sqrt(trials), payout units
    hit_frequency: float           # fraction of rounds paying > 0
    max_payout: float
    duration_seconds: float = 0.0
    seed: Optional[int] = None
    confidence_95: tuple = field(default=(0.0, 0.0))

    @property
    def rtp_stderr(self) -> float:
        """Standard error of the RTP, in percentage points."""
        return self.stderr / self.wager * 100

    def interval(self, z: float = Z_95) -> tuple[float, float]:
        half = z * self.rtp_stderr
        return self.rtp - half, self.rtp + half

    def within_band(self, low: float, high: float, z: float = Z_95) -> bool:
        """True when the whole confidence interval lies inside [low, high] percent."""
        lo, hi = self.interval(z)
        return low <= lo and hi <= high

    def consistent_with(self, expected_rtp: float, z: float = 4.0) -> bool:
        """True when `expected_rtp` (percent) is within z standard errors of the estimate."""
        return abs(self.rtp - expected_rtp) <= z * self.rtp_stderr + 1e-9

    def summary(self) -> str:
        lo, hi = self.confidence_95
        lines = [
            f"═══ Monte Carlo: {self.game_type.upper()} ═══",
            f"  Rounds:      {self.trials:,}",
            f"  Wager:       {self.wager:g}",
            f"  Avg Payout:  {self.avg_payout:.4f}",
            f"  RTP:         {self.rtp:.4f}%  (±{self.rtp_stderr:.4f} pp s.e.)",
            f"  95% CI:      [{lo:.4f}%, {hi:.4f}%]",
            f"  Std Dev:     {self.std_dev:.4f}",
            f"  Hit Freq:    {self.hit_frequency * 100:.2f}%",
            f"  Max Payout:  {self.max_payout:.2f}",
            f"  Duration:    {self.duration_seconds:.2f}s",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "trials": self.trials,
            "wager": self.wager,
            "rtp_pct": round(self.rtp, 4),
            "rtp_stderr_pp": round(self.rtp_stderr, 4),
            "confidence_95": [round(x, 4) for x in self.confidence_95],
            "avg_payout": round(self.avg_payout, 6),
            "std_dev": round(self.std_dev, 4),
            "stderr": round(self.stderr, 6),
            "hit_frequency_pct": round(self.hit_frequency * 100, 2),
            "max_payout": round(self.max_payout, 2),
            "total_wagered": round(self.total_wagered, 2),
            "total_payout": round(self.total_payout, 2),
            "duration_s": round(self.duration_seconds, 2),
            "seed": self.seed,
        }


def estimate_from_totals(totals: RunningTotals, wager: float, game_type: str = "custom",
                         duration: float = 0.0, seed: Optional[int] = None) -> RTPEstimate:
    std_dev = math.sqrt(totals.variance)
    stderr = std_dev / math.sqrt(totals.count) if totals.count else 0.0
    rtp = totals.mean / wager * 100
    half = Z_95 * stderr / wager * 100
    return RTPEstimate(
        game_type=game_type,
        trials=totals.count,
        wager=wager,
        total_wagered=wager * totals.count,
        total_payout=totals.total,
        avg_payout=totals.mean,
        rtp=rtp,
        std_dev=std_dev,
        stderr=stderr,
        hit_frequency=totals.hits / totals.count if totals.count else 0.0,
        max_payout=totals.max_payout,
        duration_seconds=duration,
        seed=seed,
        confidence_95=(rtp - half, rtp + half),
    )


# ═══════════════════════════════════════════════════════════════
# Runners
# ═══════════════════════════════════════════════════════════════

def _round_fn(model: Model) -> Callable[[RandomSource, float], float]:
    play = getattr(model, "play_round", model)
    if not callable(play):
        raise TypeError(f"{model!r} has no play_round and is not callable")

    def run(rng: RandomSource, wager: float) -> float:
        result = play(rng, wager)
        return result.payout if isinstance(result, Outcome) else float(result)

    return run


def run_trials(model: Model, trials: int, wager: float, rng: RandomSource) -> RunningTotals:
    run = _round_fn(model)
    totals = RunningTotals()
    for _ in range(trials):
        totals.add(run(rng, wager))
    return totals


def estimate_rtp(model: Model, trials: int, wager: float = 1.0,
                 rng: Optional[RandomSource] = None, seed: Optional[int] = None) -> RTPEstimate:
    """Play `trials` rounds of `model` at `wager` and estimate its RTP.

    `model` is an engine with play_round(rng, wager) or a callable with the
    same signature returning an Outcome or a payout.
    """
    if trials < 1:
        raise ValueError(f"trials must be positive, got {trials}")
    validate_wager(wager)
    if rng is None:
        rng = SeededRandomSource(seed)
    game_type = getattr(model, "game_type", "custom")

    t0 = time.time()
    totals = run_trials(model, trials, wager, rng)
    duration = time.time() - t0

    est = estimate_from_totals(totals, wager, game_type, duration, seed)
    logger.info("%s: %d rounds, RTP %.3f%% ± %.3f pp (%.1fs)",
                game_type, trials, est.rtp, est.rtp_stderr, duration)
    return est


def _run_chunk(model, trials: int, wager: float, seed: int) -> RunningTotals:
    return run_trials(model, trials, wager, SeededRandomSource(seed))


def estimate_rtp_parallel(model, trials: int, wager: float = 1.0, workers: int = 4,
                          seed: int = 42, chunks: Optional[int] = None) -> RTPEstimate:
    """Split trials into independently seeded chunks run on a process pool.

    Results depend on (seed, chunks) only, not on the number of workers.
    `model` must be picklable (any engine from rtp_engine.games is).
    """
    if trials < 1:
        raise ValueError(f"trials must be positive, got {trials}")
    validate_wager(wager)
    n_chunks = max(1, min(chunks or workers, trials))
    game_type = getattr(model, "game_type", "custom")
    sizes = [trials // n_chunks + (1 if i < trials % n_chunks else 0) for i in range(n_chunks)]
    seeds = [derive_seed(seed, f"{game_type}:{i}") for i in range(n_chunks)]

    t0 = time.time()
    if workers <= 1:
        parts = [_run_chunk(model, n, wager, s) for n, s in zip(sizes, seeds)]
    else:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(_run_chunk, [model] * n_chunks, sizes,
                                  [wager] * n_chunks, seeds))
    duration = time.time() - t0

    totals = RunningTotals()
    for part in parts:
        totals = totals.merge(part)
    est = estimate_from_totals(totals, wager, game_type, duration, seed)
    logger.info("%s: %d rounds over %d chunks / %d workers, RTP %.3f%% ± %.3f pp (%.1fs)",
                game_type, trials, n_chunks, workers, est.rtp, est.rtp_stderr, duration)
    return est
