"""
GOURMET FUN — RTP Validator & Tuning

Runs every shipped game through the Monte Carlo estimator and checks:
  • Measured RTP agrees with the analytic RTP (where one exists), judged in
    standard errors rather than a fixed tolerance
  • The 95% confidence interval sits inside the target band (89–91% by default)
  • The random source passes a chi-squared uniformity test

For a game outside the band, adjustment_factor() gives the single factor
that would scale its multipliers onto the target.

Usage:
    from tools.rtp_validator import RTPValidator
    v = RTPValidator(trials=500_000, seed=42)

    check = v.validate_game("plinko", risk="high")
    print(check.estimate.summary())

    report = v.validate_all()
    print(report.summary())
    print(report.to_json())
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.table import Table

from config.settings import EngineSettings
from rtp_engine.estimator import RTPEstimate, estimate_rtp, estimate_rtp_parallel
from rtp_engine.games import get_game_engine
from rtp_engine.random_source import RandomSource, SeededRandomSource, derive_seed

logger = logging.getLogger("gourmet.validator")

CHI2_CRITICAL_99DF = 135.8      # α = 0.01


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class GameCheck:
    """One game (or one risk tier) measured against theory and the target band."""
    label: str
    estimate: RTPEstimate
    theoretical_rtp: Optional[float]           # percent, None when Monte Carlo only
    band: tuple[float, float] = (89.0, 91.0)
    z: float = 4.0
    parameters: dict = field(default_factory=dict)

    @property
    def analytic_pass(self) -> Optional[bool]:
        if self.theoretical_rtp is None:
            return None
        return self.estimate.consistent_with(self.theoretical_rtp, self.z)

    @property
    def band_pass(self) -> bool:
        return self.estimate.within_band(*self.band)

    @property
    def status(self) -> str:
        """GOOD when the CI is inside the band, NEEDS ADJUSTMENT when it misses entirely."""
        if self.band_pass:
            return "GOOD"
        lo, hi = self.estimate.confidence_95
        low, high = self.band
        if hi < low or lo > high:
            return "NEEDS ADJUSTMENT"
        return "INCONCLUSIVE"

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "theoretical_rtp_pct": (round(self.theoretical_rtp, 4)
                                    if self.theoretical_rtp is not None else None),
            "analytic_pass": self.analytic_pass,
            "band": list(self.band),
            "band_pass": self.band_pass,
            "status": self.status,
            "estimate": self.estimate.to_dict(),
            "parameters": self.parameters,
        }


@dataclass
class ValidationReport:
    """Validation results across all game types."""
    checks: list[GameCheck] = field(default_factory=list)
    band: tuple[float, float] = (89.0, 91.0)
    chi_squared: float = 0.0
    chi_squared_pass: bool = True
    generated_at: str = ""
    total_rounds: int = 0
    total_duration: float = 0.0

    def __post_init__(self):
        self.generated_at = datetime.now(timezone.utc).isoformat()

    def add(self, check: GameCheck):
        self.checks.append(check)
        self.total_rounds += check.estimate.trials
        self.total_duration += check.estimate.duration_seconds

    @property
    def overall_pass(self) -> bool:
        """Every analytic RTP reproduced and the RNG uniform. Band misses are reported, not failed."""
        return self.chi_squared_pass and all(c.analytic_pass is not False for c in self.checks)

    def summary(self) -> str:
        lines = [
            "═══════════════════════════════════════════════════",
            "    GOURMET FUN RTP VALIDATION REPORT",
            "═══════════════════════════════════════════════════",
            f"  Generated: {self.generated_at}",
            f"  Target Band: {self.band[0]:g}–{self.band[1]:g}%",
            f"  Total Rounds: {self.total_rounds:,}",
            f"  Total Time: {self.total_duration:.1f}s",
            f"  RNG χ²: {self.chi_squared:.1f} ({'pass' if self.chi_squared_pass else 'FAIL'})",
            f"  Overall: {'✅ ALL PASS' if self.overall_pass else '❌ SOME FAILED'}",
            "",
        ]
        for c in self.checks:
            icon = "✅" if c.band_pass else ("⚠️" if c.status == "INCONCLUSIVE" else "❌")
            theory = f"{c.theoretical_rtp:.2f}%" if c.theoretical_rtp is not None else "  n/a "
            lines.append(
                f"  {icon} {c.label:14s} | "
                f"theory={theory} "
                f"measured={c.estimate.rtp:.2f}% "
                f"±{c.estimate.rtp_stderr:.3f} "
                f"hit={c.estimate.hit_frequency * 100:.1f}% "
                f"{c.status}"
            )
        return "\n".join(lines)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps({
            "report_type": "RTP Validation",
            "generated_at": self.generated_at,
            "band": list(self.band),
            "overall_pass": self.overall_pass,
            "total_rounds": self.total_rounds,
            "total_duration_s": round(self.total_duration, 2),
            "uniformity": {"chi_squared": round(self.chi_squared, 4),
                           "pass": self.chi_squared_pass},
            "games": [c.to_dict() for c in self.checks],
        }, indent=indent)

    def to_table(self) -> Table:
        table = Table(title=f"RTP Validation (band {self.band[0]:g}–{self.band[1]:g}%)")
        table.add_column("Game", style="cyan")
        table.add_column("Rounds", justify="right")
        table.add_column("Theory", justify="right")
        table.add_column("Measured", justify="right")
        table.add_column("95% CI", justify="right")
        table.add_column("Hit %", justify="right")
        table.add_column("Status")
        for c in self.checks:
            lo, hi = c.estimate.confidence_95
            style = {"GOOD": "green", "NEEDS ADJUSTMENT": "red"}.get(c.status, "yellow")
            theory = f"{c.theoretical_rtp:.2f}%" if c.theoretical_rtp is not None else "—"
            if c.analytic_pass is False:
                theory = f"[red]{theory}[/red]"
            table.add_row(
                c.label,
                f"{c.estimate.trials:,}",
                theory,
                f"{c.estimate.rtp:.2f}%",
                f"{lo:.2f}–{hi:.2f}%",
                f"{c.estimate.hit_frequency * 100:.1f}",
                f"[{style}]{c.status}[/{style}]",
            )
        return table

    def render(self, console: Optional[Console] = None):
        console = console or Console()
        console.print(self.to_table())
        verdict = "[bold green]ALL PASS[/bold green]" if self.overall_pass else "[bold red]SOME FAILED[/bold red]"
        console.print(f"RNG χ² = {self.chi_squared:.1f}  ·  {verdict}")


# ═══════════════════════════════════════════════════════════════
# Uniformity & Tuning
# ═══════════════════════════════════════════════════════════════

def uniformity_check(rng: RandomSource, n_samples: int = 100_000,
                     n_bins: int = 100) -> tuple[float, bool]:
    """Chi-squared test for RNG uniformity (critical value for 99 d.o.f. at α=0.01)."""
    bins = [0] * n_bins
    for _ in range(n_samples):
        idx = min(int(rng.next() * n_bins), n_bins - 1)
        bins[idx] += 1
    expected = n_samples / n_bins
    chi2 = sum((obs - expected) ** 2 / expected for obs in bins)
    return chi2, chi2 < CHI2_CRITICAL_99DF


def adjustment_factor(measured_rtp: float, target_rtp: float = 90.0) -> float:
    """Factor that scales every multiplier so `measured_rtp` lands on `target_rtp`."""
    if measured_rtp <= 0:
        raise ValueError(f"Cannot scale a game with RTP {measured_rtp}%")
    return target_rtp / measured_rtp


def scale_multipliers(row: list[float], factor: float, ndigits: Optional[int] = None) -> list[float]:
    if ndigits is None:
        return [m * factor for m in row]
    return [round(m * factor, ndigits) for m in row]


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class RTPValidator:
    """Validates every game's RTP by Monte Carlo simulation."""

    def __init__(self, trials: Optional[int] = None, seed: Optional[int] = None,
                 band: Optional[tuple[float, float]] = None, workers: Optional[int] = None,
                 z: float = 4.0, settings: Optional[EngineSettings] = None):
        """
        Args:
            trials: Rounds per game (defaults to RTP_TRIALS)
            seed: Base seed; each game derives its own from it
            band: Accepted RTP band in percent (defaults to RTP_BAND_LOW/HIGH)
            workers: Processes per estimate; 1 runs in-process
            z: Standard errors allowed between measured and analytic RTP
        """
        settings = settings or EngineSettings.from_env()
        self.trials = trials if trials is not None else settings.trials
        self.base_seed = seed if seed is not None else settings.seed
        self.band = band if band is not None else settings.band
        self.workers = workers if workers is not None else settings.workers
        self.z = z

    def _rng(self, label: str) -> SeededRandomSource:
        # Deterministic seed per game label
        return SeededRandomSource(derive_seed(self.base_seed, label))

    def check(self, engine, label: Optional[str] = None, **parameters) -> GameCheck:
        """Estimate one engine's RTP and compare it with its analytic value."""
        label = label or engine.game_type
        theory = engine.theoretical_rtp()
        if self.workers > 1:
            estimate = estimate_rtp_parallel(engine, self.trials, 1.0, workers=self.workers,
                                             seed=derive_seed(self.base_seed, label))
        else:
            estimate = estimate_rtp(engine, self.trials, 1.0, rng=self._rng(label),
                                    seed=derive_seed(self.base_seed, label))
        result = GameCheck(
            label=label,
            estimate=estimate,
            theoretical_rtp=theory * 100 if theory is not None else None,
            band=self.band,
            z=self.z,
            parameters=parameters,
        )
        if result.analytic_pass is False:
            logger.warning("%s: measured %.3f%% disagrees with analytic %.3f%%",
                           label, estimate.rtp, result.theoretical_rtp)
        return result

    def validate_game(self, game_type: str, **overrides) -> GameCheck:
        engine = get_game_engine(game_type, **overrides)
        label = game_type if not overrides.get("risk") else f"{game_type}:{overrides['risk']}"
        return self.check(engine, label, **overrides)

    def validate_plinko(self) -> list[GameCheck]:
        """One check per Candy Drop risk tier."""
        risks = list(get_game_engine("plinko").config.multipliers)
        return [self.validate_game("plinko", risk=risk) for risk in risks]

    def validate_all(self) -> ValidationReport:
        """Validate every shipped game with default configuration."""
        report = ValidationReport(band=self.band)
        report.chi_squared, report.chi_squared_pass = uniformity_check(self._rng("uniformity"))
        for game_type in ("slots", "scratch", "crash"):
            report.add(self.validate_game(game_type))
        for check in self.validate_plinko():
            report.add(check)
        for game_type in ("mines", "blackjack"):
            report.add(self.validate_game(game_type))
        logger.info("Validated %d games over %d rounds (%.1fs)",
                    len(report.checks), report.total_rounds, report.total_duration)
        return report
