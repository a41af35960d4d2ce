#!/usr/bin/env python3
"""
GOURMET FUN — RTP Analysis (all games)

Validates every game against the target band, breaks down the analytic
games (Sugar Scratch, Sour Apple, Icicle Pop) and measures the blackjack
house-rule variants that bring its RTP toward the target.

Usage:
    python -m tools.rtp_analysis
    python -m tools.rtp_analysis --trials 200000 --seed 7
    python -m tools.rtp_analysis --json
"""

import argparse
import json
import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import EngineSettings, configure_logging
from rtp_engine.errors import ConfigError
from rtp_engine.games import get_game_engine
from rtp_engine.games.crash import survival
from tools.rtp_validator import RTPValidator

console = Console()

BLACKJACK_VARIANTS = {
    "standard (3:2)":          {},
    "dealer wins ties":        {"dealer_wins_ties": True},
    "6:5 blackjack":           {"blackjack_payout": 2.2},
    "6:5 + dealer wins ties":  {"blackjack_payout": 2.2, "dealer_wins_ties": True},
}


def scratch_breakdown() -> list[dict]:
    engine = get_game_engine("scratch")
    return [
        {"matches": m, "probability": p, "payout": engine.payout_multiplier(m),
         "contribution": p * engine.payout_multiplier(m)}
        for m, p in engine.config.distribution.items()
    ]


def mines_breakdown(**overrides) -> list[dict]:
    engine = get_game_engine("mines", **overrides)
    return [
        {"picks": k, "multiplier": m, "rtp": engine.theoretical_rtp(k)}
        for k, m in enumerate(engine.multiplier_table()) if k > 0
    ]


def mines_title(**overrides) -> str:
    engine = get_game_engine("mines", **overrides)
    cfg = engine.config
    tiles = "tile" if cfg.num_bad == 1 else "tiles"
    return f"{engine.display_name} ({cfg.grid_size}×{cfg.grid_size}, {cfg.num_bad} bad {tiles})"


def crash_breakdown(**overrides) -> dict:
    """Analytic crash figures. ceiling is None when crash points are unbounded."""
    engine = get_game_engine("crash", **overrides)
    cfg = engine.config
    return {
        "house_edge_percent": cfg.house_edge_percent,
        "formula": cfg.formula.value,
        "ceiling": engine.ceiling if math.isfinite(engine.ceiling) else None,
        "instant_bust": 1.0 - survival(1.0, cfg.house_edge_percent, cfg.formula, cfg.max_multiplier),
        "rtp_by_cashout": {t: engine.theoretical_rtp(t) for t in (1.1, 1.5, 2.0, 3.0, 5.0)},
    }


def blackjack_variants(validator: RTPValidator) -> list[dict]:
    rows = []
    for name, overrides in BLACKJACK_VARIANTS.items():
        check = validator.check(get_game_engine("blackjack", **overrides),
                                label=f"blackjack:{name}", **overrides)
        rows.append({"variant": name, "overrides": overrides, "check": check})
    return rows


def render(report, variants: list[dict]):
    report.render(console)

    table = Table(title="Sugar Scratch")
    table.add_column("Matches", justify="right")
    table.add_column("Probability", justify="right")
    table.add_column("Payout", justify="right")
    table.add_column("p × payout", justify="right")
    for row in scratch_breakdown():
        table.add_row(str(row["matches"]), f"{row['probability'] * 100:.0f}%",
                      f"{row['payout']:g}x", f"{row['contribution']:.3f}")
    console.print(table)

    table = Table(title=mines_title())
    table.add_column("Picks", justify="right")
    table.add_column("Multiplier", justify="right")
    table.add_column("RTP", justify="right")
    for row in mines_breakdown():
        table.add_row(str(row["picks"]), f"{row['multiplier']:.2f}x", f"{row['rtp'] * 100:.2f}%")
    console.print(table)

    crash = crash_breakdown()
    lines = [
        f"Formula: {crash['formula']}  ·  house edge {crash['house_edge_percent']:g}%",
        "Highest reachable crash point: "
        + (f"{crash['ceiling']:.2f}x" if crash["ceiling"] is not None else "unbounded"),
        f"Instant bust at 1.00x: {crash['instant_bust'] * 100:.2f}% of rounds",
    ]
    lines += [f"Cash out at {t:g}x → RTP {rtp * 100:.2f}%" for t, rtp in crash["rtp_by_cashout"].items()]
    console.print(Panel("\n".join(lines), title="Icicle Pop", border_style="cyan"))

    table = Table(title="Blackjack house rules")
    table.add_column("Variant", style="cyan")
    table.add_column("Measured", justify="right")
    table.add_column("95% CI", justify="right")
    table.add_column("Status")
    for row in variants:
        c = row["check"]
        lo, hi = c.estimate.confidence_95
        style = {"GOOD": "green", "NEEDS ADJUSTMENT": "red"}.get(c.status, "yellow")
        table.add_row(row["variant"], f"{c.estimate.rtp:.2f}%", f"{lo:.2f}–{hi:.2f}%",
                      f"[{style}]{c.status}[/{style}]")
    console.print(table)


def main():
    try:
        settings = EngineSettings.from_env()
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)
    parser = argparse.ArgumentParser(description="RTP analysis for all Gourmet Fun games")
    parser.add_argument("--trials", type=int, default=settings.trials, help="Rounds per game")
    parser.add_argument("--seed", type=int, default=settings.seed)
    parser.add_argument("--band", type=float, nargs=2, default=list(settings.band),
                        metavar=("LOW", "HIGH"), help="Accepted RTP band %%")
    parser.add_argument("--workers", type=int, default=settings.workers)
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of tables")
    args = parser.parse_args()

    configure_logging(settings.log_level)

    try:
        validator = RTPValidator(trials=args.trials, seed=args.seed, band=tuple(args.band),
                                 workers=args.workers, settings=settings)
        report = validator.validate_all()
        variants = blackjack_variants(validator)
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    if args.json:
        crash = crash_breakdown()
        crash["rtp_by_cashout"] = {str(k): v for k, v in crash["rtp_by_cashout"].items()}
        print(json.dumps({
            "report": json.loads(report.to_json()),
            "scratch": scratch_breakdown(),
            "mines": mines_breakdown(),
            "crash": crash,
            "blackjack_variants": [
                {"variant": row["variant"], **row["check"].to_dict()} for row in variants
            ],
        }, indent=2))
    else:
        render(report, variants)

    sys.exit(0 if report.overall_pass else 1)


if __name__ == "__main__":
    main()
