#!/usr/bin/env python3
"""
GOURMET FUN — Candy Drop RTP Calculator

Drops a million balls per risk tier, compares the measured RTP with the
Binomial(13, 0.5) analytic value and prints the factor that would move each
tier onto the target RTP.

Usage:
    python -m tools.candy_drop_rtp
    python -m tools.candy_drop_rtp --trials 200000 --risk high
    python -m tools.candy_drop_rtp --json
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table

from config.settings import EngineSettings, configure_logging
from rtp_engine.errors import ConfigError
from rtp_engine.games import get_game_engine
from tools.rtp_validator import RTPValidator, adjustment_factor, scale_multipliers

console = Console()


def run(trials: int, seed: int, risks: list[str], band: tuple[float, float],
        target: float, workers: int = 1) -> list[dict]:
    validator = RTPValidator(trials=trials, seed=seed, band=band, workers=workers)
    board = get_game_engine("plinko")
    rows = []
    for risk in risks:
        check = validator.validate_game("plinko", risk=risk)
        multipliers = board.multipliers(risk)
        factor = adjustment_factor(check.estimate.rtp, target)
        rows.append({
            "risk": risk,
            "check": check,
            "factor": factor,
            "adjusted": scale_multipliers(multipliers, factor, ndigits=2),
        })
    return rows


def render(rows: list[dict], target: float):
    table = Table(title="Candy Drop RTP Simulation")
    table.add_column("Risk", style="cyan")
    table.add_column("Drops", justify="right")
    table.add_column("Avg Payout", justify="right")
    table.add_column("Measured", justify="right")
    table.add_column("± s.e.", justify="right")
    table.add_column("Analytic", justify="right")
    table.add_column("Status")
    for row in rows:
        c = row["check"]
        style = {"GOOD": "green", "NEEDS ADJUSTMENT": "red"}.get(c.status, "yellow")
        table.add_row(
            row["risk"].upper(),
            f"{c.estimate.trials:,}",
            f"{c.estimate.avg_payout:.4f}x",
            f"{c.estimate.rtp:.2f}%",
            f"{c.estimate.rtp_stderr:.3f}",
            f"{c.theoretical_rtp:.2f}%",
            f"[{style}]{c.status}[/{style}]",
        )
    console.print(table)

    console.print(f"\n[bold]=== ADJUSTMENT FACTORS FOR {target:g}% RTP ===[/bold]\n")
    for row in rows:
        console.print(f"{row['risk'].upper()} RISK: multiply all multipliers by "
                      f"[bold]{row['factor']:.4f}[/bold]")
        console.print(f"  [dim]{row['adjusted']}[/dim]")


def main():
    try:
        settings = EngineSettings.from_env()
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)
    parser = argparse.ArgumentParser(description="Candy Drop (Plinko) RTP calculator")
    parser.add_argument("--trials", type=int, default=settings.trials, help="Drops per risk tier")
    parser.add_argument("--seed", type=int, default=settings.seed)
    parser.add_argument("--risk", choices=["low", "medium", "high", "all"], default="all")
    parser.add_argument("--target", type=float, default=settings.target_rtp, help="Target RTP %%")
    parser.add_argument("--band", type=float, nargs=2, default=list(settings.band),
                        metavar=("LOW", "HIGH"), help="Accepted RTP band %%")
    parser.add_argument("--workers", type=int, default=settings.workers)
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of tables")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    risks = ["low", "medium", "high"] if args.risk == "all" else [args.risk]

    try:
        rows = run(args.trials, args.seed, risks, tuple(args.band), args.target, args.workers)
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps({
            "game": "candy_drop",
            "target_rtp": args.target,
            "tiers": [{
                **row["check"].to_dict(),
                "adjustment_factor": round(row["factor"], 4),
                "adjusted_multipliers": row["adjusted"],
            } for row in rows],
        }, indent=2))
    else:
        render(rows, args.target)


if __name__ == "__main__":
    main()
