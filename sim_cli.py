#!/usr/bin/env python3
"""
marketsim - live terminal view of the simulated market.

This is a PURE SHELL - it only:
- Parses arguments into the config sections
- Builds the runner via create_runner()
- Renders published snapshots with rich

Examples:
  python sim_cli.py                          # Live seed price, 10 Hz, until Ctrl+C
  python sim_cli.py --ticks 600 --seed 7     # Reproducible 60 s run
  python sim_cli.py --no-fetch --price 50000 --timeframe 1m
"""

import argparse
import math
import sys

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from marketsim.config import get_config
from marketsim.engine import MarketSnapshot, create_runner
from marketsim.utils.logger import setup_logger
from marketsim.utils.timeframes import CANONICAL_TIMEFRAMES, validate_timeframe


console = Console()


def parse_cli_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synthetic BTC market with a leveraged paper account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--ticks", type=int, default=None, help="Stop after N ticks (default: run until Ctrl+C)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible run")
    parser.add_argument("--price", type=float, default=None, help="Seed price (skips the live fetch)")
    parser.add_argument(
        "--timeframe",
        default=None,
        help=f"Display timeframe ({', '.join(CANONICAL_TIMEFRAMES)})",
    )
    parser.add_argument("--no-fetch", action="store_true", help="Do not fetch the live seed price")
    parser.add_argument("--no-scanner", action="store_true", help="Disable pattern detection")
    parser.add_argument("--rate", type=float, default=None, help="Ticks per second (default: 10)")
    return parser.parse_args(argv)


def _signed(value: float, fmt: str) -> Text:
    style = "green" if value > 0 else "red" if value < 0 else "white"
    return Text(format(value, fmt), style=style)


def render_snapshot(snap: MarketSnapshot) -> Group:
    """Build the rich renderable for one snapshot."""
    market = Table(show_header=False, box=None, padding=(0, 2))
    market.add_row("Price", Text(f"{snap.price:,.2f}", style="bold"),
                   "Change", _signed(snap.change_percent, "+.3f"))
    market.add_row("RSI", f"{snap.rsi:.1f}", "Trend", snap.trend)
    market.add_row("EMA 9/21/50", " / ".join(f"{snap.ema[p]:,.1f}" for p in sorted(snap.ema)),
                   "Volatility", f"{snap.volatility:.5f}")
    market.add_row("Timeframe", snap.timeframe, "Shock", "[bold red]ACTIVE[/]" if snap.shock_active else "-")

    account = Table(show_header=False, box=None, padding=(0, 2))
    account.add_row("Balance", f"{snap.account.balance:.6f}", "Equity", f"{snap.account.equity:.6f}")
    account.add_row("Used margin", f"{snap.account.used_margin:.6f}",
                    "Available", f"{snap.account.available_margin:.6f}")

    positions = Table(title="Positions", expand=True)
    for column in ("ID", "Side", "Size", "Lev", "Entry", "Liq", "uPnL", "%"):
        positions.add_column(column)
    for p in snap.positions:
        positions.add_row(
            p.position_id, p.side.value, f"{p.size:g}", f"{p.leverage:g}x",
            f"{p.entry_price:,.2f}", f"{p.liquidation_price:,.2f}",
            _signed(p.unrealized_pnl, "+.6f"), _signed(p.unrealized_pnl_percent, "+.2f"),
        )

    patterns = Table(title="Patterns", expand=True)
    patterns.add_column("Type")
    patterns.add_column("Conf")
    patterns.add_column("Message")
    for pattern in snap.patterns[-5:]:
        patterns.add_row(pattern.type.value, f"{pattern.confidence:.0%}", pattern.message)

    return Group(
        Panel(market, title=f"[bold]MARKET[/] tick {snap.tick}", border_style="blue"),
        Panel(account, title="[bold]ACCOUNT[/]", border_style="cyan"),
        positions,
        patterns,
    )


def main(argv=None) -> int:
    args = parse_cli_args(argv)
    config = get_config()
    setup_logger(config.log.log_dir or None, config.log.level)

    if args.seed is not None:
        config.market.random_seed = args.seed
    if args.no_fetch:
        config.seed.fetch = False
    if args.no_scanner:
        config.scanner.enabled = False
    if args.rate is not None:
        if args.rate <= 0:
            console.print("[red]--rate must be > 0[/]")
            return 2
        config.runner.tick_rate_hz = args.rate
    if args.price is not None and not (math.isfinite(args.price) and args.price > 0):
        console.print("[red]--price must be a positive number[/]")
        return 2
    if args.timeframe is not None:
        try:
            config.runner.display_timeframe = validate_timeframe(args.timeframe)
        except ValueError as e:
            console.print(f"[red]{e}[/]")
            return 2

    console.print(f"[dim]{config.summary_short()}[/]")
    runner = create_runner(config, seed_price=args.price)

    with Live(console=console, refresh_per_second=4, transient=False) as live:
        runner.subscribe(lambda snap: live.update(render_snapshot(snap)))
        stats = runner.run(max_ticks=args.ticks)

    summary = Table(show_header=False, box=None, padding=(0, 2))
    snap = runner.latest_snapshot
    if snap is not None:
        summary.add_row("Final price", f"{snap.price:,.2f}")
        summary.add_row("Change", f"{snap.change_percent:+.3f}%")
        summary.add_row("Equity", f"{snap.account.equity:.6f}")
    summary.add_row("Ticks", str(stats.ticks))
    summary.add_row("Tick errors", str(stats.tick_errors))
    summary.add_row("Patterns announced", str(stats.patterns_announced))
    summary.add_row("Duration", f"{stats.duration_seconds:.1f}s")
    console.print(Panel(summary, title="[bold]SESSION SUMMARY[/]", border_style="green"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
