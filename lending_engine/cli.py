"""Command-line interface for inspecting rate curves and oracle quotes."""
from __future__ import annotations

import argparse
import asyncio
import sys
import time

from .config import EngineConfig, load_config
from .errors import OracleError
from .logging_setup import configure_logging
from .models import Pool
from .numeric import BPS_FULL
from .oracles import PythOracle
from .services.interest import rate_at_utilization

_CURVE_STEPS_BPS = tuple(range(0, BPS_FULL + 1, 1_000))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-engine",
        description="Collateralized lending engine tools",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    rates_parser = sub.add_parser("rates", help="Print the borrow rate curve per pool")
    rates_parser.add_argument(
        "asset", nargs="?", default=None, help="Only show this pool"
    )

    prices_parser = sub.add_parser("prices", help="Fetch fresh oracle quotes")
    prices_parser.add_argument(
        "assets", nargs="*", help="Assets to quote (default: every configured feed)"
    )

    return parser


def _curve_pool(config: EngineConfig, asset: str) -> Pool:
    params = config.pool_config(asset)
    return Pool(
        asset=asset,
        liquidation_threshold=0,
        max_loan_to_value=0,
        base_rate_bps=params.base_rate_bps,
        slope1_bps=params.slope1_bps,
        slope2_bps=params.slope2_bps,
        optimal_utilization_bps=params.optimal_utilization_bps,
    )


def render_rates(config: EngineConfig, asset: str | None = None) -> str:
    """Tabulate borrow APR against utilization for the configured pools."""
    assets = [asset] if asset else sorted(config.pools)
    blocks: list[str] = []
    for name in assets:
        pool = _curve_pool(config, name)
        steps = sorted(set(_CURVE_STEPS_BPS) | {pool.optimal_utilization_bps})
        lines = [f"━━ {name} (optimal {pool.optimal_utilization_bps / 100:.2f}%) ━━"]
        for util in steps:
            marker = " ◀ kink" if util == pool.optimal_utilization_bps else ""
            rate = rate_at_utilization(pool, util)
            lines.append(f"  U {util / 100:6.2f}%  →  APR {rate / 100:6.2f}%{marker}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) if blocks else "No pools configured."


async def _print_prices(config: EngineConfig, assets: list[str]) -> int:
    oracle = PythOracle(config.oracle.pyth)
    wanted = assets or sorted(config.oracle.pyth.feeds)
    try:
        quotes = await oracle.get_prices(wanted, config.oracle.max_price_age)
    except OracleError as e:
        print(f"Oracle error ({e.cause}): {e}", file=sys.stderr)
        return 1

    now = int(time.time())
    for asset in wanted:
        quote = quotes[asset]
        print(
            f"{asset:>8}  {quote.price * 10**quote.expo:>16,.6f}"
            f"  (raw {quote.price}, expo {quote.expo}, age {now - quote.publish_time}s)"
        )
    return 0


def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "rates":
        if args.asset and args.asset not in config.pools:
            print(f"Unknown pool: {args.asset}", file=sys.stderr)
            return 1
        print(render_rates(config, args.asset))
        return 0
    if args.command == "prices":
        return asyncio.run(_print_prices(config, args.assets))

    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(_run(args))
