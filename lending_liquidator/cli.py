"""Command-line interface for the liquidation bot."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import load_config
from .logging_setup import configure_logging
from .services import LiquidationBot

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-liquidator",
        description="Liquidation bot for an on-chain lending protocol",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root, else env only)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Bootstrap, listen and liquidate continuously")
    run_parser.add_argument(
        "interval_ms",
        nargs="?",
        type=int,
        default=None,
        help="Scan interval in milliseconds (overrides config)",
    )

    sub.add_parser("scan", help="Bootstrap and report opportunities once, without executing")

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    config = load_config(args.config)
    bot = LiquidationBot.from_config(config)

    try:
        if args.command == "run":
            await bot.start()
            logger.info("Bot is running. Press Ctrl+C to stop.")
            await bot.run_forever(args.interval_ms)
        elif args.command == "scan":
            await bot.start(listen=False)
            await bot.run_cycle(dry_run=True)
    finally:
        await bot.shutdown()


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)
