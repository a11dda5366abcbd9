"""Command line entry point.

    solswap swap --input-mint So111... --output-mint EPjF... --amount 0.001
    solswap config
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional

from solswap.config import Settings, get_settings
from solswap.errors import SwapFailedError
from solswap.factory import create_swap_controller
from solswap.routing.jupiter import WSOL_MINT

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid amount: {value}")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solswap", description="Solana swaps via Jupiter and Jito")
    commands = parser.add_subparsers(dest="command", required=True)

    swap = commands.add_parser("swap", help="Execute a swap")
    swap.add_argument("--input-mint", default=WSOL_MINT, help="Mint of the token sold (default: wrapped SOL)")
    swap.add_argument("--output-mint", required=True, help="Mint of the token bought")
    swap.add_argument("--amount", type=_decimal, required=True, help="Amount of the input token")
    swap.add_argument("--slippage-bps", type=int, default=None, help="Initial slippage in bps")
    swap.add_argument("--max-retries", type=_positive_int, default=None, help="Maximum swap attempts")

    commands.add_parser("config", help="Show settings with secrets redacted")
    return parser


async def run_swap(args: argparse.Namespace, settings: Settings) -> int:
    if args.max_retries is not None:
        settings = settings.model_copy(update={"max_retries": args.max_retries})
    slippage_bps = args.slippage_bps if args.slippage_bps is not None else settings.default_slippage_bps

    logger.info("Starting swap operation...")
    logger.info(f"Input: {args.amount} ({args.input_mint})")
    logger.info(f"Output: {args.output_mint}")
    logger.info(f"Initial Slippage: {slippage_bps / 100}%")

    controller = create_swap_controller(settings)
    try:
        result = await controller.swap(args.input_mint, args.output_mint, args.amount, slippage_bps)
    except (SwapFailedError, ValueError) as e:
        logger.error(f"Swap failed: {e}")
        return 1
    finally:
        await controller.close()

    if result.skipped:
        logger.info(f"Swap skipped: {result.skip_reason}")
        return 0

    logger.info("Swap completed successfully!")
    logger.info(f"Swap result: {json.dumps(result.bundle_status.to_dict(), indent=2)}")
    logger.info(f"Transaction signature: {result.signature}")
    logger.info(f"View on Solscan: {result.explorer_url}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "config":
        print(json.dumps(settings.get_safe_dict(), indent=2))
        return 0

    return asyncio.run(run_swap(args, settings))


if __name__ == "__main__":
    sys.exit(main())
