from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from solfi_quoter.common import log_event, setup_logger
from solfi_quoter.pricing import NoSpreadDataError
from solfi_quoter.runtime import (
    AppSettings,
    fetch_accounts,
    run_service,
    show_cutoffs,
    show_spreads,
    simulate_swaps,
)
from solfi_quoter.simulation import SandboxSetupError
from solfi_quoter.storage import SnapshotFetchError, SnapshotUnavailableError
from solfi_quoter.swap import SwapDirection


def parse_direction(value: str) -> SwapDirection:
    try:
        return SwapDirection.parse(value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(str(error)) from error


def build_parser(settings: AppSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solfi-quoter",
        description="Replay SolFi WSOL/USDC swaps against a local snapshot to quote prices.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("fetch-accounts", help="Fetch the venue accounts and persist a snapshot")
    commands.add_parser("cutoffs", help="Print freshness and per-venue cutoff slots from the snapshot")

    simulate = commands.add_parser("simulate", help="Replay one swap on every venue and print CSV rows")
    simulate.add_argument("-a", "--amount", type=float, default=None, help="Input amount (default: 10)")
    simulate.add_argument(
        "-d",
        "--direction",
        type=parse_direction,
        default=SwapDirection.SOL_TO_USDC,
        help="sol-to-usdc or usdc-to-sol",
    )
    simulate.add_argument("-s", "--slot", type=int, default=None, help="Slot to simulate at")
    simulate.add_argument("--ignore-errors", action="store_true", help="Omit venues whose replay failed")

    spreads = commands.add_parser("spreads", help="Round-trip spread per venue")
    spreads.add_argument("--starting-usdc", type=float, default=1000.0)

    service = commands.add_parser("service", help="Serve get_prices over JSON-RPC")
    service.add_argument("--port", type=int, default=settings.service_port)
    service.add_argument("--fetch-interval-ms", type=int, default=settings.fetch_interval_ms)

    return parser


def run_command(args: argparse.Namespace, *, settings: AppSettings, logger: logging.Logger) -> None:
    if args.command == "fetch-accounts":
        asyncio.run(fetch_accounts(settings=settings, logger=logger))
        return
    if args.command == "cutoffs":
        show_cutoffs(settings=settings, logger=logger)
        return
    if args.command == "simulate":
        simulate_swaps(
            settings=settings,
            logger=logger,
            direction=args.direction,
            amount=args.amount,
            slot=args.slot,
            ignore_errors=args.ignore_errors,
        )
        return
    if args.command == "spreads":
        show_spreads(settings=settings, logger=logger, starting_usdc=args.starting_usdc)
        return
    if args.command == "service":
        asyncio.run(
            run_service(
                settings=settings,
                logger=logger,
                port=args.port,
                fetch_interval_ms=max(1, args.fetch_interval_ms),
            )
        )
        return
    raise ValueError(f"Unknown command {args.command}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    settings = AppSettings.from_env()
    logger = setup_logger(settings.log_level)
    args = build_parser(settings).parse_args(argv)

    try:
        run_command(args, settings=settings, logger=logger)
    except (
        SnapshotFetchError,
        SnapshotUnavailableError,
        SandboxSetupError,
        NoSpreadDataError,
    ) as error:
        log_event(
            logger,
            level="error",
            event="command_failed",
            message="Command failed",
            command=args.command,
            error=str(error),
        )
        print(f"error: {error}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
