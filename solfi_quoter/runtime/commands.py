from __future__ import annotations

import asyncio
import contextlib
import csv
import logging
import signal
import sys
from typing import TextIO

from aiohttp import web

from solfi_quoter.common import guarded_call, log_event
from solfi_quoter.pricing import NoSpreadDataError, SpreadResult
from solfi_quoter.service import PriceRpcService, run_snapshot_refresher
from solfi_quoter.simulation import QuoteEngine
from solfi_quoter.storage import FreshnessMarker, SnapshotStore, read_venue_cutoffs
from solfi_quoter.swap import SwapDirection, VenueQuote

from .components import (
    build_engine,
    build_fetcher,
    build_price_board,
    build_spread_analyzer,
    build_store,
)
from .settings import AppSettings

SERVICE_STARTUP_WAIT_SECONDS = 0.5


async def fetch_accounts(*, settings: AppSettings, logger: logging.Logger) -> FreshnessMarker:
    settings.warn_if_defaulted(logger)
    fetcher = build_fetcher(settings, logger, build_store(settings, logger))
    try:
        return await fetcher.fetch_and_persist()
    finally:
        await guarded_call(
            fetcher.close,
            logger=logger,
            event="snapshot_fetcher_close_failed",
            message="Failed to close RPC client",
        )


def render_cutoffs(store: SnapshotStore, markets: tuple[str, ...]) -> list[str]:
    freshness = store.read_freshness()
    lines = [f"== {freshness.describe() if freshness is not None else 'no freshness marker'} =="]
    lines.extend(cutoff.describe() for cutoff in read_venue_cutoffs(store, markets))
    return lines


def show_cutoffs(*, settings: AppSettings, logger: logging.Logger, out: TextIO = sys.stdout) -> None:
    store = build_store(settings, logger)
    for line in render_cutoffs(store, settings.pair.markets):
        print(line, file=out)


def write_quotes_csv(quotes: list[VenueQuote], out: TextIO) -> None:
    writer = csv.writer(out, lineterminator="\n")
    for quote in quotes:
        writer.writerow(
            [
                quote.venue,
                quote.amount_in,
                "" if quote.amount_out is None else quote.amount_out,
                quote.error or "",
            ]
        )


def simulate_swaps(
    *,
    settings: AppSettings,
    logger: logging.Logger,
    direction: SwapDirection,
    amount: float | None = None,
    slot: int | None = None,
    ignore_errors: bool = False,
    engine: QuoteEngine | None = None,
    out: TextIO = sys.stdout,
) -> list[VenueQuote]:
    engine = engine or build_engine(settings, logger, build_store(settings, logger))
    quotes = engine.simulate(direction, amount, slot=slot, ignore_errors=ignore_errors)
    write_quotes_csv(quotes, out)
    return quotes


def render_spreads(results: list[SpreadResult]) -> list[str]:
    lines: list[str] = []
    for result in results:
        lines.extend(
            [
                f"--- Market: {result.venue} ---",
                f"  Buy SOL at:  ${result.buy_price:<10.4f} (Ask)",
                f"  Sell SOL at: ${result.sell_price:<10.4f} (Bid)",
                f"  Spread:      ${result.spread:<10.6f}",
                f"  Spread:      {result.spread_bps:<10.2f} bps",
                "",
            ]
        )
    return lines


def show_spreads(
    *,
    settings: AppSettings,
    logger: logging.Logger,
    starting_usdc: float,
    engine: QuoteEngine | None = None,
    out: TextIO = sys.stdout,
) -> list[SpreadResult]:
    store = build_store(settings, logger)
    engine = engine or build_engine(settings, logger, store)
    for line in render_cutoffs(store, settings.pair.markets):
        print(line, file=out)
    print(f"\nCalculating spreads based on a round trip starting with {starting_usdc:.2f} USDC...\n", file=out)

    try:
        results = build_spread_analyzer(logger, engine).analyze(starting_usdc)
    except NoSpreadDataError as error:
        print(str(error), file=out)
        return []

    for line in render_spreads(results):
        print(line, file=out)
    return results


async def run_service(
    *,
    settings: AppSettings,
    logger: logging.Logger,
    port: int,
    fetch_interval_ms: int,
) -> None:
    settings.warn_if_defaulted(logger)
    store = build_store(settings, logger)
    engine = build_engine(settings, logger, store)
    rpc = PriceRpcService(logger=logger, price_board=build_price_board(settings, logger, engine))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(sig: signal.Signals) -> None:
        log_event(
            logger,
            level="info",
            event="shutdown_signal_received",
            message="Shutdown signal received",
            signal=sig.name,
        )
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, request_shutdown, sig)

    refresher = asyncio.create_task(
        run_snapshot_refresher(
            logger=logger,
            stop_event=stop_event,
            fetcher=build_fetcher(settings, logger, store),
            interval_seconds=max(0.05, fetch_interval_ms / 1000.0),
        )
    )
    await asyncio.sleep(SERVICE_STARTUP_WAIT_SECONDS)

    runner = web.AppRunner(rpc.build_app())
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    log_event(
        logger,
        level="info",
        event="service_started",
        message="Starting RPC server",
        address=f"0.0.0.0:{port}",
        fetch_interval_ms=fetch_interval_ms,
    )

    try:
        await stop_event.wait()
    finally:
        stop_event.set()
        await guarded_call(
            lambda: asyncio.wait_for(refresher, timeout=5.0),
            logger=logger,
            event="refresher_stop_failed",
            message="Snapshot refresher did not stop cleanly",
        )
        await guarded_call(
            runner.cleanup,
            logger=logger,
            event="service_cleanup_failed",
            message="Failed to stop RPC server",
        )
        log_event(logger, level="info", event="shutdown_completed", message="Shutdown completed")
