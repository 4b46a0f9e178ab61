from __future__ import annotations

import asyncio
import logging

from solfi_quoter.common import guarded_call, wait_with_stop
from solfi_quoter.storage import SnapshotFetcher


async def run_snapshot_refresher(
    *,
    logger: logging.Logger,
    stop_event: asyncio.Event,
    fetcher: SnapshotFetcher,
    interval_seconds: float,
) -> None:
    loop = asyncio.get_running_loop()
    next_tick = loop.time()

    try:
        while not stop_event.is_set():
            await guarded_call(
                fetcher.fetch_and_persist,
                logger=logger,
                event="snapshot_refresh_failed",
                message="Failed to fetch accounts",
                level="error",
            )

            next_tick += interval_seconds
            now = loop.time()
            if next_tick <= now:
                missed_cycles = int((now - next_tick) / interval_seconds) + 1
                next_tick += missed_cycles * interval_seconds

            await wait_with_stop(stop_event, max(0.0, next_tick - now))
    finally:
        await guarded_call(
            fetcher.close,
            logger=logger,
            event="snapshot_fetcher_close_failed",
            message="Failed to close RPC client",
        )
