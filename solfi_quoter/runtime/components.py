from __future__ import annotations

import logging

from solfi_quoter.pricing import PriceBoard, SolverPolicy, SpreadAnalyzer
from solfi_quoter.simulation import QuoteEngine, SandboxFactory
from solfi_quoter.storage import FileSnapshotStore, RedisSnapshotStore, SnapshotFetcher, SnapshotStore

from .settings import AppSettings


def build_store(settings: AppSettings, logger: logging.Logger) -> SnapshotStore:
    if settings.snapshot_backend == "redis":
        return RedisSnapshotStore.from_url(
            settings.redis_url,
            prefix=settings.redis_snapshot_prefix,
            logger=logger,
        )
    return FileSnapshotStore(settings.data_dir, logger=logger)


def build_sandbox_factory(settings: AppSettings) -> SandboxFactory:
    # LiteSVM is only needed once something is actually replayed.
    from solfi_quoter.simulation.litesvm_sandbox import litesvm_factory

    return litesvm_factory(program_id=settings.pair.program_id, program_path=settings.program_path)


def build_engine(
    settings: AppSettings,
    logger: logging.Logger,
    store: SnapshotStore,
    sandbox_factory: SandboxFactory | None = None,
) -> QuoteEngine:
    return QuoteEngine(
        logger=logger,
        store=store,
        sandbox_factory=sandbox_factory or build_sandbox_factory(settings),
        pair=settings.pair,
        funding_margin_lamports=settings.funding_margin_lamports,
    )


def build_price_board(settings: AppSettings, logger: logging.Logger, engine: QuoteEngine) -> PriceBoard:
    return PriceBoard(
        logger=logger,
        engine=engine,
        policy=SolverPolicy(
            tolerance=settings.solver_tolerance,
            max_iterations=settings.solver_max_iterations,
        ),
        tiers=settings.price_tiers_sol,
        default_price=settings.default_price_usdc,
        buy_seed_premium=settings.buy_seed_premium,
    )


def build_spread_analyzer(logger: logging.Logger, engine: QuoteEngine) -> SpreadAnalyzer:
    return SpreadAnalyzer(logger=logger, engine=engine)


def build_fetcher(settings: AppSettings, logger: logging.Logger, store: SnapshotStore) -> SnapshotFetcher:
    return SnapshotFetcher(logger=logger, rpc_url=settings.rpc_url, store=store, pair=settings.pair)
