from .commands import (
    fetch_accounts,
    render_cutoffs,
    render_spreads,
    run_service,
    show_cutoffs,
    show_spreads,
    simulate_swaps,
    write_quotes_csv,
)
from .components import build_engine, build_fetcher, build_price_board, build_store
from .settings import AppSettings

__all__ = [
    "AppSettings",
    "build_engine",
    "build_fetcher",
    "build_price_board",
    "build_store",
    "fetch_accounts",
    "render_cutoffs",
    "render_spreads",
    "run_service",
    "show_cutoffs",
    "show_spreads",
    "simulate_swaps",
    "write_quotes_csv",
]
