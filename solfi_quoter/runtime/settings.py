from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from solfi_quoter.common import log_event
from solfi_quoter.common.conversions import to_float, to_float_tuple, to_int
from solfi_quoter.pricing import DEFAULT_BUY_SEED_PREMIUM, DEFAULT_PRICE_TIERS, DEFAULT_PRICE_USDC
from solfi_quoter.swap import LAMPORTS_PER_SOL, PairConfig

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def normalize_snapshot_backend(value: str) -> str:
    backend = (value or "").strip().lower()
    if backend in {"file", "redis"}:
        return backend
    return "file"


def normalize_log_level(value: str) -> str:
    level = (value or "").strip().upper()
    if level == "WARN":
        return "WARNING"
    if level in VALID_LOG_LEVELS:
        return level
    return "INFO"


@dataclass(slots=True)
class AppSettings:
    rpc_url: str
    rpc_url_configured: bool
    data_dir: str
    program_path: str
    snapshot_backend: str
    redis_url: str
    redis_snapshot_prefix: str
    funding_margin_lamports: int
    solver_tolerance: float
    solver_max_iterations: int
    default_price_usdc: float
    buy_seed_premium: float
    price_tiers_sol: tuple[float, ...]
    service_port: int
    fetch_interval_ms: int
    log_level: str
    pair: PairConfig

    @classmethod
    def from_env(cls) -> "AppSettings":
        raw_rpc_url = os.getenv("RPC_URL", "").strip()
        data_dir = os.getenv("DATA_DIR", "data").strip() or "data"
        return cls(
            rpc_url=raw_rpc_url or DEFAULT_RPC_URL,
            rpc_url_configured=bool(raw_rpc_url),
            data_dir=data_dir,
            program_path=os.getenv("SOLFI_PROGRAM_PATH", "").strip() or os.path.join(data_dir, "solfi.so"),
            snapshot_backend=normalize_snapshot_backend(os.getenv("SNAPSHOT_BACKEND", "file")),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0").strip(),
            redis_snapshot_prefix=os.getenv("REDIS_SNAPSHOT_PREFIX", "solfi:snapshot").strip() or "solfi:snapshot",
            funding_margin_lamports=int(
                max(0.0, to_float(os.getenv("FUNDING_MARGIN_SOL"), 1.0)) * LAMPORTS_PER_SOL
            ),
            solver_tolerance=max(1e-6, to_float(os.getenv("SOLVER_TOLERANCE"), 0.01)),
            solver_max_iterations=max(1, to_int(os.getenv("SOLVER_MAX_ITERATIONS"), 10)),
            default_price_usdc=max(1e-6, to_float(os.getenv("DEFAULT_PRICE_USDC"), DEFAULT_PRICE_USDC)),
            buy_seed_premium=max(1e-6, to_float(os.getenv("BUY_SEED_PREMIUM"), DEFAULT_BUY_SEED_PREMIUM)),
            price_tiers_sol=to_float_tuple(os.getenv("PRICE_TIERS_SOL"), DEFAULT_PRICE_TIERS),
            service_port=max(1, to_int(os.getenv("SERVICE_PORT"), 8080)),
            fetch_interval_ms=max(50, to_int(os.getenv("FETCH_INTERVAL_MS"), 1000)),
            log_level=normalize_log_level(os.getenv("LOG_LEVEL", "INFO")),
            pair=PairConfig.from_env(),
        )

    def warn_if_defaulted(self, logger: logging.Logger) -> None:
        if not self.rpc_url_configured:
            log_event(
                logger,
                level="warning",
                event="rpc_url_defaulted",
                message="RPC_URL is not set; using the public mainnet endpoint",
                rpc_url=self.rpc_url,
            )
