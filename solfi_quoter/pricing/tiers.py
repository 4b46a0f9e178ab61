from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from solfi_quoter.common import log_event
from solfi_quoter.simulation import QuoteEngine, SandboxSetupError
from solfi_quoter.storage import SnapshotUnavailableError
from solfi_quoter.swap import SwapDirection, best_quote

from .solver import Candidate, SolverPolicy, solve

DEFAULT_PRICE_TIERS: tuple[float, ...] = (1.0, 10.0, 100.0)
DEFAULT_PRICE_USDC = 150.0
DEFAULT_BUY_SEED_PREMIUM = 1.01


class SellSimulationError(RuntimeError):
    pass


@dataclass(slots=True, frozen=True)
class PriceQuote:
    amount_sol: float
    price_usdc: float
    best_market: str


@dataclass(slots=True, frozen=True)
class PricesResponse:
    sell_sol: list[PriceQuote] = field(default_factory=list)
    buy_sol: list[PriceQuote] = field(default_factory=list)
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PriceBoard:
    """Best-of-venue quotes at fixed SOL sizes, on both sides of the book."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        engine: QuoteEngine,
        policy: SolverPolicy | None = None,
        tiers: tuple[float, ...] = DEFAULT_PRICE_TIERS,
        default_price: float = DEFAULT_PRICE_USDC,
        buy_seed_premium: float = DEFAULT_BUY_SEED_PREMIUM,
    ) -> None:
        self._logger = logger
        self._engine = engine
        self._policy = policy or SolverPolicy()
        self._tiers = tiers
        self._default_price = default_price
        self._buy_seed_premium = buy_seed_premium

    def sell_quotes(self) -> list[PriceQuote]:
        quotes: list[PriceQuote] = []
        for amount_sol in self._tiers:
            try:
                venue_quotes = self._engine.simulate(SwapDirection.SOL_TO_USDC, amount_sol)
            except (SandboxSetupError, SnapshotUnavailableError) as error:
                raise SellSimulationError(f"Failed to simulate sell: {error}") from error

            best = best_quote(venue_quotes)
            if best is None or best.amount_out is None:
                log_event(
                    self._logger,
                    level="info",
                    event="sell_tier_unavailable",
                    message="No venue could fill sell tier",
                    amount_sol=amount_sol,
                )
                continue
            quotes.append(
                PriceQuote(
                    amount_sol=amount_sol,
                    price_usdc=best.amount_out / amount_sol,
                    best_market=best.venue,
                )
            )
        return quotes

    def _best_buy(self, usdc_in: float) -> Candidate | None:
        try:
            venue_quotes = self._engine.simulate(SwapDirection.USDC_TO_SOL, usdc_in)
        except (SandboxSetupError, SnapshotUnavailableError) as error:
            log_event(
                self._logger,
                level="warning",
                event="buy_simulation_failed",
                message="Buy replay failed; keeping the last usable observation",
                usdc_in=usdc_in,
                error=str(error),
            )
            return None

        best = best_quote(venue_quotes)
        if best is None or best.amount_out is None:
            return None
        return Candidate(venue=best.venue, amount_in=usdc_in, amount_out=best.amount_out)

    def buy_quotes(self, sell_quotes: list[PriceQuote]) -> list[PriceQuote]:
        seed_price = self._default_price
        if sell_quotes:
            seed_price = sell_quotes[0].price_usdc * self._buy_seed_premium

        quotes: list[PriceQuote] = []
        for target_sol in self._tiers:
            result = solve(
                target=target_sol,
                initial_guess=target_sol * seed_price,
                evaluate=self._best_buy,
                policy=self._policy,
            )
            if result is None:
                log_event(
                    self._logger,
                    level="info",
                    event="buy_tier_unavailable",
                    message="No venue could fill buy tier",
                    target_sol=target_sol,
                )
                continue
            if not result.converged:
                log_event(
                    self._logger,
                    level="warning",
                    event="buy_tier_not_converged",
                    message="Buy tier price is a best-effort approximation",
                    target_sol=target_sol,
                    observed_sol=result.candidate.amount_out,
                    iterations=result.iterations,
                    reason=result.reason,
                )

            candidate = result.candidate
            quotes.append(
                PriceQuote(
                    amount_sol=candidate.amount_out,
                    price_usdc=candidate.amount_in / candidate.amount_out,
                    best_market=candidate.venue,
                )
            )
        return quotes

    def get_prices(self) -> PricesResponse:
        sell_sol = self.sell_quotes()
        buy_sol = self.buy_quotes(sell_sol)
        return PricesResponse(sell_sol=sell_sol, buy_sol=buy_sol, timestamp=int(time.time()))
