from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from solfi_quoter.common import log_event
from solfi_quoter.simulation import QuoteEngine
from solfi_quoter.swap import SwapDirection


class NoSpreadDataError(RuntimeError):
    pass


@dataclass(slots=True, frozen=True)
class SpreadResult:
    venue: str
    buy_price: float
    sell_price: float
    spread: float
    spread_bps: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_spread(
    *,
    venue: str,
    reference_amount: float,
    base_out: float,
    quote_out: float,
) -> SpreadResult | None:
    # A negative spread is a crossed market and is reported as such.
    if reference_amount <= 0 or base_out <= 0 or quote_out <= 0:
        return None

    buy_price = reference_amount / base_out
    sell_price = quote_out / base_out
    spread = buy_price - sell_price
    mid_price = (buy_price + sell_price) / 2.0
    return SpreadResult(
        venue=venue,
        buy_price=buy_price,
        sell_price=sell_price,
        spread=spread,
        spread_bps=(spread / mid_price) * 10_000,
    )


class SpreadAnalyzer:
    def __init__(self, *, logger: logging.Logger, engine: QuoteEngine) -> None:
        self._logger = logger
        self._engine = engine

    def analyze(self, reference_amount: float) -> list[SpreadResult]:
        """Round-trip spread per venue, tightest first.

        Buys base with ``reference_amount`` of quote on every venue, then sells
        each venue's base back on that venue alone in a fresh sandbox.
        """
        buy_leg = self._engine.simulate(
            SwapDirection.USDC_TO_SOL,
            reference_amount,
            ignore_errors=True,
        )
        base_by_venue = {
            quote.venue: quote.amount_out
            for quote in buy_leg
            if quote.amount_out is not None and quote.amount_out > 0
        }
        if not base_by_venue:
            raise NoSpreadDataError("Could not simulate buying SOL on any market. Unable to calculate spread.")

        results: list[SpreadResult] = []
        for venue, base_out in base_by_venue.items():
            sell_leg = self._engine.simulate(
                SwapDirection.SOL_TO_USDC,
                base_out,
                ignore_errors=True,
                venues=(venue,),
            )
            quote_out = next(
                (quote.amount_out for quote in sell_leg if quote.venue == venue and quote.amount_out is not None),
                None,
            )
            if quote_out is None:
                log_event(
                    self._logger,
                    level="info",
                    event="spread_round_trip_incomplete",
                    message="Sell leg failed; venue left out of spread report",
                    venue=venue,
                    base_out=base_out,
                )
                continue

            result = compute_spread(
                venue=venue,
                reference_amount=reference_amount,
                base_out=base_out,
                quote_out=quote_out,
            )
            if result is not None:
                results.append(result)

        if not results:
            raise NoSpreadDataError("Could not complete a round-trip simulation on any market.")

        results.sort(key=lambda item: item.spread_bps)
        return results
