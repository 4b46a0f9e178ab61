from __future__ import annotations

import logging
import unittest
from unittest.mock import MagicMock

from scripts.sandbox_doubles import (
    VENUE_B,
    MemorySnapshotStore,
    SandboxRecorder,
    four_venue_prices,
)
from solfi_quoter.pricing import PriceBoard, SellSimulationError, SolverPolicy
from solfi_quoter.simulation import QuoteEngine, SandboxSetupError
from solfi_quoter.storage import FreshnessMarker
from solfi_quoter.swap import SwapDirection, VenueQuote


class PriceBoardTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("test.price_board")
        self.store = MemorySnapshotStore(freshness=FreshnessMarker.at(100))

    def _board(self, recorder: SandboxRecorder, **options) -> PriceBoard:
        engine = QuoteEngine(logger=self.logger, store=self.store, sandbox_factory=recorder)
        return PriceBoard(logger=self.logger, engine=engine, **options)

    def test_sell_and_buy_tiers_pick_best_venue(self) -> None:
        prices = self._board(SandboxRecorder(prices=four_venue_prices())).get_prices()

        self.assertEqual([quote.amount_sol for quote in prices.sell_sol], [1.0, 10.0, 100.0])
        for quote in prices.sell_sol:
            self.assertEqual(quote.best_market, VENUE_B)
            self.assertAlmostEqual(quote.price_usdc, 150.05, places=4)

        self.assertEqual(len(prices.buy_sol), 3)
        for target, quote in zip((1.0, 10.0, 100.0), prices.buy_sol):
            self.assertEqual(quote.best_market, VENUE_B)
            self.assertLessEqual(abs(quote.amount_sol / target - 1.0), 0.01)
            self.assertAlmostEqual(quote.price_usdc, 150.0, places=3)
        self.assertGreater(prices.timestamp, 0)

    def test_response_shape(self) -> None:
        payload = self._board(SandboxRecorder(prices=four_venue_prices()), tiers=(1.0,)).get_prices().to_dict()

        self.assertEqual(set(payload), {"sell_sol", "buy_sol", "timestamp"})
        self.assertEqual(set(payload["sell_sol"][0]), {"amount_sol", "price_usdc", "best_market"})

    def test_no_liquidity_gives_empty_tiers(self) -> None:
        recorder = SandboxRecorder(prices={})

        prices = self._board(recorder, tiers=(1.0, 10.0)).get_prices()

        self.assertEqual(prices.sell_sol, [])
        self.assertEqual(prices.buy_sol, [])

    def test_buy_seed_defaults_without_sell_quotes(self) -> None:
        engine = MagicMock()
        engine.simulate.return_value = []
        board = PriceBoard(
            logger=self.logger,
            engine=engine,
            tiers=(2.0,),
            default_price=140.0,
            policy=SolverPolicy(max_iterations=1),
        )

        self.assertEqual(board.buy_quotes([]), [])
        engine.simulate.assert_called_once_with(SwapDirection.USDC_TO_SOL, 280.0)

    def test_unconverged_buy_tier_reports_consistent_pair(self) -> None:
        engine = MagicMock()

        def simulate(direction, amount=None, **kwargs):
            # output grows far slower than input, so the solver never lands
            return [VenueQuote(venue=VENUE_B, amount_in=amount, amount_out=(amount**0.5) / 100.0)]

        engine.simulate.side_effect = simulate
        board = PriceBoard(
            logger=self.logger,
            engine=engine,
            tiers=(1.0,),
            policy=SolverPolicy(tolerance=0.0001, max_iterations=2),
        )

        (quote,) = board.buy_quotes([])

        usdc_in = quote.price_usdc * quote.amount_sol
        self.assertAlmostEqual(quote.amount_sol, (usdc_in**0.5) / 100.0)

    def test_sell_side_setup_failure_is_reported(self) -> None:
        engine = MagicMock()
        engine.simulate.side_effect = SandboxSetupError("Venue program binary not found at data/solfi.so")
        board = PriceBoard(logger=self.logger, engine=engine)

        with self.assertRaises(SellSimulationError) as ctx:
            board.get_prices()

        self.assertTrue(str(ctx.exception).startswith("Failed to simulate sell: "))

    def test_buy_side_failure_drops_tier(self) -> None:
        engine = MagicMock()
        engine.simulate.side_effect = SandboxSetupError("boom")
        board = PriceBoard(logger=self.logger, engine=engine, tiers=(1.0,))

        self.assertEqual(board.buy_quotes([]), [])


if __name__ == "__main__":
    unittest.main()
