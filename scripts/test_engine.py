from __future__ import annotations

import logging
import unittest

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from scripts.sandbox_doubles import (
    VENUE_A,
    VENUE_B,
    VENUE_C,
    VENUE_D,
    MemorySnapshotStore,
    SandboxRecorder,
    four_venue_prices,
)
from solfi_quoter.simulation import QuoteEngine, SandboxSetupError, default_payer
from solfi_quoter.storage import AccountRecord, FreshnessMarker
from solfi_quoter.swap import DEFAULT_PAIR, LAMPORTS_PER_SOL, USDC_MINT, SwapDirection, best_quote


def _market_record(address: str) -> AccountRecord:
    return AccountRecord(
        address=address,
        lamports=5_000_000,
        owner=DEFAULT_PAIR.program_id,
        data=bytes(512),
    )


class QuoteEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("test.engine")
        self.store = MemorySnapshotStore(
            records=[_market_record(venue) for venue in DEFAULT_PAIR.markets],
            freshness=FreshnessMarker.at(321_000_000),
        )

    def _engine(self, recorder: SandboxRecorder) -> QuoteEngine:
        return QuoteEngine(logger=self.logger, store=self.store, sandbox_factory=recorder)

    def test_sell_quotes_every_venue_in_configured_order(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())

        quotes = self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC)

        self.assertEqual([quote.venue for quote in quotes], list(DEFAULT_PAIR.markets))
        expected = {VENUE_A: 1499.0, VENUE_B: 1500.5, VENUE_C: 1495.0, VENUE_D: 1499.5}
        for quote in quotes:
            self.assertEqual(quote.amount_in, 10.0)
            self.assertIsNone(quote.error)
            self.assertAlmostEqual(quote.amount_out, expected[quote.venue], places=5)

        best = best_quote(quotes)
        assert best is not None
        self.assertEqual(best.venue, VENUE_B)

    def test_seeds_snapshot_and_anchors_slot(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())
        engine = self._engine(recorder)

        engine.simulate(SwapDirection.SOL_TO_USDC, 1.0)
        engine.simulate(SwapDirection.SOL_TO_USDC, 1.0, slot=400_000_000)

        first, second = recorder.created
        self.assertEqual(first.slot, 321_000_000)
        self.assertEqual(second.slot, 400_000_000)
        for venue in DEFAULT_PAIR.markets:
            self.assertIn(venue, first.loaded)

    def test_rejected_venue_reports_error_and_batch_continues(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices(), rejecting={VENUE_C})

        quotes = self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, 2.0)

        by_venue = {quote.venue: quote for quote in quotes}
        self.assertEqual(len(quotes), 4)
        self.assertIsNone(by_venue[VENUE_C].amount_out)
        self.assertIn("custom program error", by_venue[VENUE_C].error or "")
        self.assertAlmostEqual(by_venue[VENUE_D].amount_out, 299.9, places=5)

    def test_ignore_errors_omits_rejected_venues(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices(), rejecting={VENUE_A, VENUE_C})

        quotes = self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, 2.0, ignore_errors=True)

        self.assertEqual([quote.venue for quote in quotes], [VENUE_B, VENUE_D])

    def test_zero_input_yields_zero_output(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())

        quotes = self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, 0.0)

        self.assertEqual(len(quotes), 4)
        for quote in quotes:
            self.assertEqual(quote.amount_out, 0.0)
        self.assertIsNone(best_quote(quotes))

    def test_repeated_runs_are_identical(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices(), rejecting={VENUE_D})
        engine = self._engine(recorder)

        first = engine.simulate(SwapDirection.USDC_TO_SOL, 1234.5)
        second = engine.simulate(SwapDirection.USDC_TO_SOL, 1234.5)

        self.assertEqual(first, second)
        self.assertEqual(len(recorder.created), 2)

    def test_token_input_is_prefunded_in_payer_account(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())

        quotes = self._engine(recorder).simulate(SwapDirection.USDC_TO_SOL, 1500.0)

        sandbox = recorder.created[0]
        payer = default_payer().pubkey()
        usdc_ata = get_associated_token_address(payer, Pubkey.from_string(USDC_MINT))
        self.assertIn(str(usdc_ata), sandbox.loaded)
        self.assertEqual(sandbox.lamports[str(payer)], LAMPORTS_PER_SOL)
        # every venue spent its share of the prefunded budget
        self.assertEqual(sandbox.read_balance(usdc_ata), 0)

        by_venue = {quote.venue: quote.amount_out for quote in quotes}
        self.assertAlmostEqual(by_venue[VENUE_B], 10.0, places=6)
        self.assertAlmostEqual(by_venue[VENUE_C], 1500.0 / 150.5, places=6)

    def test_restricted_venue_set(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())

        quotes = self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, 1.0, venues=(VENUE_D,))

        self.assertEqual([quote.venue for quote in quotes], [VENUE_D])
        self.assertEqual(len(recorder.created[0].submitted), 1)

    def test_funding_failure_is_setup_error(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices(), fail_funding=True)

        with self.assertRaises(SandboxSetupError):
            self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, 1.0)

    def test_negative_amount_rejected(self) -> None:
        recorder = SandboxRecorder(prices=four_venue_prices())

        with self.assertRaises(ValueError):
            self._engine(recorder).simulate(SwapDirection.SOL_TO_USDC, -1.0)


if __name__ == "__main__":
    unittest.main()
