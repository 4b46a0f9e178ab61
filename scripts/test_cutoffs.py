from __future__ import annotations

import io
import struct
import unittest

from scripts.sandbox_doubles import VENUE_A, VENUE_B, VENUE_C, MemorySnapshotStore
from solfi_quoter.runtime import render_cutoffs, write_quotes_csv
from solfi_quoter.storage import (
    CUTOFF_SLOT_OFFSET,
    GENERATED_SLOT_OFFSET,
    AccountRecord,
    FreshnessMarker,
    read_venue_cutoffs,
    u64_at_offset,
)
from solfi_quoter.swap import DEFAULT_PAIR, VenueQuote


def _market(address: str, *, cutoff: int, generated: int, size: int = 512) -> AccountRecord:
    data = bytearray(size)
    if size >= CUTOFF_SLOT_OFFSET + 8:
        struct.pack_into("<Q", data, CUTOFF_SLOT_OFFSET, cutoff)
        struct.pack_into("<Q", data, GENERATED_SLOT_OFFSET, generated)
    return AccountRecord(address=address, lamports=1, owner=DEFAULT_PAIR.program_id, data=bytes(data))


class CutoffTests(unittest.TestCase):
    def test_u64_at_offset(self) -> None:
        data = bytes(8) + (123456789).to_bytes(8, "little")

        self.assertEqual(u64_at_offset(data, 8), 123456789)
        with self.assertRaises(ValueError):
            u64_at_offset(data, 9)

    def test_reads_present_markets_only(self) -> None:
        store = MemorySnapshotStore(
            records=[
                _market(VENUE_A, cutoff=1000, generated=990),
                _market(VENUE_C, cutoff=0, generated=0, size=100),
            ]
        )

        cutoffs = read_venue_cutoffs(store, (VENUE_A, VENUE_B, VENUE_C))

        self.assertEqual(len(cutoffs), 1)
        self.assertEqual(cutoffs[0].describe(), f"{VENUE_A} cutoff slot=1000, generated slot=990")

    def test_render_with_freshness_header(self) -> None:
        store = MemorySnapshotStore(
            records=[_market(VENUE_B, cutoff=42, generated=40)],
            freshness=FreshnessMarker.at(41),
        )

        lines = render_cutoffs(store, DEFAULT_PAIR.markets)

        self.assertEqual(lines[0], "== fetched at slot 41 ==")
        self.assertEqual(lines[1:], [f"{VENUE_B} cutoff slot=42, generated slot=40"])


class SimulateCsvTests(unittest.TestCase):
    def test_rows_without_header(self) -> None:
        out = io.StringIO()

        write_quotes_csv(
            [
                VenueQuote(venue=VENUE_A, amount_in=10.0, amount_out=1499.0),
                VenueQuote(venue=VENUE_B, amount_in=10.0, error="custom program error: 0x1, oops"),
            ],
            out,
        )

        self.assertEqual(
            out.getvalue().splitlines(),
            [
                f"{VENUE_A},10.0,1499.0,",
                f'{VENUE_B},10.0,,"custom program error: 0x1, oops"',
            ],
        )


if __name__ == "__main__":
    unittest.main()
