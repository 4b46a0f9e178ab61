from __future__ import annotations

import struct
from dataclasses import dataclass

from .types import SnapshotStore

CUTOFF_SLOT_OFFSET = 488
GENERATED_SLOT_OFFSET = 464


@dataclass(slots=True, frozen=True)
class VenueCutoff:
    venue: str
    cutoff_slot: int
    generated_slot: int

    def describe(self) -> str:
        return f"{self.venue} cutoff slot={self.cutoff_slot}, generated slot={self.generated_slot}"


def u64_at_offset(data: bytes, offset: int) -> int:
    if offset < 0 or len(data) < offset + 8:
        raise ValueError(f"Account data too short for u64 at offset {offset} (len={len(data)})")
    return struct.unpack_from("<Q", data, offset)[0]


def read_venue_cutoffs(store: SnapshotStore, markets: tuple[str, ...]) -> list[VenueCutoff]:
    cutoffs: list[VenueCutoff] = []
    for market in markets:
        record = store.get(market)
        if record is None:
            continue
        try:
            cutoffs.append(
                VenueCutoff(
                    venue=market,
                    cutoff_slot=u64_at_offset(record.data, CUTOFF_SLOT_OFFSET),
                    generated_slot=u64_at_offset(record.data, GENERATED_SLOT_OFFSET),
                )
            )
        except ValueError:
            continue
    return cutoffs
