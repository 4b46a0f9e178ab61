from __future__ import annotations

import json
import logging
import unittest
from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from solfi_quoter.storage import (
    AccountRecord,
    FreshnessMarker,
    RedisSnapshotStore,
    SnapshotUnavailableError,
)

MARKET = "CAPhoEse9xEH95XmdnJjYrZdNCA8xfUWdy3aWymHa1Vj"
OWNER = "SoLFiHG9TfgtdUXUjWAxi3LtvYuFyDLVhBWxdMZxyCe"


def _record(address: str = MARKET) -> AccountRecord:
    return AccountRecord(address=address, lamports=10, owner=OWNER, data=b"\x05\x06")


class RedisSnapshotStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MagicMock()
        self.pipeline = MagicMock()
        self.client.pipeline.return_value = self.pipeline
        self.store = RedisSnapshotStore(
            self.client,
            prefix="solfi:snapshot:",
            logger=logging.getLogger("test.redis_store"),
        )

    def test_put_writes_record_and_index_atomically(self) -> None:
        self.store.put(_record())

        self.client.pipeline.assert_called_once_with(transaction=True)
        key, encoded = self.pipeline.set.call_args.args
        self.assertEqual(key, f"solfi:snapshot:account:{MARKET}")
        self.assertEqual(AccountRecord.from_dict(json.loads(encoded)), _record())
        self.pipeline.sadd.assert_called_once_with("solfi:snapshot:accounts", MARKET)
        self.pipeline.execute.assert_called_once_with()

    def test_list_reads_indexed_records(self) -> None:
        other = "65ZHSArs5XxPseKQbB1B4r16vDxMWnCxHMzogDAWiDUU"
        self.client.smembers.return_value = {MARKET, other}
        self.client.mget.return_value = [json.dumps(_record(other).to_dict()), None]

        records = self.store.list()

        self.client.mget.assert_called_once_with(
            [f"solfi:snapshot:account:{other}", f"solfi:snapshot:account:{MARKET}"]
        )
        self.assertEqual(records, [_record(other)])

    def test_corrupt_value_is_skipped(self) -> None:
        self.client.smembers.return_value = {MARKET}
        self.client.mget.return_value = ["{oops"]

        with self.assertLogs("test.redis_store", level="WARNING"):
            self.assertEqual(self.store.list(), [])

    def test_unreachable_redis_is_snapshot_unavailable(self) -> None:
        self.client.smembers.side_effect = RedisConnectionError("refused")

        with self.assertRaises(SnapshotUnavailableError):
            self.store.list()

    def test_freshness_hash_round_trip(self) -> None:
        self.store.write_freshness(FreshnessMarker.at(77))

        self.pipeline.delete.assert_called_once_with("solfi:snapshot:freshness")
        mapping = self.pipeline.hset.call_args.kwargs["mapping"]
        self.assertEqual(mapping, {"slot": "77", "slot_lower": "77", "slot_upper": "77"})

        self.client.hgetall.return_value = mapping
        self.assertEqual(self.store.read_freshness(), FreshnessMarker.at(77))

    def test_missing_freshness_is_none(self) -> None:
        self.client.hgetall.return_value = {}

        self.assertIsNone(self.store.read_freshness())

    def test_legacy_range_without_slot(self) -> None:
        self.client.hgetall.return_value = {"slot": "", "slot_lower": "5", "slot_upper": "9"}

        marker = self.store.read_freshness()

        self.assertEqual(marker, FreshnessMarker(slot=None, slot_lower=5, slot_upper=9))


if __name__ == "__main__":
    unittest.main()
