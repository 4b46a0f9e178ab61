from __future__ import annotations

import json
import logging

from redis import Redis
from redis.exceptions import RedisError

from solfi_quoter.common import log_event

from .types import AccountRecord, FreshnessMarker, SnapshotUnavailableError


class RedisSnapshotStore:
    def __init__(self, client: Redis, *, prefix: str, logger: logging.Logger) -> None:
        self._redis = client
        self._prefix = prefix.rstrip(":")
        self._logger = logger

    @classmethod
    def from_url(cls, redis_url: str, *, prefix: str, logger: logging.Logger) -> "RedisSnapshotStore":
        return cls(Redis.from_url(redis_url, decode_responses=True), prefix=prefix, logger=logger)

    @property
    def index_key(self) -> str:
        return f"{self._prefix}:accounts"

    @property
    def freshness_key(self) -> str:
        return f"{self._prefix}:freshness"

    def _account_key(self, address: str) -> str:
        return f"{self._prefix}:account:{address}"

    def get(self, address: str) -> AccountRecord | None:
        try:
            raw = self._redis.get(self._account_key(address))
        except RedisError as error:
            raise SnapshotUnavailableError(f"Redis snapshot store is unreachable: {error}") from error
        if raw is None:
            return None
        return self._decode(address, raw)

    def put(self, record: AccountRecord) -> None:
        encoded = json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))
        pipeline = self._redis.pipeline(transaction=True)
        pipeline.set(self._account_key(record.address), encoded)
        pipeline.sadd(self.index_key, record.address)
        pipeline.execute()

    def list(self) -> list[AccountRecord]:
        try:
            addresses = sorted(self._redis.smembers(self.index_key))
            if not addresses:
                return []
            raw_values = self._redis.mget([self._account_key(address) for address in addresses])
        except RedisError as error:
            raise SnapshotUnavailableError(f"Redis snapshot store is unreachable: {error}") from error

        records: list[AccountRecord] = []
        for address, raw in zip(addresses, raw_values):
            if raw is None:
                continue
            record = self._decode(address, raw)
            if record is not None:
                records.append(record)
        return records

    def _decode(self, address: str, raw: str) -> AccountRecord | None:
        try:
            return AccountRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as error:
            log_event(
                self._logger,
                level="warning",
                event="snapshot_record_skipped",
                message="Skipping unreadable snapshot account record",
                address=address,
                error=str(error),
            )
            return None

    def read_freshness(self) -> FreshnessMarker | None:
        try:
            payload = self._redis.hgetall(self.freshness_key)
        except RedisError as error:
            raise SnapshotUnavailableError(f"Redis snapshot store is unreachable: {error}") from error
        if not payload:
            return None
        try:
            return FreshnessMarker.from_dict(payload)
        except (ValueError, TypeError) as error:
            log_event(
                self._logger,
                level="warning",
                event="snapshot_metadata_unreadable",
                message="Snapshot freshness record is unreadable; simulations will not be slot-anchored",
                error=str(error),
            )
            return None

    def write_freshness(self, marker: FreshnessMarker) -> None:
        mapping = {key: "" if value is None else str(value) for key, value in marker.to_dict().items()}
        pipeline = self._redis.pipeline(transaction=True)
        pipeline.delete(self.freshness_key)
        pipeline.hset(self.freshness_key, mapping=mapping)
        pipeline.execute()
