from __future__ import annotations

import asyncio
import logging

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed, Processed
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from solfi_quoter.common import log_event
from solfi_quoter.swap import PairConfig

from .types import AccountRecord, FreshnessMarker, SnapshotStore


class SnapshotFetchError(RuntimeError):
    pass


def snapshot_addresses(pair: PairConfig) -> list[Pubkey]:
    base_mint = Pubkey.from_string(pair.base_mint)
    quote_mint = Pubkey.from_string(pair.quote_mint)
    addresses = [base_mint, quote_mint]
    for raw_market in pair.markets:
        market = Pubkey.from_string(raw_market)
        addresses.extend(
            [
                market,
                get_associated_token_address(market, base_mint),
                get_associated_token_address(market, quote_mint),
            ]
        )
    return addresses


class SnapshotFetcher:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc_url: str,
        store: SnapshotStore,
        pair: PairConfig,
        client: AsyncClient | None = None,
    ) -> None:
        self._logger = logger
        self._rpc_url = rpc_url
        self._store = store
        self._pair = pair
        self._client = client

    async def connect(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(self._rpc_url, commitment=Confirmed)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def fetch_and_persist(self) -> FreshnessMarker:
        client = await self.connect()

        addresses = snapshot_addresses(self._pair)
        log_event(
            self._logger,
            level="info",
            event="snapshot_fetch_started",
            message="Fetching accounts",
            address_count=len(addresses),
        )
        try:
            response = await client.get_multiple_accounts(addresses, commitment=Processed)
        except Exception as error:
            raise SnapshotFetchError(f"getMultipleAccounts failed: {error}") from error

        marker = FreshnessMarker.at(int(response.context.slot))
        # store writes block on disk or redis
        persisted = await asyncio.to_thread(self._persist, addresses, list(response.value), marker)
        log_event(
            self._logger,
            level="info",
            event="snapshot_fetch_completed",
            message="Done",
            slot=marker.anchor_slot,
            persisted=persisted,
            missing=len(addresses) - persisted,
        )
        return marker

    def _persist(self, addresses: list[Pubkey], accounts: list, marker: FreshnessMarker) -> int:
        persisted = 0
        for address, account in zip(addresses, accounts):
            if account is None:
                continue
            self._store.put(AccountRecord.from_account(address, account))
            persisted += 1
        self._store.write_freshness(marker)
        return persisted
