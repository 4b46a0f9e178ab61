from __future__ import annotations

import math
from dataclasses import dataclass, field

from solders.account import Account
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import decode_transfer
from spl.token.constants import TOKEN_PROGRAM_ID

from solfi_quoter.simulation import SandboxRejection, SandboxTransaction, token_amount
from solfi_quoter.storage import AccountRecord, FreshnessMarker
from solfi_quoter.swap import (
    DEFAULT_PAIR,
    PairConfig,
    SwapDirection,
    decode_swap_data,
)

VENUE_A, VENUE_B, VENUE_C, VENUE_D = DEFAULT_PAIR.markets


@dataclass(slots=True)
class VenuePrice:
    """Linear book: sells base at ``bid`` and buys base at ``ask`` (quote per base)."""

    bid: float
    ask: float


class MemorySnapshotStore:
    def __init__(
        self,
        records: list[AccountRecord] | None = None,
        freshness: FreshnessMarker | None = None,
    ) -> None:
        self._records = {record.address: record for record in records or []}
        self._freshness = freshness

    def get(self, address: str) -> AccountRecord | None:
        return self._records.get(address)

    def put(self, record: AccountRecord) -> None:
        self._records[record.address] = record

    def list(self) -> list[AccountRecord]:
        return list(self._records.values())

    def read_freshness(self) -> FreshnessMarker | None:
        return self._freshness

    def write_freshness(self, marker: FreshnessMarker) -> None:
        self._freshness = marker


@dataclass
class FakeSandbox:
    """In-memory stand-in for the LiteSVM sandbox.

    Swaps on known venues settle at that venue's linear price; venues in
    ``rejecting`` fail with a program error. Token balances are tracked per
    token account address.
    """

    prices: dict[str, VenuePrice]
    pair: PairConfig = DEFAULT_PAIR
    rejecting: set[str] = field(default_factory=set)
    fail_funding: bool = False
    loaded: dict[str, Account] = field(default_factory=dict)
    lamports: dict[str, int] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)
    slot: int | None = None
    submitted: list[SandboxTransaction] = field(default_factory=list)

    def load(self, address: Pubkey, account: Account) -> None:
        self.loaded[str(address)] = account
        if account.owner == TOKEN_PROGRAM_ID:
            self.balances[str(address)] = token_amount(bytes(account.data))

    def advance_to(self, slot: int) -> None:
        self.slot = slot

    def fund(self, address: Pubkey, lamports: int) -> None:
        if self.fail_funding:
            raise SandboxRejection("airdrop refused")
        key = str(address)
        self.lamports[key] = self.lamports.get(key, 0) + lamports

    def read_balance(self, address: Pubkey) -> int:
        return self.balances.get(str(address), 0)

    def submit(self, transaction: SandboxTransaction) -> None:
        self.submitted.append(transaction)
        program_id = Pubkey.from_string(self.pair.program_id)
        # Apply to a scratch copy so a rejected transaction leaves no trace.
        lamports = dict(self.lamports)
        balances = dict(self.balances)

        for instruction in transaction.instructions:
            if instruction.program_id == SYSTEM_PROGRAM_ID:
                params = decode_transfer(instruction)
                source = str(params["from_pubkey"])
                if lamports.get(source, 0) < params["lamports"]:
                    raise SandboxRejection("insufficient lamports")
                lamports[source] -= params["lamports"]
                destination = str(params["to_pubkey"])
                balances[destination] = balances.get(destination, 0) + params["lamports"]
                continue
            if instruction.program_id != program_id:
                continue

            direction, amount_in = decode_swap_data(bytes(instruction.data))
            market = str(instruction.accounts[1].pubkey)
            user_base = str(instruction.accounts[4].pubkey)
            user_quote = str(instruction.accounts[5].pubkey)
            if market in self.rejecting or market not in self.prices:
                raise SandboxRejection("Error processing Instruction 2: custom program error: 0x1")

            source, destination = user_base, user_quote
            if direction is SwapDirection.USDC_TO_SOL:
                source, destination = user_quote, user_base
            if balances.get(source, 0) < amount_in:
                raise SandboxRejection("insufficient funds")

            balances[source] = balances.get(source, 0) - amount_in
            balances[destination] = balances.get(destination, 0) + self.quote_out(market, direction, amount_in)

        self.lamports = lamports
        self.balances = balances

    def quote_out(self, market: str, direction: SwapDirection, amount_in: int) -> int:
        price = self.prices[market]
        base_scale = 10**self.pair.base_decimals
        quote_scale = 10**self.pair.quote_decimals
        if direction is SwapDirection.SOL_TO_USDC:
            return math.floor(amount_in / base_scale * price.bid * quote_scale)
        return math.floor(amount_in / quote_scale / price.ask * base_scale)


def four_venue_prices() -> dict[str, VenuePrice]:
    return {
        VENUE_A: VenuePrice(bid=149.90, ask=150.10),
        VENUE_B: VenuePrice(bid=150.05, ask=150.00),
        VENUE_C: VenuePrice(bid=149.50, ask=150.50),
        VENUE_D: VenuePrice(bid=149.95, ask=150.20),
    }


class SandboxRecorder:
    """Factory that remembers every sandbox it handed out."""

    def __init__(self, **options: object) -> None:
        self._options = options
        self.created: list[FakeSandbox] = []

    def __call__(self) -> FakeSandbox:
        sandbox = FakeSandbox(**self._options)  # type: ignore[arg-type]
        self.created.append(sandbox)
        return sandbox
