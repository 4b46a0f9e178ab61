from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Protocol

from solders.account import Account
from solders.pubkey import Pubkey


class SnapshotUnavailableError(RuntimeError):
    pass


@dataclass(slots=True, frozen=True)
class AccountRecord:
    address: str
    lamports: int
    owner: str
    data: bytes
    executable: bool = False
    rent_epoch: int = 0

    @classmethod
    def from_account(cls, address: Pubkey | str, account: Account) -> "AccountRecord":
        return cls(
            address=str(address),
            lamports=int(account.lamports),
            owner=str(account.owner),
            data=bytes(account.data),
            executable=bool(account.executable),
            rent_epoch=int(account.rent_epoch),
        )

    def to_account(self) -> Account:
        return Account(
            lamports=self.lamports,
            data=self.data,
            owner=Pubkey.from_string(self.owner),
            executable=self.executable,
            rent_epoch=self.rent_epoch,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "account": {
                "lamports": self.lamports,
                "data": base64.b64encode(self.data).decode("ascii"),
                "owner": self.owner,
                "executable": self.executable,
                "rent_epoch": self.rent_epoch,
            },
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AccountRecord":
        if not isinstance(payload, dict):
            raise ValueError("Account record must be a JSON object")
        account = payload.get("account")
        if not isinstance(account, dict):
            raise ValueError("Account record is missing the 'account' object")

        raw_data = account.get("data", "")
        if isinstance(raw_data, list):
            # older snapshots stored the payload as a list of byte values
            data = bytes(int(item) for item in raw_data)
        else:
            data = base64.b64decode(str(raw_data))

        return cls(
            address=str(payload["address"]),
            lamports=int(account["lamports"]),
            owner=str(account["owner"]),
            data=data,
            executable=bool(account.get("executable", False)),
            rent_epoch=int(account.get("rent_epoch", 0)),
        )


@dataclass(slots=True, frozen=True)
class FreshnessMarker:
    """Slot a snapshot was captured at.

    ``slot_lower``/``slot_upper`` are kept for snapshots written before the
    single ``slot`` field existed. When both forms are present ``slot`` wins.
    """

    slot: int | None
    slot_lower: int
    slot_upper: int

    @classmethod
    def at(cls, slot: int) -> "FreshnessMarker":
        return cls(slot=slot, slot_lower=slot, slot_upper=slot)

    @property
    def anchor_slot(self) -> int:
        return self.slot if self.slot is not None else self.slot_lower

    def describe(self) -> str:
        if self.slot_lower == self.slot_upper:
            return f"fetched at slot {self.slot_lower}"
        return f"fetched between slots {self.slot_lower} and {self.slot_upper}"

    def to_dict(self) -> dict[str, Any]:
        return {"slot": self.slot, "slot_lower": self.slot_lower, "slot_upper": self.slot_upper}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "FreshnessMarker":
        if not isinstance(payload, dict):
            raise ValueError("Freshness record must be a JSON object")
        raw_slot = payload.get("slot")
        slot = int(raw_slot) if raw_slot not in (None, "") else None
        raw_lower = payload.get("slot_lower")
        if raw_lower in (None, ""):
            if slot is None:
                raise ValueError("Freshness record carries neither slot nor slot_lower")
            raw_lower = slot
        slot_lower = int(raw_lower)
        raw_upper = payload.get("slot_upper")
        slot_upper = int(raw_upper) if raw_upper not in (None, "") else slot_lower
        return cls(slot=slot, slot_lower=slot_lower, slot_upper=slot_upper)


@dataclass(slots=True, frozen=True)
class Snapshot:
    accounts: tuple[AccountRecord, ...] = ()
    freshness: FreshnessMarker | None = None
    _by_address: dict[str, AccountRecord] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_address.update({record.address: record for record in self.accounts})

    def get(self, address: str) -> AccountRecord | None:
        return self._by_address.get(address)


class SnapshotStore(Protocol):
    def get(self, address: str) -> AccountRecord | None:
        ...

    def put(self, record: AccountRecord) -> None:
        ...

    def list(self) -> list[AccountRecord]:
        ...

    def read_freshness(self) -> FreshnessMarker | None:
        ...

    def write_freshness(self, marker: FreshnessMarker) -> None:
        ...


def load_snapshot(store: SnapshotStore) -> Snapshot:
    return Snapshot(accounts=tuple(store.list()), freshness=store.read_freshness())
