from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Protocol

from solders.account import Account
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

TOKEN_ACCOUNT_LEN = 165
TOKEN_ACCOUNT_RENT_LAMPORTS = 2_039_280

_TOKEN_AMOUNT_OFFSET = 64
_TOKEN_STATE_OFFSET = 108
_TOKEN_STATE_INITIALIZED = 1

# mint, owner, amount, delegate (COption), state, is_native (COption<u64>),
# delegated_amount, close_authority (COption)
_TOKEN_ACCOUNT_LAYOUT = struct.Struct("<32s32sQI32sBIQQI32s")


class SandboxRejection(RuntimeError):
    """The sandbox refused a transaction; ``reason`` is its failure detail."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class SandboxSetupError(RuntimeError):
    pass


@dataclass(slots=True, frozen=True)
class SandboxTransaction:
    payer: Keypair
    instructions: tuple[Instruction, ...]


class ExecutionSandbox(Protocol):
    def load(self, address: Pubkey, account: Account) -> None:
        ...

    def advance_to(self, slot: int) -> None:
        ...

    def fund(self, address: Pubkey, lamports: int) -> None:
        ...

    def submit(self, transaction: SandboxTransaction) -> None:
        ...

    def read_balance(self, address: Pubkey) -> int:
        ...


SandboxFactory = Callable[[], ExecutionSandbox]


def encode_token_account(*, mint: Pubkey, owner: Pubkey, amount: int) -> bytes:
    return _TOKEN_ACCOUNT_LAYOUT.pack(
        bytes(mint),
        bytes(owner),
        amount,
        0,
        bytes(32),
        _TOKEN_STATE_INITIALIZED,
        0,
        0,
        0,
        0,
        bytes(32),
    )


def funded_token_account(*, mint: Pubkey, owner: Pubkey, amount: int) -> Account:
    return Account(
        lamports=TOKEN_ACCOUNT_RENT_LAMPORTS,
        data=encode_token_account(mint=mint, owner=owner, amount=amount),
        owner=TOKEN_PROGRAM_ID,
        executable=False,
        rent_epoch=0,
    )


def token_amount(data: bytes) -> int:
    if len(data) != TOKEN_ACCOUNT_LEN or data[_TOKEN_STATE_OFFSET] == 0:
        return 0
    return struct.unpack_from("<Q", data, _TOKEN_AMOUNT_OFFSET)[0]
