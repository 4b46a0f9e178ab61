from __future__ import annotations

import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.sysvar import INSTRUCTIONS
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from .types import SwapDirection

SWAP_OPCODE = 7
SWAP_DATA_LEN = 18
U64_MAX = 2**64 - 1

# opcode, amount_in (u64 LE), 8 reserved bytes, direction
_SWAP_LAYOUT = struct.Struct("<BQ8xB")


class InvalidSwapDataError(ValueError):
    pass


def encode_swap_data(direction: SwapDirection, amount_in: int) -> bytes:
    if not 0 <= amount_in <= U64_MAX:
        raise ValueError(f"amount_in does not fit in u64: {amount_in}")
    return _SWAP_LAYOUT.pack(SWAP_OPCODE, amount_in, int(direction))


def decode_swap_data(data: bytes) -> tuple[SwapDirection, int]:
    if len(data) != SWAP_DATA_LEN:
        raise InvalidSwapDataError(f"Swap data must be {SWAP_DATA_LEN} bytes, got {len(data)}")

    opcode, amount_in, raw_direction = _SWAP_LAYOUT.unpack(data)
    if opcode != SWAP_OPCODE:
        raise InvalidSwapDataError(f"Unexpected swap opcode: {opcode}")
    if any(data[9:17]):
        raise InvalidSwapDataError("Reserved swap bytes must be zero")
    try:
        direction = SwapDirection(raw_direction)
    except ValueError as error:
        raise InvalidSwapDataError(f"Unknown direction discriminant: {raw_direction}") from error
    return direction, amount_in


def build_swap_instruction(
    *,
    program_id: Pubkey,
    direction: SwapDirection,
    market: Pubkey,
    user: Pubkey,
    token_a: Pubkey,
    token_b: Pubkey,
    amount_in: int,
) -> Instruction:
    accounts = [
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),
        AccountMeta(pubkey=market, is_signer=False, is_writable=True),
        AccountMeta(pubkey=get_associated_token_address(market, token_a), is_signer=False, is_writable=True),
        AccountMeta(pubkey=get_associated_token_address(market, token_b), is_signer=False, is_writable=True),
        AccountMeta(pubkey=get_associated_token_address(user, token_a), is_signer=False, is_writable=True),
        AccountMeta(pubkey=get_associated_token_address(user, token_b), is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=INSTRUCTIONS, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, encode_swap_data(direction, amount_in), accounts)
