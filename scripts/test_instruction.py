from __future__ import annotations

import unittest

from solders.pubkey import Pubkey
from solders.sysvar import INSTRUCTIONS
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from solfi_quoter.swap import (
    SOL_MINT,
    SOLFI_MARKETS,
    SOLFI_PROGRAM_ID,
    SWAP_DATA_LEN,
    U64_MAX,
    USDC_MINT,
    InvalidSwapDataError,
    SwapDirection,
    build_swap_instruction,
    decode_swap_data,
    encode_swap_data,
)


class SwapDataTests(unittest.TestCase):
    def test_sell_base_layout(self) -> None:
        data = encode_swap_data(SwapDirection.SOL_TO_USDC, 1_000_000_000)

        self.assertEqual(len(data), SWAP_DATA_LEN)
        self.assertEqual(data, bytes.fromhex("07" "00ca9a3b00000000" "0000000000000000" "00"))
        self.assertEqual(data[0], 7)
        self.assertEqual(data[1:9], (1_000_000_000).to_bytes(8, "little"))
        self.assertEqual(data[9:17], bytes(8))
        self.assertEqual(data[17], 0)

    def test_buy_base_direction_byte(self) -> None:
        data = encode_swap_data(SwapDirection.USDC_TO_SOL, 1_500_000_000)

        self.assertEqual(data[1:9], (1_500_000_000).to_bytes(8, "little"))
        self.assertEqual(data[17], 1)

    def test_zero_and_max_amounts_encode(self) -> None:
        self.assertEqual(encode_swap_data(SwapDirection.SOL_TO_USDC, 0)[1:9], bytes(8))
        self.assertEqual(encode_swap_data(SwapDirection.SOL_TO_USDC, U64_MAX)[1:9], b"\xff" * 8)

    def test_out_of_range_amount_rejected(self) -> None:
        with self.assertRaises(ValueError):
            encode_swap_data(SwapDirection.SOL_TO_USDC, U64_MAX + 1)
        with self.assertRaises(ValueError):
            encode_swap_data(SwapDirection.SOL_TO_USDC, -1)

    def test_decode_recovers_fields(self) -> None:
        direction, amount = decode_swap_data(encode_swap_data(SwapDirection.USDC_TO_SOL, 42))

        self.assertIs(direction, SwapDirection.USDC_TO_SOL)
        self.assertEqual(amount, 42)

    def test_decode_recovers_amount_bounds_for_both_directions(self) -> None:
        for direction in SwapDirection:
            for amount in (0, 1, 2**32, U64_MAX):
                with self.subTest(direction=str(direction), amount=amount):
                    data = encode_swap_data(direction, amount)

                    self.assertEqual(len(data), SWAP_DATA_LEN)
                    self.assertEqual(decode_swap_data(data), (direction, amount))

    def test_decode_rejects_malformed_payloads(self) -> None:
        valid = encode_swap_data(SwapDirection.SOL_TO_USDC, 5)
        cases = {
            "short": valid[:-1],
            "opcode": b"\x08" + valid[1:],
            "reserved": valid[:9] + b"\x01" + valid[10:],
            "direction": valid[:17] + b"\x02",
        }
        for label, payload in cases.items():
            with self.subTest(label=label), self.assertRaises(InvalidSwapDataError):
                decode_swap_data(payload)


class BuildSwapInstructionTests(unittest.TestCase):
    def test_account_order_and_flags(self) -> None:
        program_id = Pubkey.from_string(SOLFI_PROGRAM_ID)
        market = Pubkey.from_string(SOLFI_MARKETS[0])
        user = Pubkey.new_unique()
        token_a = Pubkey.from_string(SOL_MINT)
        token_b = Pubkey.from_string(USDC_MINT)

        instruction = build_swap_instruction(
            program_id=program_id,
            direction=SwapDirection.SOL_TO_USDC,
            market=market,
            user=user,
            token_a=token_a,
            token_b=token_b,
            amount_in=10,
        )

        self.assertEqual(instruction.program_id, program_id)
        expected = [
            (user, True, True),
            (market, False, True),
            (get_associated_token_address(market, token_a), False, True),
            (get_associated_token_address(market, token_b), False, True),
            (get_associated_token_address(user, token_a), False, True),
            (get_associated_token_address(user, token_b), False, True),
            (TOKEN_PROGRAM_ID, False, False),
            (INSTRUCTIONS, False, False),
        ]
        actual = [(meta.pubkey, meta.is_signer, meta.is_writable) for meta in instruction.accounts]
        self.assertEqual(actual, expected)
        self.assertEqual(bytes(instruction.data), encode_swap_data(SwapDirection.SOL_TO_USDC, 10))


class SwapDirectionTests(unittest.TestCase):
    def test_parse_and_render(self) -> None:
        self.assertIs(SwapDirection.parse("sol-to-usdc"), SwapDirection.SOL_TO_USDC)
        self.assertIs(SwapDirection.parse("USDC_TO_SOL"), SwapDirection.USDC_TO_SOL)
        self.assertEqual(str(SwapDirection.USDC_TO_SOL), "usdc-to-sol")
        with self.assertRaises(ValueError):
            SwapDirection.parse("sideways")


if __name__ == "__main__":
    unittest.main()
