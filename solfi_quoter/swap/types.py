from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any

from solfi_quoter.common.conversions import to_int, to_str_tuple

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SOLFI_PROGRAM_ID = "SoLFiHG9TfgtdUXUjWAxi3LtvYuFyDLVhBWxdMZxyCe"

SOLFI_MARKETS: tuple[str, ...] = (
    "5guD4Uz462GT4Y4gEuqyGsHZ59JGxFN4a3rF6KWguMcJ",
    "DH4xmaWDnTzKXehVaPSNy9tMKJxnYL5Mo5U3oTHFtNYJ",
    "AHhiY6GAKfBkvseQDQbBC7qp3fTRNpyZccuEdYSdPFEf",
    "CAPhoEse9xEH95XmdnJjYrZdNCA8xfUWdy3aWymHa1Vj",
)

LAMPORTS_PER_SOL = 1_000_000_000


class SwapDirection(IntEnum):
    """Which side of the pair is the input. The value is the wire discriminant."""

    SOL_TO_USDC = 0
    USDC_TO_SOL = 1

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")

    @classmethod
    def parse(cls, value: str) -> "SwapDirection":
        normalized = (value or "").strip().lower().replace("_", "-")
        for direction in cls:
            if str(direction) == normalized:
                return direction
        raise ValueError(f"Unknown swap direction: {value!r}")


@dataclass(slots=True, frozen=True)
class TokenSide:
    mint: str
    decimals: int

    @property
    def is_native(self) -> bool:
        return self.mint == SOL_MINT

    def to_atomic(self, amount: float) -> int:
        if amount < 0:
            raise ValueError(f"Swap amount must be non-negative, got {amount}")
        return int(round(amount * 10**self.decimals))

    def from_atomic(self, raw: int) -> float:
        return raw / 10**self.decimals


@dataclass(slots=True, frozen=True)
class PairConfig:
    symbol: str
    base_mint: str
    quote_mint: str
    base_decimals: int
    quote_decimals: int
    program_id: str
    markets: tuple[str, ...]

    @classmethod
    def from_env(cls) -> "PairConfig":
        return cls(
            symbol=os.getenv("PAIR_SYMBOL", "SOL/USDC"),
            base_mint=os.getenv("PAIR_BASE_MINT", SOL_MINT),
            quote_mint=os.getenv("PAIR_QUOTE_MINT", USDC_MINT),
            base_decimals=to_int(os.getenv("PAIR_BASE_DECIMALS"), 9),
            quote_decimals=to_int(os.getenv("PAIR_QUOTE_DECIMALS"), 6),
            program_id=os.getenv("SOLFI_PROGRAM_ID", SOLFI_PROGRAM_ID).strip() or SOLFI_PROGRAM_ID,
            markets=to_str_tuple(os.getenv("SOLFI_MARKETS"), SOLFI_MARKETS),
        )

    @property
    def base(self) -> TokenSide:
        return TokenSide(mint=self.base_mint, decimals=self.base_decimals)

    @property
    def quote(self) -> TokenSide:
        return TokenSide(mint=self.quote_mint, decimals=self.quote_decimals)

    def input_side(self, direction: SwapDirection) -> TokenSide:
        return self.base if direction is SwapDirection.SOL_TO_USDC else self.quote

    def output_side(self, direction: SwapDirection) -> TokenSide:
        return self.quote if direction is SwapDirection.SOL_TO_USDC else self.base


DEFAULT_PAIR = PairConfig(
    symbol="SOL/USDC",
    base_mint=SOL_MINT,
    quote_mint=USDC_MINT,
    base_decimals=9,
    quote_decimals=6,
    program_id=SOLFI_PROGRAM_ID,
    markets=SOLFI_MARKETS,
)


@dataclass(slots=True, frozen=True)
class VenueQuote:
    venue: str
    amount_in: float
    amount_out: float | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.amount_out is None) == (self.error is None):
            raise ValueError("VenueQuote needs exactly one of amount_out or error")

    @property
    def succeeded(self) -> bool:
        return self.amount_out is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def best_quote(quotes: list[VenueQuote]) -> VenueQuote | None:
    """Successful quote with the largest strictly positive output; first venue wins ties."""
    best: VenueQuote | None = None
    for quote in quotes:
        if quote.amount_out is None or quote.amount_out <= 0:
            continue
        if best is None or quote.amount_out > (best.amount_out or 0.0):
            best = quote
    return best
