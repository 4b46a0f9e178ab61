from .instruction import (
    SWAP_DATA_LEN,
    SWAP_OPCODE,
    U64_MAX,
    InvalidSwapDataError,
    build_swap_instruction,
    decode_swap_data,
    encode_swap_data,
)
from .types import (
    DEFAULT_PAIR,
    LAMPORTS_PER_SOL,
    SOL_MINT,
    SOLFI_MARKETS,
    SOLFI_PROGRAM_ID,
    USDC_MINT,
    PairConfig,
    SwapDirection,
    TokenSide,
    VenueQuote,
    best_quote,
)

__all__ = [
    "DEFAULT_PAIR",
    "InvalidSwapDataError",
    "LAMPORTS_PER_SOL",
    "PairConfig",
    "SOLFI_MARKETS",
    "SOLFI_PROGRAM_ID",
    "SOL_MINT",
    "SWAP_DATA_LEN",
    "SWAP_OPCODE",
    "SwapDirection",
    "U64_MAX",
    "TokenSide",
    "USDC_MINT",
    "VenueQuote",
    "best_quote",
    "build_swap_instruction",
    "decode_swap_data",
    "encode_swap_data",
]
