from .engine import DEFAULT_SWAP_AMOUNT, QuoteEngine, default_payer
from .sandbox import (
    TOKEN_ACCOUNT_LEN,
    ExecutionSandbox,
    SandboxFactory,
    SandboxRejection,
    SandboxSetupError,
    SandboxTransaction,
    encode_token_account,
    funded_token_account,
    token_amount,
)

__all__ = [
    "DEFAULT_SWAP_AMOUNT",
    "ExecutionSandbox",
    "QuoteEngine",
    "SandboxFactory",
    "SandboxRejection",
    "SandboxSetupError",
    "SandboxTransaction",
    "TOKEN_ACCOUNT_LEN",
    "default_payer",
    "encode_token_account",
    "funded_token_account",
    "token_amount",
]
