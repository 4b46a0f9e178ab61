from .solver import (
    Candidate,
    Continue,
    Converged,
    Diverged,
    SolverPolicy,
    SolverResult,
    solve,
    step,
)
from .spreads import NoSpreadDataError, SpreadAnalyzer, SpreadResult, compute_spread
from .tiers import (
    DEFAULT_BUY_SEED_PREMIUM,
    DEFAULT_PRICE_TIERS,
    DEFAULT_PRICE_USDC,
    PriceBoard,
    PriceQuote,
    PricesResponse,
    SellSimulationError,
)

__all__ = [
    "Candidate",
    "Continue",
    "Converged",
    "DEFAULT_BUY_SEED_PREMIUM",
    "DEFAULT_PRICE_TIERS",
    "DEFAULT_PRICE_USDC",
    "Diverged",
    "NoSpreadDataError",
    "PriceBoard",
    "PriceQuote",
    "PricesResponse",
    "SellSimulationError",
    "SolverPolicy",
    "SolverResult",
    "SpreadAnalyzer",
    "SpreadResult",
    "compute_spread",
    "solve",
    "step",
]
