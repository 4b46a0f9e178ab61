from .refresher import run_snapshot_refresher
from .rpc import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PriceRpcService,
    RpcMethodError,
    rpc_error,
    rpc_result,
)

__all__ = [
    "INTERNAL_ERROR",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "PriceRpcService",
    "RpcMethodError",
    "rpc_error",
    "rpc_result",
    "run_snapshot_refresher",
]
