from .async_utils import guarded_call, wait_with_stop
from .conversions import to_float, to_int
from .logging import log_event, setup_logger

__all__ = [
    "guarded_call",
    "log_event",
    "setup_logger",
    "to_float",
    "to_int",
    "wait_with_stop",
]
