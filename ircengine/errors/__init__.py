"""Engine error types and the shared error logging helper."""

from .engine import (  # noqa: F401
    ConnectError,
    EngineError,
    HandlerError,
    ParseError,
    ScanError,
)
from .handling import log_error  # noqa: F401

__all__ = [
    "ConnectError",
    "EngineError",
    "HandlerError",
    "ParseError",
    "ScanError",
    "log_error",
]
