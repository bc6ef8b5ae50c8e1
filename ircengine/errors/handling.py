from __future__ import annotations

import logging

from ..logs.logger import logger
from .engine import ConnectError, EngineError, HandlerError, ParseError


def _error_type(error: BaseException) -> str:
    if isinstance(error, ConnectError | OSError):
        return "network"
    if isinstance(error, ParseError):
        return "parsing"
    if isinstance(error, HandlerError):
        return "handler"
    return "internal"


def log_error(
    message: str,
    error: BaseException,
    *,
    user: str | None = None,
    level: int = logging.ERROR,
    exc_info: bool = False,
    **context: object,
) -> None:
    """Log an error with its category and any context it carries.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        user: Connection name used as the log line prefix.
        level: Logging level, ERROR by default.
        exc_info: Attach the traceback of the exception being handled.
        **context: Extra key/value pairs included in debug output.
    """
    if isinstance(error, EngineError):
        for key, value in error.context().items():
            context.setdefault(key, value)
    cause = error.__cause__
    logger.log_event(
        "error",
        "logged",
        level=level,
        exc_info=exc_info,
        message=message,
        user=user,
        error=str(error),
        error_type=_error_type(error),
        cause=type(cause).__name__ if cause is not None else None,
        **context,
    )
