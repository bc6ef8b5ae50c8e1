"""Engine error hierarchy.

Classes:
  EngineError   – Base for all engine errors, carries host/port/line context.
  ConnectError  – TCP failure or exhausted login; ends the current attempt.
  ParseError    – One malformed wire line; the line is dropped.
  HandlerError  – A local handler or hook callback failed on one event.
  ScanError     – A listing was requested while one of its kind is open.

Only ConnectError (and raw socket errors on the receive loop) may end a
connection's worker. Everything else is caught per line or per callback.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine errors.

    Args:
        message (str): Error message.
        host (str | None): Server host the error relates to.
        port (int | None): Server port the error relates to.
        line (str | None): Raw protocol line being processed, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        host: str | None = None,
        port: int | None = None,
        line: str | None = None,
    ) -> None:
        super().__init__(message)
        self.host = host
        self.port = port
        self.line = line

    def context(self) -> dict[str, object]:
        ctx: dict[str, object] = {}
        if self.host is not None:
            ctx["host"] = self.host
        if self.port is not None:
            ctx["port"] = self.port
        if self.line is not None:
            ctx["line"] = self.line
        return ctx


class ConnectError(EngineError):
    """Raised when a connection attempt fails.

    Covers TCP connect failures and login failures (every candidate nick
    rejected, ERROR from the server, or EOF before the welcome reply).
    """


class ParseError(EngineError):
    """Raised when a received line does not follow the IRC message grammar."""


class HandlerError(EngineError):
    """Wraps an exception raised while processing a single event.

    The original exception is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        host: str | None = None,
        port: int | None = None,
        line: str | None = None,
    ) -> None:
        super().__init__(message, host=host, port=port, line=line)
        self.stage = stage

    def context(self) -> dict[str, object]:
        ctx = super().context()
        if self.stage is not None:
            ctx["stage"] = self.stage
        return ctx


class ScanError(HandlerError):
    """Raised when a listing is opened while one of the same kind is in progress."""
