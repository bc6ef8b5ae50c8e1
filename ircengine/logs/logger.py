"""Structured event logger for the IRC engine."""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

import colorlog

from .event_catalog import catalog


def _supports_color(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except Exception:  # pragma: no cover
        return False


def _build_console_formatter(stream: TextIO) -> logging.Formatter:
    # Fixed width for level names so the following prefix column aligns.
    if not _supports_color(stream):
        return logging.Formatter("%(levelname)-8s %(message)s")
    return colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "magenta",
        },
        secondary_log_colors={
            "message": {
                "ERROR": "red",
                "CRITICAL": "magenta",
            }
        },
        reset=True,
    )


class EngineLogger:
    def __init__(self, name: str = "ircengine", log_file: str | None = None) -> None:
        self._event_name_width = 32
        self.logger = logging.getLogger(name)
        self.log_file = log_file
        self.logger.handlers.clear()
        self.logger.setLevel(logging.DEBUG if self._is_debug_enabled() else logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_build_console_formatter(sys.stdout))
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )
            self.logger.addHandler(file_handler)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        """Log one named event.

        The event name is ``<domain>_<action>``. Human text comes from the
        ``human`` argument, else from the event template catalog formatted with
        ``kwargs``, else it is derived from the event name. ``user`` and
        ``channel`` keyword arguments become the line prefix.
        """
        event_name = f"{domain}_{action}".lower()
        human_text = human
        derived = False
        if human_text is None:
            human_text = catalog.render(domain, action, kwargs)
            if human_text is None:
                human_text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
                derived = True
        kwargs.setdefault("_human_text", human_text)
        if derived:
            kwargs.setdefault("derived", True)
        self._log(level, event_name, exc_info=exc_info, **kwargs)

    def _log(
        self, level: int, event_name: str, exc_info: bool = False, **kwargs: object
    ) -> None:
        kw: dict[str, object] = dict(kwargs)
        user, channel, human_text = self._extract_reserved(kw)
        prefix = self._build_prefix(user, channel)
        if self._is_debug_enabled():
            msg = self._build_debug_message(event_name, prefix, human_text, kw)
        else:
            msg = f"{prefix} {human_text or event_name}"
        self.logger.log(level, msg, exc_info=exc_info)

    @staticmethod
    def _is_debug_enabled() -> bool:
        return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")

    @staticmethod
    def _extract_reserved(
        kwargs: dict[str, object],
    ) -> tuple[str | None, str | None, str | None]:
        user_o = kwargs.pop("user", None)
        channel_o = kwargs.pop("channel", None)
        human_text_o = kwargs.pop("_human_text", None)
        user = user_o if isinstance(user_o, str) else None
        channel = channel_o if isinstance(channel_o, str) else None
        human_text = human_text_o if isinstance(human_text_o, str) else None
        return user, channel, human_text

    @staticmethod
    def _build_prefix(user: str | None, channel: str | None) -> str:
        user_label = user or "system"
        core = f"{user_label}{channel}" if channel else user_label
        padded = core.ljust(24)[:24]
        return f"[{padded}]"

    def _build_debug_message(
        self,
        event_name: str,
        prefix: str,
        human_text: str | None,
        kwargs: dict[str, object],
    ) -> str:
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        width = self._event_name_width
        if len(event_name) <= width:
            ev = event_name.ljust(width)
        else:  # truncate but keep rightmost indicator
            ev = event_name[: width - 1] + "…"
        base = f"{ev} {prefix}"
        if human_text:
            base = f"{base} {human_text}"
        if context:
            base = f"{base} ({context})"
        return base


logger = EngineLogger()
if catalog.load_error:
    logger.log_event(
        "app", "templates_unavailable", level=logging.WARNING, error=catalog.load_error
    )
