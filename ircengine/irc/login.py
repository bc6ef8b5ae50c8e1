"""Registration with the server: PASS/NICK/USER and the wait for the welcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import IRC_USER_MODE_PARAM
from ..errors import ParseError
from ..logs.logger import logger
from .models import NICK_REJECTIONS, Numeric
from .parser import parse_line

if TYPE_CHECKING:  # pragma: no cover
    from .connection import Connection


@dataclass(frozen=True, slots=True)
class LoginResult:
    ok: bool
    nick: str | None = None
    reason: str | None = None


async def perform_login(connection: Connection) -> LoginResult:
    """Register on an open socket.

    Candidate nicks are tried in order; each nick-rejection numeric moves on
    to the next one. The welcome reply (001) ends the login with the nick
    the server addresses us by. Running out of candidates, an ERROR line or
    the socket closing end it with a failure. Every other line received
    meanwhile (PING included) goes through the regular dispatcher.
    """
    candidates = list(connection.candidate_nicks)
    if not candidates:
        return LoginResult(False, reason="no candidate nicks configured")

    settings = connection.settings
    if settings.password:
        await connection.send_raw("PASS", settings.password)
    index = 0
    await connection.send_raw("NICK", candidates[index])
    await connection.send_raw(
        "USER", settings.user, IRC_USER_MODE_PARAM, "*", settings.realname
    )

    while True:
        line = await connection.read_line()
        if line is None:
            return LoginResult(False, reason="connection closed during login")
        if not line:
            continue
        try:
            message = parse_line(line)
        except ParseError as e:
            logger.log_event(
                "irc",
                "parse_error",
                level=logging.WARNING,
                user=connection.name,
                error=str(e),
                raw=line,
            )
            continue

        if message.numeric == Numeric.RPL_WELCOME:
            nick = message.params[0] if message.params else candidates[index]
            connection.set_nick(nick)
            await connection.dispatcher.process_message(message)
            return LoginResult(True, nick=nick)

        if message.numeric in NICK_REJECTIONS:
            logger.log_event(
                "irc",
                "nick_rejected",
                level=logging.WARNING,
                user=connection.name,
                nick=candidates[index],
                code=message.numeric,
            )
            index += 1
            if index >= len(candidates):
                return LoginResult(False, reason="all candidate nicks rejected")
            await connection.send_raw("NICK", candidates[index])
            continue

        if message.command == "ERROR":
            reason = message.params[-1] if message.params else "ERROR"
            return LoginResult(False, reason=reason)

        await connection.dispatcher.process_message(message)
