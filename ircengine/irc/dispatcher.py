"""Connection-level routing of received lines."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..errors import HandlerError, ParseError, log_error
from ..logs.logger import logger
from .address import Address, normalize
from .hooks import CommandEvent, HookKind, MessageEvent, ReplyEvent
from .models import USER_MODE_LETTERS, Numeric, PrefixMap, UserMode
from .parser import IRCMessage, parse_line

if TYPE_CHECKING:  # pragma: no cover
    from .connection import Connection

# Commands whose first parameter is never a channel to forward to.
_UNROUTED_COMMANDS = frozenset({"QUIT", "NICK", "PING", "PONG", "ERROR", "AWAY"})
_NAMES_SYMBOLS = ("=", "*", "@")
_ISUPPORT_RE = re.compile(r"^(?P<key>[A-Z0-9]+)=(?P<value>\S*)$")


class IRCDispatcher:
    def __init__(self, connection: Connection):
        self.connection = connection

    async def process_line(self, line: str) -> IRCMessage | None:
        """Parse one received line and route it; malformed lines are dropped."""
        conn = self.connection
        try:
            message = parse_line(line)
        except ParseError as e:
            logger.log_event(
                "irc",
                "parse_error",
                level=logging.WARNING,
                user=conn.name,
                error=str(e),
                raw=line,
            )
            return None
        logger.log_event("irc", "raw", level=logging.DEBUG, user=conn.name, raw=line)
        await self.process_message(message)
        return message

    async def process_message(self, message: IRCMessage) -> None:
        """Route a parsed message; a failure is logged and the line abandoned."""
        conn = self.connection
        try:
            actor = Address(message.prefix, conn)
            if message.numeric is not None:
                await self.handle_reply(message.numeric, message.params)
            else:
                await self.handle_command(actor, message.command, message.params)
        except Exception as e:  # noqa: BLE001
            error = HandlerError(
                f"failed to handle {message.command}: {e}",
                stage="dispatch",
                host=conn.host,
                port=conn.port,
                line=message.raw,
            )
            error.__cause__ = e
            log_error("Line handler raised", error, user=conn.name, exc_info=True)

    # ------------------------------------------------------------------
    # Numeric replies
    # ------------------------------------------------------------------
    async def handle_reply(self, code: int, params: Sequence[str]) -> None:
        conn = self.connection
        if not params or normalize(params[0]) != conn.nnick:
            logger.log_event(
                "irc",
                "reply_not_for_us",
                level=logging.DEBUG,
                user=conn.name,
                code=code,
                to=params[0] if params else None,
            )
            return
        data = tuple(params[1:])

        if code == Numeric.RPL_NAMREPLY and len(data) > 1 and data[0] in _NAMES_SYMBOLS:
            target = data[1]
        else:
            target = data[0] if data else None
        channel = conn.get_channel(target) if conn.is_channel_name(target) else None
        if channel is not None:
            await channel.handle_reply(code, data)
            return

        handled = True
        if code == Numeric.RPL_UMODEIS and data:
            self._apply_user_modes(data[0])
        elif code == Numeric.RPL_ISUPPORT:
            self._apply_isupport(data)
        elif code == Numeric.RPL_WHOISUSER and len(data) >= 3:
            mask = f"{data[0]}!{data[1]}@{data[2]}"
            for chan in list(conn.channels.values()):
                chan.refresh_mask(mask)
        elif code != Numeric.RPL_ENDOFWHOIS:
            handled = False
        await conn.hooks.emit(
            HookKind.SERVER_REPLY, ReplyEvent(conn, None, handled, code, data)
        )

    def _apply_user_modes(self, modes: str) -> None:
        conn = self.connection
        enable = True
        for letter in modes:
            if letter in "+-":
                enable = letter == "+"
                continue
            bit = USER_MODE_LETTERS.get(letter)
            if bit is None:
                continue
            conn.user_modes = (conn.user_modes | bit) if enable else (conn.user_modes & ~bit)
        logger.log_event(
            "irc",
            "user_modes",
            level=logging.DEBUG,
            user=conn.name,
            modes=_describe_user_modes(conn.user_modes),
        )

    def _apply_isupport(self, tokens: Sequence[str]) -> None:
        conn = self.connection
        for token in tokens:
            m = _ISUPPORT_RE.match(token)
            if not m:
                continue
            key, value = m.group("key", "value")
            if key == "PREFIX":
                pmap = PrefixMap.parse(value)
                if pmap is None:
                    logger.log_event(
                        "irc",
                        "isupport_invalid",
                        level=logging.WARNING,
                        user=conn.name,
                        token=token,
                    )
                    continue
                conn.prefix_map = pmap
            elif key == "CHANTYPES" and value:
                conn.chantypes = value
            elif key == "NETWORK" and value:
                conn.network = value
            else:
                continue
            logger.log_event(
                "irc", "isupport", level=logging.DEBUG, user=conn.name, key=key, value=value
            )

    # ------------------------------------------------------------------
    # Named commands
    # ------------------------------------------------------------------
    async def handle_command(
        self, actor: Address, command: str, params: Sequence[str]
    ) -> None:
        conn = self.connection
        target = params[0] if params else None
        if command not in _UNROUTED_COMMANDS and conn.is_channel_name(target):
            channel = conn.get_channel(target)
            if channel is not None:
                await channel.handle_command(actor, command, params[1:])
                return

        handled = True
        is_self = bool(actor.nick) and actor.nnick == conn.nnick
        if command == "PING":
            await conn.send_raw("PONG", *params)
        elif command == "NICK" and target:
            if is_self:
                conn.set_nick(target)
            for chan in list(conn.channels.values()):
                chan.nick_change(actor.nick or "", target)
        elif command == "JOIN" and target:
            if is_self:
                chan = conn.open_channel(target)
                await chan.request_modes()
                await chan.request_who()
                await chan.handle_command(actor, command, params[1:])
        elif command == "MODE" and target:
            if normalize(target) == conn.nnick:
                self._apply_user_modes("".join(params[1:2]))
            else:
                handled = False
        elif command in ("PRIVMSG", "NOTICE") and target:
            if normalize(target) == conn.nnick:
                kind = (
                    HookKind.PRIVATE_MESSAGE
                    if command == "PRIVMSG"
                    else HookKind.PRIVATE_NOTICE
                )
                text = params[1] if len(params) > 1 else ""
                await conn.hooks.emit(kind, MessageEvent(conn, actor, target, text))
        elif command == "QUIT":
            for chan in list(conn.channels.values()):
                if actor.nnick in chan.members:
                    await chan.handle_command(actor, command, params)
        elif command == "ERROR":
            logger.log_event(
                "irc",
                "server_error",
                level=logging.WARNING,
                user=conn.name,
                reason=params[-1] if params else "",
            )
        else:
            handled = False

        await conn.hooks.emit(
            HookKind.SERVER_COMMAND,
            CommandEvent(conn, None, handled, actor, command, tuple(params)),
        )


def _describe_user_modes(modes: UserMode) -> str:
    return "".join(letter for letter, bit in USER_MODE_LETTERS.items() if modes & bit)
