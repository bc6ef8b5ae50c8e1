"""A single server connection and its worker task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, wait_fixed

from ..constants import (
    DEFAULT_CHANTYPES,
    IRC_CONNECT_TIMEOUT,
    IRC_ENCODING,
    IRC_READ_LIMIT,
    IRC_RECONNECT_DELAY,
)
from ..errors import ConnectError, EngineError, log_error
from ..logs.logger import logger
from .address import normalize
from .channel import Channel
from .dispatcher import IRCDispatcher
from .hooks import ConnectEvent, HookKind, HookRegistry
from .login import perform_login
from .models import ConnectionState, PrefixMap, UserMode
from .parser import format_command

if TYPE_CHECKING:  # pragma: no cover
    from ..config.model import ServerSettings
    from .registry import ConnectionRegistry


class Connection:
    """One IRC server connection.

    The connection owns its channels and runs on a single worker task
    (``start``). Everything a connection does, including hook delivery,
    happens on that task, so its events arrive in wire order.
    """

    def __init__(
        self,
        name: str,
        settings: ServerSettings,
        hooks: HookRegistry | None = None,
        registry: ConnectionRegistry | None = None,
        *,
        channel_factory: Callable[[Connection, str], Channel] = Channel,
        reconnect_delay: float = IRC_RECONNECT_DELAY,
    ):
        self.name = name
        self.settings = settings
        self.host = settings.host
        self.port = settings.port
        self.hooks = hooks if hooks is not None else HookRegistry()
        self.registry = registry
        self.channel_factory = channel_factory
        self.reconnect_delay = reconnect_delay

        self.state = ConnectionState.CONNECTING
        self.candidate_nicks: list[str] = list(settings.nicks)
        self.nick: str | None = None
        self.user_modes = UserMode.NONE
        self.channels: dict[str, Channel] = {}
        self.prefix_map = PrefixMap()
        self.chantypes = DEFAULT_CHANTYPES
        self.network: str | None = None
        self.auto_reconnect = settings.auto_reconnect
        self.pending_initial_channels: list[str] = list(settings.channels)
        self.last_error: EngineError | None = None
        self.attempts = 0

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.dispatcher = IRCDispatcher(self)
        # Channels to join again after a reconnect, keyed by case-folded name
        self._rejoin: dict[str, str] = {}
        self._quit_requested = False
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"Connection({self.name!r}, {self.host}:{self.port}, {self.state.name})"

    @property
    def nnick(self) -> str:
        return normalize(self.nick)

    @property
    def is_running(self) -> bool:
        return self.state == ConnectionState.RUNNING

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def _set_state(self, new_state: ConnectionState) -> None:
        if self.state == ConnectionState.QUITTING and new_state != ConnectionState.CLOSED:
            return
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.name,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    def set_nick(self, nick: str) -> None:
        if nick != self.nick:
            logger.log_event(
                "irc", "nick_set", level=logging.DEBUG, user=self.name, nick=nick
            )
        self.nick = nick

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            # Registered before the task first runs so waiters see it at once.
            if self.registry is not None:
                self.registry.add(self)
            self._task = asyncio.create_task(self.run(), name=f"irc-{self.name}")
        return self._task

    async def wait(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def _should_retry(self, error: BaseException) -> bool:
        return (
            isinstance(error, ConnectError)
            and self.auto_reconnect
            and not self._quit_requested
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        logger.log_event(
            "irc",
            "reconnect_wait",
            level=logging.WARNING,
            user=self.name,
            delay=self.reconnect_delay,
            attempt=retry_state.attempt_number,
        )

    async def run(self) -> None:
        """Worker body: connect, stay connected, reconnect while allowed."""
        if self.registry is not None:
            self.registry.add(self)
        try:
            retrying = AsyncRetrying(
                wait=wait_fixed(self.reconnect_delay),
                retry=retry_if_exception(self._should_retry),
                before_sleep=self._before_sleep,
                reraise=True,
            )
            await retrying(self._attempt)
        except ConnectError as e:
            logger.log_event(
                "irc", "gave_up", level=logging.WARNING, user=self.name, error=str(e)
            )
        except Exception as e:  # noqa: BLE001
            error = EngineError(
                f"worker crashed: {e}", host=self.host, port=self.port
            )
            error.__cause__ = e
            self.last_error = error
            log_error("Connection worker crashed", error, user=self.name, exc_info=True)
        finally:
            self._set_state(ConnectionState.CLOSED)
            if self.registry is not None:
                self.registry.remove(self)
            logger.log_event("irc", "closed", user=self.name, attempts=self.attempts)

    async def _attempt(self) -> None:
        if self._quit_requested:
            return
        self.attempts += 1
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._open()
            result = await perform_login(self)
            if not result.ok:
                await self._send_quietly("QUIT")
                raise ConnectError(
                    f"login failed: {result.reason}", host=self.host, port=self.port
                )
            # After a quit during login only the server's close is awaited.
            if not self._quit_requested:
                await self._on_login(result.nick or self.candidate_nicks[0])
            await self._receive_loop()
            if not self._quit_requested:
                raise ConnectError(
                    "connection closed by server", host=self.host, port=self.port
                )
        except ConnectError as e:
            self._fail(e)
            raise
        except OSError as e:
            error = ConnectError(f"socket error: {e}", host=self.host, port=self.port)
            self._fail(error)
            raise error from e
        finally:
            await self._close()

    def _fail(self, error: ConnectError) -> None:
        self.last_error = error
        if self.state != ConnectionState.QUITTING:
            self._set_state(ConnectionState.FAILED)
        log_error("Connection attempt failed", error, user=self.name, level=logging.WARNING)

    async def _open(self) -> None:
        logger.log_event(
            "irc", "connecting", user=self.name, host=self.host, port=self.port
        )
        self.reader, self.writer = await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port, limit=IRC_READ_LIMIT),
            timeout=IRC_CONNECT_TIMEOUT,
        )

    async def _on_login(self, nick: str) -> None:
        self.set_nick(nick)
        self._set_state(ConnectionState.RUNNING)
        logger.log_event("irc", "connected", user=self.name, nick=nick)
        initial, self.pending_initial_channels = self.pending_initial_channels, []
        for name in initial:
            self._rejoin.setdefault(normalize(name), name)
            await self.send_command("JOIN", name)
        await self.hooks.emit(HookKind.CONNECTED, ConnectEvent(self, nick))

    async def _receive_loop(self) -> None:
        while True:
            line = await self.read_line()
            if line is None:
                logger.log_event(
                    "irc", "connection_lost", level=logging.WARNING, user=self.name
                )
                return
            if line:
                await self.dispatcher.process_line(line)

    async def read_line(self) -> str | None:
        """Next received line without its terminator, or None at end of stream."""
        if self.reader is None:
            return None
        while True:
            try:
                data = await self.reader.readline()
            except ValueError:
                # Line longer than the stream limit; the reader discarded it.
                logger.log_event(
                    "irc", "line_too_long", level=logging.WARNING, user=self.name
                )
                continue
            if not data:
                return None
            return data.decode(IRC_ENCODING, errors="replace").rstrip("\r\n")

    async def _close(self) -> None:
        writer, self.writer, self.reader = self.writer, None, None
        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except OSError as e:
                logger.log_event(
                    "irc",
                    "close_error",
                    level=logging.DEBUG,
                    user=self.name,
                    error=str(e),
                )
        self._drop_channels()

    def _drop_channels(self) -> None:
        rejoin = list(self._rejoin.values())
        self._rejoin = {}
        for chan in self.channels.values():
            chan.clear()
        self.channels.clear()
        self.user_modes = UserMode.NONE
        if rejoin and not self._quit_requested:
            known = {normalize(n) for n in self.pending_initial_channels}
            for name in rejoin:
                if normalize(name) not in known:
                    known.add(normalize(name))
                    self.pending_initial_channels.append(name)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------
    async def _send_line(self, line: str) -> bool:
        if not self.writer:
            return False
        self.writer.write(f"{line}\r\n".encode(IRC_ENCODING))
        await self.writer.drain()
        return True

    async def send_raw(self, command: str, *args: object) -> bool:
        """Send regardless of state; used for login, PONG and QUIT."""
        line = format_command(command, *args)
        logger.log_event(
            "irc",
            "send",
            level=logging.DEBUG,
            user=self.name,
            raw=line if command != "PASS" else "PASS ****",
        )
        return await self._send_line(line)

    async def _send_quietly(self, command: str, *args: object) -> None:
        try:
            await self.send_raw(command, *args)
        except OSError as e:
            logger.log_event(
                "irc", "send_failed", level=logging.DEBUG, user=self.name, error=str(e)
            )

    async def send_command(self, command: str, *args: object) -> bool:
        """Send a command if the connection is RUNNING; False otherwise."""
        if self.state != ConnectionState.RUNNING:
            logger.log_event(
                "irc",
                "send_not_running",
                level=logging.DEBUG,
                user=self.name,
                command=command,
                state=self.state.name,
            )
            return False
        return await self.send_raw(command, *args)

    async def quit(self, reason: str | None = None) -> None:
        self._quit_requested = True
        self.auto_reconnect = False
        self._set_state(ConnectionState.QUITTING)
        logger.log_event("irc", "quitting", user=self.name, reason=reason or "")
        if reason:
            await self._send_quietly("QUIT", reason)
        else:
            await self._send_quietly("QUIT")

    async def join(self, channel: str, force: bool = False) -> bool:
        if self.get_channel(channel) is not None and not force:
            return False
        return await self.send_command("JOIN", channel)

    async def part(
        self, channel: str, reason: str | None = None, force: bool = False
    ) -> bool:
        chan = self.get_channel(channel)
        if chan is not None:
            return await chan.part(reason)
        if not force:
            return False
        if reason:
            return await self.send_command("PART", channel, reason)
        return await self.send_command("PART", channel)

    async def privmsg(self, to: str, text: object) -> bool:
        return await self.send_command("PRIVMSG", to, str(text))

    async def notice(self, to: str, text: object) -> bool:
        return await self.send_command("NOTICE", to, str(text))

    async def action(self, to: str, text: object) -> bool:
        return await self.send_command("PRIVMSG", to, f"\x01ACTION {text}\x01")

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------
    def is_channel_name(self, name: str | None) -> bool:
        return bool(name) and name[0] in self.chantypes

    def get_channel(self, name: str | None) -> Channel | None:
        return self.channels.get(normalize(name)) if name else None

    def open_channel(self, name: str) -> Channel:
        chan = self.get_channel(name)
        if chan is None:
            chan = self.channel_factory(self, name)
            self.channels[chan.nname] = chan
            self._rejoin.setdefault(chan.nname, name)
            logger.log_event("channel", "joined", user=self.name, channel=name)
        return chan

    def forget_channel(self, channel: Channel) -> None:
        self._rejoin.pop(channel.nname, None)
        if self.channels.get(channel.nname) is channel:
            del self.channels[channel.nname]
        channel.clear()
