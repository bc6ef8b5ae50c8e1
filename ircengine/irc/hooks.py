"""Hook surface: a closed set of event kinds with fixed payloads.

Consumers subscribe callbacks per ``HookKind``. For every inbound event the
engine first updates its model, then emits the matching hook. Callbacks run
in registration order, one at a time, on the connection's own task, so each
connection delivers a single ordered event stream. A failing callback is
logged and skipped; the remaining callbacks still run.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import HandlerError, log_error
from ..logs.logger import logger

if TYPE_CHECKING:  # pragma: no cover
    from .address import Address
    from .channel import Channel
    from .connection import Connection


class HookKind(Enum):
    PRIVATE_MESSAGE = "privmsg_priv"
    PRIVATE_NOTICE = "notice_priv"
    CHANNEL_MESSAGE = "privmsg_chan"
    CHANNEL_NOTICE = "notice_chan"
    JOIN = "join_chan"
    PART = "part_chan"
    TOPIC = "topic_chan"
    CHANNEL_INIT = "init_chan"
    CHANNEL_COMMAND = "command_chan"
    SERVER_COMMAND = "command_serv"
    CHANNEL_REPLY = "reply_chan"
    SERVER_REPLY = "reply_serv"
    CONNECTED = "connected"


@dataclass(frozen=True, slots=True)
class MessageEvent:
    connection: Connection
    sender: Address
    target: str
    text: str
    channel: Channel | None = None


@dataclass(frozen=True, slots=True)
class MembershipEvent:
    connection: Connection
    channel: Channel
    member: Address


@dataclass(frozen=True, slots=True)
class TopicEvent:
    connection: Connection
    channel: Channel
    actor: Address | None
    topic: str | None
    previous_topic: str | None


@dataclass(frozen=True, slots=True)
class ChannelEvent:
    connection: Connection
    channel: Channel


@dataclass(frozen=True, slots=True)
class CommandEvent:
    connection: Connection
    channel: Channel | None
    handled: bool
    actor: Address
    command: str
    args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ReplyEvent:
    connection: Connection
    channel: Channel | None
    handled: bool
    code: int
    args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ConnectEvent:
    connection: Connection
    nick: str


HookEvent = (
    MessageEvent
    | MembershipEvent
    | TopicEvent
    | ChannelEvent
    | CommandEvent
    | ReplyEvent
    | ConnectEvent
)
HookCallback = Callable[[Any], Awaitable[None] | None]

PAYLOAD_TYPES: dict[HookKind, type] = {
    HookKind.PRIVATE_MESSAGE: MessageEvent,
    HookKind.PRIVATE_NOTICE: MessageEvent,
    HookKind.CHANNEL_MESSAGE: MessageEvent,
    HookKind.CHANNEL_NOTICE: MessageEvent,
    HookKind.JOIN: MembershipEvent,
    HookKind.PART: MembershipEvent,
    HookKind.TOPIC: TopicEvent,
    HookKind.CHANNEL_INIT: ChannelEvent,
    HookKind.CHANNEL_COMMAND: CommandEvent,
    HookKind.SERVER_COMMAND: CommandEvent,
    HookKind.CHANNEL_REPLY: ReplyEvent,
    HookKind.SERVER_REPLY: ReplyEvent,
    HookKind.CONNECTED: ConnectEvent,
}


class HookRegistry:
    def __init__(self) -> None:
        self._callbacks: dict[HookKind, list[HookCallback]] = {
            kind: [] for kind in HookKind
        }

    def subscribe(self, kind: HookKind, callback: HookCallback) -> HookCallback:
        """Register ``callback`` for ``kind``; returns it so this works as a decorator."""
        self._callbacks[kind].append(callback)
        logger.log_event(
            "hook",
            "subscribed",
            level=logging.DEBUG,
            hook=kind.value,
            callback=getattr(callback, "__qualname__", repr(callback)),
        )
        return callback

    def on(self, kind: HookKind) -> Callable[[HookCallback], HookCallback]:
        def decorator(callback: HookCallback) -> HookCallback:
            return self.subscribe(kind, callback)

        return decorator

    def unsubscribe(self, kind: HookKind, callback: HookCallback) -> bool:
        try:
            self._callbacks[kind].remove(callback)
        except ValueError:
            return False
        return True

    def callbacks(self, kind: HookKind) -> tuple[HookCallback, ...]:
        return tuple(self._callbacks[kind])

    async def emit(self, kind: HookKind, event: HookEvent) -> None:
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(event, expected):
            raise TypeError(
                f"{kind.name} expects {expected.__name__}, got {type(event).__name__}"
            )
        # Snapshot so a callback (un)subscribing does not disturb this delivery.
        for callback in tuple(self._callbacks[kind]):
            await self._invoke(kind, callback, event)

    async def _invoke(
        self, kind: HookKind, callback: HookCallback, event: HookEvent
    ) -> None:
        try:
            result = callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            conn = getattr(event, "connection", None)
            error = HandlerError(
                f"hook callback failed: {e}",
                stage=f"hook:{kind.value}",
                host=getattr(conn, "host", None),
                port=getattr(conn, "port", None),
            )
            error.__cause__ = e
            log_error(
                "Hook callback raised",
                error,
                user=getattr(conn, "name", None),
                exc_info=True,
                hook=kind.value,
                callback=getattr(callback, "__qualname__", repr(callback)),
            )
