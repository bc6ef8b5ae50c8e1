"""Consumer-side helpers built on the hook surface.

``ServicesAgent`` identifies with NickServ after login and asks ChanServ for
status in configured channels once they are initialised. ``ReplyContext``
answers a message where it came from.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from .config.lookup import ConfigLookup
from .constants import DEFAULT_CHANSERV_NAME, DEFAULT_NICKSERV_NAME
from .irc.hooks import ChannelEvent, ConnectEvent, HookKind, HookRegistry, MessageEvent
from .logs.logger import logger

if TYPE_CHECKING:  # pragma: no cover
    from .irc.address import Address
    from .irc.channel import Channel
    from .irc.connection import Connection


class ServicesAgent:
    """Talks to the network's NickServ and ChanServ on our behalf.

    Reads, per connection name ``<name>``:

    * ``servers/<name>/services/nickserv/password`` and ``.../name``
    * ``servers/<name>/services/chanserv/name``
    * ``servers/<name>/channels/<channel>/chanserv/op`` and ``.../voice``

    Lookups happen on each event, so a reloaded config applies from the
    next login or channel join.
    """

    def __init__(self, config: ConfigLookup):
        self.config = config

    def install(self, hooks: HookRegistry) -> None:
        hooks.subscribe(HookKind.CONNECTED, self.on_connected)
        hooks.subscribe(HookKind.CHANNEL_INIT, self.on_channel_init)

    async def on_connected(self, event: ConnectEvent) -> None:
        conn = event.connection
        nickserv = self.config.get(f"servers/{conn.name}/services/nickserv")
        if not isinstance(nickserv, Mapping) or not nickserv.get("password"):
            return
        name = nickserv.get("name") or DEFAULT_NICKSERV_NAME
        logger.log_event("services", "identify", user=conn.name, service=name)
        await conn.privmsg(name, f"IDENTIFY {nickserv['password']}")

    async def on_channel_init(self, event: ChannelEvent) -> None:
        conn, chan = event.connection, event.channel
        chanserv = self.config.get(
            f"servers/{conn.name}/channels/{chan.nname}/chanserv"
        )
        if not isinstance(chanserv, Mapping):
            return
        name = (
            self.config.get(f"servers/{conn.name}/services/chanserv/name")
            or DEFAULT_CHANSERV_NAME
        )
        for request, key in (("OP", "op"), ("VOICE", "voice")):
            if chanserv.get(key):
                logger.log_event(
                    "services",
                    "request_status",
                    level=logging.DEBUG,
                    user=conn.name,
                    channel=chan.name,
                    service=name,
                    request=request,
                )
                await conn.privmsg(name, f"{request} {chan.name}")


class ReplyContext:
    """Where to answer a received message: the channel, or the sender privately.

    ``reply`` addresses the sender by nick when answering in a channel;
    ``respond`` does not. Both use NOTICE instead of PRIVMSG when
    ``comm/use-notices`` is set.
    """

    def __init__(
        self,
        sender: Address,
        connection: Connection,
        channel: Channel | None = None,
        config: ConfigLookup | None = None,
    ):
        self.sender = sender
        self.connection = connection
        self.channel = channel
        self.config = config

    @classmethod
    def from_event(
        cls, event: MessageEvent, config: ConfigLookup | None = None
    ) -> ReplyContext:
        return cls(event.sender, event.connection, event.channel, config)

    @property
    def use_notices(self) -> bool:
        return bool(self.config is not None and self.config.get("comm/use-notices"))

    async def privmsg(self, text: object) -> bool:
        if self.channel is not None:
            return await self.channel.privmsg(text)
        return await self.connection.privmsg(str(self.sender), text)

    async def notice(self, text: object) -> bool:
        if self.channel is not None:
            return await self.channel.notice(text)
        return await self.connection.notice(str(self.sender), text)

    async def action(self, text: object) -> bool:
        if self.channel is not None:
            return await self.channel.action(text)
        return await self.connection.action(str(self.sender), text)

    async def respond(self, text: object) -> bool:
        if self.use_notices:
            return await self.notice(text)
        return await self.privmsg(text)

    async def reply(self, text: object) -> bool:
        if self.channel is not None:
            text = f"{self.sender}: {text}"
        return await self.respond(text)
