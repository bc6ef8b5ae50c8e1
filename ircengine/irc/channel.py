"""Per-channel state and the handling of channel-scoped commands and replies."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..errors import ScanError
from ..logs.logger import logger
from .accumulator import MaskListScan, RosterScan
from .address import Address, normalize
from .hooks import (
    ChannelEvent,
    CommandEvent,
    HookKind,
    MembershipEvent,
    MessageEvent,
    ReplyEvent,
    TopicEvent,
)
from .member import Member
from .models import CHANNEL_MODE_LETTERS, ChannelMode, MemberMode, Numeric

if TYPE_CHECKING:  # pragma: no cover
    from .connection import Connection

# Replies whose content this module applies to the channel model.
_CHANNEL_REPLIES = frozenset(
    {
        Numeric.RPL_TOPIC,
        Numeric.RPL_NOTOPIC,
        Numeric.RPL_TOPICWHOTIME,
        Numeric.RPL_CHANNELMODEIS,
        Numeric.RPL_NAMREPLY,
        Numeric.RPL_ENDOFNAMES,
        Numeric.RPL_WHOREPLY,
        Numeric.RPL_ENDOFWHO,
        Numeric.RPL_BANLIST,
        Numeric.RPL_ENDOFBANLIST,
        Numeric.RPL_EXCEPTLIST,
        Numeric.RPL_ENDOFEXCEPTLIST,
        Numeric.RPL_INVITELIST,
        Numeric.RPL_ENDOFINVITELIST,
    }
)


class Channel:
    """One joined channel, owned by exactly one Connection.

    ``members`` is keyed by case-folded nick. ``booting`` stays True until the
    first WHO listing after the join has been reconciled; the CHANNEL_INIT
    hook fires at that moment, once.
    """

    def __init__(self, connection: Connection, name: str) -> None:
        self.connection = connection
        self.name = name
        self.nname = normalize(name)
        self.members: dict[str, Member] = {}
        self.me: Member | None = None
        self.modes = ChannelMode.NONE
        self.limit: int | None = None
        self.password: str | None = None
        self.bans: set[str] = set()
        self.exceptions: set[str] = set()
        self.invites: set[str] = set()
        self.topic: str | None = None
        self.previous_topic: str | None = None
        self.topic_setter: str | None = None
        self.topic_time: int | None = None
        self.booting = True
        self.removed = False

        self._names = RosterScan("names")
        self._who = RosterScan("who")
        self._ban_scan = MaskListScan("bans")
        self._exception_scan = MaskListScan("exceptions")
        self._invite_scan = MaskListScan("invites")
        self._requested: set[str] = set()

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, members={len(self.members)})"

    def __contains__(self, nick: str) -> bool:
        return normalize(nick) in self.members

    def get_member(self, nick: str | None) -> Member | None:
        return self.members.get(normalize(nick))

    def _log(self, action: str, level: int = logging.INFO, **kwargs: object) -> None:
        logger.log_event(
            "channel",
            action,
            level=level,
            user=self.connection.name,
            channel=self.name,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    async def privmsg(self, text: object) -> bool:
        return await self.connection.send_command("PRIVMSG", self.name, str(text))

    async def notice(self, text: object) -> bool:
        return await self.connection.send_command("NOTICE", self.name, str(text))

    async def action(self, text: object) -> bool:
        return await self.connection.send_command(
            "PRIVMSG", self.name, f"\x01ACTION {text}\x01"
        )

    async def mode(self, modes: str, *args: str) -> bool:
        return await self.connection.send_command("MODE", self.name, modes, *args)

    async def op(self, nick: str, enable: bool = True) -> bool:
        # Does not check that the nick is on the channel; use Member.op for that.
        return await self.mode("+o" if enable else "-o", nick)

    async def voice(self, nick: str, enable: bool = True) -> bool:
        return await self.mode("+v" if enable else "-v", nick)

    async def set_topic(self, topic: str) -> bool:
        return await self.connection.send_command("TOPIC", self.name, topic)

    async def part(self, reason: str | None = None) -> bool:
        if reason:
            return await self.connection.send_command("PART", self.name, reason)
        return await self.connection.send_command("PART", self.name)

    async def request_modes(self) -> bool:
        return await self._request("modes", "MODE")

    async def request_names(self) -> bool:
        return await self._request("names", "NAMES", self._names)

    async def request_who(self) -> bool:
        return await self._request("who", "WHO", self._who)

    async def _request(
        self, kind: str, command: str, scan: RosterScan | None = None
    ) -> bool:
        if kind in self._requested:
            self._log("scan_already_pending", level=logging.DEBUG, kind=kind)
            return False
        if scan is not None:
            # The listing starts now so nicks arriving before its first item count.
            try:
                scan.open()
            except ScanError as e:
                self._log(
                    "scan_already_pending", level=logging.DEBUG, kind=kind, error=str(e)
                )
                return False
        sent = await self.connection.send_command(command, self.name)
        if sent:
            self._requested.add(kind)
        elif scan is not None:
            scan.commit()
        return sent

    # ------------------------------------------------------------------
    # Model updates
    # ------------------------------------------------------------------
    def nick_change(self, old_nick: str, new_nick: str) -> bool:
        member = self.members.pop(normalize(old_nick), None)
        if member is None:
            return False
        member.nick = new_nick
        self.members[member.nnick] = member
        self._note_present(member.nnick)
        return True

    def remove_member(self, nick: str | None) -> Member | None:
        member = self.members.pop(normalize(nick), None)
        if member is not None and member is self.me:
            self.me = None
        return member

    def refresh_mask(self, mask: str) -> bool:
        addr = Address(mask)
        member = self.members.get(addr.nnick)
        if member is None:
            return False
        member.update_mask(addr)
        return True

    def clear(self) -> None:
        """Drop every piece of state; used when the channel is left."""
        self.members.clear()
        self.me = None
        self.bans.clear()
        self.exceptions.clear()
        self.invites.clear()
        for scan in (
            self._names,
            self._who,
            self._ban_scan,
            self._exception_scan,
            self._invite_scan,
        ):
            scan.commit()
        self._requested.clear()
        self.removed = True

    def _note_present(self, nnick: str) -> None:
        # Someone appearing while a roster listing is open must survive reconciliation.
        for scan in (self._names, self._who):
            if scan.is_open:
                scan.add(nnick)

    def _add_member(self, mask: str | Address) -> Member:
        member = Member(self, mask)
        self.members[member.nnick] = member
        if member.nnick == self.connection.nnick:
            self.me = member
        return member

    def _apply_prefixes(self, member: Member, prefixes: str) -> None:
        if not prefixes:
            return
        pmap = self.connection.prefix_map
        highest = min(prefixes, key=pmap.chars.find)
        member.change_modes(pmap.bits_above(highest), False)
        for char in prefixes:
            bits = pmap.bits_for_char(char)
            if bits:
                member.change_modes(bits, True)

    def _reconcile(self, seen: set[str], kind: str) -> None:
        for nnick in [n for n in self.members if n not in seen]:
            member = self.remove_member(nnick)
            self._log("member_dropped", level=logging.DEBUG, nick=str(member), scan=kind)
        # Listed nicks became members on their item line; one that left again
        # before the end marker stays gone.
        self._requested.discard(kind)
        self._log(
            "roster_synced",
            level=logging.DEBUG,
            scan=kind,
            members=len(self.members),
        )

    def parse_modes(self, args: Sequence[str]) -> None:
        """Apply a mode change: ``args`` is the mode string then its arguments.

        Member-status letters from the server's PREFIX map (default ``o`` and
        ``v``) take one nick each; ``k`` takes its key, ``l`` a limit when
        setting, ``b``/``e``/``I`` a mask. A letter whose argument is missing
        is skipped and logged, and parsing goes on with the next letter.
        """
        if not args:
            return
        pending = deque(args[1:])
        pmap = self.connection.prefix_map
        enable = True

        def take(letter: str) -> str | None:
            if pending:
                return pending.popleft()
            self._log(
                "mode_missing_argument",
                level=logging.WARNING,
                letter=letter,
                modes=" ".join(args),
            )
            return None

        for letter in args[0]:
            if letter in "+-":
                enable = letter == "+"
            elif letter in pmap.modes:
                nick = take(letter)
                member = self.get_member(nick) if nick is not None else None
                bits = pmap.bits_for_mode(letter)
                if member is not None and bits:
                    member.change_modes(bits, enable)
            elif letter in CHANNEL_MODE_LETTERS:
                bit = CHANNEL_MODE_LETTERS[letter]
                self.modes = (self.modes | bit) if enable else (self.modes & ~bit)
            elif letter == "k":
                if enable:
                    key = take(letter)
                    if key is not None:
                        self.password = key
                else:
                    if pending:
                        pending.popleft()
                    self.password = None
            elif letter == "l":
                if enable:
                    value = take(letter)
                    if value is not None:
                        try:
                            self.limit = int(value)
                        except ValueError:
                            self._log(
                                "mode_invalid_limit", level=logging.WARNING, value=value
                            )
                else:
                    self.limit = None
            elif letter in "beI":
                mask = take(letter)
                if mask is not None:
                    target = {"b": self.bans, "e": self.exceptions, "I": self.invites}[
                        letter
                    ]
                    if enable:
                        target.add(mask)
                    else:
                        target.discard(mask)
            # 'O' (channel creator) and unknown letters change nothing.

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    async def handle_command(
        self, actor: Address, command: str, args: Sequence[str]
    ) -> None:
        """Handle a named command addressed to this channel.

        ``args`` excludes the channel name. The CHANNEL_COMMAND hook always
        follows; its ``handled`` flag says whether a specific hook was fired.
        """
        hooks = self.connection.hooks
        conn = self.connection
        sender: Address = self.members.get(actor.nnick) or actor
        text = args[0] if args else ""
        handled = False

        if command == "TOPIC":
            self.previous_topic, self.topic = self.topic, text
            self.topic_setter = actor.mask()
            await hooks.emit(
                HookKind.TOPIC,
                TopicEvent(conn, self, sender, self.topic, self.previous_topic),
            )
            handled = True
        elif command in ("PRIVMSG", "NOTICE"):
            kind = (
                HookKind.CHANNEL_MESSAGE
                if command == "PRIVMSG"
                else HookKind.CHANNEL_NOTICE
            )
            await hooks.emit(kind, MessageEvent(conn, sender, self.name, text, self))
            handled = True
        elif command == "JOIN":
            sender = self._add_member(actor)
            self._note_present(sender.nnick)
            await hooks.emit(HookKind.JOIN, MembershipEvent(conn, self, sender))
            handled = True
        elif command in ("PART", "QUIT"):
            sender = await self._member_left(actor.nick, sender)
            handled = True
        elif command == "KICK":
            victim = args[0] if args else None
            left = self.members.get(normalize(victim)) or Address(victim)
            await self._member_left(victim, left)
            handled = True
        elif command == "MODE":
            self.parse_modes(args)

        await hooks.emit(
            HookKind.CHANNEL_COMMAND,
            CommandEvent(conn, self, handled, sender, command, tuple(args)),
        )

    async def _member_left(self, nick: str | None, who: Address) -> Address:
        conn = self.connection
        if normalize(nick) == conn.nnick:
            me = self.me or who
            await conn.hooks.emit(HookKind.PART, MembershipEvent(conn, self, me))
            conn.forget_channel(self)
            self._log("left")
            return me
        member = self.remove_member(nick)
        await conn.hooks.emit(
            HookKind.PART, MembershipEvent(conn, self, member or who)
        )
        return member or who

    async def handle_reply(self, code: int, args: Sequence[str]) -> None:
        """Handle a numeric reply routed to this channel.

        ``args`` are the reply parameters after our own nick, so ``args[0]``
        is the channel name (for NAMES, the channel type symbol comes first).
        The CHANNEL_REPLY hook always follows; ``handled`` is True for the
        replies applied to the channel model.
        """
        conn = self.connection
        handled = code in _CHANNEL_REPLIES

        if code in (Numeric.RPL_TOPIC, Numeric.RPL_NOTOPIC):
            new_topic = args[1] if code == Numeric.RPL_TOPIC and len(args) > 1 else None
            self.previous_topic, self.topic = self.topic, new_topic
            await conn.hooks.emit(
                HookKind.TOPIC,
                TopicEvent(conn, self, None, self.topic, self.previous_topic),
            )
        elif code == Numeric.RPL_TOPICWHOTIME and len(args) > 1:
            self.topic_setter = args[1]
            if len(args) > 2 and args[2].isdigit():
                self.topic_time = int(args[2])
        elif code == Numeric.RPL_CHANNELMODEIS:
            self.parse_modes(args[1:])
            self._requested.discard("modes")
            self._log("modes", level=logging.DEBUG, modes=self.modes.value)
        elif code == Numeric.RPL_NAMREPLY:
            self._names_item(args)
        elif code == Numeric.RPL_ENDOFNAMES:
            self._reconcile(self._names.commit(), "names")
        elif code == Numeric.RPL_WHOREPLY:
            self._who_item(args)
        elif code == Numeric.RPL_ENDOFWHO:
            self._reconcile(self._who.commit(), "who")
            if self.booting:
                self.booting = False
                self._log("initialized", members=len(self.members))
                await conn.hooks.emit(HookKind.CHANNEL_INIT, ChannelEvent(conn, self))
        elif code == Numeric.RPL_BANLIST and len(args) > 1:
            self._ban_scan.add(args[1])
        elif code == Numeric.RPL_ENDOFBANLIST:
            self.bans = set(self._ban_scan.commit())
        elif code == Numeric.RPL_EXCEPTLIST and len(args) > 1:
            self._exception_scan.add(args[1])
        elif code == Numeric.RPL_ENDOFEXCEPTLIST:
            self.exceptions = set(self._exception_scan.commit())
        elif code == Numeric.RPL_INVITELIST and len(args) > 1:
            self._invite_scan.add(args[1])
        elif code == Numeric.RPL_ENDOFINVITELIST:
            self.invites = set(self._invite_scan.commit())

        await conn.hooks.emit(
            HookKind.CHANNEL_REPLY,
            ReplyEvent(conn, self, handled, code, tuple(args)),
        )

    def _names_item(self, args: Sequence[str]) -> None:
        # args: [symbol, channel, "nick @op +voice"]
        if len(args) < 3:
            self._log("names_malformed", level=logging.WARNING, args=list(args))
            return
        pmap = self.connection.prefix_map
        for entry in args[2].split():
            prefixes, nick = pmap.split_nick(entry)
            if not nick:
                continue
            nnick = normalize(nick)
            self._names.add(nnick)
            member = self.members.get(nnick) or self._add_member(nick)
            self._apply_prefixes(member, prefixes)

    def _who_item(self, args: Sequence[str]) -> None:
        # args: [channel, user, host, server, nick, flags, "hops realname"]
        if len(args) < 6:
            self._log("who_malformed", level=logging.WARNING, args=list(args))
            return
        _, user, host, _, nick, flags = args[:6]
        nnick = normalize(nick)
        self._who.add(nnick)
        mask = f"{nick}!{user}@{host}"
        member = self.members.get(nnick)
        if member is None:
            member = self._add_member(mask)
        else:
            member.update_mask(mask)
        pmap = self.connection.prefix_map
        member.change_modes(MemberMode.IRC_OPERATOR, "*" in flags)
        self._apply_prefixes(member, "".join(c for c in flags if c in pmap.chars))
