"""Channel members: an address plus its per-channel status bits."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING

from .address import Address
from .models import MemberMode

if TYPE_CHECKING:  # pragma: no cover
    from .channel import Channel


class Member(Address):
    """A user as seen in one channel; the same person in two channels is two Members."""

    def __init__(self, channel: Channel, mask: str | Address | None = None) -> None:
        super().__init__(mask, channel.connection)
        self._channel_ref = weakref.ref(channel)
        self.modes = MemberMode.NONE

    @property
    def channel(self) -> Channel | None:
        return self._channel_ref()

    def change_modes(self, bits: MemberMode, enable: bool = True) -> None:
        if enable:
            self.modes |= bits
        else:
            self.modes &= ~bits

    @property
    def is_op(self) -> bool:
        return bool(self.modes & MemberMode.OPERATOR)

    @property
    def is_voiced(self) -> bool:
        return bool(self.modes & MemberMode.VOICE)

    @property
    def is_owner(self) -> bool:
        return bool(self.modes & MemberMode.OWNER)

    @property
    def is_ircop(self) -> bool:
        return bool(self.modes & MemberMode.IRC_OPERATOR)

    async def op(self, enable: bool = True) -> None:
        chan = self.channel
        if chan is not None and self.nick:
            await chan.op(self.nick, enable)

    async def deop(self) -> None:
        await self.op(False)

    async def voice(self, enable: bool = True) -> None:
        chan = self.channel
        if chan is not None and self.nick:
            await chan.voice(self.nick, enable)

    async def devoice(self) -> None:
        await self.voice(False)
