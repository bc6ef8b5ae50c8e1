"""Mask-style IRC addresses (``nick!user@host``)."""

from __future__ import annotations

import re
import weakref
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .connection import Connection

_MASK_RE = re.compile(r"^(?P<nick>[^!]+)!(?P<user>[^@]+)@(?P<host>.+)$")
_CASEFOLD = str.maketrans("[]\\", "{}|")


def normalize(nick: str | None) -> str:
    """IRC case-folding: lowercase, then ``[]\\`` become ``{}|``."""
    if not nick:
        return ""
    return nick.lower().translate(_CASEFOLD)


class Address:
    """A parsed ``nick!user@host`` mask.

    Masks that are not full ``nick!user@host`` forms are taken as a server
    host when they contain a dot, otherwise as a bare nick. A missing mask
    gives the null address. The optional connection is only weakly held and
    is used by the send helpers.
    """

    def __init__(
        self, mask: str | Address | None = None, connection: Connection | None = None
    ) -> None:
        self.nick: str | None = None
        self.user: str | None = None
        self.host: str | None = None
        self._connection_ref = weakref.ref(connection) if connection is not None else None
        self.update_mask(mask)

    def update_mask(self, mask: str | Address | None) -> None:
        if isinstance(mask, Address):
            self.nick, self.user, self.host = mask.nick, mask.user, mask.host
            return
        m = _MASK_RE.match(mask) if mask else None
        if m:
            self.nick, self.user, self.host = m.group("nick", "user", "host")
        elif mask and "." in mask:
            self.nick = self.host = mask
            self.user = None
        elif mask:
            self.nick = mask
            self.user = self.host = None
        else:
            self.nick = self.user = self.host = None

    def mask(self) -> str:
        return f"{self.nick or ''}!{self.user or ''}@{self.host or ''}"

    @property
    def nnick(self) -> str:
        return normalize(self.nick)

    @property
    def is_null(self) -> bool:
        return self.nick is None

    @property
    def connection(self) -> Connection | None:
        return self._connection_ref() if self._connection_ref is not None else None

    def __str__(self) -> str:
        return self.nick or ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.mask()!r})"

    async def privmsg(self, text: object) -> None:
        conn = self.connection
        if conn is not None and self.nick:
            await conn.privmsg(self.nick, text)

    async def notice(self, text: object) -> None:
        conn = self.connection
        if conn is not None and self.nick:
            await conn.notice(self.nick, text)

    async def action(self, text: object) -> None:
        conn = self.connection
        if conn is not None and self.nick:
            await conn.action(self.nick, text)
