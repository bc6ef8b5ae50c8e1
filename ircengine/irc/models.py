"""Shared IRC data models: states, mode bitsets, numerics, prefix map."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum, IntFlag, auto

from ..constants import DEFAULT_PREFIX_CHARS, DEFAULT_PREFIX_MODES


class ConnectionState(Enum):
    CONNECTING = auto()
    FAILED = auto()
    RUNNING = auto()
    QUITTING = auto()
    CLOSED = auto()


class ChannelMode(IntFlag):
    NONE = 0
    ANONYMOUS = auto()
    INVITE_ONLY = auto()
    MODERATED = auto()
    NO_MESSAGES = auto()
    QUIET = auto()
    PRIVATE = auto()
    SECRET = auto()
    REOP = auto()
    TOPIC_OP_ONLY = auto()


class MemberMode(IntFlag):
    NONE = 0
    OPERATOR = auto()
    VOICE = auto()
    IRC_OPERATOR = auto()
    OWNER = auto()


class UserMode(IntFlag):
    NONE = 0
    AWAY = auto()
    INVISIBLE = auto()
    WALLOPS = auto()
    RESTRICTED = auto()
    OPERATOR = auto()
    LOCAL_OPERATOR = auto()
    SERVER_NOTICES = auto()


# Channel flag letters that take no argument
CHANNEL_MODE_LETTERS: dict[str, ChannelMode] = {
    "a": ChannelMode.ANONYMOUS,
    "i": ChannelMode.INVITE_ONLY,
    "m": ChannelMode.MODERATED,
    "n": ChannelMode.NO_MESSAGES,
    "q": ChannelMode.QUIET,
    "p": ChannelMode.PRIVATE,
    "s": ChannelMode.SECRET,
    "r": ChannelMode.REOP,
    "t": ChannelMode.TOPIC_OP_ONLY,
}

USER_MODE_LETTERS: dict[str, UserMode] = {
    "a": UserMode.AWAY,
    "i": UserMode.INVISIBLE,
    "w": UserMode.WALLOPS,
    "r": UserMode.RESTRICTED,
    "o": UserMode.OPERATOR,
    "O": UserMode.LOCAL_OPERATOR,
    "s": UserMode.SERVER_NOTICES,
}

# Member-status letters as announced by PREFIX=(...)
MEMBER_MODE_LETTERS: dict[str, MemberMode] = {
    "q": MemberMode.OWNER,
    "o": MemberMode.OPERATOR,
    "v": MemberMode.VOICE,
}


class Numeric(IntEnum):
    RPL_WELCOME = 1
    RPL_ISUPPORT = 5  # historically RPL_BOUNCE
    RPL_UMODEIS = 221
    RPL_WHOISUSER = 311
    RPL_ENDOFWHO = 315
    RPL_ENDOFWHOIS = 318
    RPL_CHANNELMODEIS = 324
    RPL_NOTOPIC = 331
    RPL_TOPIC = 332
    RPL_TOPICWHOTIME = 333
    RPL_INVITELIST = 346
    RPL_ENDOFINVITELIST = 347
    RPL_EXCEPTLIST = 348
    RPL_ENDOFEXCEPTLIST = 349
    RPL_WHOREPLY = 352
    RPL_NAMREPLY = 353
    RPL_ENDOFNAMES = 366
    RPL_BANLIST = 367
    RPL_ENDOFBANLIST = 368
    ERR_NONICKNAMEGIVEN = 413
    ERR_ERRONEUSNICKNAME = 432
    ERR_NICKNAMEINUSE = 433
    ERR_NICKCOLLISION = 436
    ERR_UNAVAILRESOURCE = 437


NICK_REJECTIONS = frozenset(
    {
        Numeric.ERR_NONICKNAMEGIVEN,
        Numeric.ERR_ERRONEUSNICKNAME,
        Numeric.ERR_NICKNAMEINUSE,
        Numeric.ERR_NICKCOLLISION,
        Numeric.ERR_UNAVAILRESOURCE,
    }
)

_PREFIX_TOKEN_RE = re.compile(r"^\((?P<modes>[^)]*)\)(?P<chars>.*)$")


@dataclass(slots=True)
class PrefixMap:
    """Member-status mode letters and their display prefix characters.

    ``modes[i]`` is shown as ``chars[i]``; both are ordered from the highest
    rank to the lowest, as servers announce them.
    """

    modes: str = DEFAULT_PREFIX_MODES
    chars: str = DEFAULT_PREFIX_CHARS

    @classmethod
    def parse(cls, value: str) -> PrefixMap | None:
        """Build a map from the value of a ``PREFIX=`` token, e.g. ``(ov)@+``."""
        m = _PREFIX_TOKEN_RE.match(value)
        if not m or len(m.group("modes")) != len(m.group("chars")):
            return None
        return cls(m.group("modes"), m.group("chars"))

    def mode_for_char(self, char: str) -> str | None:
        i = self.chars.find(char)
        return self.modes[i] if i >= 0 and char else None

    def bits_for_mode(self, letter: str) -> MemberMode:
        return MEMBER_MODE_LETTERS.get(letter, MemberMode.NONE)

    def bits_for_char(self, char: str) -> MemberMode:
        letter = self.mode_for_char(char)
        return self.bits_for_mode(letter) if letter else MemberMode.NONE

    def split_nick(self, entry: str) -> tuple[str, str]:
        """Split a NAMES entry such as ``@+nick`` into (``"@+"``, ``"nick"``)."""
        i = 0
        while i < len(entry) and entry[i] in self.chars:
            i += 1
        return entry[:i], entry[i:]

    def bits_above(self, char: str) -> MemberMode:
        """Member bits ranked strictly above the given prefix character."""
        i = self.chars.find(char)
        bits = MemberMode.NONE
        for c in self.chars[: max(i, 0)]:
            bits |= self.bits_for_char(c)
        return bits
