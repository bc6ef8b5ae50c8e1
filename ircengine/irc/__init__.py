"""IRC subsystem package.

Wire parsing, addresses, channel and member state, per-connection routing,
login, the connection worker and the registry of live connections.
"""

from .address import Address, normalize  # noqa: F401
from .channel import Channel  # noqa: F401
from .connection import Connection  # noqa: F401
from .dispatcher import IRCDispatcher  # noqa: F401
from .hooks import (  # noqa: F401
    ChannelEvent,
    CommandEvent,
    ConnectEvent,
    HookKind,
    HookRegistry,
    MembershipEvent,
    MessageEvent,
    ReplyEvent,
    TopicEvent,
)
from .login import LoginResult, perform_login  # noqa: F401
from .member import Member  # noqa: F401
from .models import (  # noqa: F401
    ChannelMode,
    ConnectionState,
    MemberMode,
    Numeric,
    PrefixMap,
    UserMode,
)
from .parser import IRCMessage, format_command, parse_line  # noqa: F401
from .registry import ConnectionRegistry  # noqa: F401

__all__ = [
    "Address",
    "normalize",
    "Channel",
    "Connection",
    "ConnectionRegistry",
    "IRCDispatcher",
    "HookKind",
    "HookRegistry",
    "ChannelEvent",
    "CommandEvent",
    "ConnectEvent",
    "MembershipEvent",
    "MessageEvent",
    "ReplyEvent",
    "TopicEvent",
    "LoginResult",
    "perform_login",
    "Member",
    "ChannelMode",
    "ConnectionState",
    "MemberMode",
    "Numeric",
    "PrefixMap",
    "UserMode",
    "IRCMessage",
    "format_command",
    "parse_line",
]
