from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..constants import (
    DEFAULT_CHANTYPES,
    IRC_DEFAULT_NICKS,
    IRC_DEFAULT_PORT,
    IRC_DEFAULT_REALNAME,
    IRC_DEFAULT_USER,
)
from ..irc.address import normalize
from .lookup import ConfigLookup


def _channel_names(entry: Any) -> list[str]:
    """Channel names from a list, or from a mapping of name -> settings.

    Mapping entries with ``autojoin`` set to false are left out.
    """
    if isinstance(entry, Mapping):
        return [
            name
            for name, opts in entry.items()
            if not (isinstance(opts, Mapping) and opts.get("autojoin") is False)
        ]
    if isinstance(entry, list | tuple):
        return [c for c in entry if isinstance(c, str)]
    return []


class ServerSettings(BaseModel):
    """Connection parameters for one configured server.

    Attributes:
        host: Server host name.
        port: TCP port.
        nicks: Candidate nicks, tried in order during login.
        user: User name sent in USER.
        realname: Real name sent in USER.
        password: Server password (PASS), if the server needs one.
        channels: Channels joined after every successful login.
        auto_reconnect: Reconnect after a failed attempt or lost connection.
    """

    host: str = Field(min_length=1)
    port: int = Field(default=IRC_DEFAULT_PORT, ge=1, le=65535)
    nicks: list[str] = Field(min_length=1)
    user: str = IRC_DEFAULT_USER
    realname: str = IRC_DEFAULT_REALNAME
    password: str | None = None
    channels: list[str] = Field(default_factory=list)
    auto_reconnect: bool = True

    @field_validator("nicks", mode="before")
    @classmethod
    def validate_nicks(cls, v: Any) -> list[str]:
        """Accept one nick or a list; strip, drop empties, dedupe keeping order."""
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list | tuple):
            raise ValueError("nicks must be a string or a list")
        nicks: list[str] = []
        for n in v:
            if not isinstance(n, str):
                continue
            stripped = n.strip()
            if not stripped:
                continue
            if " " in stripped:
                raise ValueError(f"nick must not contain spaces: {stripped!r}")
            nicks.append(stripped)
        return list(dict.fromkeys(nicks))

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        """Strip names, add a leading '#' where no channel prefix is present,
        and drop duplicates (compared IRC case-folded) keeping the first.
        """
        if isinstance(v, str):
            v = [c for c in v.split(",")]
        if not isinstance(v, list | tuple):
            raise ValueError("channels must be a list")
        seen: set[str] = set()
        channels: list[str] = []
        for c in v:
            if not isinstance(c, str):
                continue
            name = c.strip()
            if not name:
                continue
            if name[0] not in DEFAULT_CHANTYPES:
                name = f"#{name}"
            key = normalize(name)
            if key not in seen:
                seen.add(key)
                channels.append(name)
        return channels

    @classmethod
    def from_config(cls, config: ConfigLookup, name: str) -> ServerSettings:
        """Build settings for ``servers/<name>``.

        The host defaults to the entry name and nicks fall back to the global
        ``irc/nicks`` list. Channels are the global ``irc/channels`` followed
        by the server's own.
        """
        entry = config.get(f"servers/{name}")
        if entry is None:
            entry = {}
        if not isinstance(entry, Mapping):
            raise ValueError(f"servers/{name} must be a mapping")
        data = {
            k: v
            for k, v in entry.items()
            if k in ("port", "user", "realname", "password", "auto_reconnect")
            and v is not None
        }
        data["host"] = entry.get("host") or name
        data["nicks"] = (
            entry.get("nicks") or config.get("irc/nicks") or list(IRC_DEFAULT_NICKS)
        )
        data["channels"] = _channel_names(config.get("irc/channels")) + _channel_names(
            entry.get("channels")
        )
        return cls.model_validate(data)


def server_names(config: ConfigLookup) -> list[str]:
    """Names of configured servers, skipping those with ``autoconnect`` false."""
    servers = config.get("servers")
    if not isinstance(servers, Mapping):
        return []
    return [
        name
        for name, entry in servers.items()
        if not (isinstance(entry, Mapping) and entry.get("autoconnect") is False)
    ]
