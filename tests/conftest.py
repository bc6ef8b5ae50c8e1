from collections import deque

import pytest

from ircengine.config import ServerSettings
from ircengine.irc import Connection, ConnectionState, HookKind, HookRegistry


class RecordingConnection(Connection):
    """Connection that records outbound lines instead of writing to a socket."""

    def __init__(self, name: str = "testnet", **overrides):
        data = {"host": "irc.example.net", "nicks": ["me", "me_"], **overrides}
        hooks = data.pop("hooks", None)
        super().__init__(name, ServerSettings(**data), hooks)
        self.sent: list[str] = []
        self.incoming: deque[str] = deque()

    async def _send_line(self, line: str) -> bool:  # capture instead of network
        self.sent.append(line)
        return True

    async def read_line(self) -> str | None:  # scripted server lines, then EOF
        return self.incoming.popleft() if self.incoming else None

    def go_running(self, nick: str = "me") -> "RecordingConnection":
        self.set_nick(nick)
        self.state = ConnectionState.RUNNING
        return self

    async def feed(self, *lines: str) -> None:
        for line in lines:
            await self.dispatcher.process_line(line)


class HookRecorder:
    """Subscribes to every hook kind and records (kind, event) pairs."""

    def __init__(self, hooks: HookRegistry):
        self.events: list[tuple[HookKind, object]] = []
        for kind in HookKind:
            hooks.subscribe(kind, self._recorder(kind))

    def _recorder(self, kind: HookKind):
        def record(event: object) -> None:
            self.events.append((kind, event))

        return record

    def of(self, kind: HookKind) -> list:
        return [e for k, e in self.events if k is kind]


@pytest.fixture
def conn() -> RecordingConnection:
    return RecordingConnection().go_running()


@pytest.fixture
def recorder(conn: RecordingConnection) -> HookRecorder:
    return HookRecorder(conn.hooks)


@pytest.fixture
def join_channel():
    """Drive a self JOIN plus NAMES so the channel is tracked with a roster."""

    async def join(
        conn: RecordingConnection, name: str = "#chan", names: str = "@me"
    ):
        await conn.feed(
            f":{conn.nick}!u@host JOIN {name}",
            f":irc.example.net 353 {conn.nick} = {name} :{names}",
            f":irc.example.net 366 {conn.nick} {name} :End of /NAMES list.",
        )
        return conn.get_channel(name)

    return join


@pytest.fixture
def make_conn():
    """Factory for RecordingConnections with custom server settings."""
    return RecordingConnection
