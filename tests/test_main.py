import asyncio
import json

import pytest

from ircengine import main as app
from ircengine.config import JsonFileConfig, ServerSettings
from ircengine.constants import CONFIG_FILE_ENV
from ircengine.irc import Connection, ConnectionRegistry, ConnectionState, HookKind


def _write(tmp_path, data) -> str:
    path = tmp_path / "ircengine.conf"
    path.write_text(json.dumps(data))
    return str(path)


def test_check_config_ok(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_FILE_ENV, _write(tmp_path, {"servers": {"irc.example.net": {}}}))
    assert app.check_config() == 0


def test_check_config_reports_invalid_entries(tmp_path, monkeypatch):
    path = _write(tmp_path, {"servers": {"bad": {"port": 0}}})
    monkeypatch.setenv(CONFIG_FILE_ENV, path)
    assert app.check_config() == 1


def test_check_config_without_servers_fails(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_FILE_ENV, _write(tmp_path, {}))
    assert app.check_config() == 1


def test_runner_starts_each_valid_server_once(tmp_path, monkeypatch):
    started: list[str] = []
    monkeypatch.setattr(Connection, "start", lambda self: started.append(self.name))
    config = JsonFileConfig(
        _write(
            tmp_path,
            {
                "servers": {
                    "one": {"host": "irc.one.net"},
                    "bad": {"port": "not a port"},
                    "off": {"autoconnect": False},
                }
            },
        )
    )
    runner = app.Runner(config)
    assert runner.start_configured() == 1
    assert runner.start_configured() == 0
    assert started == ["one"]
    assert runner.connections["one"].hooks is runner.hooks
    assert runner.hooks.callbacks(HookKind.CONNECTED)


@pytest.mark.asyncio
async def test_runner_shutdown_quits_registered_connections(tmp_path):
    runner = app.Runner(JsonFileConfig(_write(tmp_path, {"servers": {}})))
    quits: list[str | None] = []

    class Stub:
        name = "stub"

        async def quit(self, reason=None):
            quits.append(reason)

    runner.registry.add(Stub())
    await runner.shutdown("bye")
    await runner.shutdown("again")
    assert quits == ["bye"]
    assert runner.start_configured() == 0


@pytest.mark.asyncio
async def test_started_connection_is_registered_before_its_worker_runs():
    registry = ConnectionRegistry()
    conn = Connection(
        "local",
        ServerSettings(host="127.0.0.1", port=1, nicks=["me"], auto_reconnect=False),
        registry=registry,
    )
    conn.start()
    assert conn in registry
    await asyncio.wait_for(registry.wait_all(), 5)
    assert conn not in registry


@pytest.mark.asyncio
async def test_main_stays_connected_until_shutdown(tmp_path, monkeypatch):
    welcomed = asyncio.Event()
    quit_seen = asyncio.Event()

    async def client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        while True:
            data = await reader.readline()
            if not data:
                break
            line = data.decode().strip()
            if line.startswith("USER"):
                writer.write(b":irc.test 001 me :Welcome\r\n")
                await writer.drain()
                welcomed.set()
            elif line.startswith("QUIT"):
                quit_seen.set()
                break
        writer.close()

    server = await asyncio.start_server(client, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    path = _write(
        tmp_path,
        {"servers": {"local": {"host": "127.0.0.1", "port": port, "nicks": ["me"]}}},
    )
    monkeypatch.setenv(CONFIG_FILE_ENV, path)
    runners: list[app.Runner] = []
    monkeypatch.setattr(
        app.Runner, "setup_signal_handlers", lambda self, loop: runners.append(self)
    )

    task = asyncio.create_task(app.main())
    try:
        await asyncio.wait_for(welcomed.wait(), 5)
        await asyncio.sleep(0.3)
        assert not task.done()
        conn = runners[0].connections["local"]
        assert conn.state is ConnectionState.RUNNING

        await runners[0].shutdown("bye")
        await asyncio.wait_for(task, 5)
        assert quit_seen.is_set()
        assert conn.state is ConnectionState.CLOSED
        assert len(runners[0].registry) == 0
    finally:
        if not task.done():
            task.cancel()
        server.close()
        await server.wait_closed()
