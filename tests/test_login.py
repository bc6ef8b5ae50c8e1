import pytest

from ircengine.irc import HookKind
from ircengine.irc.login import perform_login

SERVER = ":irc.example.net"
WELCOME = f"{SERVER} 001 me :Welcome to the network"


@pytest.mark.asyncio
async def test_successful_login_sends_nick_then_user(make_conn):
    conn = make_conn()
    conn.incoming.extend([f"{SERVER} NOTICE * :*** Looking up your hostname", WELCOME])
    result = await perform_login(conn)
    assert result.ok and result.nick == "me"
    assert conn.nick == "me"
    assert conn.sent == ["NICK me", "USER ircengine 8 * :ircengine IRC client"]


@pytest.mark.asyncio
async def test_password_is_sent_first(make_conn):
    conn = make_conn(password="sekrit", user="bot", realname="Bot Name")
    conn.incoming.append(WELCOME)
    assert (await perform_login(conn)).ok
    assert conn.sent == ["PASS sekrit", "NICK me", "USER bot 8 * :Bot Name"]


@pytest.mark.asyncio
async def test_rejected_nick_moves_to_next_candidate(make_conn):
    conn = make_conn()
    conn.incoming.extend(
        [
            f"{SERVER} 433 * me :Nickname is already in use",
            f"{SERVER} 001 me_ :Welcome",
        ]
    )
    result = await perform_login(conn)
    assert result.ok and result.nick == "me_"
    assert conn.sent[-1] == "NICK me_"
    assert conn.nnick == "me_"


@pytest.mark.asyncio
async def test_all_candidates_rejected(make_conn):
    conn = make_conn()
    conn.incoming.extend(
        [
            f"{SERVER} 433 * me :Nickname is already in use",
            f"{SERVER} 432 * me_ :Erroneous nickname",
        ]
    )
    result = await perform_login(conn)
    assert not result.ok
    assert "rejected" in result.reason
    assert conn.nick is None


@pytest.mark.asyncio
async def test_ping_during_login_is_answered(make_conn):
    conn = make_conn()
    conn.incoming.extend(["PING :12345", WELCOME])
    assert (await perform_login(conn)).ok
    assert "PONG 12345" in conn.sent


@pytest.mark.asyncio
async def test_error_line_fails_login(make_conn):
    conn = make_conn()
    conn.incoming.append("ERROR :Closing Link: banned")
    result = await perform_login(conn)
    assert not result.ok
    assert result.reason == "Closing Link: banned"


@pytest.mark.asyncio
async def test_eof_fails_login(make_conn):
    conn = make_conn()
    result = await perform_login(conn)
    assert not result.ok
    assert "closed" in result.reason


@pytest.mark.asyncio
async def test_other_errors_and_notices_are_dispatched(make_conn):
    conn = make_conn()
    seen: list[str] = []
    conn.hooks.subscribe(HookKind.SERVER_COMMAND, lambda e: seen.append(e.command))
    conn.incoming.extend([f"{SERVER} NOTICE * :hello", f"{SERVER} 404 * x :nope", WELCOME])
    assert (await perform_login(conn)).ok
    assert seen == ["NOTICE"]


@pytest.mark.asyncio
async def test_welcome_reaches_server_reply_hook(make_conn):
    conn = make_conn()
    codes: list[int] = []
    conn.hooks.subscribe(HookKind.SERVER_REPLY, lambda e: codes.append(e.code))
    conn.incoming.append(WELCOME)
    await perform_login(conn)
    assert codes == [1]
