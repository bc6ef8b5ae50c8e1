import pytest

from ircengine.irc import ConnectionState, HookKind
from ircengine.irc.models import MemberMode

SERVER = ":irc.example.net"


@pytest.mark.asyncio
async def test_self_join_requests_modes_and_who(conn):
    await conn.feed(":me!u@host JOIN #chan")
    chan = conn.get_channel("#CHAN")
    assert chan is not None
    assert chan.me is not None and chan.me.nick == "me"
    assert conn.sent == ["MODE #chan", "WHO #chan"]


@pytest.mark.asyncio
async def test_names_reconciliation_replaces_roster(conn, join_channel):
    chan = await join_channel(conn, names="@me a b d")
    assert set(chan.members) == {"me", "a", "b", "d"}
    await conn.feed(
        f"{SERVER} 353 me = #chan :@me a b",
        f"{SERVER} 353 me = #chan :c",
        f"{SERVER} 366 me #chan :End of /NAMES list.",
    )
    assert set(chan.members) == {"me", "a", "b", "c"}


@pytest.mark.asyncio
async def test_names_prefixes_set_and_clear_status(conn, join_channel):
    chan = await join_channel(conn, names="@me @+alice bob")
    alice = chan.get_member("alice")
    assert alice.is_op and alice.is_voiced
    await conn.feed(
        f"{SERVER} 353 me = #chan :@me +alice bob",
        f"{SERVER} 366 me #chan :End of /NAMES list.",
    )
    assert not alice.is_op
    assert alice.is_voiced
    assert chan.get_member("bob").modes == MemberMode.NONE


@pytest.mark.asyncio
async def test_join_during_names_listing_survives(conn, join_channel):
    chan = await join_channel(conn, names="@me a")
    await conn.feed(
        f"{SERVER} 353 me = #chan :@me a",
        ":late!u@h JOIN #chan",
        f"{SERVER} 366 me #chan :End of /NAMES list.",
    )
    assert "late" in chan


@pytest.mark.asyncio
async def test_part_during_listing_stays_gone(conn, join_channel):
    chan = await join_channel(conn, names="@me a")
    await conn.feed(
        f"{SERVER} 353 me = #chan :@me a",
        ":a!u@h PART #chan :bye",
        f"{SERVER} 366 me #chan :End of /NAMES list.",
    )
    assert "a" not in chan


@pytest.mark.asyncio
async def test_empty_names_listing_clears_everyone_else(conn, join_channel):
    chan = await join_channel(conn, names="@me a b")
    await conn.feed(f"{SERVER} 366 me #chan :End of /NAMES list.")
    assert chan.members == {}


@pytest.mark.asyncio
async def test_who_listing_fills_masks_and_fires_init_once(conn, recorder, join_channel):
    chan = await join_channel(conn, names="@me alice")
    await conn.feed(
        f"{SERVER} 352 me #chan ~me host.me irc.example.net me H@ :0 Me",
        f"{SERVER} 352 me #chan ~al al.example irc.example.net alice H*+ :0 Alice",
        f"{SERVER} 315 me #chan :End of /WHO list.",
    )
    alice = chan.get_member("alice")
    assert alice.mask() == "alice!~al@al.example"
    assert alice.is_ircop and alice.is_voiced
    assert not chan.booting
    assert len(recorder.of(HookKind.CHANNEL_INIT)) == 1

    await conn.feed(
        f"{SERVER} 352 me #chan ~me host.me irc.example.net me H@ :0 Me",
        f"{SERVER} 315 me #chan :End of /WHO list.",
    )
    assert len(recorder.of(HookKind.CHANNEL_INIT)) == 1
    assert set(chan.members) == {"me"}


@pytest.mark.asyncio
async def test_ban_list_replaces_bans(conn, join_channel):
    chan = await join_channel(conn)
    chan.bans.add("stale!*@*")
    await conn.feed(
        f"{SERVER} 367 me #chan *!*@one.example op 1700000000",
        f"{SERVER} 367 me #chan *!*@two.example op 1700000001",
        f"{SERVER} 368 me #chan :End of channel ban list",
    )
    assert chan.bans == {"*!*@one.example", "*!*@two.example"}


@pytest.mark.asyncio
async def test_exception_and_invite_lists(conn, join_channel):
    chan = await join_channel(conn)
    await conn.feed(
        f"{SERVER} 348 me #chan *!*@ok.example",
        f"{SERVER} 349 me #chan :End of exception list",
        f"{SERVER} 346 me #chan friend!*@*",
        f"{SERVER} 347 me #chan :End of invite list",
    )
    assert chan.exceptions == {"*!*@ok.example"}
    assert chan.invites == {"friend!*@*"}


@pytest.mark.asyncio
async def test_topic_replies_and_command(conn, recorder, join_channel):
    chan = await join_channel(conn)
    await conn.feed(
        f"{SERVER} 332 me #chan :first topic",
        f"{SERVER} 333 me #chan setter!u@h 1700000000",
        ":op!u@h TOPIC #chan :second topic",
    )
    assert chan.topic == "second topic"
    assert chan.previous_topic == "first topic"
    assert chan.topic_setter == "op!u@h"
    topics = recorder.of(HookKind.TOPIC)
    assert [t.topic for t in topics] == ["first topic", "second topic"]
    assert topics[0].actor is None
    assert topics[1].actor.nick == "op"


@pytest.mark.asyncio
async def test_second_names_request_refused_while_pending(conn, join_channel):
    chan = await join_channel(conn)
    conn.sent.clear()
    assert await chan.request_names() is True
    assert await chan.request_names() is False
    assert conn.sent == ["NAMES #chan"]
    await conn.feed(f"{SERVER} 366 me #chan :End of /NAMES list.")
    assert await chan.request_names() is True


@pytest.mark.asyncio
async def test_names_request_refused_while_server_listing_is_open(conn, join_channel):
    chan = await join_channel(conn, names="@me a")
    await conn.feed(f"{SERVER} 353 me = #chan :@me a")
    conn.sent.clear()
    assert await chan.request_names() is False
    assert conn.sent == []
    await conn.feed(f"{SERVER} 366 me #chan :End of /NAMES list.")
    assert await chan.request_names() is True
    assert conn.sent == ["NAMES #chan"]


@pytest.mark.asyncio
async def test_join_before_first_names_item_survives(conn, join_channel):
    chan = await join_channel(conn, names="@me a")
    assert await chan.request_names() is True
    await conn.feed(
        ":early!u@h JOIN #chan",
        f"{SERVER} 353 me = #chan :@me a",
        f"{SERVER} 366 me #chan :End of /NAMES list.",
    )
    assert set(chan.members) == {"me", "a", "early"}


@pytest.mark.asyncio
async def test_unsent_request_leaves_no_listing_open(make_conn):
    conn = make_conn().go_running()
    await conn.feed(":me!u@host JOIN #chan")
    chan = conn.get_channel("#chan")
    conn.state = ConnectionState.CONNECTING
    assert await chan.request_names() is False
    conn.state = ConnectionState.RUNNING
    assert await chan.request_names() is True
