import pytest

from ircengine.irc.address import Address, normalize


def test_full_mask_is_split():
    addr = Address("Nick!~user@host.example.org")
    assert (addr.nick, addr.user, addr.host) == ("Nick", "~user", "host.example.org")
    assert addr.mask() == "Nick!~user@host.example.org"
    assert str(addr) == "Nick"


def test_dotted_mask_is_a_server():
    addr = Address("irc.example.net")
    assert addr.nick == "irc.example.net"
    assert addr.host == "irc.example.net"
    assert addr.user is None


def test_bare_nick():
    addr = Address("somebody")
    assert addr.nick == "somebody"
    assert addr.user is None and addr.host is None


def test_null_address():
    addr = Address()
    assert addr.is_null
    assert addr.nnick == ""
    assert addr.mask() == "!@"


@pytest.mark.parametrize(
    "nick,expected",
    [("Foo[Bar]", "foo{bar}"), ("a\\b", "a|b"), ("ABC", "abc"), (None, ""), ("", "")],
)
def test_normalize(nick, expected):
    assert normalize(nick) == expected


@pytest.mark.parametrize("nick", ["Foo[Bar]", "a\\b", "{already}|low", "MiXeD", ""])
def test_normalize_is_idempotent(nick):
    assert normalize(normalize(nick)) == normalize(nick)


@pytest.mark.parametrize(
    "left,right", [("A[]", "a{}"), ("Nick\\", "nick|"), ("[Bot]", "{bot}")]
)
def test_normalize_treats_bracket_pairs_as_case_variants(left, right):
    assert normalize(left) == normalize(right)


@pytest.mark.parametrize(
    "mask",
    [
        "nick!user@host",
        "Nick!~user@host.example.org",
        "a[b]!u@2001:db8::1",
        "n!u@h!odd@more",
    ],
)
def test_full_masks_round_trip(mask):
    assert Address(mask).mask() == mask


def test_update_mask_from_address_copies_parts():
    addr = Address("old")
    addr.update_mask(Address("new!u@h"))
    assert addr.mask() == "new!u@h"


@pytest.mark.asyncio
async def test_send_helpers_without_connection_do_nothing():
    addr = Address("nick!u@h")
    await addr.privmsg("hello")
    await addr.notice("hello")
    assert addr.connection is None


@pytest.mark.asyncio
async def test_send_helpers_use_connection(conn):
    addr = Address("Friend!u@h", conn)
    await addr.privmsg("hi")
    await addr.notice("psst")
    await addr.action("waves")
    assert conn.sent == [
        "PRIVMSG Friend :hi",
        "NOTICE Friend :psst",
        "PRIVMSG Friend :\x01ACTION waves\x01",
    ]
