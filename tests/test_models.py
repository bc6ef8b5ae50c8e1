from ircengine.irc.models import MemberMode, PrefixMap


def test_prefix_map_defaults():
    pmap = PrefixMap()
    assert pmap.modes == "ov" and pmap.chars == "@+"
    assert pmap.bits_for_char("@") == MemberMode.OPERATOR
    assert pmap.bits_for_char("+") == MemberMode.VOICE
    assert pmap.bits_for_char("%") == MemberMode.NONE


def test_prefix_map_parse():
    pmap = PrefixMap.parse("(qov)~@+")
    assert pmap is not None
    assert pmap.mode_for_char("~") == "q"
    assert pmap.bits_for_mode("q") == MemberMode.OWNER


def test_prefix_map_parse_rejects_mismatched_lengths():
    assert PrefixMap.parse("(ov)@") is None
    assert PrefixMap.parse("ov@+") is None


def test_split_nick_and_bits_above():
    pmap = PrefixMap.parse("(qov)~@+")
    assert pmap.split_nick("~@nick") == ("~@", "nick")
    assert pmap.split_nick("plain") == ("", "plain")
    assert pmap.bits_above("+") == MemberMode.OWNER | MemberMode.OPERATOR
    assert pmap.bits_above("~") == MemberMode.NONE
