import pytest

from ircengine.errors import ParseError
from ircengine.irc.parser import format_command, parse_line


def test_parse_privmsg_with_prefix_and_trailing():
    msg = parse_line(":nick!user@host PRIVMSG #chan :hello there\r\n")
    assert msg.prefix == "nick!user@host"
    assert msg.command == "PRIVMSG"
    assert msg.params == ("#chan", "hello there")
    assert msg.numeric is None
    assert not msg.is_numeric


def test_parse_numeric_reply():
    msg = parse_line(":irc.example.net 353 me = #chan :@op +voice plain")
    assert msg.is_numeric
    assert msg.numeric == 353
    assert msg.command == "353"
    assert msg.params == ("me", "=", "#chan", "@op +voice plain")


def test_parse_without_prefix_and_lowercase_command():
    msg = parse_line("ping :irc.example.net")
    assert msg.prefix is None
    assert msg.command == "PING"
    assert msg.params == ("irc.example.net",)


def test_parse_empty_trailing_parameter():
    msg = parse_line(":a!b@c TOPIC #chan :")
    assert msg.params == ("#chan", "")


def test_parse_colon_inside_middle_parameter_is_kept():
    msg = parse_line(":a!b@c MODE #chan +b nick!*@a:b")
    assert msg.params == ("#chan", "+b", "nick!*@a:b")


def test_parse_trailing_keeps_inner_colons_and_spaces():
    msg = parse_line(":a!b@c PRIVMSG me :time is 12:30  now")
    assert msg.params == ("me", "time is 12:30  now")


@pytest.mark.parametrize(
    "line",
    ["", ":prefixonly", ":nick!u@h ", "12 foo", "PRIV-MSG x", ":p 4040 x"],
)
def test_parse_errors(line):
    with pytest.raises(ParseError):
        parse_line(line)


def test_format_last_argument_colon_prefixed_when_several():
    assert format_command("PRIVMSG", "#chan", "hi") == "PRIVMSG #chan :hi"
    assert format_command("MODE", "#chan", "+o", "nick") == "MODE #chan +o :nick"


def test_format_single_argument_bare_unless_required():
    assert format_command("JOIN", "#chan") == "JOIN #chan"
    assert format_command("QUIT", "bye now") == "QUIT :bye now"
    assert format_command("QUIT", "") == "QUIT :"
    assert format_command("QUIT") == "QUIT"


def test_format_rejects_line_breaks():
    with pytest.raises(ValueError):
        format_command("PRIVMSG", "#chan", "one\r\nQUIT")


def test_format_rejects_spaces_in_middle_arguments():
    with pytest.raises(ValueError):
        format_command("PRIVMSG", "#a chan", "hi")


def test_format_output_parses_back():
    line = format_command("PRIVMSG", "#chan", ":starts with colon")
    assert parse_line(line).params == ("#chan", ":starts with colon")
