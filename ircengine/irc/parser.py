"""IRC wire-line parsing and outbound formatting."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ParseError


@dataclass(frozen=True, slots=True)
class IRCMessage:
    raw: str
    prefix: str | None
    command: str
    params: tuple[str, ...]
    numeric: int | None = None

    @property
    def is_numeric(self) -> bool:
        return self.numeric is not None


def _is_command_token(token: str) -> bool:
    if len(token) == 3 and token.isdigit():
        return True
    return token.isascii() and token.isalpha()


def parse_line(line: str) -> IRCMessage:
    """Split one received line into prefix, command and parameters.

    The line terminator is optional. A three-digit command becomes a numeric
    reply, anything else a named command (upper-cased). Raises ParseError
    when no command token can be found.
    """
    raw = line.rstrip("\r\n")
    working = raw
    prefix: str | None = None

    if working.startswith(":"):
        if " " not in working:
            raise ParseError("prefix without command", line=raw)
        prefix, working = working[1:].split(" ", 1)
        if not prefix:
            raise ParseError("empty prefix", line=raw)

    working = working.lstrip(" ")
    if not working:
        raise ParseError("missing command", line=raw)

    command, _, rest = working.partition(" ")
    if not _is_command_token(command):
        raise ParseError(f"invalid command token {command!r}", line=raw)

    params: list[str] = []
    trailing: str | None = None
    rest = rest.lstrip(" ")
    if rest.startswith(":"):
        trailing = rest[1:]
    elif rest:
        middle, sep, tail = rest.partition(" :")
        params.extend(middle.split())
        if sep:
            trailing = tail
    if trailing is not None:
        params.append(trailing)

    if command.isdigit():
        return IRCMessage(raw, prefix, command, tuple(params), int(command))
    return IRCMessage(raw, prefix, command.upper(), tuple(params))


def format_command(command: str, *args: object) -> str:
    """Render ``COMMAND a0 ... aN-1 :aN``.

    The last argument is free text. It is colon-prefixed whenever more than
    one argument is given; a lone argument only when the grammar requires it
    (empty, contains a space, or starts with ``:``).
    """
    parts = [str(a) for a in args]
    for part in parts:
        if "\r" in part or "\n" in part:
            raise ValueError(f"line break in argument to {command}")
    for middle in parts[:-1]:
        if not middle or " " in middle or middle.startswith(":"):
            raise ValueError(f"invalid middle argument {middle!r} to {command}")
    if not parts:
        return command
    last = parts[-1]
    if len(parts) > 1 or not last or " " in last or last.startswith(":"):
        last = f":{last}"
    return " ".join([command, *parts[:-1], last])
