"""
Configuration constants for the IRC engine

This module contains all configurable defaults used throughout the engine.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Connection defaults
IRC_DEFAULT_PORT = _get_env_int("IRC_DEFAULT_PORT", 6667)
IRC_DEFAULT_USER = os.getenv("IRC_DEFAULT_USER", "ircengine")
IRC_DEFAULT_REALNAME = os.getenv("IRC_DEFAULT_REALNAME", "ircengine IRC client")
IRC_USER_MODE_PARAM = "8"  # USER <user> <mode> * :<realname>, 8 = +i

# Nicks tried when neither the server entry nor irc/nicks lists any
IRC_DEFAULT_NICKS = ("ircengine", "_ircengine_", "__ircengine")

# Reconnect loop: fixed pause between attempts, no backoff or jitter
IRC_RECONNECT_DELAY = _get_env_float("IRC_RECONNECT_DELAY", 5.0)

# Opening the TCP connection only; reads never time out
IRC_CONNECT_TIMEOUT = _get_env_float("IRC_CONNECT_TIMEOUT", 30.0)

# StreamReader buffer limit (longest accepted line, in bytes)
IRC_READ_LIMIT = _get_env_int("IRC_READ_LIMIT", 64 * 1024)

IRC_ENCODING = os.getenv("IRC_ENCODING", "utf-8")

# Wire defaults, replaced by the server's 005 capability tokens
DEFAULT_PREFIX_MODES = "ov"
DEFAULT_PREFIX_CHARS = "@+"
DEFAULT_CHANTYPES = "#&"

# Services
DEFAULT_NICKSERV_NAME = "NickServ"
DEFAULT_CHANSERV_NAME = "ChanServ"

# Config file watching
CONFIG_FILE_ENV = "IRCENGINE_CONF_FILE"
DEFAULT_CONFIG_FILE = "ircengine.conf"
RELOAD_WATCH_DELAY = _get_env_float("RELOAD_WATCH_DELAY", 2.0)
