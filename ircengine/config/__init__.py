"""Configuration package exports.

Path-addressed lookups, per-server connection settings and the config file
watcher.
"""

from .lookup import ConfigLookup, JsonFileConfig, MappingConfig  # noqa: F401
from .model import ServerSettings, server_names  # noqa: F401
from .watcher import ConfigWatcher, create_config_watcher  # noqa: F401

__all__ = [
    "ConfigLookup",
    "ConfigWatcher",
    "JsonFileConfig",
    "MappingConfig",
    "ServerSettings",
    "create_config_watcher",
    "server_names",
]
