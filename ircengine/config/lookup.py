"""Read-only, path-addressed configuration lookup."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..logs.logger import logger


@runtime_checkable
class ConfigLookup(Protocol):
    """Anything answering ``get("servers/<name>/services/nickserv/password")``."""

    def get(self, path: str) -> Any | None: ...  # noqa: D401,E701


class MappingConfig:
    """ConfigLookup over nested mappings; path segments are separated by ``/``."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: Mapping[str, Any] = data if data is not None else {}

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    def get(self, path: str) -> Any | None:
        node: Any = self._data
        for segment in path.split("/"):
            if not segment:
                continue
            if not isinstance(node, Mapping) or segment not in node:
                return None
            node = node[segment]
        return node


class JsonFileConfig(MappingConfig):
    """MappingConfig loaded from a JSON file, reloadable at runtime.

    A reload that fails to read or parse the file keeps the previous data.
    """

    def __init__(self, path: str | os.PathLike[str]):
        super().__init__({})
        self.path = str(path)
        self._lock = threading.Lock()
        self.reload()

    def get(self, path: str) -> Any | None:
        with self._lock:
            return super().get(path)

    def reload(self) -> bool:
        """Re-read the file; returns True when the data changed."""
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.log_event(
                "config", "file_missing", level=logging.WARNING, path=self.path
            )
            return False
        except (OSError, json.JSONDecodeError) as e:
            logger.log_event(
                "config",
                "load_failed",
                level=logging.ERROR,
                path=self.path,
                error=str(e),
            )
            return False
        if not isinstance(data, dict):
            logger.log_event(
                "config",
                "invalid_root",
                level=logging.ERROR,
                path=self.path,
                root_type=type(data).__name__,
            )
            return False
        with self._lock:
            changed = data != self._data
            self._data = data
        logger.log_event(
            "config", "loaded", level=logging.DEBUG, path=self.path, changed=changed
        )
        return changed
