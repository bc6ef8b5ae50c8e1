"""
Configuration file watcher for runtime config changes
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from typing import Any, Protocol, cast, runtime_checkable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer as _Observer

from ..logs.logger import logger
from .lookup import JsonFileConfig


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for config file changes"""

    last_modified: float

    def __init__(self, config_file: str, watcher_instance: ConfigWatcher):
        super().__init__()
        self.config_file = os.path.abspath(config_file)
        self.watcher = watcher_instance
        self.last_modified = 0.0

    def _should_process(self) -> bool:
        """Check if the config file's mtime advanced since last processed."""
        try:
            mtime = os.path.getmtime(self.config_file)
        except FileNotFoundError:
            return False
        if mtime <= self.last_modified:
            return False
        self.last_modified = mtime
        return True

    def _handle_event(self, src_path: str) -> None:
        if os.path.abspath(src_path) != self.config_file:
            return
        if self._should_process():
            try:
                self.watcher._on_config_changed()  # noqa: SLF001
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "config_watch",
                    "change_handler_error",
                    level=logging.ERROR,
                    error=str(e),
                )

    def on_modified(self, event):
        self._handle_event(getattr(event, "src_path", ""))

    def on_created(self, event):
        self._handle_event(getattr(event, "src_path", ""))

    def on_moved(self, event):
        # For moved events, prefer destination path
        dest = getattr(event, "dest_path", None) or getattr(event, "src_path", "")
        self._handle_event(dest)


@runtime_checkable
class _ObserverLike(Protocol):
    def schedule(
        self, handler: FileSystemEventHandler, path: str, recursive: bool = False
    ) -> None: ...  # noqa: D401,E701
    def start(self) -> None: ...  # noqa: D401,E701
    def stop(self) -> None: ...  # noqa: D401,E701
    def join(self, timeout: float | None = None) -> None: ...  # noqa: D401,E701


class ConfigWatcher:
    """Reloads a JSON config when its file changes and notifies a callback.

    The callback runs on the watchdog thread and only when the reload
    changed the data.
    """

    observer: Any | None
    running: bool

    def __init__(
        self, config: JsonFileConfig, on_change: Callable[[JsonFileConfig], Any]
    ):
        self.config = config
        self.config_file = config.path
        self.on_change = on_change
        self.observer = None
        self.running = False

    def start(self) -> None:
        """Start watching the config file"""
        if self.running:
            return

        config_dir = os.path.dirname(os.path.abspath(self.config_file))
        if not os.path.exists(config_dir):
            logger.log_event(
                "config_watch",
                "dir_missing",
                level=logging.WARNING,
                path=config_dir,
            )
            return

        try:
            observer = cast(_ObserverLike, _Observer())
            event_handler = ConfigFileHandler(self.config_file, self)
            observer.schedule(event_handler, config_dir, recursive=False)
            observer.start()
            self.observer = observer
            self.running = True
            logger.log_event("config_watch", "start", path=self.config_file)
        except OSError as e:
            self.observer = None
            logger.log_event(
                "config_watch",
                "start_failed",
                level=logging.ERROR,
                error=str(e),
            )

    def stop(self) -> None:
        """Stop watching the config file"""
        obs = self.observer
        if self.running and obs is not None:
            try:
                obs.stop()
                obs.join()
            finally:
                self.running = False
                self.observer = None
                logger.log_event("config_watch", "stopped")

    def _on_config_changed(self) -> None:
        if not self.config.reload():
            logger.log_event("config_watch", "unchanged", level=logging.DEBUG)
            return
        logger.log_event("config_watch", "reloaded", path=self.config_file)
        self.on_change(self.config)


async def create_config_watcher(
    config: JsonFileConfig, on_change: Callable[[JsonFileConfig], Any]
) -> ConfigWatcher:
    """Create and start a config file watcher"""
    watcher = ConfigWatcher(config, on_change)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, watcher.start)
    return watcher
