#!/usr/bin/env python3
"""
Main entry point for the ircengine client
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from pydantic import ValidationError

from .config import (
    JsonFileConfig,
    ServerSettings,
    create_config_watcher,
    server_names,
)
from .constants import CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE
from .errors.handling import log_error
from .irc import Connection, ConnectionRegistry, HookRegistry
from .logs.logger import logger
from .services import ServicesAgent


class Runner:
    """Owns the shared hooks and registry and one Connection per server entry."""

    def __init__(self, config: JsonFileConfig):
        self.config = config
        self.hooks = HookRegistry()
        self.registry = ConnectionRegistry()
        self.connections: dict[str, Connection] = {}
        self.shutdown_initiated = False
        ServicesAgent(config).install(self.hooks)

    def start_configured(self) -> int:
        """Start a connection for each configured server not yet started."""
        started = 0
        for name in server_names(self.config):
            if name in self.connections or self.shutdown_initiated:
                continue
            try:
                settings = ServerSettings.from_config(self.config, name)
            except (ValidationError, ValueError) as e:
                log_error("Invalid server configuration", e, user=name)
                continue
            conn = Connection(name, settings, self.hooks, self.registry)
            self.connections[name] = conn
            conn.start()
            started += 1
        return started

    async def shutdown(self, reason: str | None = None) -> None:
        if self.shutdown_initiated:
            return
        self.shutdown_initiated = True
        await self.registry.quit_all(reason)

    def setup_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:  # pragma: no cover
        def handler(signum: int, _frame: object | None) -> None:
            if self.shutdown_initiated:
                return
            logger.log_event("app", "signal", level=logging.WARNING, signal=signum)
            loop.call_soon_threadsafe(
                lambda: loop.create_task(self.shutdown("Shutting down"))
            )

        signal.signal(signal.SIGINT, handler)
        signal.signal(signal.SIGTERM, handler)


async def main() -> None:
    """Load the config, connect to every configured server and run until all quit."""
    config_file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
    config = JsonFileConfig(config_file)
    runner = Runner(config)
    loop = asyncio.get_running_loop()
    runner.setup_signal_handlers(loop)

    def on_config_change(_config: JsonFileConfig) -> None:
        # Called on the watchdog thread.
        loop.call_soon_threadsafe(runner.start_configured)

    watcher = await create_config_watcher(config, on_config_change)
    try:
        if not runner.start_configured():
            logger.log_event("app", "no_servers", level=logging.WARNING, path=config_file)
            return
        logger.log_event("app", "running", servers=len(runner.connections))
        await runner.registry.wait_all()
    finally:
        await loop.run_in_executor(None, watcher.stop)
        logger.log_event("app", "shutdown_complete")


def check_config() -> int:
    """Validate every configured server entry; returns a process exit code."""
    config = JsonFileConfig(os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
    names = server_names(config)
    failures = 0
    for name in names:
        try:
            ServerSettings.from_config(config, name)
        except (ValidationError, ValueError) as e:
            log_error("Invalid server configuration", e, user=name)
            failures += 1
    logger.log_event("app", "config_checked", servers=len(names), invalid=failures)
    return 1 if failures or not names else 0


def run() -> None:
    """Synchronous entry point for the application."""
    if len(sys.argv) > 1 and sys.argv[1] == "--check-config":
        sys.exit(check_config())
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)
    except Exception as e:
        log_error("Top-level error", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
