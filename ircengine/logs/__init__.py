"""Project logging package.

Contains internal logging utilities (event catalog + EngineLogger). Avoid
importing stdlib logging through this package name externally.
"""

from .event_catalog import EventCatalog, catalog, events_logged_in  # noqa: F401
from .logger import EngineLogger, logger  # noqa: F401

__all__ = ["EngineLogger", "EventCatalog", "catalog", "events_logged_in", "logger"]
