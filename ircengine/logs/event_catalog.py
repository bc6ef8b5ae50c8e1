"""Human-readable text for logged events.

``event_templates.json`` maps domain -> action -> ``str.format`` template.
The catalog renders a template with the event's context fields and can list
the events a source tree logs without a template.
"""

from __future__ import annotations

import json
import re
import string
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

_JSON_FILENAME = "event_templates.json"
_LOG_EVENT_RE = re.compile(r'log_event\(\s*"(\w+)",\s*"(\w+)"')
# Channel._log(action, ...) always logs in the "channel" domain.
_CHANNEL_LOG_RE = re.compile(r'self\._log\(\s*"(\w+)"')

EventKey = tuple[str, str]


class EventCatalog(Mapping[EventKey, str]):
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or Path(__file__).with_name(_JSON_FILENAME)
        self.load_error: str | None = None
        self._templates: dict[EventKey, str] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the template file; a broken file leaves an empty catalog."""
        templates: dict[EventKey, str] = {}
        self.load_error = None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw: Any = json.load(f)
        except FileNotFoundError:
            self.load_error = f"event templates file missing: {self.path}"
        except (OSError, ValueError) as e:
            self.load_error = f"failed to load event templates: {e}"[:200]
        else:
            if not isinstance(raw, Mapping):
                self.load_error = "event templates root must be an object"
            else:
                for domain, actions in raw.items():
                    if not isinstance(actions, Mapping):
                        continue
                    for action, template in actions.items():
                        if isinstance(template, str):
                            templates[(str(domain), str(action))] = template
        self._templates = templates

    def __getitem__(self, key: EventKey) -> str:
        return self._templates[key]

    def __iter__(self) -> Iterator[EventKey]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def render(
        self, domain: str, action: str, fields: Mapping[str, object]
    ) -> str | None:
        """Template text filled from ``fields``; None when there is no template.

        A template naming a field the event did not supply is returned as is.
        """
        template = self._templates.get((domain, action))
        if template is None:
            return None
        try:
            return template.format_map(fields)
        except (KeyError, IndexError, ValueError):
            return template

    def fields(self, domain: str, action: str) -> set[str]:
        template = self._templates.get((domain, action), "")
        return {name for _, name, _, _ in string.Formatter().parse(template) if name}

    def missing(self, events: Iterable[EventKey]) -> list[EventKey]:
        return sorted(set(events) - set(self._templates))


def events_logged_in(root: Path) -> set[EventKey]:
    """Every (domain, action) pair logged by the Python sources under ``root``."""
    used: set[EventKey] = set()
    for path in root.rglob("*.py"):
        text = path.read_text(encoding="utf-8")
        used.update(_LOG_EVENT_RE.findall(text))
        used.update(("channel", action) for action in _CHANNEL_LOG_RE.findall(text))
    return used


catalog = EventCatalog()

__all__ = ["EventCatalog", "catalog", "events_logged_in"]
