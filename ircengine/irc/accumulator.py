"""Two-phase collection of multi-line server listings.

A listing (NAMES, WHO, ban/exception/invite lists) arrives as one reply per
item followed by an end marker. Items are gathered in a transient buffer
that is opened by the first item and handed over on the end marker.
"""

from __future__ import annotations

from ..errors import ScanError


class _Scan:
    kind = "scan"

    def __init__(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            raise ScanError(f"{self.kind} listing already in progress")
        self._reset()
        self._open = True

    def _reset(self) -> None:
        raise NotImplementedError

    def _ensure_open(self) -> None:
        if not self._open:
            self.open()


class RosterScan(_Scan):
    """Collects case-folded nicks seen during a NAMES or WHO listing."""

    def __init__(self, kind: str) -> None:
        super().__init__()
        self.kind = kind
        self._seen: set[str] = set()

    def _reset(self) -> None:
        self._seen = set()

    def add(self, nnick: str) -> None:
        self._ensure_open()
        self._seen.add(nnick)

    def commit(self) -> set[str]:
        """Close the scan and return every nick it saw.

        A commit with nothing opened returns an empty set: the server sent
        only the end marker, i.e. the listing is empty.
        """
        seen = self._seen if self._open else set()
        self._seen = set()
        self._open = False
        return seen


class MaskListScan(_Scan):
    """Collects masks of a ban, exception or invite listing, in server order."""

    def __init__(self, kind: str) -> None:
        super().__init__()
        self.kind = kind
        self._items: list[str] = []

    def _reset(self) -> None:
        self._items = []

    def add(self, mask: str) -> None:
        self._ensure_open()
        self._items.append(mask)

    def commit(self) -> list[str]:
        items = self._items if self._open else []
        self._items = []
        self._open = False
        return items
