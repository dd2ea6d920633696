"""Bounded, append-only event log observed by the UI."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import Optional

from forge.models import LogEntry, Severity

DEFAULT_CAPACITY = 100

EntryCallback = Callable[[LogEntry], None]


class LogStream:
    """Keeps the most recent ``capacity`` log entries, oldest first.

    Appending past capacity silently evicts the oldest entry. ``entries()``
    returns a tuple snapshot, so readers never observe a half-applied append.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._subscribers: list[EntryCallback] = []

    def append(self, message: str, severity: Severity = Severity.INFO) -> LogEntry:
        entry = LogEntry(message=message, severity=severity)
        self._entries.append(entry)
        for callback in list(self._subscribers):
            callback(entry)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.append(message, Severity.INFO)

    def success(self, message: str) -> LogEntry:
        return self.append(message, Severity.SUCCESS)

    def error(self, message: str) -> LogEntry:
        return self.append(message, Severity.ERROR)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def last(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def subscribe(self, callback: EntryCallback) -> Callable[[], None]:
        """Register *callback* for every new entry. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._entries)
