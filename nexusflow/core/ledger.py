"""Bounded audit ledger of workflow events."""

import itertools
import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..schemas.unified_models import LogEntry, LogSeverity


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50

_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.SUCCESS: logging.INFO,
    LogSeverity.QUERY: logging.INFO,
    LogSeverity.ACTION: logging.INFO,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
}


class LogLedger:
    """Ring buffer keeping the most recent entries, newest first.

    Entry ids come from a counter that survives ``clear()``, so ids stay
    monotonic for the lifetime of the ledger.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize empty ledger."""
        if capacity < 1:
            raise ValueError(f"Ledger capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._ids = itertools.count(1)
        self._clock = clock

    def append(
        self,
        source: str,
        message: str,
        severity: LogSeverity = LogSeverity.INFO,
        payload: dict[str, Any] | None = None,
    ) -> LogEntry:
        """Record an entry, evicting the oldest one when full."""
        entry = LogEntry(
            id=next(self._ids),
            timestamp=self._clock(),
            source=source,
            message=message,
            severity=severity,
            payload=payload,
        )
        self._entries.appendleft(entry)
        logger.log(_LEVELS[severity], f"[{source}] {message}")
        return entry

    def entries(self) -> list[LogEntry]:
        """Entries newest first."""
        return list(self._entries)

    def latest(self) -> LogEntry | None:
        return self._entries[0] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
