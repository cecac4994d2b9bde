"""
Common primitives: identifiers and time sources.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from ulid import ULID


def generate_ulid() -> str:
    """Generate a ULID for record IDs.

    ULIDs are lexicographically sortable and globally unique.
    """
    return str(ULID())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Clock(Protocol):
    """Source of timestamps for created/updated fields and audit ordering."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock UTC time that never goes backwards within a process."""

    def __init__(self) -> None:
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = utc_now()
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
            return current


class SteppingClock:
    """Deterministic clock that advances by a fixed step on every call.

    Timestamps are strictly increasing, which makes audit ordering in tests
    independent of wall-clock resolution.
    """

    def __init__(
        self,
        start: Optional[datetime] = None,
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self._current = start or datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
        self._step = step
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            value = self._current
            self._current = value + self._step
            return value

    def peek(self) -> datetime:
        """Return the next timestamp without consuming it."""
        return self._current
