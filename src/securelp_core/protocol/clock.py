"""Authoritative clocks.

The protocol stamps ``created_at`` and checks the reveal delay against the
same clock, owned by the ledger. Clients never supply timestamps.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current unix time in whole seconds."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to. Used for virtual-time ledgers and tests."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            msg = "Clock cannot move backwards"
            raise ValueError(msg)
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            msg = f"Clock cannot move backwards ({timestamp} < {self._now})"
            raise ValueError(msg)
        self._now = timestamp
