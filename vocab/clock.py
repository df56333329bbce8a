"""Time sources. Everything time-dependent takes a clock so tests can move time by hand."""

import time
import threading
from datetime import datetime, timezone


class SystemClock:
    """Wall clock in epoch seconds."""

    def now(self) -> float:
        return time.time()


class FakeClock:
    """Manually advanced clock for tests and simulations."""

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float = 0, minutes: float = 0, hours: float = 0) -> float:
        with self._lock:
            self._now += seconds + minutes * 60 + hours * 3600
            return self._now

    def set(self, timestamp: float) -> None:
        with self._lock:
            self._now = float(timestamp)


def iso_utc(timestamp: float) -> str:
    """Fixed-width ISO-8601 UTC string; sorts lexicographically in time order."""
    dt = datetime.fromtimestamp(timestamp, timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"
