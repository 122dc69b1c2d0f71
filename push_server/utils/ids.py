from __future__ import annotations

import threading
import time


class TimeBasedIdGenerator:
    """Nanosecond clock ids, bumped so that every id is strictly greater than the last."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self) -> str:
        with self._lock:
            candidate = time.time_ns()
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)
