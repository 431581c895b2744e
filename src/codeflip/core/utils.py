from __future__ import annotations
import re, threading, time


def now_ms() -> int:
    return int(time.time() * 1000)


def slugify(title: str) -> str:
    return re.sub(r"\s+", "-", title.strip().lower())


def new_problem_id(title: str) -> str:
    return f"{slugify(title)}-{now_ms()}"


class MonotonicClock:
    """Epoch-ms timestamps that never repeat or go backwards for one instance."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            ts = max(now_ms(), self._last + 1)
            self._last = ts
            return ts
