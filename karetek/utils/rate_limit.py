import time
from typing import Callable, Dict, Tuple

class FixedWindowRateLimiter:
    """Counts requests per client key in fixed windows.

    A key's window starts with its first request and resets once
    ``window_seconds`` have elapsed; up to ``max_requests`` are allowed
    within it. Keys whose window has expired are dropped at most once
    per window.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._windows)

    def _expired(self, started: float, now: float) -> bool:
        return now - started >= self.window_seconds

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return

        self._last_sweep = now
        for key in [key for key, (started, _) in self._windows.items() if self._expired(started, now)]:
            del self._windows[key]

    def hit(self, key: str) -> bool:
        """Record one request for ``key``; False when it is over the limit"""
        now = self.clock()
        self._sweep(now)

        started, count = self._windows.get(key, (now, 0))
        if self._expired(started, now):
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests

    def retry_after(self, key: str) -> int:
        if key not in self._windows:
            return 0
        started, _ = self._windows[key]
        return max(0, int(self.window_seconds - (self.clock() - started)))

    def reset(self) -> None:
        self._windows.clear()
