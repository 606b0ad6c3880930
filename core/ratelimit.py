import time
import threading
from typing import Callable, Dict, Tuple

class RateLimitExceeded(Exception):
    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Please try again in {retry_after:.0f}s.")

class RateLimiter:
    """Fixed-window limiter with one window per key (e.g. per user)."""

    def __init__(self, calls: int, period: int, clock: Callable[[], float] = time.monotonic):
        if calls < 1:
            raise ValueError("calls must be >= 1")
        self.calls = calls
        self.period = period
        self.clock = clock
        self.windows: Dict[str, Tuple[float, int]] = {}  # key -> (window start, tokens left)
        self.lock = threading.Lock()

    def _prune(self, now: float):
        expired = [k for k, (start, _) in self.windows.items() if now - start >= self.period]
        for k in expired:
            del self.windows[k]

    def acquire(self, key: str = "global") -> int:
        """Take one call from the key's current window and return how many remain."""
        with self.lock:
            now = self.clock()
            if len(self.windows) > 1024:
                self._prune(now)
            start, tokens = self.windows.get(key, (now, self.calls))
            if now - start >= self.period:
                start, tokens = now, self.calls
            if tokens <= 0:
                raise RateLimitExceeded(self.period - (now - start))
            self.windows[key] = (start, tokens - 1)
            return tokens - 1
