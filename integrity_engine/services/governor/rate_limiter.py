"""
Per-source fixed-quota rate limiting.

Each external source gets its own window: a quota of calls that may be made
before the window's reset time. The window is created lazily on first use and
reset atomically once the clock passes its reset time.
"""
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
LimitLookup = Callable[[str], Tuple[int, float]]


@dataclass
class RateLimitWindow:
    """Usage of one source's quota within the current window."""

    quota: int
    window_seconds: float
    used: int
    reset_time: float

    @property
    def remaining(self) -> int:
        return max(0, self.quota - self.used)


class RateLimiter:
    """Thread-safe rate limiter keyed by external source name."""

    def __init__(self, limit_lookup: LimitLookup, clock: Optional[Clock] = None):
        """
        Args:
            limit_lookup: Returns (quota, window_seconds) for a source
            clock: Monotonic time source, defaults to time.monotonic
        """
        self._limit_lookup = limit_lookup
        self._clock = clock or time.monotonic
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = Lock()

    def check(self, source: str) -> bool:
        """
        Consume one call from the source's quota.

        Returns:
            True if the call is allowed, False if the quota is exhausted.
            A refused call leaves the window untouched.
        """
        with self._lock:
            now = self._clock()
            window = self._windows.get(source)
            if window is None:
                quota, window_seconds = self._limit_lookup(source)
                window = RateLimitWindow(
                    quota=quota,
                    window_seconds=window_seconds,
                    used=0,
                    reset_time=now + window_seconds,
                )
                self._windows[source] = window
            elif now > window.reset_time:
                window.used = 0
                window.reset_time = now + window.window_seconds

            if window.used >= window.quota:
                logger.warning(
                    f"Rate limit reached for '{source}': {window.used}/{window.quota} "
                    f"(resets in {window.reset_time - now:.1f}s)"
                )
                return False

            window.used += 1
            return True

    def usage(self) -> Dict[str, Dict[str, float]]:
        """Current usage per source, for diagnostics."""
        with self._lock:
            return {
                source: {
                    "quota": w.quota,
                    "used": w.used,
                    "remaining": w.remaining,
                    "window_seconds": w.window_seconds,
                }
                for source, w in self._windows.items()
            }

    def reset(self, source: Optional[str] = None) -> None:
        """Forget one source's window, or all windows."""
        with self._lock:
            if source is None:
                self._windows.clear()
            else:
                self._windows.pop(source, None)
