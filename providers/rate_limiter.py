"""Per-provider two-tier (minute / day) request window."""

import threading
import time
from collections.abc import Callable

MINUTE_WINDOW_SECONDS = 60.0
DAY_WINDOW_SECONDS = 86400.0


class RateLimitWindow:
    """
    Rolling minute and day counters, each with its own last-reset time.

    Counters only grow within a window and reset to zero once the window has
    elapsed. acquire() performs check + increment under one lock so two
    concurrent callers cannot both take the last slot.
    """

    def __init__(
        self,
        requests_per_minute: int,
        requests_per_day: int,
        day_window_seconds: float = DAY_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if requests_per_minute < 0 or requests_per_day < 0:
            raise ValueError("rate limits must be non-negative")
        self.requests_per_minute = requests_per_minute
        self.requests_per_day = requests_per_day
        self.day_window_seconds = day_window_seconds
        self._clock = clock
        self._lock = threading.Lock()

        now = clock()
        self._minute_count = 0
        self._day_count = 0
        self._minute_reset_at = now
        self._day_reset_at = now
        self.last_request_at: float | None = None

    @property
    def minute_count(self) -> int:
        return self._minute_count

    @property
    def day_count(self) -> int:
        return self._day_count

    def _roll(self, now: float) -> None:
        if now - self._minute_reset_at >= MINUTE_WINDOW_SECONDS:
            self._minute_count = 0
            self._minute_reset_at = now
        if now - self._day_reset_at >= self.day_window_seconds:
            self._day_count = 0
            self._day_reset_at = now

    def _within_limits(self) -> bool:
        return (
            self._minute_count < self.requests_per_minute
            and self._day_count < self.requests_per_day
        )

    def check(self) -> bool:
        """True when a request may be dispatched now."""
        with self._lock:
            self._roll(self._clock())
            return self._within_limits()

    def increment(self) -> None:
        """Count one dispatched request."""
        with self._lock:
            now = self._clock()
            self._roll(now)
            self._minute_count += 1
            self._day_count += 1
            self.last_request_at = now

    def acquire(self) -> bool:
        """Check and count in one step. Returns False (and counts nothing) when limited."""
        with self._lock:
            now = self._clock()
            self._roll(now)
            if not self._within_limits():
                return False
            self._minute_count += 1
            self._day_count += 1
            self.last_request_at = now
            return True

    def snapshot(self) -> dict[str, float | int | None]:
        with self._lock:
            self._roll(self._clock())
            return {
                "minute_count": self._minute_count,
                "day_count": self._day_count,
                "requests_per_minute": self.requests_per_minute,
                "requests_per_day": self.requests_per_day,
            }
