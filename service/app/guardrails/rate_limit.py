"""Rate control: per-session cooldown and per-source request window.

In-memory only. A restart clears every window and cooldown, which is fine
for advisory controls on a single instance.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], float]


class Cooldown:
    """Timer handle for the client-side send cooldown.

    Expiry is evaluated lazily against ``clock`` rather than by a callback,
    so tests can drive time directly.
    """

    def __init__(self, duration: float, clock: Clock = time.monotonic) -> None:
        self.duration = duration
        self._clock = clock
        self.expires_at: float | None = None

    def activate(self) -> None:
        self.expires_at = self._clock() + self.duration

    def cancel(self) -> None:
        self.expires_at = None

    @property
    def active(self) -> bool:
        return self.remaining > 0

    @property
    def remaining(self) -> float:
        """Seconds until the cooldown lapses (0 when inactive)."""
        if self.expires_at is None:
            return 0.0
        left = self.expires_at - self._clock()
        if left <= 0:
            self.expires_at = None
            return 0.0
        return left


@dataclass
class RateWindow:
    """Admitted-request count for one source within the current window."""

    count: int
    window_start: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: float = 0.0


class SlidingWindowLimiter:
    """Caps admitted requests per source identifier.

    Parameters
    ----------
    limit : int
        Maximum admitted requests per window.
    window_seconds : float
        Window duration. A window starts at the first admitted request from
        a source and resets exactly ``window_seconds`` later. Rejected
        attempts neither count nor push the reset out.
    clock : callable
        Monotonic time source, injectable for tests.
    lock_stripes : int
        Size of the lock pool shared by all sources.

    Expired windows are pruned from ``admit`` at most once per window, so
    sources that stop sending do not accumulate.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float = 60.0,
        clock: Clock = time.monotonic,
        lock_stripes: int = 64,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        # Fixed pool of locks striped by source, so memory stays bounded
        self._locks = [threading.Lock() for _ in range(lock_stripes)]
        self._last_prune = clock()

    def admit(self, source: str) -> RateDecision:
        """Count one request for ``source`` if it is under the cap."""
        now = self._clock()
        if now - self._last_prune >= self.window_seconds:
            # Must run before taking a stripe lock; the locks are not reentrant
            self._last_prune = now
            self.prune()

        with self._lock_for(source):
            now = self._clock()
            window = self._windows.get(source)
            if window is None or now - window.window_start >= self.window_seconds:
                window = RateWindow(count=0, window_start=now)
                self._windows[source] = window

            if window.count >= self.limit:
                retry_after = window.window_start + self.window_seconds - now
                return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

            window.count += 1
            return RateDecision(allowed=True, remaining=self.limit - window.count)

    def reset(self, source: str | None = None) -> None:
        """Forget one source's window, or every window when ``source`` is None."""
        if source is None:
            self._windows.clear()
            return
        self._windows.pop(source, None)

    def prune(self) -> int:
        """Drop every expired window and return how many were removed."""
        removed = 0
        now = self._clock()
        for source in list(self._windows):
            with self._lock_for(source):
                window = self._windows.get(source)
                if window is not None and now - window.window_start >= self.window_seconds:
                    del self._windows[source]
                    removed += 1
        return removed

    @property
    def tracked_sources(self) -> int:
        return len(self._windows)

    def _lock_for(self, source: str) -> threading.Lock:
        return self._locks[hash(source) % len(self._locks)]
