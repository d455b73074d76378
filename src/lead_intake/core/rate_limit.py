"""In-process sliding-window rate limiter keyed by an arbitrary string.

Used for the global per-IP limit and per-user write throttling
(``create:<user_id>``, ``update:<user_id>``).
State lives in memory and is not shared between worker processes.
"""

import time
from collections import defaultdict
from collections.abc import Callable


class SlidingWindowRateLimiter:
    """Allow at most ``limit`` calls per key within a rolling ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, list[float]] = defaultdict(list)

    def allow(self, key: str) -> bool:
        """Record a hit for ``key`` and report whether it is within the limit.

        Rejected calls are not recorded, so a caller that backs off regains
        capacity as soon as older hits leave the window.
        """
        now = self._clock()
        window_start = now - self.window_seconds
        hits = [t for t in self._hits[key] if t > window_start]
        if len(hits) >= self.limit:
            self._hits[key] = hits
            return False
        hits.append(now)
        self._hits[key] = hits
        return True
