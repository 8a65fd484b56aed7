"""
Rate Limiter Module

Sliding-window limiter tracking request and token counts across several
overlapping windows (requests per minute, requests per hour, tokens per minute).
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from ai_orchestrator.config import Settings

logger = logging.getLogger(__name__)

REQUESTS_PER_MINUTE = "requests_per_minute"
REQUESTS_PER_HOUR = "requests_per_hour"
TOKENS_PER_MINUTE = "tokens_per_minute"


@dataclass(frozen=True)
class WindowLimit:
    """One configured window: tracking key, threshold and horizon"""

    key: str
    limit: int
    window_seconds: int
    # Token windows are weighted by token count instead of one per event
    weighted: bool = False

    @property
    def retry_after(self) -> int:
        """Suggested retry delay: the window's own horizon"""
        return self.window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    """Admission outcome"""

    allowed: bool
    window: Optional[str] = None
    retry_after: int = 0
    remaining: int = 0


def windows_from_settings(settings: Settings) -> list[WindowLimit]:
    return [
        WindowLimit(REQUESTS_PER_MINUTE, settings.RATE_LIMIT_REQUESTS_PER_MINUTE, 60),
        WindowLimit(REQUESTS_PER_HOUR, settings.RATE_LIMIT_REQUESTS_PER_HOUR, 3600),
        WindowLimit(TOKENS_PER_MINUTE, settings.RATE_LIMIT_TOKENS_PER_MINUTE, 60, weighted=True),
    ]


class SlidingWindowRateLimiter:
    """
    In-memory sliding window rate limiter.

    Each tracking key owns an ordered sequence of (timestamp, weight) events.
    Counts are always evaluated on the view pruned to the window horizon; a
    periodic sweep discards stale events to bound memory.

    Token windows are fed after a call completes, so concurrent in-flight
    requests may transiently exceed the token budget (soft limit).
    """

    def __init__(
        self,
        windows: list[WindowLimit],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, WindowLimit] = {}
        # Structure: {key: deque[(timestamp, weight)]}
        self._events: dict[str, deque[tuple[float, int]]] = {}
        self.configure(windows)

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Callable[[], float] = time.time
    ) -> "SlidingWindowRateLimiter":
        return cls(windows_from_settings(settings), clock=clock)

    def configure(self, windows: list[WindowLimit]) -> None:
        """Replace thresholds; recorded events are kept"""
        with self._lock:
            self._windows = {w.key: w for w in windows}
            for key in self._windows:
                self._events.setdefault(key, deque())

    @property
    def windows(self) -> list[WindowLimit]:
        return list(self._windows.values())

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def _count(self, window: WindowLimit, now: float) -> int:
        horizon = now - window.window_seconds
        events = self._events.get(window.key, ())
        return sum(weight for ts, weight in events if ts > horizon)

    def count(self, key: str, now: Optional[float] = None) -> int:
        """Event count (or token total) within the key's horizon"""
        now = self._now(now)
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0
            return self._count(window, now)

    def check(self, now: Optional[float] = None) -> RateLimitDecision:
        """Evaluate every window without recording anything"""
        now = self._now(now)
        with self._lock:
            return self._check_locked(now)

    def _check_locked(self, now: float) -> RateLimitDecision:
        for window in self._windows.values():
            current = self._count(window, now)
            if current >= window.limit:
                logger.warning(
                    "Rate limit exceeded: window=%s, count=%s, limit=%s",
                    window.key,
                    current,
                    window.limit,
                )
                return RateLimitDecision(
                    allowed=False,
                    window=window.key,
                    retry_after=window.retry_after,
                    remaining=0,
                )
        return RateLimitDecision(allowed=True, remaining=self._remaining_locked(now))

    def admit(self, now: Optional[float] = None) -> RateLimitDecision:
        """
        Check every window and, if all pass, record one event against each
        request window. Check and record happen under one lock.
        """
        now = self._now(now)
        with self._lock:
            decision = self._check_locked(now)
            if not decision.allowed:
                return decision
            for window in self._windows.values():
                if not window.weighted:
                    self._events[window.key].append((now, 1))
            return RateLimitDecision(allowed=True, remaining=self._remaining_locked(now))

    def record_tokens(self, tokens: int, now: Optional[float] = None) -> None:
        """Record token usage discovered after a call completed"""
        if tokens <= 0:
            return
        now = self._now(now)
        with self._lock:
            for window in self._windows.values():
                if window.weighted:
                    self._events[window.key].append((now, int(tokens)))

    def _remaining_locked(self, now: float) -> int:
        window = self._windows.get(REQUESTS_PER_MINUTE)
        if window is None:
            return 0
        return max(0, window.limit - self._count(window, now))

    def remaining(self, now: Optional[float] = None) -> int:
        """Requests left in the per-minute window"""
        now = self._now(now)
        with self._lock:
            return self._remaining_locked(now)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Discard events older than the longest configured horizon.

        Returns:
            int: Number of discarded events
        """
        now = self._now(now)
        with self._lock:
            if not self._windows:
                return 0
            cutoff = now - max(w.window_seconds for w in self._windows.values())
            removed = 0
            for events in self._events.values():
                while events and events[0][0] <= cutoff:
                    events.popleft()
                    removed += 1
        logger.debug("Rate limit sweep completed: removed=%s", removed)
        return removed

    def size(self) -> int:
        """Total stored events across all keys"""
        with self._lock:
            return sum(len(events) for events in self._events.values())

    def reset(self) -> None:
        with self._lock:
            for events in self._events.values():
                events.clear()
