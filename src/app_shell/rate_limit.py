"""
Per-IP sliding-window rate limiter.

Every call is recorded, so a client hammering the form keeps being
rejected instead of having its window reset.
"""

import logging
from datetime import datetime, timedelta
from threading import Lock

from src.adapters.clock import SystemClock
from src.ports.clock import ClockPort
from src.rules.models import RateLimitRules

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        rules: RateLimitRules | None = None,
        time_port: ClockPort | None = None,
    ):
        self.rules = rules or RateLimitRules()
        self._time = time_port if time_port is not None else SystemClock()
        self._history: dict[str, list[datetime]] = {}
        self._lock = Lock()
        self._last_pruned = self._time.now_utc()

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.rules.window_seconds)

    @property
    def tracked_ips(self) -> int:
        with self._lock:
            return len(self._history)

    def admit(self, ip: str) -> bool:
        """
        Record a request from ip.
        Returns False once more than max_requests fall within the window.
        """
        now = self._time.now_utc()
        cutoff = now - self.window

        with self._lock:
            if (
                now - self._last_pruned > self.window
                or len(self._history) > self.rules.prune_threshold
            ):
                self._prune_locked(cutoff)
                self._last_pruned = now

            recent = [t for t in self._history.get(ip, []) if t >= cutoff]
            recent.append(now)
            self._history[ip] = recent
            count = len(recent)

        if count > self.rules.max_requests:
            logger.warning("Rate limit exceeded for IP: %s (%d requests)", ip, count)
            return False
        return True

    def count(self, ip: str) -> int:
        """Requests from ip within the current window."""
        cutoff = self._time.now_utc() - self.window
        with self._lock:
            return sum(1 for t in self._history.get(ip, []) if t >= cutoff)

    def prune(self) -> int:
        """Drop timestamps outside the window and empty IP entries. Returns IPs dropped."""
        now = self._time.now_utc()
        with self._lock:
            dropped = self._prune_locked(now - self.window)
            self._last_pruned = now
        return dropped

    def _prune_locked(self, cutoff: datetime) -> int:
        before = len(self._history)
        self._history = {
            ip: kept
            for ip, stamps in self._history.items()
            if (kept := [t for t in stamps if t >= cutoff])
        }
        return before - len(self._history)
