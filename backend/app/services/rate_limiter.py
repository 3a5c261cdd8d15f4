"""Failed sign-in tracking and temporary lockout."""

from __future__ import annotations

import abc
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.config import settings


@dataclass
class RateLimitEntry:
    count: int
    last_attempt: float


@dataclass
class RateLimitResult:
    allowed: bool
    remaining_time_ms: Optional[int] = None


class RateLimitStore(abc.ABC):
    """
    Keyed failure counters.

    Implementations must run each call atomically per key, including the
    decision to drop an entry whose last failure is older than the window.
    """

    @abc.abstractmethod
    def increment(self, key: str, now: float, window_seconds: float) -> RateLimitEntry:
        """Add one failure for key, starting over if the entry is stale, and return the new entry."""

    @abc.abstractmethod
    def current(self, key: str, now: float, window_seconds: float) -> Optional[RateLimitEntry]:
        """Return the live entry for key, dropping it first if it is stale."""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[RateLimitEntry]:
        """Return the entry for key, if any."""

    @abc.abstractmethod
    def clear(self, key: str) -> None:
        """Forget key."""


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store suitable for single-node deployments."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, RateLimitEntry] = {}

    def _live_entry(self, key: str, now: float, window_seconds: float) -> Optional[RateLimitEntry]:
        # Caller holds self._lock
        entry = self._entries.get(key)
        if entry is not None and now - entry.last_attempt > window_seconds:
            del self._entries[key]
            return None
        return entry

    def increment(self, key: str, now: float, window_seconds: float) -> RateLimitEntry:
        with self._lock:
            entry = self._live_entry(key, now, window_seconds)
            if entry is None:
                entry = RateLimitEntry(count=1, last_attempt=now)
                self._entries[key] = entry
            else:
                entry.count += 1
                entry.last_attempt = now
            return RateLimitEntry(entry.count, entry.last_attempt)

    def current(self, key: str, now: float, window_seconds: float) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._live_entry(key, now, window_seconds)
            return RateLimitEntry(entry.count, entry.last_attempt) if entry else None

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)
            return RateLimitEntry(entry.count, entry.last_attempt) if entry else None

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class LoginRateLimiter:
    """
    Lock a key out after max_attempts consecutive failures.

    The lockout lasts window_seconds from the most recent failure; once
    that much time has passed without a new failure the counter resets.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock

    def check_rate_limit(self, key: str) -> RateLimitResult:
        now = self._clock()
        entry = self.store.current(key, now, self.window_seconds)
        if entry is None or entry.count < self.max_attempts:
            return RateLimitResult(allowed=True)

        remaining_ms = int((self.window_seconds - (now - entry.last_attempt)) * 1000)
        return RateLimitResult(allowed=False, remaining_time_ms=max(remaining_ms, 0))

    def record_failed_attempt(self, key: str) -> int:
        return self.store.increment(key, self._clock(), self.window_seconds).count

    def clear_failed_attempts(self, key: str) -> None:
        self.store.clear(key)


def login_rate_limit_key(client_ip: str, identifier: str) -> str:
    """Failures are counted per (client, claimed account) pair."""
    return f"{client_ip}:{identifier.strip().lower()}"


login_rate_limiter = LoginRateLimiter(
    InMemoryRateLimitStore(),
    max_attempts=settings.LOGIN_MAX_FAILED_ATTEMPTS,
    window_seconds=settings.LOGIN_LOCKOUT_MINUTES * 60,
)
