"""
Rate Limiter

Fixed-window attempt counter keyed by device id.

A window opens on the first attempt for a key and resets on the first
attempt after it has elapsed. Bursts of up to twice the limit are possible
across a window boundary; this matches the upstream behaviour and is kept.
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Dict

from core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitEntry:
    """Attempt bookkeeping for one key."""

    count: int
    window_start: float


class RateLimiter:
    """
    Per-key fixed-window rate limiter.

    Thread-safe: every read-modify-write of an entry happens under a single
    lock. The limiter never schedules its own cleanup; call sweep()
    periodically from outside.
    """

    def __init__(
        self,
        max_attempts: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "validation",
    ):
        """
        Initialize the limiter.

        Args:
            max_attempts: Attempts allowed per key per window
            window_seconds: Window length in seconds
            clock: Monotonic time source in seconds
            name: Label used in log messages
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def tracked_keys(self) -> list[str]:
        """Keys that currently have an entry, including expired ones not yet swept."""
        with self._lock:
            return list(self._entries)

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start > self.window_seconds

    def is_allowed(self, key: str) -> bool:
        """
        Record an attempt for a key and report whether it is within the limit.

        Args:
            key: Device id (or any caller-chosen key)

        Returns:
            True if allowed, False if the key has exhausted its window
        """
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)

            if entry is None or self._expired(entry, now):
                self._entries[key] = RateLimitEntry(count=1, window_start=now)
                return True

            if entry.count >= self.max_attempts:
                allowed = False
            else:
                entry.count += 1
                allowed = True

        if not allowed:
            logger.warning(f"Rate limit ({self.name}) exceeded for device {key}")
        return allowed

    def remaining_attempts(self, key: str) -> int:
        """Attempts left for a key in its current window."""
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry, now):
                return self.max_attempts
            return max(0, self.max_attempts - entry.count)

    def retry_after(self, key: str) -> int:
        """
        Seconds until a limited key may try again.

        Returns:
            Whole seconds (at least 1) while the key is limited, else 0
        """
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry, now) or entry.count < self.max_attempts:
                return 0
            remaining = self.window_seconds - (now - entry.window_start)

        return max(1, math.ceil(remaining))

    def reset(self, key: str) -> None:
        """Forget a key."""
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """
        Drop entries whose window started more than two windows ago.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        cutoff = self.window_seconds * 2

        with self._lock:
            stale = [key for key, entry in self._entries.items() if now - entry.window_start > cutoff]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.debug(f"Rate limiter ({self.name}) swept {len(stale)} stale entries")
        return len(stale)
