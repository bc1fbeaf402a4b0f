"""
Thread-safe in-memory key/value store with per-entry expiry.

Replaces module-level dictionaries for short-lived security state (failed
credential counters, blocked client addresses). One instance is created
in the application lifespan and stored on ``app.state``; tests build their
own instance and may inject a fake clock.

Expired entries are invisible to readers. They are removed on access, by
``sweep()``, and by the periodic sweep that writes trigger, so keys that
are never read again do not accumulate.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


_MISSING = object()


class TTLStore:
    """
    Expiring key/value store.

    Args:
        clock: Zero-argument callable returning seconds on a monotonic
            scale. Defaults to ``time.monotonic``.
        sweep_interval: Minimum seconds between the sweeps run by
            ``put()`` and ``incr()``. None turns them off.

    Example:
        >>> store = TTLStore()
        >>> store.put("state-abc", {"redirect": "/"}, ttl=600)
        >>> store.consume("state-abc")
        {'redirect': '/'}
        >>> store.consume("state-abc") is None
        True
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None,
                 sweep_interval: Optional[float] = 60.0):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._last_sweep = self._now()

    def put(self, key: Hashable, value: Any, ttl: float) -> None:
        """
        Store ``value`` under ``key`` for ``ttl`` seconds, replacing any
        previous entry.

        Raises:
            ValueError: If ttl is not positive
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._entries[key] = (value, self._now() + ttl)
            self._maybe_sweep()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``."""
        with self._lock:
            value = self._live_value(key)
        return default if value is _MISSING else value

    def consume(self, key: Hashable, default: Any = None) -> Any:
        """
        Atomically return and delete the live value for ``key``.

        Two concurrent callers can never both receive the same value.
        """
        with self._lock:
            value = self._live_value(key)
            if value is not _MISSING:
                del self._entries[key]
        return default if value is _MISSING else value

    def incr(self, key: Hashable, ttl: float) -> int:
        """
        Atomically increment a counter and return the new value.

        A new counter starts at 1 and expires ``ttl`` seconds later; later
        increments keep the original expiry (fixed window).
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            value = self._live_value(key)
            if value is _MISSING:
                self._entries[key] = (1, self._now() + ttl)
                count = 1
            else:
                count = value + 1
                self._entries[key] = (count, self._entries[key][1])
            self._maybe_sweep()
            return count

    def pop(self, key: Hashable) -> None:
        """Delete ``key`` whether or not it has expired."""
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return self._live_value(key) is not _MISSING

    def __len__(self) -> int:
        now = self._now()
        with self._lock:
            return sum(1 for _, expires in self._entries.values() if expires > now)

    def _now(self) -> float:
        # Resolved per call so freezegun can patch time.monotonic
        return self._clock() if self._clock else time.monotonic()

    def _live_value(self, key: Hashable) -> Any:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        value, expires = entry
        if expires <= self._now():
            del self._entries[key]
            return _MISSING
        return value

    def _sweep_locked(self) -> int:
        now = self._now()
        expired = [k for k, (_, expires) in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        return len(expired)

    def _maybe_sweep(self) -> None:
        # Caller holds the lock
        if self._sweep_interval is None:
            return
        if self._now() - self._last_sweep >= self._sweep_interval:
            self._sweep_locked()
