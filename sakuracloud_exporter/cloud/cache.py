"""A single-item cache with an absolute expiry time."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Cache:
    """Holds one item until a timezone-aware expiry time has passed."""

    def __init__(self, cleanup_interval: timedelta, clock: Callable[[], datetime] | None = None) -> None:
        self.cleanup_interval = cleanup_interval
        self.expires_at: datetime | None = None
        self.item: Any = None
        self._clock = clock or _utc_now
        self._lock = threading.Lock()

    def set(self, item: Any, expires_at: datetime) -> None:
        """Store ``item`` until ``expires_at``."""
        if item is None:
            raise ValueError("item is not set")
        if expires_at is None:
            raise ValueError("expiresAt is not set")
        with self._lock:
            self.item = item
            self.expires_at = expires_at

    def get(self) -> Any:
        """The stored item, or None once it has expired or was never set."""
        with self._lock:
            if self.expires_at is None or self._clock() > self.expires_at:
                return None
            return self.item