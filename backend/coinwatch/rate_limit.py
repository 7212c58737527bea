"""
Rate limiting.

Fixed-window counters per (requester, action), held in memory. Windows are
shared by every request thread, so updates go through a lock.
"""

import math
import time
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from .errors import rate_limited

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


@dataclass
class RateWindow:
    """Counter for one (requester, action) window."""
    count: int
    reset_at: float


class RateLimiter:
    """In-memory fixed-window rate limiter."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def check(self, requester_id: Optional[str], action: str, limit: int, window_seconds: float) -> int:
        """
        Count one call against the requester's window for ``action``.
        
        Args:
            requester_id: User id, or None for anonymous callers
            action: Action name (e.g., "create_watchlist", "read")
            limit: Maximum calls per window
            window_seconds: Window length
            
        Returns:
            Calls remaining in the current window
            
        Raises:
            WatchlistError: RATE_LIMITED with the seconds until the window resets
        """
        key = f"{requester_id or ANONYMOUS}:{action}"
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = RateWindow(count=0, reset_at=now + window_seconds)
                self._windows[key] = window
            window.count += 1
            count = window.count
            reset_in = window.reset_at - now

        if count > limit:
            retry_after = max(1, math.ceil(reset_in))
            logger.warning(f"Rate limit exceeded for {key} ({limit}/{window_seconds}s)")
            raise rate_limited(
                f"Rate limit exceeded for {action}. Try again in {retry_after} seconds.",
                {"limit": limit, "window_seconds": window_seconds, "retry_after": retry_after}
            )
        return limit - count

    def purge_expired(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, window in self._windows.items() if now > window.reset_at]
            for key in expired:
                del self._windows[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired rate-limit windows")
        return len(expired)

    def reset(self):
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
