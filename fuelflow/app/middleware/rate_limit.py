"""Reusable in-memory rate limiter.

Used by the login endpoints. For multi-replica deployments, swap to a
shared store.
"""

from __future__ import annotations

import time

from fastapi import HTTPException, status


class InMemoryRateLimiter:
    """Sliding-window in-memory rate limiter keyed by an arbitrary string."""

    def __init__(self, window_seconds: int = 60, max_attempts: int = 5) -> None:
        self._window = window_seconds
        self._max = max_attempts
        self._attempts: dict[str, list[float]] = {}

    def _prune(self, now: float) -> None:
        # Keys whose newest attempt left the window are dropped entirely
        stale = [k for k, times in self._attempts.items() if now - times[-1] >= self._window]
        for key in stale:
            del self._attempts[key]

    def check(self, key: str) -> None:
        """Raise HTTP 429 if *key* has exceeded *max_attempts* in the window."""
        now = time.monotonic()
        self._prune(now)
        recent = [t for t in self._attempts.get(key, []) if now - t < self._window]
        if len(recent) >= self._max:
            self._attempts[key] = recent
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many attempts. Try again in {self._window} seconds.",
            )
        recent.append(now)
        self._attempts[key] = recent

    def tracked_keys(self) -> int:
        return len(self._attempts)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._attempts.clear()
        else:
            self._attempts.pop(key, None)
