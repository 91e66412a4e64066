"""Per-user request quota.

Separate from provider rate limiting: this bounds how many commands one
dashboard user may run per window, before any provider is contacted.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a quota check."""

    allowed: bool
    remaining: int
    reset_in: int  # Seconds until the window resets

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in),
        }


@runtime_checkable
class RateLimiter(Protocol):
    """Protocol for per-user quota stores.

    Implementations:
    - InMemoryRateLimiter: single process, fixed window
    """

    async def try_acquire(self, user_id: str) -> RateLimitDecision:
        """Count one request for the user and report whether it may proceed."""
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Fixed-window counter per user, held in process memory.

    Not shared between processes; multi-instance deployments need a
    shared store behind the same protocol.
    """

    def __init__(
        self,
        limit: int = 20,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._next_sweep = 0.0

    async def try_acquire(self, user_id: str) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            current = self._windows.get(user_id)

            if current is None or now > current.reset_at:
                self._windows[user_id] = _Window(count=1, reset_at=now + self.window)
                return RateLimitDecision(
                    allowed=True, remaining=self.limit - 1, reset_in=math.ceil(self.window)
                )

            reset_in = math.ceil(current.reset_at - now)
            if current.count >= self.limit:
                return RateLimitDecision(allowed=False, remaining=0, reset_in=reset_in)

            current.count += 1
            return RateLimitDecision(
                allowed=True, remaining=self.limit - current.count, reset_in=reset_in
            )

    def _sweep(self, now: float) -> None:
        """Drop expired windows, at most once per window length."""
        self._windows = {u: w for u, w in self._windows.items() if w.reset_at >= now}
        self._next_sweep = now + self.window
