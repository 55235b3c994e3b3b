"""
Per-kid rate limiting for signing key resolution.
"""

import asyncio
import random
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Optional

from shared.errors import RateLimitError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..jwks.models import SigningKey
from ..jwks.resolver import KeyResolver


WINDOW_SECONDS = 60.0


class RateLimitedResolver:
    """Sliding-window limiter in front of a KeyResolver.

    Each kid gets its own window of attempt timestamps; at most
    ``requests_per_minute`` attempts per rolling minute reach ``inner``.
    Attempts are recorded before delegation, so failing lookups count too.
    """

    def __init__(
        self,
        inner: KeyResolver,
        requests_per_minute: int = 10,
        *,
        jitter: float = 0.0,
        wait: bool = False,
        max_wait: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self.inner = inner
        self.requests_per_minute = requests_per_minute
        self.jitter = max(0.0, jitter)
        self.wait = wait
        self.max_wait = max_wait
        self.metrics = metrics
        self.logger = get_logger("jwks.rate_limiter")

        self._clock = clock
        self._sleep = sleep
        self._windows: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

        self.logger.info(
            "Configured rate limiting to JWKS endpoint",
            requests_per_minute=requests_per_minute,
            wait=wait,
        )

    def _prune(self, window: Deque[float], now: float) -> None:
        while window and now - window[0] >= WINDOW_SECONDS:
            window.popleft()

    def _sweep(self, now: float) -> None:
        """Drop windows that no longer hold any recent attempt."""
        if now - self._last_sweep < WINDOW_SECONDS:
            return
        self._last_sweep = now
        stale = [kid for kid, window in self._windows.items() if not window or now - window[-1] >= WINDOW_SECONDS]
        for kid in stale:
            del self._windows[kid]

    def _admit(self, kid: str) -> Optional[float]:
        """Record an attempt for ``kid``; return None if admitted, else seconds to wait.

        No await happens in here, so check-and-record is atomic on the loop.
        """
        now = self._clock()
        self._sweep(now)

        window = self._windows.setdefault(kid, deque())
        self._prune(window, now)
        if len(window) < self.requests_per_minute:
            window.append(now)
            return None

        retry_after = WINDOW_SECONDS - (now - window[0])
        if self.jitter:
            retry_after += random.uniform(0, self.jitter)
        return max(retry_after, 0.0)

    def remaining(self, kid: str) -> int:
        """Attempts still available for ``kid`` in the current window."""
        window = self._windows.get(kid)
        if window is None:
            return self.requests_per_minute
        self._prune(window, self._clock())
        return max(0, self.requests_per_minute - len(window))

    async def resolve(self, kid: str) -> SigningKey:
        waited = 0.0
        while True:
            retry_after = self._admit(kid)
            if retry_after is None:
                break

            if not self.wait or (self.max_wait is not None and waited + retry_after > self.max_wait):
                if self.metrics:
                    self.metrics.increment_counter("rate_limit_rejections_total")
                self.logger.warning(
                    "Rate limit exceeded",
                    kid=kid,
                    limit=self.requests_per_minute,
                    retry_after=round(retry_after, 3),
                )
                raise RateLimitError(retry_after=retry_after, details={"kid": kid})

            self.logger.debug("Delaying signing key lookup", kid=kid, delay=round(retry_after, 3))
            await self._sleep(retry_after)
            waited += retry_after

        return await self.inner.resolve(kid)
