"""
Bounded, time-boxed memoization of resolved signing keys.
"""

import asyncio
import time
from typing import Callable, Dict, Optional

from cachetools import TTLCache

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..jwks.models import SigningKey
from ..jwks.resolver import KeyResolver


class _InFlight:
    __slots__ = ("lock", "waiters")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.waiters = 0


class CachedResolver:
    """Outermost layer of the pipeline.

    Hits never reach ``inner`` (so they neither fetch nor consume rate-limit
    budget). Only successful resolutions are stored; any exception from
    ``inner`` propagates and leaves the cache untouched. Entries expire after
    ``max_age`` seconds and the least recently used entry is evicted once
    ``max_entries`` is reached.
    """

    def __init__(
        self,
        inner: KeyResolver,
        max_age: float = 36000.0,
        max_entries: int = 5,
        *,
        timer: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.inner = inner
        self.max_age = max_age
        self.max_entries = max_entries
        self.metrics = metrics
        self.logger = get_logger("jwks.cache")

        self._cache: TTLCache = TTLCache(maxsize=max_entries, ttl=max_age, timer=timer)
        # One in-flight resolution per kid; waiters re-check the cache after it.
        self._inflight: Dict[str, _InFlight] = {}

        self.logger.info(
            "Configured caching of signing keys",
            max_entries=max_entries,
            max_age=max_age,
        )

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, kid: str) -> bool:
        return kid in self._cache

    def clear(self) -> None:
        self._cache.clear()
        self.logger.info("Signing key cache cleared")

    def _lookup(self, kid: str) -> Optional[SigningKey]:
        return self._cache.get(kid)

    async def resolve(self, kid: str) -> SigningKey:
        cached = self._lookup(kid)
        if cached is not None:
            self._record("signing_key_cache_hits_total")
            return cached

        inflight = self._inflight.get(kid)
        if inflight is None:
            inflight = self._inflight[kid] = _InFlight()
        inflight.waiters += 1
        try:
            async with inflight.lock:
                cached = self._lookup(kid)
                if cached is not None:
                    self._record("signing_key_cache_hits_total")
                    return cached

                self._record("signing_key_cache_misses_total")
                signing_key = await self.inner.resolve(kid)
                self._cache[kid] = signing_key
                self.logger.debug("Caching signing key", kid=kid)
                return signing_key
        finally:
            inflight.waiters -= 1
            if inflight.waiters == 0:
                del self._inflight[kid]

    def _record(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name)
