"""
JWKS client for resolving token signing keys from an identity provider.
"""

from typing import Any, List, Mapping, Optional, Union

from shared.config import JWKSClientConfig
from shared.logging import get_logger, set_kid_context
from shared.metrics import MetricsCollector, get_metrics_collector

from ..caching.signing_key_cache import CachedResolver
from ..ratelimit.limiter import RateLimitedResolver
from .fetcher import JWKSFetcher
from .models import JWKS, SigningKey
from .resolver import KeyResolver, SigningKeyResolver, require_kid, resolve_all, resolve_one


class JWKSClient:
    """Client for fetching JWKS and resolving signing keys by kid.

    The single-key path is composed once at construction time::

        cache (optional) -> rate limiter (optional) -> resolver -> fetcher

    Caching is always outermost, so a cache hit never spends rate-limit
    budget and a rate-limit rejection is never cached.
    ``get_signing_keys`` and ``get_keys`` always go straight to the endpoint.
    """

    def __init__(
        self,
        config: Optional[JWKSClientConfig] = None,
        *,
        metrics: Optional[MetricsCollector] = None,
        **options: Any,
    ) -> None:
        if config is None:
            config = JWKSClientConfig(**options)
        elif options:
            config = JWKSClientConfig(**{**config.model_dump(), **options})

        self.config = config
        self.metrics = metrics or get_metrics_collector("jwks")
        self.logger = get_logger("jwks.client")

        self.fetcher = JWKSFetcher(
            config.jwks_uri,
            request_headers=config.request_headers,
            strict_ssl=config.strict_ssl,
            timeout=config.timeout,
            request_agent_options=config.request_agent_options,
            metrics=self.metrics,
        )
        self._base = SigningKeyResolver(self.fetcher)
        self._resolver = self._compose(self._base)

    def _compose(self, base: KeyResolver) -> KeyResolver:
        resolver: KeyResolver = base
        if self.config.rate_limit:
            resolver = RateLimitedResolver(
                resolver,
                self.config.jwks_requests_per_minute,
                jitter=self.config.rate_limit_jitter,
                wait=self.config.rate_limit_wait,
                max_wait=self.config.rate_limit_max_wait,
                metrics=self.metrics,
            )
        if self.config.cache:
            resolver = CachedResolver(
                resolver,
                self.config.cache_max_age,
                self.config.cache_max_entries,
                metrics=self.metrics,
            )
        return resolver

    @property
    def resolver(self) -> KeyResolver:
        """The outermost layer of the signing key pipeline."""
        return self._resolver

    async def get_keys(self) -> JWKS:
        """Raw key set as published, without conversion."""
        return await self._base.get_keys()

    async def get_signing_keys(self) -> List[SigningKey]:
        """All signing keys of the current key set (never cached or rate limited)."""
        return await self._base.get_signing_keys()

    async def get_signing_key(self, kid: str) -> SigningKey:
        """Resolve the signing key for ``kid`` through the configured layers.

        Raises:
            ArgumentError: ``kid`` is empty.
            TransportError: the endpoint could not be fetched.
            NoKeysError: the key set holds no usable signing keys.
            KeyNotFoundError: no signing key matches ``kid``.
            ConversionError: an eligible key carries corrupt material.
            RateLimitError: the per-kid request budget is exhausted.
        """
        kid = require_kid(kid)
        set_kid_context(kid)
        try:
            return await self._resolver.resolve(kid)
        finally:
            set_kid_context(None)

    def extract_signing_keys(self, jwks: Union[Mapping[str, Any], JWKS]) -> List[SigningKey]:
        """Convert an already fetched JWKS document."""
        self.logger.debug("Extracting all signing keys")
        return resolve_all(jwks)

    def extract_signing_key(self, jwks: Union[Mapping[str, Any], JWKS], kid: str) -> SigningKey:
        """Select ``kid`` from an already fetched JWKS document."""
        self.logger.debug("Extracting signing key", kid=kid)
        return resolve_one(jwks, kid)
