"""
JWKS signing-key client.

Resolves the public key an identity provider used to sign a token, given
the token's key id (kid):

- app.jwks: fetcher, key conversion, resolver and the JWKSClient facade.
- app.ratelimit: per-kid throttling of lookups that reach the endpoint.
- app.caching: bounded TTL memoization of resolved keys.

Design notes:
- Importing this package performs no IO; the endpoint is only contacted
  from JWKSClient calls.
- Use the shared/ utilities for logging, metrics, configuration and errors.
"""

from .jwks.client import JWKSClient
from .jwks.models import SigningKey

__all__ = ["JWKSClient", "SigningKey"]
