"""
Signing key resolution: fetch, convert, select by kid.
"""

from typing import Any, List, Mapping, Optional, Protocol, Union, runtime_checkable

from shared.errors import ArgumentError, KeyNotFoundError, NoKeysError
from shared.logging import get_logger

from .converter import convert_keys
from .fetcher import JWKSFetcher
from .models import JWKS, SigningKey


@runtime_checkable
class KeyResolver(Protocol):
    """A layer of the signing key pipeline."""

    async def resolve(self, kid: str) -> SigningKey:
        ...


def require_kid(kid: Optional[str]) -> str:
    if not isinstance(kid, str) or not kid:
        raise ArgumentError("The kid must not be empty", details={"kid": kid})
    return kid


def _key_list(jwks: Union[Mapping[str, Any], JWKS]) -> JWKS:
    if isinstance(jwks, Mapping):
        keys = jwks.get("keys")
        return keys if isinstance(keys, list) else []
    return list(jwks)


def resolve_all(jwks: Union[Mapping[str, Any], JWKS]) -> List[SigningKey]:
    """Convert every eligible key of an already fetched key set.

    Accepts either the JWKS document (``{"keys": [...]}``) or its key list.
    """
    return convert_keys(_key_list(jwks))


def resolve_one(jwks: Union[Mapping[str, Any], JWKS], kid: str) -> SigningKey:
    """Return the signing key for ``kid`` from an already fetched key set."""
    kid = require_kid(kid)
    for signing_key in resolve_all(jwks):
        if signing_key.kid == kid:
            return signing_key
    raise KeyNotFoundError(kid)


class SigningKeyResolver:
    """Undecorated resolver: every call hits the JWKS endpoint."""

    def __init__(self, fetcher: JWKSFetcher) -> None:
        self.fetcher = fetcher
        self.logger = get_logger("jwks.resolver")

    async def get_keys(self) -> JWKS:
        """Raw key set, no conversion."""
        return await self.fetcher.fetch()

    async def get_signing_keys(self) -> List[SigningKey]:
        keys = await self.get_keys()
        if not keys:
            raise NoKeysError("The JWKS endpoint did not contain any keys")
        return convert_keys(keys)

    async def get_signing_key(self, kid: str) -> SigningKey:
        kid = require_kid(kid)
        self.logger.debug("Fetching signing key", kid=kid)

        for signing_key in await self.get_signing_keys():
            if signing_key.kid == kid:
                return signing_key

        self.logger.warning("Unable to find a signing key that matches kid", kid=kid)
        raise KeyNotFoundError(kid)

    async def resolve(self, kid: str) -> SigningKey:
        return await self.get_signing_key(kid)
