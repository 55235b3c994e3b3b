"""
Integration tests for the signing key flow against the mock identity provider.
"""

import asyncio

import httpx
import pytest
from jose import jwt as jose_jwt

from mocks.jwks.server import MockIdentityProvider
from service_jwks.app import JWKSClient
from shared.errors import KeyNotFoundError, RateLimitError, TransportError


class TestJWKSFlow:
    """Integration tests for the complete key resolution flow."""

    @pytest.fixture
    def idp(self):
        """Mock identity provider."""
        return MockIdentityProvider()

    @pytest.fixture
    def make_client(self, idp):
        def _make(**options):
            return JWKSClient(
                jwks_uri=idp.jwks_uri,
                request_agent_options={"transport": httpx.ASGITransport(app=idp.app)},
                **options,
            )

        return _make

    async def _issue_token(self, idp) -> str:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=idp.app), base_url="http://localhost:8080") as client:
            response = await client.post(f"/realms/{idp.realm}/protocol/openid-connect/token")
            assert response.status_code == 200
            return response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_token_verifies_with_resolved_key(self, idp, make_client):
        """Issue a token, resolve its kid and verify the signature."""
        client = make_client(cache=True, rate_limit=True)
        token = await self._issue_token(idp)

        kid = jose_jwt.get_unverified_header(token)["kid"]
        key = await client.get_signing_key(kid)
        claims = jose_jwt.decode(token, key.public_key, algorithms=["RS256"], audience="jwks-client")

        assert kid == idp.active_kid
        assert claims["sub"] == "service-account"
        assert idp.jwks_requests == 1

    @pytest.mark.asyncio
    async def test_signing_keys_exclude_encryption_and_ec(self, make_client):
        client = make_client()

        keys = await client.get_signing_keys()

        assert [key.kid for key in keys] == ["signing-key-1", "signing-key-cert"]
        assert keys[1].certificate_pem is not None

    @pytest.mark.asyncio
    async def test_cached_lookups_hit_endpoint_once(self, idp, make_client):
        client = make_client(cache=True, rate_limit=True, jwks_requests_per_minute=1)

        for _ in range(5):
            await client.get_signing_key("signing-key-1")

        assert idp.jwks_requests == 1
        assert client.metrics.get_sample_value("signing_key_cache_hits_total") == 4.0

    @pytest.mark.asyncio
    async def test_unknown_kid_is_throttled(self, idp, make_client):
        """Repeated lookups of a bogus kid cannot flood the provider."""
        client = make_client(cache=True, rate_limit=True, jwks_requests_per_minute=2)

        for _ in range(2):
            with pytest.raises(KeyNotFoundError):
                await client.get_signing_key("bogus")
        with pytest.raises(RateLimitError):
            await client.get_signing_key("bogus")

        assert idp.jwks_requests == 2

    @pytest.mark.asyncio
    async def test_rotated_key_is_found(self, idp, make_client):
        client = make_client(cache=True)

        await client.get_signing_key("signing-key-1")
        idp.rotate("signing-key-2")
        key = await client.get_signing_key("signing-key-2")

        assert key.kid == "signing-key-2"
        assert idp.jwks_requests == 2

    @pytest.mark.asyncio
    async def test_provider_failure_then_recovery(self, idp, make_client):
        client = make_client(cache=True)
        idp.failure_status = 503

        with pytest.raises(TransportError) as exc_info:
            await client.get_signing_key("signing-key-1")
        assert exc_info.value.message == "Mock failure 503"
        assert exc_info.value.status_code == 503

        idp.failure_status = None
        key = await client.get_signing_key("signing-key-1")

        assert key.kid == "signing-key-1"

    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_one_fetch(self, idp, make_client):
        client = make_client(cache=True)

        keys = await asyncio.gather(*(client.get_signing_key("signing-key-1") for _ in range(10)))

        assert {key.kid for key in keys} == {"signing-key-1"}
        assert idp.jwks_requests == 1
