"""
Unit tests for JWKSClient.
"""

import pytest
from jose import jwt as jose_jwt
from pydantic import ValidationError

from service_jwks.app import JWKSClient
from service_jwks.app.caching.signing_key_cache import CachedResolver
from service_jwks.app.jwks.resolver import SigningKeyResolver
from service_jwks.app.ratelimit.limiter import RateLimitedResolver
from shared.config import JWKSClientConfig
from shared.errors import ArgumentError, KeyNotFoundError, NoKeysError, RateLimitError, TransportError
from shared.test_helpers import MockTokenGenerator, TestKeyFactory


class TestJWKSClient:
    """Test cases for JWKSClient."""

    @pytest.fixture
    def transport(self, make_transport, mock_jwks_data):
        return make_transport(200, mock_jwks_data)

    @pytest.fixture
    def make_client(self, jwks_uri, transport):
        def _make(**options):
            return JWKSClient(jwks_uri=jwks_uri, request_agent_options={"transport": transport}, **options)

        return _make

    def test_default_composition_is_undecorated(self, make_client):
        client = make_client()

        assert isinstance(client.resolver, SigningKeyResolver)

    def test_composition_order(self, make_client):
        """Cache wraps the rate limiter which wraps the resolver."""
        client = make_client(cache=True, rate_limit=True)

        assert isinstance(client.resolver, CachedResolver)
        assert isinstance(client.resolver.inner, RateLimitedResolver)
        assert isinstance(client.resolver.inner.inner, SigningKeyResolver)

    def test_rate_limit_only(self, make_client):
        client = make_client(rate_limit=True, jwks_requests_per_minute=3)

        assert isinstance(client.resolver, RateLimitedResolver)
        assert client.resolver.requests_per_minute == 3

    def test_config_object_and_overrides(self, jwks_uri, transport):
        config = JWKSClientConfig(jwks_uri=jwks_uri, cache=True, cache_max_entries=2)

        client = JWKSClient(config, rate_limit=True, request_agent_options={"transport": transport})

        assert client.config.cache_max_entries == 2
        assert client.config.rate_limit is True
        assert isinstance(client.resolver, CachedResolver)

    def test_invalid_config_is_rejected(self):
        with pytest.raises(ValidationError):
            JWKSClient(jwks_uri="")
        with pytest.raises(ValidationError):
            JWKSClient(jwks_uri="https://idp.example.test/jwks", jwks_requests_per_minute=0)

    @pytest.mark.asyncio
    async def test_end_to_end_modulus_key(self, make_client):
        """A modulus key resolves to a well-formed RSA PEM; unknown kids fail."""
        client = make_client()

        key = await client.get_signing_key("abc")

        assert key.kid == "abc"
        assert key.rsa_public_key_pem.startswith("-----BEGIN RSA PUBLIC KEY-----")
        assert key.rsa_public_key_pem.rstrip().endswith("-----END RSA PUBLIC KEY-----")
        with pytest.raises(KeyNotFoundError):
            await client.get_signing_key("missing")

    @pytest.mark.asyncio
    async def test_resolved_key_verifies_token(self, make_client):
        """The PEM is usable by a token verifier."""
        client = make_client()
        generator = MockTokenGenerator()
        token = generator.generate_access_token("cert-key", subject="user-42")

        kid = jose_jwt.get_unverified_header(token)["kid"]
        key = await client.get_signing_key(kid)
        claims = jose_jwt.decode(token, key.public_key, algorithms=["RS256"], audience=generator.audience)

        assert claims["sub"] == "user-42"

    @pytest.mark.asyncio
    async def test_empty_kid_fails_before_network(self, make_client, transport):
        client = make_client(cache=True, rate_limit=True)

        with pytest.raises(ArgumentError):
            await client.get_signing_key("")

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_cache_fetches_once_within_ttl(self, make_client, transport):
        client = make_client(cache=True, cache_max_age=600)

        first = await client.get_signing_key("abc")
        second = await client.get_signing_key("abc")

        assert first is second
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_through_client(self, make_client, transport):
        client = make_client(rate_limit=True, jwks_requests_per_minute=2)

        await client.get_signing_key("abc")
        await client.get_signing_key("abc")
        with pytest.raises(RateLimitError):
            await client.get_signing_key("abc")

        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_get_signing_keys_is_never_decorated(self, make_client, transport):
        client = make_client(cache=True, rate_limit=True, jwks_requests_per_minute=1)

        for _ in range(3):
            keys = await client.get_signing_keys()

        assert [key.kid for key in keys] == ["abc", "cert-key"]
        assert len(transport.requests) == 3

    @pytest.mark.asyncio
    async def test_get_keys_returns_raw_entries(self, make_client, mock_jwks_data):
        client = make_client()

        assert await client.get_keys() == mock_jwks_data["keys"]

    @pytest.mark.asyncio
    async def test_empty_key_set(self, jwks_uri, make_transport):
        client = JWKSClient(jwks_uri=jwks_uri, request_agent_options={"transport": make_transport(200, {"keys": []})})

        with pytest.raises(NoKeysError):
            await client.get_signing_key("abc")

    @pytest.mark.asyncio
    async def test_transport_error_is_not_cached(self, jwks_uri, make_transport, mock_jwks_data):
        responses = [make_transport(500, {"message": "down"}), make_transport(200, mock_jwks_data)]
        client = JWKSClient(jwks_uri=jwks_uri, cache=True, request_agent_options={"transport": responses[0]})

        with pytest.raises(TransportError):
            await client.get_signing_key("abc")

        client.fetcher.request_agent_options["transport"] = responses[1]
        key = await client.get_signing_key("abc")

        assert key.kid == "abc"

    def test_extract_helpers(self, make_client, mock_jwks_data):
        client = make_client()

        assert [key.kid for key in client.extract_signing_keys(mock_jwks_data)] == ["abc", "cert-key"]
        assert client.extract_signing_key(mock_jwks_data, "cert-key").certificate_pem is not None
        with pytest.raises(ArgumentError):
            client.extract_signing_key(mock_jwks_data, "")
        with pytest.raises(NoKeysError):
            client.extract_signing_keys(TestKeyFactory.create_jwks(TestKeyFactory.ec_jwk("ec")))
