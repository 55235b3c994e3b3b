"""
Shared fixtures for JWKS client tests.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from shared.test_helpers import TestKeyFactory


JWKS_URI = "https://idp.example.test/.well-known/jwks.json"


class FakeClock:
    """Controllable monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class StubResolver:
    """KeyResolver stub that counts delegations."""

    def __init__(self, result: Any = None, error: Exception = None):
        self.calls: List[str] = []
        self.result = result
        self.error = error

    async def resolve(self, kid: str):
        self.calls.append(kid)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def jwks_uri() -> str:
    return JWKS_URI


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_resolver() -> StubResolver:
    return StubResolver()


@pytest.fixture
def mock_jwks_data() -> Dict[str, Any]:
    """One modulus key, one x5c key, one encryption key and one EC key."""
    return TestKeyFactory.create_jwks(
        TestKeyFactory.rsa_jwk("abc"),
        TestKeyFactory.rsa_jwk("cert-key", with_modulus=False, with_x5c=True),
        TestKeyFactory.rsa_jwk("enc-key", use="enc"),
        TestKeyFactory.ec_jwk("ec-key"),
    )


@pytest.fixture
def make_transport() -> Callable[..., httpx.MockTransport]:
    """Build a MockTransport answering every request with a fixed response.

    The returned transport exposes ``requests`` for assertions.
    """

    def _make(status_code: int = 200, body: Any = None, content: bytes = None, headers: Dict[str, str] = None):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if content is not None:
                return httpx.Response(status_code, content=content, headers=headers)
            return httpx.Response(
                status_code,
                content=json.dumps(body).encode("utf-8") if body is not None else b"",
                headers={"Content-Type": "application/json", **(headers or {})},
            )

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return _make
