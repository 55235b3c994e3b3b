"""
Mock identity provider publishing a JWKS and issuing RS256 tokens.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from shared.logging import configure_logging, get_logger
from shared.test_helpers import MockTokenGenerator, TestKeyFactory


class MockIdentityProvider:
    """Mock identity provider implementation."""

    def __init__(self, port: int = 8080, realm: str = "test"):
        self.port = port
        self.realm = realm
        self.issuer = f"http://localhost:{port}/realms/{realm}"
        self.logger = get_logger("mock.idp")
        self.app = FastAPI(title="Mock Identity Provider", version="1.0.0")

        self.token_generator = MockTokenGenerator(issuer=self.issuer)
        self.active_kid = "signing-key-1"
        self.keys: List[Dict[str, Any]] = [
            TestKeyFactory.rsa_jwk(self.active_kid),
            TestKeyFactory.rsa_jwk("signing-key-cert", with_modulus=False, with_x5c=True),
            TestKeyFactory.rsa_jwk("encryption-key-1", use="enc"),
            TestKeyFactory.ec_jwk("ec-key-1"),
        ]

        # Number of JWKS downloads served; tests assert on it.
        self.jwks_requests = 0
        # When set, the certs endpoint answers with this status instead.
        self.failure_status: Optional[int] = None

        self._setup_routes()

    def rotate(self, kid: str) -> Dict[str, Any]:
        """Publish a new signing key and make it the active one."""
        jwk = TestKeyFactory.rsa_jwk(kid)
        self.keys.insert(0, jwk)
        self.active_kid = kid
        self.logger.info("Rotated signing key", kid=kid)
        return jwk

    def _setup_routes(self):
        """Set up mock identity provider routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-idp",
                "version": "1.0.0",
                "realm": self.realm,
                "issuer": self.issuer,
            }

        @self.app.get("/realms/{realm}/protocol/openid-connect/certs")
        async def jwks_endpoint(realm: str):
            """JWKS endpoint."""
            if realm != self.realm:
                raise HTTPException(status_code=404, detail="Realm not found")

            self.jwks_requests += 1
            if self.failure_status is not None:
                return JSONResponse(
                    status_code=self.failure_status,
                    content={"message": f"Mock failure {self.failure_status}"},
                )
            return {"keys": self.keys}

        @self.app.post("/realms/{realm}/protocol/openid-connect/token")
        async def token_endpoint(realm: str, subject: str = Query("service-account")):
            """Issue an access token signed with the active key."""
            if realm != self.realm:
                raise HTTPException(status_code=404, detail="Realm not found")

            return {
                "access_token": self.token_generator.generate_access_token(self.active_kid, subject=subject),
                "expires_in": 3600,
                "token_type": "Bearer",
            }

    @property
    def jwks_uri(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/certs"


def create_app(log_level: str = "info"):
    """Create mock identity provider application."""
    configure_logging("mock-idp", log_level)
    server = MockIdentityProvider()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
