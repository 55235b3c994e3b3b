"""
Shared error handling for the JWKS signing-key client.
"""

from typing import Dict, Any, Optional


class JWKSError(Exception):
    """Base exception for JWKS client failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable error payload."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ArgumentError(JWKSError):
    """Caller supplied invalid input."""

    def __init__(self, message: str = "Invalid argument", details: Optional[Dict[str, Any]] = None):
        super().__init__("ARGUMENT_ERROR", message, details)


class TransportError(JWKSError):
    """Network or HTTP failure reaching the JWKS endpoint."""

    def __init__(
        self,
        message: str = "JWKS endpoint request failed",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__("TRANSPORT_ERROR", message, details)


class NoKeysError(JWKSError):
    """The endpoint returned an empty or all-ineligible key set."""

    def __init__(self, message: str = "The JWKS endpoint did not contain any signing keys", details: Optional[Dict[str, Any]] = None):
        super().__init__("NO_KEYS_ERROR", message, details)


class KeyNotFoundError(JWKSError):
    """No signing key matches the requested kid."""

    def __init__(self, kid: str, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.kid = kid
        details = dict(details or {})
        details.setdefault("kid", kid)
        super().__init__(
            "KEY_NOT_FOUND_ERROR",
            message or f"Unable to find a signing key that matches '{kid}'",
            details,
        )


class ConversionError(JWKSError):
    """An eligible key carried corrupt key material."""

    def __init__(self, message: str = "Unable to convert signing key", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONVERSION_ERROR", message, details)


class RateLimitError(JWKSError):
    """Rate limiting errors."""

    def __init__(
        self,
        message: str = "Too many requests to the JWKS endpoint",
        retry_after: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.retry_after = retry_after
        details = dict(details or {})
        if retry_after is not None:
            details.setdefault("retry_after", round(retry_after, 3))
        super().__init__("RATE_LIMIT_ERROR", message, details)
