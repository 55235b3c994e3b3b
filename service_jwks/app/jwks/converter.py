"""
Conversion of raw JWK entries into PEM signing keys.

Entries that are not RSA signing keys are dropped without error, since
providers routinely publish encryption keys alongside signing keys. Entries
that are eligible but carry corrupt key material fail the whole batch with a
ConversionError so that provider-side corruption surfaces instead of being
masked.
"""

import base64
import binascii
import re
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose.utils import base64url_decode

from shared.errors import ConversionError, NoKeysError
from shared.logging import get_logger

from .models import SigningKey


logger = get_logger("jwks.converter")

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def is_signing_key(jwk: Any) -> bool:
    """Return True when ``jwk`` is an RSA signing key with usable material."""
    if not isinstance(jwk, Mapping):
        return False
    if jwk.get("kty") != "RSA":
        return False
    kid = jwk.get("kid")
    if not isinstance(kid, str) or not kid:
        return False
    if "use" in jwk and jwk.get("use") != "sig":
        return False
    if _first_certificate(jwk) is not None:
        return True
    return bool(jwk.get("n")) and bool(jwk.get("e"))


def _first_certificate(jwk: Mapping) -> Optional[Any]:
    x5c = jwk.get("x5c")
    if isinstance(x5c, (list, tuple)) and x5c:
        return x5c[0]
    return None


def _b64url_to_int(value: Any, field: str) -> int:
    if not isinstance(value, str) or not _BASE64URL_RE.match(value):
        raise ValueError(f"'{field}' is not valid base64url")
    raw = base64url_decode(value.rstrip("=").encode("ascii"))
    if not raw:
        raise ValueError(f"'{field}' decodes to an empty value")
    return int.from_bytes(raw, "big")


def cert_to_pem(cert_b64: Any) -> str:
    """Convert a base64 DER certificate (an ``x5c`` entry) to PEM text."""
    if not isinstance(cert_b64, str):
        raise ValueError("x5c entry must be a base64 string")
    der = base64.b64decode("".join(cert_b64.split()), validate=True)
    certificate = x509.load_der_x509_certificate(der)
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def rsa_public_key_to_pem(modulus_b64: Any, exponent_b64: Any) -> str:
    """Build a PKCS#1 ``RSA PUBLIC KEY`` PEM from base64url ``n`` and ``e``."""
    n = _b64url_to_int(modulus_b64, "n")
    e = _b64url_to_int(exponent_b64, "e")
    public_key = rsa.RSAPublicNumbers(e, n).public_key()
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.PKCS1,
    ).decode("ascii")


def convert_key(jwk: Any) -> Optional[SigningKey]:
    """Convert one raw JWK, or return None if it is not an eligible signing key.

    Raises:
        ConversionError: the entry is eligible but its key material is corrupt.
    """
    if not is_signing_key(jwk):
        logger.debug(
            "Skipping ineligible JWK",
            kid=jwk.get("kid") if isinstance(jwk, Mapping) else None,
            kty=jwk.get("kty") if isinstance(jwk, Mapping) else None,
        )
        return None

    kid = jwk["kid"]
    certificate = _first_certificate(jwk)
    try:
        if certificate is not None:
            return SigningKey(kid=kid, nbf=jwk.get("nbf"), certificate_pem=cert_to_pem(certificate))
        return SigningKey(
            kid=kid,
            nbf=jwk.get("nbf"),
            rsa_public_key_pem=rsa_public_key_to_pem(jwk["n"], jwk["e"]),
        )
    except (ValueError, TypeError, binascii.Error) as exc:
        source = "x5c" if certificate is not None else "n/e"
        logger.error("Corrupt signing key material", kid=kid, source=source, error=str(exc))
        raise ConversionError(
            f"Unable to convert signing key '{kid}': {exc}",
            details={"kid": kid, "source": source},
        ) from exc


def convert_keys(keys: Iterable[Any]) -> List[SigningKey]:
    """Convert every eligible entry, preserving order.

    Raises:
        ConversionError: an eligible entry carries corrupt key material.
        NoKeysError: no entry was eligible.
    """
    signing_keys = [key for key in (convert_key(jwk) for jwk in keys) if key is not None]
    if not signing_keys:
        raise NoKeysError("The JWKS endpoint did not contain any signing keys")

    logger.debug("Converted signing keys", kids=[key.kid for key in signing_keys])
    return signing_keys
