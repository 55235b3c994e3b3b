"""
Data types shared by the JWKS resolution pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


RawJWK = Mapping[str, Any]
JWKS = List[RawJWK]


@dataclass(frozen=True)
class SigningKey:
    """Resolved public signing key for a single kid.

    Exactly one of ``certificate_pem`` (from ``x5c``) or
    ``rsa_public_key_pem`` (from ``n``/``e``) is set.
    """

    kid: str
    certificate_pem: Optional[str] = None
    rsa_public_key_pem: Optional[str] = None
    nbf: Optional[Any] = None

    def __post_init__(self) -> None:
        if not self.kid:
            raise ValueError("SigningKey requires a non-empty kid")
        if (self.certificate_pem is None) == (self.rsa_public_key_pem is None):
            raise ValueError("SigningKey must carry exactly one of certificate_pem or rsa_public_key_pem")

    @property
    def public_key(self) -> str:
        """PEM text usable by a token verifier, whichever form was published."""
        return self.certificate_pem if self.certificate_pem is not None else self.rsa_public_key_pem  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kid": self.kid}
        if self.nbf is not None:
            data["nbf"] = self.nbf
        if self.certificate_pem is not None:
            data["certificate_pem"] = self.certificate_pem
        else:
            data["rsa_public_key_pem"] = self.rsa_public_key_pem
        return data
