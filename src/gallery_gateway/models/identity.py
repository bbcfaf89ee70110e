"""
Module: identity.py
Description: Identity and signing key models.

Defines the value types produced by the auth layer: the provider's
RS256 signing keys and the identity extracted from a verified token.
Neither is persisted.

Key Components:
- OwnerId: Validated non-empty subject string
- SigningKey: One RSA public key from the provider's key set
- VerifiedIdentity: Claims of a successfully verified token

Dependencies: pydantic, base64, datetime, typing
Author: Gallery Gateway Team
"""

import base64
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

OwnerId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=256)]


def b64url_decode(value: str) -> bytes:
    """Decode unpadded base64url as used by JWKs and JWT segments."""
    if not isinstance(value, str):
        raise ValueError("base64url value must be a string")
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class SigningKey(BaseModel):
    """
    RS256 public key published by the identity provider.

    Attributes:
        key_id: The kid the provider assigns to the key
        algorithm: Always RS256; other algorithms are never loaded
        modulus: Big-endian RSA modulus bytes (n)
        exponent: Big-endian RSA public exponent bytes (e)
    """

    model_config = ConfigDict(frozen=True)

    key_id: str = Field(..., min_length=1)
    algorithm: Literal["RS256"] = "RS256"
    modulus: bytes = Field(..., min_length=1)
    exponent: bytes = Field(..., min_length=1)

    @classmethod
    def from_jwk(cls, jwk: Dict[str, Any]) -> "SigningKey":
        """
        Build a key from one entry of a JWKS document.

        Raises:
            ValueError: If kid, n or e is missing or not valid base64url
        """
        try:
            return cls(
                key_id=jwk["kid"],
                algorithm=jwk.get("alg", "RS256"),
                modulus=b64url_decode(jwk["n"]),
                exponent=b64url_decode(jwk["e"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid JWK entry: {e}") from e

    @property
    def modulus_int(self) -> int:
        return int.from_bytes(self.modulus, "big")

    @property
    def exponent_int(self) -> int:
        return int.from_bytes(self.exponent, "big")


class VerifiedIdentity(BaseModel):
    """
    Caller identity extracted from a verified token.

    Lives for a single request.

    Attributes:
        subject: Stable per-user identifier (sub claim)
        email: Email claim when the token carries one
        expiry: Token expiry (exp claim)
    """

    model_config = ConfigDict(frozen=True)

    subject: OwnerId
    email: Optional[str] = None
    expiry: datetime
