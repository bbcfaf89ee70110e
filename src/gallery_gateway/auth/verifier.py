"""
Module: verifier.py
Description: Bearer token verification for Cognito-issued JWTs.

Verifies tokens locally against the user pool's published RSA keys:
structure, RS256 signature, expiry, issuer and audience. There is no
code path that accepts a token without checking its signature.

Key Components:
- TokenVerifier: verify() turns a raw Authorization value into a
  VerifiedIdentity or raises AuthError with a specific kind
- build_public_key(): RSA public key from a SigningKey's modulus/exponent

Dependencies: PyJWT, cryptography, time, datetime
Author: Gallery Gateway Team
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey, RSAPublicNumbers

from gallery_gateway.auth.jwks import KeyResolver
from gallery_gateway.models.identity import SigningKey, VerifiedIdentity
from gallery_gateway.utils.errors import AuthError, AuthErrorKind, KeyNotFoundError
from gallery_gateway.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_ALGORITHM = "RS256"
BEARER_SCHEME = "bearer"
ALLOWED_TOKEN_USES = ("id", "access")


def strip_bearer(raw_token: Optional[str]) -> str:
    """Remove an optional, case-insensitive 'Bearer ' prefix."""
    if not raw_token:
        return ""
    parts = raw_token.split(None, 1)
    if not parts:
        return ""
    if parts[0].lower() == BEARER_SCHEME:
        return parts[1].strip() if len(parts) > 1 else ""
    return raw_token.strip()


def build_public_key(key: SigningKey) -> RSAPublicKey:
    """
    Reconstruct an RSA public key from its modulus and exponent.

    Raises:
        ValueError: If the numbers do not form a valid RSA key
    """
    return RSAPublicNumbers(e=key.exponent_int, n=key.modulus_int).public_key()


class TokenVerifier:
    """
    Verifies Cognito ID and access tokens.

    Attributes:
        key_resolver: Source of signing keys
        issuer: Expected iss claim
        audience: App client id expected in aud (ID tokens) or
            client_id (access tokens)
        leeway_seconds: Clock skew tolerated on exp
    """

    def __init__(
        self,
        key_resolver: KeyResolver,
        issuer: str,
        audience: str,
        leeway_seconds: int = 0,
        clock: Callable[[], float] = time.time
    ):
        if not issuer or not audience:
            raise ValueError("issuer and audience must be non-empty strings")

        self.key_resolver = key_resolver
        self.issuer = issuer
        self.audience = audience
        self.leeway_seconds = leeway_seconds
        self._clock = clock

    async def verify(self, raw_token: Optional[str]) -> VerifiedIdentity:
        """
        Verify a bearer token and return the caller's identity.

        Args:
            raw_token: Authorization header value, with or without the
                'Bearer ' prefix

        Returns:
            VerifiedIdentity built from the sub and email claims

        Raises:
            AuthError: With the kind describing the first failed check
            KeyFetchError: If the key set cannot be fetched
        """
        token = strip_bearer(raw_token)
        if not token:
            raise self._reject(AuthErrorKind.NO_TOKEN, "No bearer token supplied")

        header = self._parse_header(token)

        if header.get("alg") != ALLOWED_ALGORITHM:
            raise self._reject(
                AuthErrorKind.SIGNATURE_INVALID,
                "Token algorithm not allowed",
                alg=str(header.get("alg"))
            )

        key_id = header["kid"]
        try:
            signing_key = await self.key_resolver.resolve(key_id)
        except KeyNotFoundError:
            raise self._reject(AuthErrorKind.KEY_NOT_FOUND, "Unknown signing key", key_id=key_id)

        claims = self._verify_signature(token, signing_key)
        return self._validate_claims(claims)

    def _parse_header(self, token: str) -> Dict[str, Any]:
        segments = token.split(".")
        if len(segments) != 3 or not segments[0] or not segments[1]:
            raise self._reject(AuthErrorKind.MALFORMED_TOKEN, "Token must have three segments")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError:
            raise self._reject(AuthErrorKind.MALFORMED_TOKEN, "Token header is not valid")

        key_id = header.get("kid")
        if not isinstance(key_id, str) or not key_id:
            raise self._reject(AuthErrorKind.MALFORMED_TOKEN, "Token header has no key id")

        return header

    def _verify_signature(self, token: str, signing_key: SigningKey) -> Dict[str, Any]:
        try:
            public_key = build_public_key(signing_key)
        except ValueError:
            raise self._reject(
                AuthErrorKind.SIGNATURE_INVALID,
                "Signing key material is invalid",
                key_id=signing_key.key_id
            )

        # Claims are checked separately so each failure keeps its own kind.
        try:
            claims = jwt.decode(
                token,
                key=public_key,
                algorithms=[ALLOWED_ALGORITHM],
                options={
                    "verify_signature": True,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "verify_aud": False,
                    "verify_iss": False,
                    "require": [],
                },
            )
        except jwt.InvalidSignatureError:
            raise self._reject(
                AuthErrorKind.SIGNATURE_INVALID,
                "Token signature verification failed",
                key_id=signing_key.key_id
            )
        except jwt.InvalidAlgorithmError:
            raise self._reject(AuthErrorKind.SIGNATURE_INVALID, "Token algorithm not allowed")
        except jwt.PyJWTError as e:
            raise self._reject(
                AuthErrorKind.MALFORMED_TOKEN,
                "Token payload could not be decoded",
                error_type=type(e).__name__
            )

        if not isinstance(claims, dict):
            raise self._reject(AuthErrorKind.MALFORMED_TOKEN, "Token payload is not an object")
        return claims

    def _validate_claims(self, claims: Dict[str, Any]) -> VerifiedIdentity:
        now = self._clock()

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise self._reject(AuthErrorKind.EXPIRED, "Token has no valid exp claim")
        if exp <= now - self.leeway_seconds:
            raise self._reject(AuthErrorKind.EXPIRED, "Token has expired", exp=exp)

        if claims.get("iss") != self.issuer:
            raise self._reject(
                AuthErrorKind.ISSUER_MISMATCH,
                "Token issuer mismatch",
                iss=str(claims.get("iss"))
            )

        if not self._audience_matches(claims):
            raise self._reject(AuthErrorKind.AUDIENCE_MISMATCH, "Token audience mismatch")

        token_use = claims.get("token_use")
        if token_use is not None and token_use not in ALLOWED_TOKEN_USES:
            raise self._reject(
                AuthErrorKind.MALFORMED_TOKEN,
                "Unsupported token_use",
                token_use=str(token_use)
            )

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise self._reject(AuthErrorKind.MALFORMED_TOKEN, "Token has no subject")

        email = claims.get("email")
        identity = VerifiedIdentity(
            subject=subject,
            email=email if isinstance(email, str) else None,
            expiry=datetime.fromtimestamp(exp, tz=timezone.utc),
        )

        logger.debug(
            "Token verified",
            subject=identity.subject,
            token_use=token_use
        )
        return identity

    def _audience_matches(self, claims: Dict[str, Any]) -> bool:
        if "aud" in claims:
            aud = claims["aud"]
            if isinstance(aud, str):
                return aud == self.audience
            if isinstance(aud, list):
                return self.audience in aud
            return False
        return claims.get("client_id") == self.audience

    @staticmethod
    def _reject(kind: AuthErrorKind, message: str, **context: Any) -> AuthError:
        logger.warning(
            "Token rejected",
            kind=kind.value,
            reason=message,
            **context
        )
        return AuthError(kind, message)
