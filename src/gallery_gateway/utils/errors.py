"""
Module: errors.py
Description: Exception taxonomy for the gallery gateway.

Every failure the gateway can report maps to one exception class with a
fixed HTTP status and a caller-safe message. Raw upstream error text is
logged where the error is raised and never stored on the exception's
public message.

Key Components:
- GatewayError: Base class carrying status_code and safe message
- AuthError / AuthErrorKind: Token verification failures (401)
- ValidationError / MethodNotAllowedError: Bad requests (400 / 405)
- NotFoundError: Missing delete/read target (404)
- UpstreamError and subclasses: Key endpoint, record store and content
  service failures (500)
- InternalError: Anything unexpected (500)

Dependencies: enum, typing
Author: Gallery Gateway Team
"""

from enum import Enum
from typing import Optional


class GatewayError(Exception):
    """Base exception for all gateway failures."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthErrorKind(str, Enum):
    """Reasons a bearer token is rejected."""

    NO_TOKEN = "NoToken"
    MALFORMED_TOKEN = "MalformedToken"
    KEY_NOT_FOUND = "KeyNotFound"
    SIGNATURE_INVALID = "SignatureInvalid"
    EXPIRED = "Expired"
    ISSUER_MISMATCH = "IssuerMismatch"
    AUDIENCE_MISMATCH = "AudienceMismatch"


class AuthError(GatewayError):
    """
    Token verification failed.

    Only the kind is ever returned to the caller; the message stays in
    the logs.
    """

    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or kind.value)


class ValidationError(GatewayError):
    """Malformed request body or parameters."""

    status_code = 400
    default_message = "Invalid request"


class MethodNotAllowedError(GatewayError):
    status_code = 405
    default_message = "Method not allowed"


class NotFoundError(GatewayError):
    """Requested record does not exist for this owner."""

    status_code = 404
    default_message = "Record not found"


class UpstreamError(GatewayError):
    """A downstream dependency was unreachable or returned bad data."""

    status_code = 500
    default_message = "Upstream service unavailable"


class KeyFetchError(UpstreamError):
    """Signing key set could not be fetched or parsed."""

    default_message = "Authentication service unavailable"


class KeyNotFoundError(Exception):
    """Key id absent from the provider's key set, even after a refresh."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"Signing key not found: {key_id}")


class StoreError(UpstreamError):
    """Record store operation failed."""

    default_message = "Record store unavailable"


class ContentFetchError(UpstreamError):
    """Third-party content service failed."""

    default_message = "Error fetching dog image"


class InternalError(GatewayError):
    status_code = 500
    default_message = "Internal server error"
