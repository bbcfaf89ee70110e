"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the gallery gateway:
- SigningKey, VerifiedIdentity: Auth value types
- SavedRecord: Saved image domain model
- ImageActionRequest, SaveRecordRequest: API request models
- GatewayResponse, ErrorResponse: API response envelopes

All models are exported here for convenient importing.
"""

from .identity import SigningKey, VerifiedIdentity
from .record import SavedRecord
from .request import ImageActionRequest, SaveRecordRequest
from .response import ErrorResponse, GatewayResponse

__all__ = [
    "SigningKey",
    "VerifiedIdentity",
    "SavedRecord",
    "ImageActionRequest",
    "SaveRecordRequest",
    "ErrorResponse",
    "GatewayResponse",
]
