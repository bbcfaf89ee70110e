"""
Module: response.py
Description: API response models for the gallery gateway.

Every success and error body shares one envelope
({message, timestamp, user, requestId, ...}) and every response carries
permissive CORS headers so a separately hosted frontend can read it.

Key Components:
- GatewayResponse: Success envelope with optional payload sections
- ErrorResponse: Error envelope
- DeleteResult: Outcome of a delete
- cors_headers(): Headers attached to every response
- json_response(): JSONResponse with the CORS headers applied

Dependencies: pydantic, fastapi, datetime, typing
Author: Gallery Gateway Team
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

ALLOWED_METHODS = "GET,POST,DELETE,OPTIONS"
ALLOWED_HEADERS = "Content-Type,Authorization"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class DeleteResult(BaseModel):
    """Outcome of a successful delete."""

    model_config = ConfigDict(populate_by_name=True)

    deleted: bool = True
    id: str
    image_url: Optional[str] = Field(default=None, serialization_alias="imageUrl")


class GatewayResponse(BaseModel):
    """
    Success envelope.

    At most one of dog_data, saved_image, saved_images or delete_result
    is normally set; unset sections are omitted from the JSON.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    timestamp: str = Field(default_factory=utc_timestamp)
    user: str
    request_id: str = Field(..., serialization_alias="requestId")
    method: Optional[str] = None
    path: Optional[str] = None
    dog_data: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="dogData")
    saved_image: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="savedImage")
    saved_images: Optional[List[Dict[str, Any]]] = Field(default=None, serialization_alias="savedImages")
    count: Optional[int] = None
    delete_result: Optional[DeleteResult] = Field(default=None, serialization_alias="deleteResult")
    received_data: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="receivedData")


class ErrorResponse(BaseModel):
    """
    Error envelope.

    error carries a machine-readable kind (e.g. 'Expired') and never
    the underlying cause.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    error: str
    timestamp: str = Field(default_factory=utc_timestamp)
    request_id: Optional[str] = Field(default=None, serialization_alias="requestId")


def cors_headers(allow_origin: str = "*") -> Dict[str, str]:
    """Cross-origin headers attached to every response."""
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
    }


def json_response(
    body: BaseModel,
    status_code: int = 200,
    allow_origin: str = "*"
) -> JSONResponse:
    """
    Serialize an envelope into a JSONResponse with CORS headers.

    Args:
        body: GatewayResponse or ErrorResponse
        status_code: HTTP status
        allow_origin: Access-Control-Allow-Origin value

    Returns:
        JSONResponse ready to return from a route or exception handler
    """
    return JSONResponse(
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        status_code=status_code,
        headers=cors_headers(allow_origin),
    )
