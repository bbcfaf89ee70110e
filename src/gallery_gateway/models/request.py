"""
Module: request.py
Description: API request models for the gallery gateway.

Defines the bodies accepted by the single-path action endpoint and the
resource-style record endpoints. These models handle input validation
and transformation before a handler touches the store.

Key Components:
- ImageAction: Recognized action flags
- normalize_image_url(): Checks an imageUrl for the actions that use one
- ImageActionRequest: Body of POST/DELETE on the action endpoint
- SaveRecordRequest: Body of POST /records

Dependencies: pydantic, enum, typing
Author: Gallery Gateway Team
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ImageAction(str, Enum):
    """Action flags recognized in request bodies."""

    SAVE_IMAGE = "save_image"
    DELETE_IMAGE = "delete_image"


MAX_IMAGE_URL_LENGTH = 2048


def normalize_image_url(v: Any) -> str:
    """
    Strip and check an image URL.

    Raises:
        ValueError: If v is missing, not a string, too long or not HTTP(S)
    """
    if v is None:
        raise ValueError("imageUrl is required")
    if not isinstance(v, str):
        raise ValueError("imageUrl must be a string")
    v = v.strip()
    if not v:
        raise ValueError("imageUrl must be a non-empty string")
    if not v.startswith(("http://", "https://")):
        raise ValueError("imageUrl must be an HTTP/HTTPS URL")
    if len(v) > MAX_IMAGE_URL_LENGTH:
        raise ValueError(f"imageUrl must be at most {MAX_IMAGE_URL_LENGTH} characters")
    return v


class ImageActionRequest(BaseModel):
    """
    Request body for POST/DELETE on the action endpoint.

    Unrecognized actions and extra fields are accepted; the handler
    treats them as the default action for the method. imageUrl is kept
    as sent and only checked by the actions that use it.

    Attributes:
        action: Action flag, e.g. 'save_image'
        image_url: Target image URL (JSON key imageUrl)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow"
    )

    action: Optional[Any] = Field(default=None, description="Action flag")
    image_url: Optional[Any] = Field(
        default=None,
        alias="imageUrl",
        description="Image URL the action applies to"
    )

    @property
    def recognized_action(self) -> Optional[ImageAction]:
        """The action as an ImageAction, or None if not recognized."""
        try:
            return ImageAction(self.action)
        except (TypeError, ValueError):
            return None


class SaveRecordRequest(BaseModel):
    """Request body for POST /records."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(
        ...,
        alias="imageUrl",
        description="Image URL to save"
    )

    @field_validator('image_url', mode='before')
    @classmethod
    def validate_image_url(cls, v: Any) -> str:
        return normalize_image_url(v)
