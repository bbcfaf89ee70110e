"""
Module: record.py
Description: Saved image record model.

Defines the SavedRecord domain model stored in DynamoDB and the
heuristic that derives a breed category from an image URL.

Key Components:
- SavedRecord: One image saved by one owner
- derive_category(): Best-effort breed name from the URL path
- build_record_id(): Unique id from owner and creation time

Dependencies: pydantic, datetime, urllib, uuid
Author: Gallery Gateway Team
"""

from datetime import datetime, timezone
from typing import Any, Dict
from urllib.parse import unquote, urlparse
from uuid import uuid4

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gallery_gateway.models.identity import OwnerId

UNKNOWN_CATEGORY = "unknown"


def derive_category(image_url: str) -> str:
    """
    Derive a human readable category from an image URL.

    The image is expected to live in a directory named after the breed,
    e.g. ``https://images.dog.ceo/breeds/retriever-golden/n0209.jpg``
    gives ``"retriever golden"``. Never raises; returns ``"unknown"``
    when the path has no usable parent segment.

    Args:
        image_url: URL of the saved image

    Returns:
        Category string
    """
    if not isinstance(image_url, str):
        return UNKNOWN_CATEGORY
    try:
        path = urlparse(image_url).path
    except ValueError:
        return UNKNOWN_CATEGORY

    segments = [unquote(s) for s in path.split("/") if s]
    if len(segments) < 2:
        return UNKNOWN_CATEGORY

    category = " ".join(part for part in segments[-2].replace("_", "-").split("-") if part)
    return category.lower() or UNKNOWN_CATEGORY


def describe_category(category: str) -> str:
    """Short description stored with a record."""
    if category == UNKNOWN_CATEGORY:
        return "A dog of unknown breed"
    return f"A {category} dog"


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 UTC with microseconds and Z suffix; sorts lexicographically."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def build_record_id(owner_id: str, created_at: datetime) -> str:
    """
    Build a globally unique record id from owner and creation time.

    A random suffix keeps ids distinct when the same owner saves twice
    within one clock tick.
    """
    millis = int(created_at.timestamp() * 1000)
    return f"{owner_id}_{millis}_{uuid4().hex[:8]}"


class SavedRecord(BaseModel):
    """
    An image saved by one owner.

    (id, created_at) is the table's primary key and (owner_id, created_at)
    is the owner index key; both are fixed once the record exists.

    Attributes:
        id: Globally unique record identifier
        owner_id: Subject of the token that saved the image
        created_at: ISO 8601 creation timestamp, also the sort key
        image_url: URL of the saved image
        category: Breed derived from image_url
        description: Short human readable description
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: str = Field(..., min_length=1)
    owner_id: OwnerId
    created_at: str = Field(..., description="ISO 8601 creation timestamp")
    image_url: str = Field(..., min_length=1, max_length=2048)
    category: str = Field(default=UNKNOWN_CATEGORY)
    description: str = Field(default="")

    @field_validator('created_at')
    @classmethod
    def validate_created_at(cls, v: str) -> str:
        """created_at must parse as ISO 8601."""
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError("created_at must be an ISO 8601 timestamp") from e
        return v

    @classmethod
    def new(cls, owner_id: str, image_url: str, now: datetime) -> "SavedRecord":
        """
        Create a fresh record for owner_id, deriving id and category.

        Args:
            owner_id: Verified subject of the caller
            image_url: URL to save
            now: Creation time

        Returns:
            New SavedRecord, not yet stored
        """
        category = derive_category(image_url)
        return cls(
            id=build_record_id(owner_id, now),
            owner_id=owner_id,
            created_at=format_timestamp(now),
            image_url=image_url,
            category=category,
            description=describe_category(category),
        )

    def to_item(self) -> Dict[str, Any]:
        """DynamoDB item representation (snake_case attribute names)."""
        return self.model_dump()

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "SavedRecord":
        """Build a record from a DynamoDB item, ignoring unknown attributes."""
        return cls(**{k: item[k] for k in cls.model_fields if k in item})

    def to_api(self) -> Dict[str, Any]:
        """JSON form returned to callers (camelCase keys)."""
        return self.model_dump(by_alias=True)
