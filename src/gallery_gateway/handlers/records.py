"""
Module: records.py
Description: Resource-style endpoints for saved image records.

Exposes the same operations as the action endpoint as distinct routes:
- GET /records: List the caller's records, newest first
- POST /records: Save an image URL
- DELETE /records/{record_id}: Delete one record by id
- DELETE /records?imageUrl=...: Delete the newest record with a URL
- GET /images/random: Fetch a new random dog image

Every route depends on get_identity, so a rejected token never reaches
the store. Bodies are read inside the route, after that check.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi import status as status_codes

from gallery_gateway.config.settings import Settings, get_settings
from gallery_gateway.content.dog_api import DogImageClient
from gallery_gateway.handlers.dependencies import (
    get_content_client,
    get_identity,
    get_record_store,
    get_request_id,
    read_json_object,
    validate_body,
)
from gallery_gateway.models.identity import VerifiedIdentity
from gallery_gateway.models.request import SaveRecordRequest
from gallery_gateway.models.response import DeleteResult, GatewayResponse, json_response
from gallery_gateway.storage.dynamodb import RecordStore
from gallery_gateway.utils.errors import ValidationError

router = APIRouter(tags=["records"])


@router.get("/records")
async def list_records(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1),
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings)
) -> Response:
    """List the caller's records; limit is capped at max_list_limit."""
    records = await store.list(identity.subject, settings.bounded_list_limit(limit))

    body = GatewayResponse(
        message="Saved images retrieved successfully!",
        user=identity.subject,
        request_id=get_request_id(request),
        saved_images=[record.to_api() for record in records],
        count=len(records)
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)


@router.post("/records", status_code=status_codes.HTTP_201_CREATED)
async def create_record(
    request: Request,
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings)
) -> Response:
    """
    Save an image URL for the caller.

    Example:
        POST /records
        {"imageUrl": "https://images.dog.ceo/breeds/hound-afghan/n02088094_1003.jpg"}

        Response (201 Created):
        {
            "message": "Image saved successfully!",
            "savedImage": {"id": "...", "category": "hound afghan", ...},
            ...
        }
    """
    payload = validate_body(SaveRecordRequest, await read_json_object(request))
    record = await store.create(identity.subject, payload.image_url)

    body = GatewayResponse(
        message="Image saved successfully!",
        user=identity.subject,
        request_id=get_request_id(request),
        saved_image=record.to_api()
    )
    return json_response(body, status_codes.HTTP_201_CREATED, settings.cors_allow_origin)


@router.delete("/records/{record_id}")
async def delete_record(
    record_id: str,
    request: Request,
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings)
) -> Response:
    """Delete one of the caller's records by id (404 if not theirs)."""
    deleted_id = await store.delete(identity.subject, record_id)

    body = GatewayResponse(
        message="Image deleted successfully!",
        user=identity.subject,
        request_id=get_request_id(request),
        delete_result=DeleteResult(id=deleted_id)
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)


@router.delete("/records")
async def delete_record_by_url(
    request: Request,
    image_url: Optional[str] = Query(default=None, alias="imageUrl"),
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings)
) -> Response:
    """Delete the caller's newest record with exactly imageUrl."""
    if not image_url or not image_url.strip():
        raise ValidationError("imageUrl query parameter is required")

    deleted_id = await store.delete_by_owner_and_url(identity.subject, image_url.strip())

    body = GatewayResponse(
        message="Image deleted successfully!",
        user=identity.subject,
        request_id=get_request_id(request),
        delete_result=DeleteResult(id=deleted_id, image_url=image_url.strip())
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)


@router.get("/images/random")
async def random_image(
    request: Request,
    identity: VerifiedIdentity = Depends(get_identity),
    content_client: DogImageClient = Depends(get_content_client),
    settings: Settings = Depends(get_settings)
) -> Response:
    """Fetch a new random dog image for the caller."""
    dog_data = await content_client.fetch_random_image()

    body = GatewayResponse(
        message="Dog image fetched successfully!",
        user=identity.subject,
        request_id=get_request_id(request),
        dog_data=dog_data
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)
