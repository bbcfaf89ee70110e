"""
Module: gallery.py
Description: Single-path action endpoint used by the gallery frontend.

All operations share one path; the HTTP method and an action flag in
the query string or JSON body select what happens:

- GET /api: Fetch a new random dog image
- GET /api?action=list: List the caller's saved images
- POST /api {"action": "save_image", "imageUrl": ...}: Save an image
- DELETE /api {"action": "delete_image", "imageUrl": ...}: Delete an image
- OPTIONS /api: CORS preflight

POST and DELETE bodies without a recognized action run the method's
default action instead of failing.

Key Components:
- get_images(), post_images(), delete_images(): Method handlers
- read_action_body(): JSON body parsing with 400 on malformed input
- require_image_url(): imageUrl check for save_image and delete_image

Dependencies: FastAPI, typing
Author: Gallery Gateway Team
"""

from typing import Any, Dict, Optional

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
from gallery_gateway.models.request import ImageAction, ImageActionRequest, normalize_image_url
from gallery_gateway.models.response import DeleteResult, GatewayResponse, cors_headers, json_response
from gallery_gateway.storage.dynamodb import RecordStore
from gallery_gateway.utils.errors import ValidationError
from gallery_gateway.utils.logger import get_logger

router = APIRouter(prefix="/api", tags=["gallery"])
logger = get_logger(__name__)

LIST_FLAG_VALUES = ("1", "true", "yes")


async def read_action_body(request: Request) -> ImageActionRequest:
    """
    Parse the JSON body of a POST/DELETE request.

    An empty body is read as {}. Anything that is not a JSON object is a
    ValidationError; imageUrl is left for the action to check.

    Args:
        request: Incoming request

    Returns:
        Parsed ImageActionRequest

    Raises:
        ValidationError: If the body is malformed
    """
    data = await read_json_object(request)
    return validate_body(ImageActionRequest, data)


def require_image_url(body_model: ImageActionRequest, action: ImageAction) -> str:
    """Return the body's imageUrl, stripped, or raise a ValidationError."""
    if body_model.image_url is None:
        raise ValidationError(f"imageUrl is required for {action.value}")
    try:
        return normalize_image_url(body_model.image_url)
    except ValueError as e:
        raise ValidationError(str(e))


@router.get("")
async def get_images(
    request: Request,
    action: Optional[str] = Query(default=None),
    list_flag: Optional[str] = Query(default=None, alias="list"),
    limit: Optional[int] = Query(default=None, ge=1),
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    content_client: DogImageClient = Depends(get_content_client),
    settings: Settings = Depends(get_settings)
) -> Response:
    """
    Fetch a new image, or list saved images when the list flag is set.

    Example:
        GET /api
        Authorization: Bearer eyJ...

        Response (200 OK):
        {
            "message": "Dog image fetched successfully!",
            "timestamp": "2024-01-15T10:30:01.000000Z",
            "user": "5f1e...",
            "requestId": "c6af9ac6-...",
            "dogData": {"message": "https://images.dog.ceo/breeds/pug/1.jpg", "status": "success"}
        }
    """
    request_id = get_request_id(request)
    wants_list = action == "list" or (list_flag or "").lower() in LIST_FLAG_VALUES

    if wants_list:
        records = await store.list(identity.subject, settings.bounded_list_limit(limit))
        body = GatewayResponse(
            message="Saved images retrieved successfully!",
            user=identity.subject,
            request_id=request_id,
            method="GET",
            path=request.url.path,
            saved_images=[record.to_api() for record in records],
            count=len(records)
        )
        return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)

    dog_data = await content_client.fetch_random_image()
    body = GatewayResponse(
        message="Dog image fetched successfully!",
        user=identity.subject,
        request_id=request_id,
        method="GET",
        path=request.url.path,
        dog_data=dog_data
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)


@router.post("")
async def post_images(
    request: Request,
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    content_client: DogImageClient = Depends(get_content_client),
    settings: Settings = Depends(get_settings)
) -> Response:
    """
    Save an image ({"action": "save_image"}) or run the default action.

    The default action fetches a new image and echoes the received body.
    Both return 201.
    """
    request_id = get_request_id(request)
    body_model = await read_action_body(request)

    if body_model.recognized_action is ImageAction.SAVE_IMAGE:
        image_url = require_image_url(body_model, ImageAction.SAVE_IMAGE)
        record = await store.create(identity.subject, image_url)
        body = GatewayResponse(
            message="Image saved successfully!",
            user=identity.subject,
            request_id=request_id,
            method="POST",
            path=request.url.path,
            saved_image=record.to_api()
        )
        return json_response(body, status_codes.HTTP_201_CREATED, settings.cors_allow_origin)

    logger.info(
        "POST without recognized action, running default",
        action=body_model.action,
        user=identity.subject,
        request_id=request_id
    )
    dog_data = await content_client.fetch_random_image()
    received: Dict[str, Any] = body_model.model_dump(by_alias=True, exclude_none=True)
    body = GatewayResponse(
        message="Data received and dog image fetched!",
        user=identity.subject,
        request_id=request_id,
        method="POST",
        path=request.url.path,
        received_data=received,
        dog_data=dog_data
    )
    return json_response(body, status_codes.HTTP_201_CREATED, settings.cors_allow_origin)


@router.delete("")
async def delete_images(
    request: Request,
    identity: VerifiedIdentity = Depends(get_identity),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings)
) -> Response:
    """
    Delete a saved image by URL ({"action": "delete_image"}).

    Responds 404 when the caller has no image with that URL. A body
    without a recognized action is a no-op (200).
    """
    request_id = get_request_id(request)
    body_model = await read_action_body(request)

    if body_model.recognized_action is ImageAction.DELETE_IMAGE:
        image_url = require_image_url(body_model, ImageAction.DELETE_IMAGE)
        deleted_id = await store.delete_by_owner_and_url(identity.subject, image_url)
        body = GatewayResponse(
            message="Image deleted successfully!",
            user=identity.subject,
            request_id=request_id,
            method="DELETE",
            path=request.url.path,
            delete_result=DeleteResult(id=deleted_id, image_url=image_url)
        )
        return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)

    body = GatewayResponse(
        message="No action performed",
        user=identity.subject,
        request_id=request_id,
        method="DELETE",
        path=request.url.path
    )
    return json_response(body, status_codes.HTTP_200_OK, settings.cors_allow_origin)


@router.options("")
async def options_images(settings: Settings = Depends(get_settings)) -> Response:
    """CORS preflight; browsers send it without credentials."""
    return Response(
        content="",
        status_code=status_codes.HTTP_200_OK,
        headers=cors_headers(settings.cors_allow_origin)
    )
