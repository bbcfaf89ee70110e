"""
Module: dependencies.py
Description: FastAPI dependencies shared by the route handlers.

Builds the process-wide collaborators (token verifier with its key
cache, record store, content client) from settings and exposes the
authorization gate that every data route depends on.

Key Components:
- get_token_verifier(): Process-wide TokenVerifier (owns the key cache)
- get_record_store(): Process-wide RecordStore
- get_content_client(): DogImageClient for the random image service
- get_identity(): Verifies the Authorization header, raising AuthError
- get_request_id(): API Gateway request id, or a generated one
- read_json_object(), validate_body(): Body parsing for use after
  authorization, with 400 on malformed input

Dependencies: FastAPI, pydantic, functools, json, uuid, typing
Author: Gallery Gateway Team
"""

import json
from functools import lru_cache
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import uuid4

from fastapi import Depends, Header, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gallery_gateway.auth.jwks import KeyResolver
from gallery_gateway.auth.verifier import TokenVerifier
from gallery_gateway.config.settings import Settings, get_settings
from gallery_gateway.content.dog_api import DogImageClient
from gallery_gateway.models.identity import VerifiedIdentity
from gallery_gateway.storage.dynamodb import RecordStore
from gallery_gateway.utils.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


@lru_cache
def get_token_verifier() -> TokenVerifier:
    """
    Dependency to get the token verifier.

    Cached for the life of the process so the signing key cache
    survives across requests (and across warm Lambda invocations).

    Returns:
        Configured TokenVerifier instance
    """
    settings = get_settings()
    resolver = KeyResolver(
        jwks_url=settings.jwks_url,
        ttl_seconds=settings.jwks_cache_ttl_seconds,
        timeout_seconds=settings.http_timeout_seconds
    )
    return TokenVerifier(
        key_resolver=resolver,
        issuer=settings.issuer_url,
        audience=settings.cognito_app_client_id,
        leeway_seconds=settings.token_leeway_seconds
    )


@lru_cache
def get_record_store() -> RecordStore:
    """
    Dependency to get the DynamoDB record store.

    Returns:
        Configured RecordStore instance
    """
    settings = get_settings()
    return RecordStore(
        table_name=settings.records_table_name,
        owner_index=settings.records_owner_index,
        region_name=settings.aws_region,
        timeout_seconds=settings.http_timeout_seconds
    )


def get_content_client(settings: Settings = Depends(get_settings)) -> DogImageClient:
    """Dependency to get the random dog image client."""
    return DogImageClient(
        api_url=settings.content_api_url,
        timeout_seconds=settings.http_timeout_seconds
    )


async def get_identity(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier)
) -> VerifiedIdentity:
    """
    Authorize the request.

    Raises AuthError for any rejected token; the application's
    exception handler turns it into a 401 before the route body (and
    therefore any store call) runs.

    Args:
        authorization: Raw Authorization header
        verifier: Token verifier (injected)

    Returns:
        The caller's verified identity
    """
    return await verifier.verify(authorization)


def get_request_id(request: Request) -> str:
    """
    Return the API Gateway request id for this invocation.

    Mangum stores the raw Lambda event in the ASGI scope under
    'aws.event'. Outside Lambda a random id is generated.
    """
    cached = getattr(request.state, 'request_id', None)
    if cached:
        return cached

    event = request.scope.get('aws.event') or {}
    request_context = event.get('requestContext') or {}
    request_id = request_context.get('requestId')
    if not isinstance(request_id, str) or not request_id:
        request_id = str(uuid4())

    request.state.request_id = request_id
    return request_id


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    Read the request body as a JSON object.

    Called from route bodies rather than declared as a body parameter,
    so it only runs once get_identity has accepted the token. An empty
    body is read as {}.

    Raises:
        ValidationError: If the body is not valid JSON or not an object
    """
    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Request body must be valid JSON")

    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def validate_body(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate data against model, reporting the first error as a 400."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors()
        message = errors[0]['msg'] if errors else "Invalid request body"
        raise ValidationError(message)
