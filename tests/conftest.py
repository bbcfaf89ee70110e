"""
Module: conftest.py
Description: Shared pytest fixtures for gallery gateway tests.

Provides RSA signing keys and a token factory, a mocked JWKS endpoint
(httpx.MockTransport), a moto-backed DynamoDB records table, and a
FastAPI test client with the process-wide dependencies overridden.
"""

import base64
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

# Settings are read from the environment when the app module is imported.
os.environ.setdefault("COGNITO_USER_POOL_ID", "us-east-1_TestPool1")
os.environ.setdefault("COGNITO_APP_CLIENT_ID", "test-app-client")
os.environ.setdefault("RECORDS_TABLE_NAME", "test-saved-images")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import boto3
import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from moto import mock_aws

from gallery_gateway.auth.jwks import KeyResolver
from gallery_gateway.auth.verifier import TokenVerifier
from gallery_gateway.config.settings import Settings
from gallery_gateway.content.dog_api import DogImageClient
from gallery_gateway.storage.dynamodb import RecordStore

TEST_POOL_ID = "us-east-1_TestPool1"
TEST_CLIENT_ID = "test-app-client"
TEST_ISSUER = f"https://cognito-idp.us-east-1.amazonaws.com/{TEST_POOL_ID}"
TEST_JWKS_URL = f"{TEST_ISSUER}/.well-known/jwks.json"
TEST_TABLE_NAME = "test-saved-images"
TEST_OWNER_INDEX = "UserIndex"

NOW = 1_700_000_000
PRIMARY_KID = "primary-key"
ROTATED_KID = "rotated-key"
DOG_IMAGE_URL = "https://images.dog.ceo/breeds/retriever-golden/n02099601_1024.jpg"


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def public_jwk(private_key: rsa.RSAPrivateKey, kid: str) -> Dict[str, Any]:
    """JWKS entry for the public half of private_key."""
    numbers = private_key.public_key().public_numbers()
    return {
        "kid": kid,
        "kty": "RSA",
        "alg": "RS256",
        "use": "sig",
        "n": _b64url_uint(numbers.n),
        "e": _b64url_uint(numbers.e),
    }


@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rotated_signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def unknown_signing_key() -> rsa.RSAPrivateKey:
    """Key that is never published in the JWKS."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def test_settings() -> Settings:
    """
    Provide test configuration settings.

    Disables .env loading so tests are predictable.
    """
    return Settings(
        _env_file=None,
        cognito_user_pool_id=TEST_POOL_ID,
        cognito_app_client_id=TEST_CLIENT_ID,
        records_table_name=TEST_TABLE_NAME,
        stage="test",
        app_version="1.0.0-test",
        log_level="DEBUG",
    )


@pytest.fixture
def claims_factory():
    """Build ID-token claims valid at NOW, with overrides."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        claims = {
            "sub": "user-123",
            "email": "owner@example.com",
            "iss": TEST_ISSUER,
            "aud": TEST_CLIENT_ID,
            "token_use": "id",
            "iat": NOW - 60,
            "exp": NOW + 3600,
        }
        claims.update(overrides)
        return {k: v for k, v in claims.items() if v is not None}

    return _make


@pytest.fixture
def token_factory(signing_key, claims_factory):
    """
    Sign tokens with the published primary key by default.

    Keyword arguments not consumed by the factory are claim overrides.
    """

    def _make(
        key: Optional[rsa.RSAPrivateKey] = None,
        kid: Optional[str] = PRIMARY_KID,
        algorithm: str = "RS256",
        **claim_overrides: Any
    ) -> str:
        headers = {"kid": kid} if kid is not None else {}
        return jwt.encode(
            claims_factory(**claim_overrides),
            key or signing_key,
            algorithm=algorithm,
            headers=headers,
        )

    return _make


class JwksEndpoint:
    """Mutable fake JWKS endpoint that records how often it is fetched."""

    def __init__(self, keys: List[Dict[str, Any]]):
        self.keys = keys
        self.calls = 0
        self.status_code = 200
        self.body: Optional[bytes] = None
        self.error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json={"keys": self.keys})


@pytest.fixture
def jwks_endpoint(signing_key) -> JwksEndpoint:
    return JwksEndpoint([public_jwk(signing_key, PRIMARY_KID)])


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def key_resolver(jwks_endpoint, clock) -> KeyResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(jwks_endpoint.handler))
    return KeyResolver(
        jwks_url=TEST_JWKS_URL,
        ttl_seconds=3600,
        timeout_seconds=5,
        http_client=client,
        clock=clock,
    )


@pytest.fixture
def verifier(key_resolver, clock) -> TokenVerifier:
    return TokenVerifier(
        key_resolver=key_resolver,
        issuer=TEST_ISSUER,
        audience=TEST_CLIENT_ID,
        clock=clock,
    )


@pytest.fixture
def records_table():
    """
    Create a mock DynamoDB records table.

    Same schema as production: (id, created_at) primary key and the
    UserIndex GSI on (owner_id, created_at).
    """
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName=TEST_TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'id', 'KeyType': 'HASH'},
                {'AttributeName': 'created_at', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'id', 'AttributeType': 'S'},
                {'AttributeName': 'created_at', 'AttributeType': 'S'},
                {'AttributeName': 'owner_id', 'AttributeType': 'S'}
            ],
            GlobalSecondaryIndexes=[
                {
                    'IndexName': TEST_OWNER_INDEX,
                    'KeySchema': [
                        {'AttributeName': 'owner_id', 'KeyType': 'HASH'},
                        {'AttributeName': 'created_at', 'KeyType': 'RANGE'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                }
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


class TickingClock:
    """Datetime clock that advances one second per call."""

    def __init__(self):
        self.current = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def record_store(records_table) -> RecordStore:
    """RecordStore bound to the mocked table with a deterministic clock."""
    return RecordStore(
        table_name=TEST_TABLE_NAME,
        owner_index=TEST_OWNER_INDEX,
        region_name='us-east-1',
        clock=TickingClock(),
    )


class DogApi:
    """Fake random image service."""

    def __init__(self):
        self.calls = 0
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(
            self.status_code,
            json={"message": DOG_IMAGE_URL, "status": "success"},
        )


@pytest.fixture
def dog_api() -> DogApi:
    return DogApi()


@pytest.fixture
def content_client(dog_api) -> DogImageClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(dog_api.handler))
    return DogImageClient(
        api_url="https://dog.ceo/api/breeds/image/random",
        http_client=client,
    )


@pytest.fixture
def app_client(verifier, record_store, content_client, test_settings):
    """
    FastAPI test client with verifier, store, content client and
    settings overridden.
    """
    from fastapi.testclient import TestClient

    from gallery_gateway.config.settings import get_settings
    from gallery_gateway.handlers.dependencies import (
        get_content_client,
        get_record_store,
        get_token_verifier,
    )
    from gallery_gateway.main import app

    app.dependency_overrides[get_token_verifier] = lambda: verifier
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_content_client] = lambda: content_client
    app.dependency_overrides[get_settings] = lambda: test_settings

    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides = {}


@pytest.fixture
def auth_headers(token_factory):
    """Authorization header for user-123."""
    return {"Authorization": f"Bearer {token_factory()}"}
