"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures all gateway settings from environment variables with
validation and defaults. Supports .env files for local development.
"""

import re
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Dog Gallery Gateway", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")
    stage: str = Field(default="dev", description="Deployment stage")

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")

    # Identity provider settings
    cognito_user_pool_id: str = Field(
        ...,
        description="Cognito user pool id, e.g. us-east-1_AbCdEf123"
    )
    cognito_region: Optional[str] = Field(
        default=None,
        description="Region of the user pool (derived from the pool id when unset)"
    )
    cognito_app_client_id: str = Field(
        ...,
        description="App client id expected in the aud / client_id claim"
    )
    jwks_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="Seconds a fetched signing key set stays fresh"
    )
    token_leeway_seconds: int = Field(
        default=0,
        ge=0,
        le=300,
        description="Clock skew tolerated when checking token expiry"
    )

    # DynamoDB settings
    records_table_name: str = Field(
        ...,
        description="Name of the DynamoDB saved images table"
    )
    records_owner_index: str = Field(
        default="UserIndex",
        description="GSI keyed by (owner_id, created_at)"
    )
    default_list_limit: int = Field(default=20, ge=1, le=100)
    max_list_limit: int = Field(default=100, ge=1, le=1000)

    # Outbound HTTP settings
    content_api_url: str = Field(
        default="https://dog.ceo/api/breeds/image/random",
        description="Third-party endpoint returning a random image URL"
    )
    http_timeout_seconds: float = Field(
        default=5.0,
        ge=1,
        le=10,
        description="Timeout in seconds for every outbound call"
    )

    # CORS
    cors_allow_origin: str = Field(default="*", description="Access-Control-Allow-Origin value")

    @field_validator('records_table_name')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate DynamoDB table names."""
        if not v or not isinstance(v, str):
            raise ValueError("Table name must be a non-empty string")

        if not re.match(r'^[a-zA-Z0-9_.-]{3,255}$', v):
            raise ValueError(
                "Table name must be 3-255 letters, numbers, dots, hyphens, and underscores"
            )

        return v

    @field_validator('cognito_user_pool_id')
    @classmethod
    def validate_user_pool_id(cls, v: str) -> str:
        """Pool ids look like <region>_<suffix>."""
        if not re.match(r'^[a-z]{2}(-[a-z]+)+-\d+_[0-9A-Za-z]+$', v):
            raise ValueError("cognito_user_pool_id must look like '<region>_<id>'")
        return v

    @field_validator('cognito_app_client_id')
    @classmethod
    def validate_app_client_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cognito_app_client_id must be a non-empty string")
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @model_validator(mode='after')
    def validate_list_limits(self) -> 'Settings':
        """The default page size may not exceed the cap."""
        if self.default_list_limit > self.max_list_limit:
            raise ValueError("default_list_limit must not exceed max_list_limit")
        return self

    def bounded_list_limit(self, limit: Optional[int]) -> int:
        """Page size for a list request: the default, or limit capped at the maximum."""
        if limit is None:
            return self.default_list_limit
        return min(limit, self.max_list_limit)

    @property
    def identity_region(self) -> str:
        """Region hosting the user pool."""
        return self.cognito_region or self.cognito_user_pool_id.split("_", 1)[0]

    @property
    def issuer_url(self) -> str:
        """Expected value of the iss claim."""
        return (
            f"https://cognito-idp.{self.identity_region}.amazonaws.com/"
            f"{self.cognito_user_pool_id}"
        )

    @property
    def jwks_url(self) -> str:
        """Well-known endpoint publishing the pool's signing keys."""
        return f"{self.issuer_url}/.well-known/jwks.json"


@lru_cache
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.

    Loaded lazily so that importing the package does not require the
    environment to be populated.
    """
    return Settings()
