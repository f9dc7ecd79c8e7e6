"""Configuration management for the resource API client.

This module defines the ``ClientConfig`` model and helpers to load configuration
from environment variables. A config is built once per client and read
thereafter; unknown keys are rejected at construction.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .models import TokenSet

# Load variables from a local .env file for development convenience
load_dotenv()

DEFAULT_MAX_LIMIT = 500
DEFAULT_TOKEN_ENDPOINT = "token"

TokenFetcher = Callable[[str | None], Awaitable[TokenSet]]


class ClientConfig(BaseModel):
    """Configuration values required to talk to the resource API."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    base_url: str
    max_limit: int = Field(default=DEFAULT_MAX_LIMIT, ge=1)
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT
    token_fetcher: TokenFetcher | None = None
    client_id: str | None = None
    client_secret: str | None = None
    username: str | None = None
    password: str | None = None
    scope: str | None = None
    extra_token_params: dict[str, str] = Field(default_factory=dict)
    verify_ssl: bool = True
    timeout_ms: int = Field(default=10000, ge=1000, le=600000)

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            msg = "base_url is required"
            raise ValueError(msg)
        if not value.startswith(("http://", "https://")):
            msg = f"Invalid base_url '{value}': expected http(s) scheme"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _validate_credentials(self) -> ClientConfig:
        if self.token_fetcher is None and not (self.client_id and self.client_secret):
            msg = "Set token_fetcher or both client_id and client_secret."
            raise ValueError(msg)
        return self

    @property
    def token_url(self) -> str:
        """Return the absolute URL of the token endpoint."""
        if self.token_endpoint.startswith(("http://", "https://")):
            return self.token_endpoint
        return f"{self.base_url}/{self.token_endpoint.lstrip('/')}"

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a configuration object from environment variables."""
        base_url = os.getenv("RESOURCE_API_URL")
        if not base_url:
            msg = "RESOURCE_API_URL is required to reach the resource API."
            raise RuntimeError(msg)
        raw_config: dict[str, Any] = {
            "base_url": base_url,
            "client_id": os.getenv("RESOURCE_API_CLIENT_ID"),
            "client_secret": os.getenv("RESOURCE_API_CLIENT_SECRET"),
            "username": os.getenv("RESOURCE_API_USERNAME"),
            "password": os.getenv("RESOURCE_API_PASSWORD"),
            "scope": os.getenv("RESOURCE_API_SCOPE"),
            "token_endpoint": os.getenv("RESOURCE_API_TOKEN_ENDPOINT", DEFAULT_TOKEN_ENDPOINT),
            "max_limit": os.getenv("RESOURCE_API_MAX_LIMIT", str(DEFAULT_MAX_LIMIT)),
            "verify_ssl": os.getenv("RESOURCE_API_VERIFY_SSL", "true").lower() != "false",
            "timeout_ms": os.getenv("RESOURCE_API_TIMEOUT_MS", "10000"),
        }
        raw_config.update(overrides)
        try:
            return cls(**raw_config)
        except ValidationError as exc:
            messages = "; ".join(err["msg"] for err in exc.errors())
            msg = f"Invalid resource API configuration: {messages}"
            raise RuntimeError(msg) from exc


__all__ = ["DEFAULT_MAX_LIMIT", "DEFAULT_TOKEN_ENDPOINT", "ClientConfig", "TokenFetcher"]
