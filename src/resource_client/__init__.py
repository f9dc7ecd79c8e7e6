"""Resource API client package.

An async client for a paginated, OAuth2-protected REST API: bearer token
acquisition with silent renewal, CRUD verbs mapped onto HTTP methods, and
multi-page listings aggregated into one result set.
"""

from .client.resource_client import ResourceClient
from .client.token_manager import TokenManager
from .config import ClientConfig
from .errors import (
    AuthExpiryError,
    HTTPError,
    ResourceClientError,
    TokenAcquisitionError,
    TransportError,
    ValidationError,
)
from .models import Page, Pagination, TokenSet

__all__ = [
    "AuthExpiryError",
    "ClientConfig",
    "HTTPError",
    "Page",
    "Pagination",
    "ResourceClient",
    "ResourceClientError",
    "TokenAcquisitionError",
    "TokenManager",
    "TokenSet",
    "TransportError",
    "ValidationError",
]
