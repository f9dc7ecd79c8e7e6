"""Authenticated CRUD access to the resource API.

Every operation goes through the token manager for its bearer token. A
``401`` response whose body carries ``{"error": "invalid_grant"}`` marks an
expired token: the token is invalidated, a new one acquired, and the same
request replayed exactly once.
"""

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote, urlencode

import httpx

from ..config import ClientConfig
from ..errors import AuthExpiryError, HTTPError, ValidationError
from ..models import TokenSet
from ..pagination import aggregate_pages
from .grants import build_token_fetcher
from .token_manager import TokenManager
from .transport import HttpTransport, Request, Response, Transport, decode_body

logger = logging.getLogger("resource_client.resource_client")

HTTP_UNAUTHORIZED = 401
HTTP_BAD_REQUEST = 400
EXPIRED_TOKEN_ERROR = "invalid_grant"


def is_expired_token(response: Response) -> bool:
    """Return whether ``response`` signals an expired access token.

    String bodies are parsed first; bodies that cannot be parsed are not
    treated as an expiry signal.
    """
    if response.status != HTTP_UNAUTHORIZED:
        return False
    body = decode_body(response.body)
    return isinstance(body, dict) and body.get("error") == EXPIRED_TOKEN_ERROR


class ResourceClient:
    """Client for a paginated, OAuth2-protected REST API."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Transport | None = None,
        token_manager: TokenManager | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Resolved client configuration.
            transport: Transport to send requests with. When omitted, the client
                creates and owns an ``HttpTransport``.
            token_manager: Token manager to use. When omitted, one is built from
                ``config.token_fetcher`` or the default grant strategy.

        """
        self._config = config
        self._owns_transport = transport is None
        if transport is None:
            http_client = httpx.AsyncClient(
                verify=config.verify_ssl,
                timeout=httpx.Timeout(config.timeout_ms / 1000),
            )
            transport = HttpTransport(http_client)
        self._transport = transport
        if token_manager is None:
            fetcher = config.token_fetcher or build_token_fetcher(config, transport)
            token_manager = TokenManager(fetcher)
        self._token_manager = token_manager

    @property
    def config(self) -> ClientConfig:
        """Return the client configuration."""
        return self._config

    @property
    def token_manager(self) -> TokenManager:
        """Return the token manager shared by all requests."""
        return self._token_manager

    async def __aenter__(self) -> Self:
        """Return the client for async context manager usage."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the owned transport when leaving the block."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and isinstance(self._transport, HttpTransport):
            await self._transport.aclose()

    def set_token(self, token: TokenSet) -> None:
        """Resume from a previously obtained token set."""
        self._token_manager.set_token(token)

    def url_for(
        self,
        resource: str,
        resource_id: str | int | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        """Build ``base/resource[/id][?query]``."""
        url = f"{self._config.base_url}/{resource}"
        if resource_id is not None and resource_id != "":
            url = f"{url}/{quote(str(resource_id), safe='')}"
        if params:
            url = f"{url}?{urlencode(params, doseq=True)}"
        return url

    async def get(
        self,
        resource: str,
        resource_id: str | int | None,
        params: Mapping[str, Any] | None = None,
    ) -> Response:
        """Fetch a single resource by id.

        Raises:
            ValidationError: If ``resource_id`` is missing; no request is sent.

        """
        _require_id(resource_id, "get")
        return await self._send("GET", self.url_for(resource, resource_id, params))

    async def get_result(
        self,
        resource: str,
        resource_id: str | int | None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Fetch a single resource and return its ``result`` member."""
        response = await self.get(resource, resource_id, params)
        body = decode_body(response.body)
        return body.get("result") if isinstance(body, dict) else None

    async def index(self, resource: str, params: Mapping[str, Any] | None = None) -> Response:
        """Fetch one page of a listing."""
        return await self._send("GET", self.url_for(resource, None, params))

    async def index_all(self, resource: str, params: Mapping[str, Any] | None = None) -> list[Any]:
        """Fetch every page of a listing and return the records in offset order."""

        async def fetch_page(page_params: dict[str, Any]) -> Any:
            response = await self.index(resource, page_params)
            return decode_body(response.body)

        return await aggregate_pages(fetch_page, params, self._config.max_limit)

    async def post(self, resource: str, params: Any = None) -> Response:
        """Create a resource from ``params``."""
        return await self._send("POST", self.url_for(resource), params)

    async def put(self, resource: str, resource_id: str | int | None, params: Any = None) -> Response:
        """Replace the resource ``resource_id`` with ``params``.

        Raises:
            ValidationError: If ``resource_id`` is missing; no request is sent.

        """
        _require_id(resource_id, "put")
        return await self._send("PUT", self.url_for(resource, resource_id), params)

    async def delete(self, resource: str, resource_id: str | int | None) -> Response:
        """Delete the resource ``resource_id``."""
        return await self._send("DELETE", self.url_for(resource, resource_id))

    async def delete_by_params(self, resource: str, params: Any) -> Response:
        """Delete every resource matching the filter sent as the request body."""
        return await self._send("DELETE", self.url_for(resource), params)

    async def _send(self, method: str, url: str, body: Any = None) -> Response:
        """Issue an authorized request, replaying it once if the token expired.

        Raises:
            AuthExpiryError: If the replayed request is rejected as expired again.
            HTTPError: For any other response with status >= 400.
            TransportError: If the network call failed.
            TokenAcquisitionError: If no token could be obtained.

        """
        token = await self._token_manager.get_token()
        request = Request(url=url, method=method, headers={"Authorization": token.authorization}, body=body)
        response = await self._transport.issue(request)

        if is_expired_token(response):
            logger.warning("Access token expired during %s %s; renewing and retrying once.", method, url)
            self._token_manager.invalidate(token)
            token = await self._token_manager.get_token()
            request.headers["Authorization"] = token.authorization
            response = await self._transport.issue(request)
            if is_expired_token(response):
                msg = f"Access token rejected as expired after renewal: {method} {url}"
                raise AuthExpiryError(msg, status_code=response.status, body=response.body)

        if response.status >= HTTP_BAD_REQUEST:
            msg = f"HTTP {response.status} from {method} {url}"
            raise HTTPError(msg, status_code=response.status, body=response.body)
        return response


def _require_id(resource_id: str | int | None, operation: str) -> None:
    if resource_id is None or resource_id == "":
        msg = f"An id is required for {operation}"
        raise ValidationError(msg)


__all__ = ["EXPIRED_TOKEN_ERROR", "ResourceClient", "is_expired_token"]
