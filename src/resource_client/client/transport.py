"""HTTP transport for the resource API.

Wraps a shared ``httpx.AsyncClient`` behind a single ``issue`` coroutine that
takes a request descriptor and returns status, headers and decoded body.
Network failures surface as ``TransportError``; HTTP error statuses are
returned, not raised, so callers can inspect them.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ..config import ClientConfig
from ..errors import TransportError

logger = logging.getLogger("resource_client.transport")


@dataclass(slots=True)
class Request:
    """A single outgoing request.

    ``headers`` is mutable so the expiry-retry path can swap the
    ``Authorization`` value before replaying the same request.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    form: dict[str, str] | None = None
    expect_json: bool = True


@dataclass(frozen=True, slots=True)
class Response:
    """Status, headers and decoded body of an HTTP response."""

    status: int
    headers: dict[str, str]
    body: Any


class Transport(Protocol):
    """Anything able to send a ``Request`` and return a ``Response``."""

    async def issue(self, request: Request) -> Response:
        """Send the request."""
        ...


def decode_body(body: Any) -> Any:
    """Parse a JSON string body, returning ``None`` when it cannot be parsed.

    Non-string bodies are returned unchanged.
    """
    if not isinstance(body, str | bytes):
        return body
    try:
        return json.loads(body)
    except ValueError:
        return None


class HttpTransport:
    """Issue requests through an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize the transport.

        Args:
            client: The httpx client used for every request.

        """
        self._client = client

    async def issue(self, request: Request) -> Response:
        """Send ``request`` and return its response.

        Raises:
            TransportError: If no HTTP response could be obtained.

        """
        kwargs: dict[str, Any] = {"headers": request.headers}
        if request.form is not None:
            kwargs["data"] = request.form
        elif request.body is not None:
            kwargs["json"] = request.body
        if request.expect_json:
            kwargs["headers"] = {"Accept": "application/json", **request.headers}

        try:
            resp = await self._client.request(request.method, request.url, **kwargs)
        except httpx.HTTPError as exc:
            msg = f"Network error during {request.method} {request.url}: {exc}"
            raise TransportError(msg) from exc

        logger.debug("%s %s -> %s", request.method, request.url, resp.status_code)
        return Response(status=resp.status_code, headers=dict(resp.headers), body=_read_body(resp, request))

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()


def _read_body(resp: httpx.Response, request: Request) -> Any:
    if not resp.content:
        return None
    if not request.expect_json:
        return resp.text
    try:
        return resp.json()
    except ValueError:
        # Keep the raw text; expiry detection parses it again and treats failures as non-expiry.
        return resp.text


@asynccontextmanager
async def create_transport(config: ClientConfig) -> AsyncIterator[HttpTransport]:
    """Create a transport configured with the client's TLS and timeout settings.

    Args:
        config: The configuration containing TLS verification and timeouts.

    Yields:
        Configured HttpTransport instance.

    """
    timeout = httpx.Timeout(config.timeout_ms / 1000)
    async with httpx.AsyncClient(verify=config.verify_ssl, timeout=timeout) as client:
        yield HttpTransport(client)


__all__ = ["HttpTransport", "Request", "Response", "Transport", "create_transport", "decode_body"]
