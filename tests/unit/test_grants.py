"""Unit tests for OAuth2 grant helpers in client.grants."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import MagicMock
from urllib.parse import parse_qsl

import httpx
import pytest

from resource_client.client.grants import (
    build_token_fetcher,
    parse_token_response,
    request_client_credentials_token,
    request_password_token,
    request_refresh_token,
)
from resource_client.client.transport import HttpTransport
from resource_client.config import ClientConfig
from resource_client.errors import TokenAcquisitionError
from resource_client.models import TokenSet

TOKEN_URL = "https://api.example.com/v1/token"


@asynccontextmanager
async def _token_endpoint(
    forms: list[dict[str, str]],
    reply: Callable[[dict[str, str]], httpx.Response] | None = None,
) -> AsyncIterator[HttpTransport]:
    """Yield a transport whose token endpoint records each submitted form."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        form = dict(parse_qsl(request.content.decode()))
        forms.append(form)
        if reply is not None:
            return reply(form)
        return httpx.Response(200, json={"access_token": f"at-{form['grant_type']}", "refresh_token": "R1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield HttpTransport(client)


def _config(**overrides: Any) -> ClientConfig:
    values: dict[str, Any] = {
        "base_url": "https://api.example.com/v1",
        "client_id": "cid",
        "client_secret": "csecret",
    }
    values.update(overrides)
    return ClientConfig(**values)


def test_parse_token_response_keeps_refresh_token() -> None:
    """Both tokens should be kept when present."""
    token = parse_token_response({"access_token": "a", "refresh_token": "r", "expires_in": 3600})
    assert token == TokenSet(access_token="a", refresh_token="r")


@pytest.mark.parametrize("body", [{}, {"refresh_token": "r"}, {"access_token": ""}, "oops", None])
def test_parse_token_response_requires_access_token(body: Any) -> None:
    """Bodies without an access token are protocol violations."""
    with pytest.raises(TokenAcquisitionError, match="Invalid response"):
        parse_token_response(body)


@pytest.mark.asyncio
async def test_client_credentials_grant_form() -> None:
    """The client credentials grant should post the client id and secret."""
    forms: list[dict[str, str]] = []
    async with _token_endpoint(forms) as transport:
        token = await request_client_credentials_token(transport, TOKEN_URL, "cid", "csecret")

    assert token == TokenSet(access_token="at-client_credentials", refresh_token="R1")
    assert forms == [{"grant_type": "client_credentials", "client_id": "cid", "client_secret": "csecret"}]


@pytest.mark.asyncio
async def test_refresh_grant_form_with_scope() -> None:
    """The refresh grant should include the refresh token and optional scope."""
    forms: list[dict[str, str]] = []
    async with _token_endpoint(forms) as transport:
        await request_refresh_token(transport, TOKEN_URL, "cid", "csecret", "R0")
        await request_refresh_token(transport, TOKEN_URL, "cid", "csecret", "R0", "read")

    assert forms[0] == {
        "grant_type": "refresh_token",
        "client_id": "cid",
        "client_secret": "csecret",
        "refresh_token": "R0",
    }
    assert forms[1]["scope"] == "read"


@pytest.mark.asyncio
async def test_password_grant_merges_extra_then_scope() -> None:
    """Extra fields are merged first; an explicit scope wins over an extra one."""
    forms: list[dict[str, str]] = []
    async with _token_endpoint(forms) as transport:
        await request_password_token(
            transport,
            TOKEN_URL,
            "cid",
            "csecret",
            "alice",
            "pw",
            scope="write",
            extra={"scope": "ignored", "audience": "api"},
        )

    assert forms == [
        {
            "grant_type": "password",
            "client_id": "cid",
            "client_secret": "csecret",
            "username": "alice",
            "password": "pw",
            "scope": "write",
            "audience": "api",
        }
    ]


@pytest.mark.asyncio
async def test_error_status_raises_acquisition_error() -> None:
    """A 4xx from the token endpoint should raise with status and body."""
    forms: list[dict[str, str]] = []

    def reply(form: dict[str, str]) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_client"})

    async with _token_endpoint(forms, reply) as transport:
        with pytest.raises(TokenAcquisitionError) as exc_info:
            await request_client_credentials_token(transport, TOKEN_URL, "cid", "bad")

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == {"error": "invalid_client"}


@pytest.mark.asyncio
async def test_success_without_access_token_raises() -> None:
    """A 200 reply missing access_token is a protocol violation."""
    forms: list[dict[str, str]] = []

    def reply(form: dict[str, str]) -> httpx.Response:
        return httpx.Response(200, json={"token_type": "bearer"})

    async with _token_endpoint(forms, reply) as transport:
        with pytest.raises(TokenAcquisitionError, match="Invalid response"):
            await request_client_credentials_token(transport, TOKEN_URL, "cid", "csecret")


class TestBuildTokenFetcher:
    """Tests for the default grant selection strategy."""

    @pytest.mark.asyncio
    async def test_client_credentials_without_refresh_token(self) -> None:
        """With no refresh token and no user credentials, use client credentials."""
        forms: list[dict[str, str]] = []
        async with _token_endpoint(forms) as transport:
            fetch = build_token_fetcher(_config(), transport)
            await fetch(None)

        assert forms[0]["grant_type"] == "client_credentials"

    @pytest.mark.asyncio
    async def test_password_grant_when_user_configured(self) -> None:
        """Configured username and password select the password grant."""
        forms: list[dict[str, str]] = []
        config = _config(username="alice", password="pw", scope="read", extra_token_params={"audience": "api"})
        async with _token_endpoint(forms) as transport:
            fetch = build_token_fetcher(config, transport)
            await fetch(None)

        assert forms[0]["grant_type"] == "password"
        assert forms[0]["username"] == "alice"
        assert forms[0]["audience"] == "api"
        assert forms[0]["scope"] == "read"

    @pytest.mark.asyncio
    async def test_refresh_grant_when_refresh_token_known(self) -> None:
        """A known refresh token takes precedence over other grants."""
        forms: list[dict[str, str]] = []
        config = _config(username="alice", password="pw")
        async with _token_endpoint(forms) as transport:
            fetch = build_token_fetcher(config, transport)
            await fetch("R7")

        assert forms[0]["grant_type"] == "refresh_token"
        assert forms[0]["refresh_token"] == "R7"

    def test_requires_client_credentials(self) -> None:
        """Without client credentials no default fetcher can be built."""

        async def custom(refresh_token: str | None) -> TokenSet:
            return TokenSet(access_token="x")

        config = ClientConfig(base_url="https://api.example.com", token_fetcher=custom)
        with pytest.raises(ValueError, match="client_id and client_secret"):
            build_token_fetcher(config, MagicMock())

    def test_token_url_from_custom_endpoint(self) -> None:
        """The token endpoint path is resolved against the base URL."""
        assert _config(token_endpoint="/oauth/token").token_url == "https://api.example.com/v1/oauth/token"
        assert _config(token_endpoint="https://auth.example.com/t").token_url == "https://auth.example.com/t"


@pytest.mark.parametrize("body", [{"access_token": 123}, {"access_token": "a", "refresh_token": {"x": 1}}])
def test_parse_token_response_rejects_non_string_tokens(body: Any) -> None:
    """Token values of the wrong type are reported as acquisition failures."""
    with pytest.raises(TokenAcquisitionError, match="Invalid response") as exc_info:
        parse_token_response(body)
    assert exc_info.value.body == body


@pytest.mark.asyncio
async def test_rejected_refresh_token_falls_back_to_primary_grant() -> None:
    """A refresh token revoked by the server should not block renewal with client credentials."""
    forms: list[dict[str, str]] = []

    def reply(form: dict[str, str]) -> httpx.Response:
        if form["grant_type"] == "refresh_token":
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "fresh", "refresh_token": "R2"})

    async with _token_endpoint(forms, reply) as transport:
        fetch = build_token_fetcher(_config(), transport)
        token = await fetch("R1")

    assert token == TokenSet(access_token="fresh", refresh_token="R2")
    assert [form["grant_type"] for form in forms] == ["refresh_token", "client_credentials"]


@pytest.mark.asyncio
async def test_refresh_server_error_is_not_retried_with_primary_grant() -> None:
    """A 5xx on the refresh grant propagates without a fallback request."""
    forms: list[dict[str, str]] = []

    def reply(form: dict[str, str]) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    async with _token_endpoint(forms, reply) as transport:
        fetch = build_token_fetcher(_config(username="alice", password="pw"), transport)
        with pytest.raises(TokenAcquisitionError) as exc_info:
            await fetch("R1")

    assert exc_info.value.status_code == 503
    assert [form["grant_type"] for form in forms] == ["refresh_token"]
