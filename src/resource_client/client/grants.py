"""OAuth2 grant requests against the token endpoint.

Each helper POSTs a form-encoded grant and parses the JSON reply into a
``TokenSet``. ``build_token_fetcher`` picks the grant to use for each
acquisition from the client configuration and the refresh token on hand.
"""

import logging
from typing import Any

from ..config import ClientConfig, TokenFetcher
from ..errors import TokenAcquisitionError
from ..models import TokenSet
from .transport import Request, Transport

logger = logging.getLogger("resource_client.grants")

HTTP_BAD_REQUEST = 400
HTTP_SERVER_ERROR = 500


def parse_token_response(body: Any) -> TokenSet:
    """Return the token set in a token endpoint body.

    Raises:
        TokenAcquisitionError: If the body carries no ``access_token``.

    """
    token = TokenSet.from_response(body) if isinstance(body, dict) else None
    if token is None:
        msg = f"Invalid response: {body!r}"
        raise TokenAcquisitionError(msg, body=body)
    return token


async def _post_grant(transport: Transport, token_url: str, form: dict[str, str]) -> TokenSet:
    logger.debug("Requesting %s grant from %s", form["grant_type"], token_url)
    response = await transport.issue(Request(url=token_url, method="POST", form=form))
    if response.status >= HTTP_BAD_REQUEST:
        msg = f"Token endpoint returned HTTP {response.status} for {form['grant_type']} grant"
        raise TokenAcquisitionError(msg, status_code=response.status, body=response.body)
    return parse_token_response(response.body)


async def request_client_credentials_token(
    transport: Transport,
    token_url: str,
    client_id: str,
    client_secret: str,
) -> TokenSet:
    """Exchange client credentials for a token set."""
    form = {"grant_type": "client_credentials", "client_id": client_id, "client_secret": client_secret}
    return await _post_grant(transport, token_url, form)


async def request_refresh_token(  # noqa: PLR0913
    transport: Transport,
    token_url: str,
    client_id: str,
    client_secret: str,
    refresh_token: str,
    scope: str | None = None,
) -> TokenSet:
    """Exchange a refresh token for a new token set."""
    form = {
        "grant_type": "refresh_token",
        "client_id": client_id,
        "client_secret": client_secret,
        "refresh_token": refresh_token,
    }
    if scope is not None:
        form["scope"] = scope
    return await _post_grant(transport, token_url, form)


async def request_password_token(  # noqa: PLR0913
    transport: Transport,
    token_url: str,
    client_id: str,
    client_secret: str,
    username: str,
    password: str,
    scope: str | None = None,
    extra: dict[str, str] | None = None,
) -> TokenSet:
    """Exchange resource owner credentials for a token set.

    Args:
        transport: Transport used to reach the token endpoint.
        token_url: Absolute URL of the token endpoint.
        client_id: OAuth2 client identifier.
        client_secret: OAuth2 client secret.
        username: Resource owner username.
        password: Resource owner password.
        scope: Optional scope, applied after ``extra``.
        extra: Additional form fields merged into the grant.

    """
    form = {
        "grant_type": "password",
        "client_id": client_id,
        "client_secret": client_secret,
        "username": username,
        "password": password,
    }
    if extra:
        form.update(extra)
    if scope is not None:
        form["scope"] = scope
    return await _post_grant(transport, token_url, form)


def build_token_fetcher(config: ClientConfig, transport: Transport) -> TokenFetcher:
    """Return the default token fetcher for ``config``.

    The fetcher uses the refresh grant whenever a refresh token is known, the
    password grant when username and password are configured, and client
    credentials otherwise. A refresh token rejected with a 4xx falls back to
    the password or client credentials grant.

    Raises:
        ValueError: If the configuration lacks client credentials.

    """
    client_id = config.client_id
    client_secret = config.client_secret
    if not (client_id and client_secret):
        msg = "client_id and client_secret are required for the default token fetcher."
        raise ValueError(msg)
    token_url = config.token_url

    async def fetch(refresh_token: str | None) -> TokenSet:
        if refresh_token:
            try:
                return await request_refresh_token(
                    transport, token_url, client_id, client_secret, refresh_token, config.scope
                )
            except TokenAcquisitionError as exc:
                if exc.status_code is None or not HTTP_BAD_REQUEST <= exc.status_code < HTTP_SERVER_ERROR:
                    raise
                logger.warning("Refresh token rejected with HTTP %s; falling back to primary grant.", exc.status_code)
        if config.username and config.password:
            return await request_password_token(
                transport,
                token_url,
                client_id,
                client_secret,
                config.username,
                config.password,
                config.scope,
                config.extra_token_params,
            )
        return await request_client_credentials_token(transport, token_url, client_id, client_secret)

    return fetch


__all__ = [
    "build_token_fetcher",
    "parse_token_response",
    "request_client_credentials_token",
    "request_password_token",
    "request_refresh_token",
]
