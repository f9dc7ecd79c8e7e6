"""Token management for the resource API.

The manager caches one ``TokenSet`` at a time and funnels every acquisition
through a single in-flight task, so concurrent callers that find the cache
empty all await the same call to the configured token fetcher.
"""

import asyncio
import logging
from typing import Any

from ..config import TokenFetcher
from ..errors import TokenAcquisitionError, TransportError
from ..models import TokenSet

logger = logging.getLogger("resource_client.token_manager")


class TokenManager:
    """Cache bearer tokens and acquire new ones on demand, one acquisition at a time."""

    def __init__(self, fetcher: TokenFetcher, *, token: TokenSet | None = None) -> None:
        """Initialize the token manager.

        Args:
            fetcher: Coroutine function exchanging the stored refresh token
                (or ``None``) for a new ``TokenSet``.
            token: Optional token set to seed the cache with.

        """
        self._fetcher = fetcher
        self._cached_token: TokenSet | None = None
        self._refresh_token: str | None = None
        self._pending: asyncio.Task[TokenSet] | None = None
        if token is not None:
            self.set_token(token)

    @property
    def cached_token(self) -> TokenSet | None:
        """Return the current token set, if any."""
        return self._cached_token

    @property
    def refresh_token(self) -> str | None:
        """Return the most recent refresh token observed."""
        return self._refresh_token

    @property
    def acquiring(self) -> bool:
        """Return whether an acquisition is currently in flight."""
        return self._pending is not None and not self._pending.done()

    async def get_token(self) -> TokenSet:
        """Return the cached token set, acquiring one if the cache is empty.

        Callers arriving while an acquisition is in flight share it instead of
        starting another one.

        Raises:
            TokenAcquisitionError: If the token endpoint rejected the request or
                returned a malformed response.

        """
        if self._cached_token is not None:
            return self._cached_token

        loop = asyncio.get_running_loop()
        pending = self._pending
        if pending is None or pending.get_loop() is not loop:
            pending = loop.create_task(self._acquire())
            self._pending = pending
        # A cancelled waiter must not cancel the acquisition shared by the others.
        return await asyncio.shield(pending)

    def set_token(self, token: TokenSet) -> None:
        """Seed the cache with an externally obtained token set."""
        self._store(token)

    def invalidate(self, stale: TokenSet | None = None) -> None:
        """Drop the cached token set, keeping the stored refresh token.

        Args:
            stale: When given, only invalidate if the cache still holds this
                token set. A request that failed with an old token then does not
                discard a token another request already renewed.

        """
        if stale is not None and self._cached_token is not None and self._cached_token != stale:
            logger.debug("Skipping invalidation; token was already renewed.")
            return
        self._cached_token = None

    def _store(self, token: TokenSet) -> None:
        self._cached_token = token
        if token.refresh_token:
            self._refresh_token = token.refresh_token

    async def _acquire(self) -> TokenSet:
        """Run the token fetcher and cache its result.

        The in-flight marker is cleared on success and failure alike so the next
        caller after a failure starts a fresh attempt.
        """
        task = asyncio.current_task()
        try:
            token = _coerce_token(await self._fetcher(self._refresh_token))
        except TokenAcquisitionError:
            logger.exception("Failed to acquire an access token")
            raise
        except TransportError as exc:
            logger.exception("Failed to reach the token endpoint")
            msg = f"Token acquisition failed: {exc}"
            raise TokenAcquisitionError(msg) from exc
        except Exception:
            logger.exception("Token fetcher failed")
            raise
        else:
            self._store(token)
            logger.debug("Acquired new access token.")
            return token
        finally:
            if self._pending is task:
                self._pending = None


def _coerce_token(value: Any) -> TokenSet:
    """Accept a ``TokenSet`` or a raw token endpoint body from the fetcher."""
    if isinstance(value, TokenSet):
        return value
    if isinstance(value, dict):
        token = TokenSet.from_response(value)
        if token is not None:
            return token
    msg = f"Invalid token response: {value!r}"
    raise TokenAcquisitionError(msg, body=value)


__all__ = ["TokenManager"]
