"""Token models returned by the OAuth2 token endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import TokenAcquisitionError


class TokenSet(BaseModel):
    """An access token and the optional refresh token issued alongside it.

    Instances are frozen; a new acquisition replaces the previous set rather
    than mutating it.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None

    @property
    def authorization(self) -> str:
        """Return the value for the ``Authorization`` request header."""
        return f"Bearer {self.access_token}"

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> TokenSet | None:
        """Build a token set from a token endpoint body, or ``None`` without an access token.

        Raises:
            TokenAcquisitionError: If the tokens in the body are not strings.

        """
        access_token = body.get("access_token")
        if not access_token:
            return None
        try:
            return cls(access_token=access_token, refresh_token=body.get("refresh_token") or None)
        except ValidationError as exc:
            msg = f"Invalid response: {body!r}"
            raise TokenAcquisitionError(msg, body=body) from exc


__all__ = ["TokenSet"]
