"""Pydantic models for token and listing payloads.

This package exposes:
- ``TokenSet``: the immutable access/refresh token pair owned by the token manager
- ``Page`` and ``Pagination``: one page of a listing response
"""

from .pagination import Page, Pagination
from .tokens import TokenSet

__all__ = ["Page", "Pagination", "TokenSet"]
