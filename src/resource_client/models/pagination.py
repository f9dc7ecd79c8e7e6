"""Models describing one page of a paginated listing."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    """Paging metadata reported by a listing endpoint."""

    model_config = ConfigDict(extra="allow")

    total: int = Field(ge=0)
    offset: int = 0
    limit: int = 0


class Page(BaseModel):
    """A listing response: the records of one page plus its paging metadata."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    results: list[Any] = Field(default_factory=list, alias="result")
    pagination: Pagination


__all__ = ["Page", "Pagination"]
