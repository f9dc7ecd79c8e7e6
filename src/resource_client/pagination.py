"""Aggregate a paginated listing into one ordered sequence of records.

The first page is fetched alone to learn ``pagination.total``; the remaining
pages are then fetched concurrently and concatenated in offset order.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeAlias

from .models import Page

logger = logging.getLogger("resource_client.pagination")

PageFetcher: TypeAlias = Callable[[dict[str, Any]], Awaitable[Any]]


def page_offsets(total: int, limit: int) -> list[int]:
    """Return the offsets of every page after the first.

    Args:
        total: Number of records reported by the first page.
        limit: Page size.

    Returns:
        ``[limit, 2 * limit, ...]`` while the offset is below ``total``.

    """
    pages = math.ceil(total / limit)
    return [page * limit for page in range(1, pages)]


def page_params(params: Mapping[str, Any] | None, offset: int, limit: int) -> dict[str, Any]:
    """Merge the paging parameters over the caller's filters.

    Caller-supplied ``offset`` and ``limit`` are always overridden.
    """
    return {**(params or {}), "offset": offset, "limit": limit}


async def aggregate_pages(
    fetch_page: PageFetcher,
    params: Mapping[str, Any] | None,
    limit: int,
) -> list[Any]:
    """Fetch every page of a listing and return the flattened records.

    Args:
        fetch_page: Coroutine function taking query parameters and returning the
            decoded listing body (``{"pagination": ..., "result": [...]}``).
        params: Caller filter parameters.
        limit: Page size used for every request.

    Returns:
        Records of all pages, first page first, then by increasing offset.

    Raises:
        Exception: The first error raised by any page fetch; no partial
            results are returned.

    """
    first = Page.model_validate(await fetch_page(page_params(params, 0, limit)))
    offsets = page_offsets(first.pagination.total, limit)
    if not offsets:
        return list(first.results)

    logger.debug(
        "Fetching %d additional pages for %d records (limit %d)",
        len(offsets),
        first.pagination.total,
        limit,
    )
    tasks = [asyncio.ensure_future(fetch_page(page_params(params, offset, limit))) for offset in offsets]
    try:
        # gather preserves argument order, independent of completion order
        bodies = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
    records = list(first.results)
    for body in bodies:
        records.extend(Page.model_validate(body).results)
    return records


__all__ = ["PageFetcher", "aggregate_pages", "page_offsets", "page_params"]
