"""Pagination collector — drains a paginated listing through the fetcher."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from starlens.engines.ranker.fetcher import RateLimitedFetcher
from starlens.engines.ranker.github_client import GitHubClient
from starlens.engines.ranker.models import PageResult

log = structlog.get_logger("starlens.engine")

T = TypeVar("T")

PER_PAGE = 100

PageFetcher = Callable[[str | None], Awaitable[PageResult[T]]]


async def collect_all(fetcher: RateLimitedFetcher, fetch_page: PageFetcher[T]) -> list[T]:
    """Request pages until the upstream stops returning a next cursor.

    ``fetch_page(None)`` requests the first page. Each page goes through
    *fetcher* on its own, so a rate limit on page N retries page N only and
    already collected items are kept. Items keep arrival order.
    """
    items: list[T] = []
    cursor: str | None = None
    pages = 0
    while True:
        page = await fetcher.attempt(functools.partial(fetch_page, cursor))
        items.extend(page.items)
        pages += 1
        if page.next_cursor is None:
            break
        cursor = page.next_cursor
    log.debug("paginator.done", pages=pages, items=len(items))
    return items


async def collect_endpoint(
    fetcher: RateLimitedFetcher,
    client: GitHubClient,
    path: str,
    params: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Collect every item of a GitHub listing endpoint."""
    first_params = {"per_page": PER_PAGE, **(params or {})}

    async def fetch_page(cursor: str | None) -> PageResult[dict[str, Any]]:
        if cursor is None:
            return await client.get_page(path, first_params)
        # The next link already carries the query string.
        return await client.get_page(cursor)

    items = await collect_all(fetcher, fetch_page)
    log.info("paginator.collected", path=path, items=len(items))
    return items
