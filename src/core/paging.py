"""Page-by-page iteration over listing endpoints."""

from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, List, TypeVar

T = TypeVar("T")

PAGE_SIZE = 100


async def iter_pages(
    fetch: Callable[[int, int], Awaitable[List[T]]],
    page_size: int = PAGE_SIZE,
) -> AsyncIterator[T]:
    """Yield items from fetch(page, page_size) until a short page comes back.

    The listing API signals its last page by returning fewer than page_size
    items, so a backend that always returns full pages never terminates.
    Breaking out of the loop early stops fetching.
    """

    page = 0
    while True:
        items = await fetch(page, page_size)
        for item in items:
            yield item
        if len(items) < page_size:
            return
        page += 1
