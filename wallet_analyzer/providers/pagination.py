"""Cursor pagination with a hard page ceiling."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_MAX_PAGES = 25

logger = logging.getLogger(__name__)

PageFetcher = Callable[[Optional[str]], Awaitable[Tuple[Sequence[T], Optional[str]]]]


async def paginate_cursor(
    fetch_page: PageFetcher,
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    label: str = "provider",
) -> List[T]:
    """Follow ``next_cursor`` until it is empty, repeats, or ``max_pages`` is hit.

    ``fetch_page`` receives ``None`` for the first page. Items gathered before a
    stop are always returned.
    """

    items: List[T] = []
    seen: set[str] = set()
    cursor: Optional[str] = None

    for page in range(max_pages):
        page_items, next_cursor = await fetch_page(cursor)
        items.extend(page_items or [])

        if not next_cursor:
            return items
        if next_cursor in seen:
            logger.warning("%s returned a repeated cursor after page %d; stopping", label, page + 1)
            return items
        seen.add(next_cursor)
        cursor = next_cursor

    logger.warning("%s pagination hit the %d page safety limit; stopping", label, max_pages)
    return items


__all__ = ["DEFAULT_MAX_PAGES", "PageFetcher", "paginate_cursor"]
