from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Page = Dict[str, Any]


def collect_pages(first_page: Page, fetch_page: Callable[[str], Page], page_limit: int) -> List[Any]:
    """Follow ``next`` links of a Spotify paging object and gather all items.

    Args:
        first_page: Paging object already fetched (counts as page 1)
        fetch_page: Callable fetching the paging object behind a ``next`` URL
        page_limit: Maximum pages for this collection, 0 for no limit

    Returns:
        Items of every fetched page in arrival order. Errors raised by
        ``fetch_page`` propagate and nothing is returned.
    """
    items = list(first_page.get('items') or [])
    next_page = first_page.get('next')
    pages_loaded = 1

    while next_page and (page_limit == 0 or pages_loaded < page_limit):
        page = fetch_page(next_page)
        items.extend(page.get('items') or [])
        next_page = page.get('next')
        pages_loaded += 1

    if next_page:
        logger.debug(f"Stopped pagination at page limit {page_limit} with {len(items)} items")
    return items
