"""
utils/pagination.py
--------------------

Provides a helper for walking page-numbered API responses.

``paginate`` owns the control flow and the safety limits so the caller
only supplies how to fetch one page and how to read it. Pages are
requested strictly one after another, because whether page N+1 is
requested depends on what page N returned. The loop stops when:

* a page returns an empty list of raw items;
* the page reports that it is the last one;
* the configured maximum number of pages has been requested;
* a page after the first one fails (``tolerate_later_failures``).

A failure on the first page always propagates. Later failures are
treated as the end of the data so a long job still returns what it
collected.
"""

from __future__ import annotations

import json
from typing import Any, Callable, List, Tuple

from salesbot.logging_config import logger


def paginate(
    fetch_page: Callable[[int], Any],
    extract: Callable[[Any], Tuple[List[Any], bool]],
    *,
    max_pages: int,
    on_page: Callable[[List[Any]], List[Any]] | None = None,
    tolerate_later_failures: bool = True,
    first_page: int = 1,
) -> List[Any]:
    """Iterate through numbered pages until a termination criterion is met.

    :param fetch_page: function accepting a page number and returning the
        decoded page. It should raise on transport or status errors.
    :param extract: function taking the decoded page and returning
        ``(raw_items, is_last_page)``.
    :param max_pages: hard ceiling on the number of pages requested.
    :param on_page: optional per-page transform applied to the raw items
        before they are accumulated (e.g. a filter). Its result never
        influences termination.
    :param tolerate_later_failures: when true, an exception raised while
        fetching a page after the first ends the loop instead of
        propagating.
    :param first_page: number of the first page.
    :return: the accumulated items, in page order
    """
    items: List[Any] = []
    page = first_page
    last_requested = first_page + max_pages - 1
    while page <= last_requested:
        try:
            raw = fetch_page(page)
        except Exception as exc:
            if page == first_page or not tolerate_later_failures:
                raise
            logger.warning(json.dumps({
                "event": "pagination_stopped_on_error",
                "page": page,
                "detail": str(exc),
            }))
            break
        page_items, is_last = extract(raw)
        if not page_items:
            break
        items.extend(on_page(page_items) if on_page else page_items)
        if is_last:
            break
        page += 1
    else:
        logger.warning(json.dumps({
            "event": "pagination_page_limit_reached",
            "max_pages": max_pages,
        }))
    return items
