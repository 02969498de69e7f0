"""
Pagination

Page/limit windowing over a filtered MongoDB collection. The window fetch
and the total count run concurrently and both must succeed; a failure in
either one fails the whole page.
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_MAX_LIMIT = 100


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PageInfo:
    has_next_page: bool
    has_previous_page: bool
    current_page: int
    total_pages: int


@dataclass
class Page(Generic[T]):
    """One page of results plus the totals needed to navigate"""
    items: List[T]
    page_info: PageInfo
    total_count: int


def resolve_window(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    max_limit: Optional[int] = DEFAULT_MAX_LIMIT,
) -> PageWindow:
    """
    Normalize requested page and limit.

    Missing, zero or negative values fall back to page 1 and limit 10.
    The limit is capped at ``max_limit`` unless that is None.
    """
    if not page or page < 1:
        page = DEFAULT_PAGE
    if not limit or limit < 1:
        limit = DEFAULT_LIMIT
    if max_limit is not None:
        limit = min(limit, max_limit)
    return PageWindow(page=page, limit=limit)


def build_page_info(window: PageWindow, total_count: int) -> PageInfo:
    total_pages = math.ceil(total_count / window.limit) if total_count else 0
    return PageInfo(
        has_next_page=window.page < total_pages,
        has_previous_page=window.page > 1,
        current_page=window.page,
        total_pages=total_pages,
    )


async def paginate_query(
    cursor,
    collection,
    filter: Dict[str, Any],
    pagination: Any = None,
    max_limit: Optional[int] = DEFAULT_MAX_LIMIT,
) -> Page[Dict[str, Any]]:
    """
    Fetch one page of documents.

    Args:
        cursor: Unevaluated Motor cursor, already filtered and sorted
        collection: Collection the cursor reads from (used for counting)
        filter: The cursor's filter, passed to count_documents
        pagination: Object with optional ``page`` and ``limit`` attributes
        max_limit: Largest page size allowed (None for no ceiling)

    Returns:
        Page of raw documents. Pages past the end are empty but keep
        correct totals.
    """
    window = resolve_window(
        getattr(pagination, "page", None),
        getattr(pagination, "limit", None),
        max_limit,
    )

    items, total_count = await asyncio.gather(
        cursor.skip(window.skip).limit(window.limit).to_list(length=window.limit),
        collection.count_documents(filter),
    )

    return Page(
        items=items,
        page_info=build_page_info(window, total_count),
        total_count=total_count,
    )
