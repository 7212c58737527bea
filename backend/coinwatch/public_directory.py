"""
Paginated, filterable reads over the public watchlist directory.
"""

from typing import List, Optional
from .models import PaginatedWatchlists, WatchlistDetail
from .validators import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .watchlist_storage import WatchlistStore


def _filter_watchlists(
    watchlists: List[WatchlistDetail],
    search: Optional[str] = None,
    tags: Optional[List[str]] = None
) -> List[WatchlistDetail]:
    """Filter by search term (name or description, case-insensitive) and tags (any match)."""
    filtered = watchlists

    if search:
        term = search.lower()
        filtered = [
            w for w in filtered
            if term in w.name.lower() or (w.description and term in w.description.lower())
        ]

    if tags:
        wanted = set(tags)
        filtered = [w for w in filtered if wanted.intersection(w.tags)]

    return filtered


def list_public_watchlists(
    store: WatchlistStore,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
    tags: Optional[List[str]] = None
) -> PaginatedWatchlists:
    """
    Get one page of public watchlists.
    
    Args:
        store: Watchlist store
        page: 1-based page number (floored at 1)
        limit: Page size (clamped to [1, MAX_PAGE_SIZE])
        search: Optional substring matched against name or description
        tags: Optional tag filter; a watchlist matches if it shares any tag
        
    Returns:
        The page plus the total number of matches before pagination
    """
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    offset = (page - 1) * limit

    matches = _filter_watchlists(store.public_watchlists(), search, tags)
    total = len(matches)

    return PaginatedWatchlists(
        data=matches[offset:offset + limit],
        page=page,
        limit=limit,
        total=total,
        has_next=page * limit < total,
        has_previous=page > 1,
    )
