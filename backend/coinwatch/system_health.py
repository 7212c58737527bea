"""
Store health checks.
"""

from typing import Dict
from .watchlist_storage import WatchlistStore


def check_store_health(store: WatchlistStore) -> Dict:
    """
    Verify every store invariant and report aggregate counts.
    
    Returns:
        Dictionary with overall status, violations and stats
    """
    problems = store.check_consistency()
    return {
        "status": "healthy" if not problems else "degraded",
        "violations": problems,
        "stats": store.get_stats().model_dump(),
    }
