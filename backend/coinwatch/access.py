"""
Access control for watchlists and their contents.

Capability rule:
- The owner may read and write a watchlist of any visibility
- Anyone, including an anonymous requester, may read a public watchlist
- Nobody but the owner may write, whatever the visibility
- Items and notes inherit read access from their watchlist; writes are owner-only

Callers check existence first and only then ask for a decision, so a
missing resource is reported as NOT_FOUND rather than FORBIDDEN.
"""

from enum import Enum
from typing import Optional
from .errors import forbidden
from .models import Watchlist


class Permission(str, Enum):
    """Access levels."""
    READ = "read"
    WRITE = "write"


def can_read(watchlist: Watchlist, requester_id: Optional[str]) -> bool:
    if watchlist.is_public:
        return True
    return requester_id is not None and requester_id == watchlist.owner_id


def can_write(watchlist: Watchlist, requester_id: Optional[str]) -> bool:
    return requester_id is not None and requester_id == watchlist.owner_id


def check_permission(watchlist: Watchlist, requester_id: Optional[str], permission: Permission) -> bool:
    if permission == Permission.WRITE:
        return can_write(watchlist, requester_id)
    return can_read(watchlist, requester_id)


def require(
    watchlist: Watchlist,
    requester_id: Optional[str],
    permission: Permission,
    message: Optional[str] = None
):
    """
    Raise FORBIDDEN unless the requester holds ``permission`` on the watchlist.
    
    Args:
        watchlist: Watchlist that owns the resource (must exist)
        requester_id: Authenticated user id, or None for anonymous
        permission: Required access level
        message: Override for the error message
    """
    if check_permission(watchlist, requester_id, permission):
        return
    if message is None:
        if permission == Permission.WRITE:
            message = "Cannot modify another user's watchlist"
        else:
            message = "Access denied to private watchlist"
    raise forbidden(message)
