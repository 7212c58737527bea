from datetime import datetime, timezone
from typing import List, Optional, TypeVar
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Watchlist(BaseModel):
    """A named, owned collection of tracked coins."""
    id: str = Field(..., description="Unique identifier for the watchlist")
    owner_id: str = Field(..., description="User id of the owner")
    name: str
    description: Optional[str] = None
    is_public: bool = Field(default=False, description="Listed in the public directory when true")
    tags: List[str] = Field(default_factory=list, description="Ordered, de-duplicated tags")
    created_at: datetime
    updated_at: datetime


class WatchlistItem(BaseModel):
    """One tracked coin within a watchlist."""
    id: str
    watchlist_id: str
    coin_id: str = Field(..., description="External catalog id (e.g., 'bitcoin')")
    symbol: str = Field(..., description="Ticker symbol (e.g., 'BTC')")
    name: str
    added_at: datetime
    target_price: Optional[float] = Field(None, description="Optional price alert target")
    notes: Optional[str] = Field(None, description="Free-text note about this coin")


class WatchlistNote(BaseModel):
    """Free-text annotation on a watchlist, optionally tied to one coin."""
    id: str
    watchlist_id: str
    coin_id: Optional[str] = Field(None, description="None for a general watchlist note")
    content: str
    created_at: datetime
    updated_at: datetime


class WatchlistDetail(Watchlist):
    """Watchlist enriched with its current items and notes."""
    items: List[WatchlistItem] = Field(default_factory=list)
    notes: List[WatchlistNote] = Field(default_factory=list)


class PaginatedWatchlists(BaseModel):
    """One page of the public directory."""
    data: List[WatchlistDetail]
    page: int
    limit: int
    total: int = Field(..., description="Matching public watchlists before pagination")
    has_next: bool
    has_previous: bool


class StoreStats(BaseModel):
    """Aggregate counts over the store."""
    watchlists_count: int
    items_count: int
    notes_count: int
    public_watchlists_count: int
    owners_count: int


# Patch structures: one optional field per mutable attribute. Only fields
# that were explicitly set are merged, so an explicit None clears a value.

class WatchlistPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None


class ItemPatch(BaseModel):
    target_price: Optional[float] = None
    notes: Optional[str] = None


class NotePatch(BaseModel):
    content: Optional[str] = None


RecordT = TypeVar("RecordT", bound=BaseModel)


def apply_patch(record: RecordT, patch: BaseModel, touch: Optional[str] = None) -> RecordT:
    """
    Merge the explicitly set fields of ``patch`` into a copy of ``record``.
    
    Args:
        record: Stored record (left untouched)
        patch: Patch structure; unset fields are ignored
        touch: Name of a timestamp field to refresh, if any
        
    Returns:
        New record with the changes applied
    """
    changes = patch.model_dump(exclude_unset=True)
    if touch:
        changes[touch] = utc_now()
    return record.model_copy(update=changes, deep=True)
