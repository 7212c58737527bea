"""
Service layer: the boundary contract of the watchlist core.

Every operation takes the authenticated requester id (or None) and a dict
of raw parameters from the adapter, validates and normalizes them, applies
rate limits, and calls the store. Whatever happens, callers get either a
complete value or a WatchlistError with one ErrorCode.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional
from . import validators
from .config import Settings
from .errors import WatchlistError, unauthorized, wrap_errors
from .models import (
    ItemPatch, NotePatch, PaginatedWatchlists, StoreStats, Watchlist,
    WatchlistDetail, WatchlistItem, WatchlistNote, WatchlistPatch
)
from .public_directory import list_public_watchlists
from .rate_limit import RateLimiter
from .watchlist_storage import WatchlistStore

logger = logging.getLogger(__name__)

Params = Dict[str, Any]


def boundary(method):
    """Wrap faults from outside the taxonomy as INTERNAL_ERROR."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except WatchlistError:
            raise
        except Exception as e:
            raise wrap_errors(e, self.settings.expose_error_details) from e
    return wrapper


def _require_user(user_id: Optional[str]) -> str:
    if not user_id or not str(user_id).strip():
        raise unauthorized("User authentication required")
    return str(user_id).strip()


class WatchlistService:
    """Validated, rate-limited access to a WatchlistStore."""

    def __init__(
        self,
        store: WatchlistStore,
        limiter: Optional[RateLimiter] = None,
        settings: Optional[Settings] = None
    ):
        self.store = store
        self.limiter = limiter or RateLimiter()
        self.settings = settings or Settings()

    def _limit_read(self, user_id: Optional[str]):
        self.limiter.check(
            user_id, "read",
            self.settings.rate_limit_read,
            self.settings.rate_limit_window_seconds
        )

    def _limit_write(self, user_id: str, action: str):
        self.limiter.check(
            user_id, action,
            self.settings.rate_limit_write,
            self.settings.rate_limit_window_seconds
        )

    # Watchlists

    @boundary
    def create_watchlist(self, user_id: Optional[str], params: Params) -> Watchlist:
        user_id = _require_user(user_id)
        name = validators.watchlist_name(params.get("name"))
        description = validators.watchlist_description(params.get("description"))
        is_public = validators.optional_boolean(params.get("is_public"), "is_public") or False
        tags = validators.tags(params.get("tags")) or []
        self._limit_write(user_id, "create_watchlist")
        return self.store.create_watchlist(user_id, name, description, is_public, tags)

    @boundary
    def get_my_watchlists(self, user_id: Optional[str]) -> List[WatchlistDetail]:
        user_id = _require_user(user_id)
        self._limit_read(user_id)
        return self.store.get_user_watchlists(user_id)

    @boundary
    def get_watchlist(self, user_id: Optional[str], params: Params) -> WatchlistDetail:
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        self._limit_read(user_id)
        return self.store.get_watchlist(watchlist_id, user_id)

    @boundary
    def update_watchlist(self, user_id: Optional[str], params: Params) -> WatchlistDetail:
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        changes: Dict[str, Any] = {}
        if params.get("name") is not None:
            changes["name"] = validators.watchlist_name(params["name"])
        if "description" in params:
            changes["description"] = validators.watchlist_description(params["description"])
        if params.get("is_public") is not None:
            changes["is_public"] = validators.optional_boolean(params["is_public"], "is_public")
        if params.get("tags") is not None:
            changes["tags"] = validators.tags(params["tags"])
        self._limit_write(user_id, "update_watchlist")
        return self.store.update_watchlist(watchlist_id, user_id, WatchlistPatch(**changes))

    @boundary
    def delete_watchlist(self, user_id: Optional[str], params: Params):
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        self._limit_write(user_id, "delete_watchlist")
        self.store.delete_watchlist(watchlist_id, user_id)

    @boundary
    def list_public_watchlists(self, user_id: Optional[str], params: Params) -> PaginatedWatchlists:
        page = validators.page_number(params.get("page"))
        limit = validators.page_size(params.get("limit"))
        search = validators.optional_string(params.get("search"), "search")
        tags = validators.filter_tags(params.get("tags"))
        self._limit_read(user_id)
        return list_public_watchlists(self.store, page, limit, search, tags)

    # Items

    @boundary
    def add_item(self, user_id: Optional[str], params: Params) -> WatchlistItem:
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        coin_id = validators.coin_id(params.get("coin_id"))
        symbol = validators.optional_string(params.get("symbol"), "symbol")
        name = validators.optional_string(params.get("name"), "name")
        target_price = validators.target_price(params.get("target_price"))
        notes = validators.optional_string(params.get("notes"), "notes", validators.MAX_NOTE_LENGTH)
        self._limit_write(user_id, "add_item")
        return self.store.add_item(watchlist_id, user_id, coin_id, symbol, name, target_price, notes)

    @boundary
    def update_item(self, user_id: Optional[str], params: Params) -> WatchlistItem:
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        coin_id = validators.coin_id(params.get("coin_id"))
        changes: Dict[str, Any] = {}
        if "target_price" in params:
            changes["target_price"] = validators.target_price(params["target_price"])
        if "notes" in params:
            changes["notes"] = validators.optional_string(params["notes"], "notes", validators.MAX_NOTE_LENGTH)
        self._limit_write(user_id, "update_item")
        return self.store.update_item(watchlist_id, user_id, coin_id, ItemPatch(**changes))

    @boundary
    def remove_item(self, user_id: Optional[str], params: Params):
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        coin_id = validators.coin_id(params.get("coin_id"))
        self._limit_write(user_id, "remove_item")
        self.store.remove_item(watchlist_id, user_id, coin_id)

    # Notes

    @boundary
    def add_note(self, user_id: Optional[str], params: Params) -> WatchlistNote:
        user_id = _require_user(user_id)
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        content = validators.note_content(params.get("content"))
        coin_id = validators.optional_string(params.get("coin_id"), "coin_id")
        self._limit_write(user_id, "add_note")
        return self.store.add_note(watchlist_id, user_id, content, coin_id)

    @boundary
    def get_watchlist_notes(self, user_id: Optional[str], params: Params) -> List[WatchlistNote]:
        watchlist_id = validators.required_string(params.get("watchlist_id"), "watchlist_id")
        coin_id = validators.optional_string(params.get("coin_id"), "coin_id")
        self._limit_read(user_id)
        return self.store.get_watchlist_notes(watchlist_id, user_id, coin_id)

    @boundary
    def get_note(self, user_id: Optional[str], params: Params) -> WatchlistNote:
        note_id = validators.required_string(params.get("note_id"), "note_id")
        self._limit_read(user_id)
        return self.store.get_note(note_id, user_id)

    @boundary
    def update_note(self, user_id: Optional[str], params: Params) -> WatchlistNote:
        user_id = _require_user(user_id)
        note_id = validators.required_string(params.get("note_id"), "note_id")
        content = validators.note_content(params.get("content"))
        self._limit_write(user_id, "update_note")
        return self.store.update_note(note_id, user_id, NotePatch(content=content))

    @boundary
    def delete_note(self, user_id: Optional[str], params: Params):
        user_id = _require_user(user_id)
        note_id = validators.required_string(params.get("note_id"), "note_id")
        self._limit_write(user_id, "delete_note")
        self.store.delete_note(note_id, user_id)

    # Utilities

    @boundary
    def get_stats(self) -> StoreStats:
        return self.store.get_stats()

    @boundary
    def reset(self):
        """Clear the store and every rate-limit window."""
        self.store.reset()
        self.limiter.reset()
        logger.info("Service state reset")
