"""
In-memory watchlist storage.

Holds the canonical records for watchlists, their items and notes, and
keeps the secondary indexes (see indexes.py) consistent with them.

Invariants:
    - Every item and note references an existing watchlist
    - No two items in one watchlist share a coin id
    - The public index holds exactly the ids of public watchlists
    - The owner index maps each owner to exactly the watchlists they own
    - The coin index maps a coin id to exactly the watchlists holding it
    - Deleting a watchlist removes its items, notes and index entries

Every public method runs under one re-entrant lock, so the primary
mutation and its index updates form a single step that no other caller
can observe half-done. Records returned to callers are copies.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional
from .access import Permission, require
from .errors import not_found, validation
from .ids import IdGenerator
from .indexes import IndexManager
from .models import (
    Watchlist, WatchlistItem, WatchlistNote, WatchlistDetail, StoreStats,
    WatchlistPatch, ItemPatch, NotePatch, apply_patch, utc_now
)
from .validators import MAX_ITEMS_PER_WATCHLIST

logger = logging.getLogger(__name__)


def _unique_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Ordered set of tags."""
    return list(dict.fromkeys(tags or []))


class WatchlistStore:
    """
    Multi-entity store for watchlists, items and notes.

    Example:
        >>> store = WatchlistStore()
        >>> wl = store.create_watchlist("user-a", "DeFi", is_public=True)
        >>> store.add_item(wl.id, "user-a", "bitcoin")
    """

    def __init__(self, max_items_per_watchlist: int = MAX_ITEMS_PER_WATCHLIST):
        self.max_items_per_watchlist = max_items_per_watchlist
        self._ids = IdGenerator()
        self._indexes = IndexManager()
        self._watchlists: Dict[str, Watchlist] = {}
        self._items: Dict[str, List[WatchlistItem]] = {}
        self._notes: Dict[str, WatchlistNote] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _resolve(self, watchlist_id: str) -> Watchlist:
        watchlist = self._watchlists.get(watchlist_id)
        if watchlist is None:
            raise not_found("Watchlist", watchlist_id)
        return watchlist

    def _resolve_for(self, watchlist_id: str, requester_id: Optional[str], permission: Permission) -> Watchlist:
        """Existence first, then access."""
        watchlist = self._resolve(watchlist_id)
        require(watchlist, requester_id, permission)
        return watchlist

    def _resolve_note(self, note_id: str) -> WatchlistNote:
        note = self._notes.get(note_id)
        if note is None:
            raise not_found("Note", note_id)
        return note

    def _notes_for(self, watchlist_id: str, coin_id: Optional[str] = None) -> List[WatchlistNote]:
        return [
            note.model_copy(deep=True) for note in self._notes.values()
            if note.watchlist_id == watchlist_id and (coin_id is None or note.coin_id == coin_id)
        ]

    def _enrich(self, watchlist: Watchlist) -> WatchlistDetail:
        return WatchlistDetail(
            **watchlist.model_dump(),
            items=[item.model_copy(deep=True) for item in self._items.get(watchlist.id, [])],
            notes=self._notes_for(watchlist.id),
        )

    def _find_item(self, watchlist_id: str, coin_id: str) -> int:
        for index, item in enumerate(self._items.get(watchlist_id, [])):
            if item.coin_id == coin_id:
                return index
        raise not_found("Coin", coin_id)

    # ------------------------------------------------------------------
    # Watchlists
    # ------------------------------------------------------------------

    def create_watchlist(
        self,
        owner_id: str,
        name: str,
        description: Optional[str] = None,
        is_public: bool = False,
        tags: Optional[List[str]] = None
    ) -> Watchlist:
        """Create a watchlist and register it in the owner and public indexes."""
        with self._lock:
            now = utc_now()
            watchlist = Watchlist(
                id=self._ids.next_id(),
                owner_id=owner_id,
                name=name,
                description=description,
                is_public=bool(is_public),
                tags=_unique_tags(tags),
                created_at=now,
                updated_at=now,
            )
            self._watchlists[watchlist.id] = watchlist
            self._items[watchlist.id] = []
            self._indexes.add_owned(owner_id, watchlist.id)
            self._indexes.set_public(watchlist.id, watchlist.is_public)
            logger.info(f"Created watchlist {watchlist.id} for {owner_id} (public={watchlist.is_public})")
            return watchlist.model_copy(deep=True)

    def get_watchlist(self, watchlist_id: str, requester_id: Optional[str] = None) -> WatchlistDetail:
        """
        Get a watchlist with its items and notes.

        Raises:
            WatchlistError: NOT_FOUND if absent, FORBIDDEN if private and
                the requester is not the owner (or anonymous)
        """
        with self._lock:
            watchlist = self._resolve_for(watchlist_id, requester_id, Permission.READ)
            return self._enrich(watchlist)

    def get_user_watchlists(self, owner_id: str) -> List[WatchlistDetail]:
        """All watchlists owned by a user, in creation order."""
        with self._lock:
            return [self._enrich(self._watchlists[wid]) for wid in self._indexes.owned_by(owner_id)]

    def update_watchlist(self, watchlist_id: str, owner_id: str, patch: WatchlistPatch) -> WatchlistDetail:
        """Merge the supplied fields; a visibility change updates the public index in the same step."""
        with self._lock:
            current = self._resolve(watchlist_id)
            require(current, owner_id, Permission.WRITE, "Cannot update another user's watchlist")
            updated = apply_patch(current, patch, touch="updated_at")
            updated.tags = _unique_tags(updated.tags)
            updated.is_public = bool(updated.is_public)
            self._watchlists[watchlist_id] = updated
            self._indexes.set_public(watchlist_id, updated.is_public)
            if updated.is_public != current.is_public:
                logger.info(f"Watchlist {watchlist_id} visibility changed to public={updated.is_public}")
            return self._enrich(updated)

    def delete_watchlist(self, watchlist_id: str, owner_id: str):
        """Delete a watchlist with its items, notes and every index entry."""
        with self._lock:
            watchlist = self._resolve(watchlist_id)
            require(watchlist, owner_id, Permission.WRITE, "Cannot delete another user's watchlist")
            items = self._items.pop(watchlist_id, [])
            del self._watchlists[watchlist_id]
            self._indexes.drop_watchlist(watchlist.owner_id, watchlist_id, [item.coin_id for item in items])
            orphaned = [nid for nid, note in self._notes.items() if note.watchlist_id == watchlist_id]
            for note_id in orphaned:
                del self._notes[note_id]
            logger.info(
                f"Deleted watchlist {watchlist_id} ({len(items)} items, {len(orphaned)} notes)"
            )

    def public_watchlists(self) -> List[WatchlistDetail]:
        """Public watchlists in directory order, enriched."""
        with self._lock:
            return [self._enrich(self._watchlists[wid]) for wid in self._indexes.public_ids()]

    def watchlists_with_coin(self, coin_id: str) -> List[str]:
        """Ids of watchlists that hold a coin."""
        with self._lock:
            return sorted(self._indexes.watchlists_with_coin(coin_id))

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(
        self,
        watchlist_id: str,
        owner_id: str,
        coin_id: str,
        symbol: Optional[str] = None,
        name: Optional[str] = None,
        target_price: Optional[float] = None,
        notes: Optional[str] = None
    ) -> WatchlistItem:
        """
        Add a coin to a watchlist.

        Raises:
            WatchlistError: VALIDATION_ERROR if the coin is already present
                or the watchlist is full
        """
        with self._lock:
            self._resolve_for(watchlist_id, owner_id, Permission.WRITE)
            items = self._items[watchlist_id]
            if any(item.coin_id == coin_id for item in items):
                raise validation("Coin already exists in watchlist", {"coin_id": coin_id})
            if len(items) >= self.max_items_per_watchlist:
                raise validation(
                    f"Watchlist cannot have more than {self.max_items_per_watchlist} coins",
                    {"limit": self.max_items_per_watchlist}
                )
            item = WatchlistItem(
                id=self._ids.next_id(),
                watchlist_id=watchlist_id,
                coin_id=coin_id,
                symbol=symbol or coin_id.upper(),
                name=name or coin_id,
                added_at=utc_now(),
                target_price=target_price,
                notes=notes,
            )
            items.append(item)
            self._indexes.add_coin(coin_id, watchlist_id)
            logger.debug(f"Added {coin_id} to watchlist {watchlist_id}")
            return item.model_copy(deep=True)

    def update_item(self, watchlist_id: str, owner_id: str, coin_id: str, patch: ItemPatch) -> WatchlistItem:
        with self._lock:
            self._resolve_for(watchlist_id, owner_id, Permission.WRITE)
            position = self._find_item(watchlist_id, coin_id)
            items = self._items[watchlist_id]
            items[position] = apply_patch(items[position], patch)
            return items[position].model_copy(deep=True)

    def remove_item(self, watchlist_id: str, owner_id: str, coin_id: str):
        with self._lock:
            self._resolve_for(watchlist_id, owner_id, Permission.WRITE)
            position = self._find_item(watchlist_id, coin_id)
            items = self._items[watchlist_id]
            del items[position]
            if not any(item.coin_id == coin_id for item in items):
                self._indexes.remove_coin(coin_id, watchlist_id)
            logger.debug(f"Removed {coin_id} from watchlist {watchlist_id}")

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def add_note(
        self,
        watchlist_id: str,
        owner_id: str,
        content: str,
        coin_id: Optional[str] = None
    ) -> WatchlistNote:
        with self._lock:
            self._resolve_for(watchlist_id, owner_id, Permission.WRITE)
            now = utc_now()
            note = WatchlistNote(
                id=self._ids.next_id(),
                watchlist_id=watchlist_id,
                coin_id=coin_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
            self._notes[note.id] = note
            logger.debug(f"Added note {note.id} to watchlist {watchlist_id}")
            return note.model_copy(deep=True)

    def get_watchlist_notes(
        self,
        watchlist_id: str,
        requester_id: Optional[str] = None,
        coin_id: Optional[str] = None
    ) -> List[WatchlistNote]:
        """Notes of a watchlist, optionally only those attached to one coin."""
        with self._lock:
            self._resolve_for(watchlist_id, requester_id, Permission.READ)
            return self._notes_for(watchlist_id, coin_id)

    def get_note(self, note_id: str, requester_id: Optional[str] = None) -> WatchlistNote:
        with self._lock:
            note = self._resolve_note(note_id)
            self._resolve_for(note.watchlist_id, requester_id, Permission.READ)
            return note.model_copy(deep=True)

    def update_note(self, note_id: str, owner_id: str, patch: NotePatch) -> WatchlistNote:
        """Update a note; authorization is re-checked against the watchlist's current owner."""
        with self._lock:
            note = self._resolve_note(note_id)
            watchlist = self._resolve(note.watchlist_id)
            require(watchlist, owner_id, Permission.WRITE, "Cannot update notes from another user's watchlist")
            updated = apply_patch(note, patch, touch="updated_at")
            self._notes[note_id] = updated
            return updated.model_copy(deep=True)

    def delete_note(self, note_id: str, owner_id: str):
        with self._lock:
            note = self._resolve_note(note_id)
            watchlist = self._resolve(note.watchlist_id)
            require(watchlist, owner_id, Permission.WRITE, "Cannot delete notes from another user's watchlist")
            del self._notes[note_id]
            logger.debug(f"Deleted note {note_id}")

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def get_stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(
                watchlists_count=len(self._watchlists),
                items_count=sum(len(items) for items in self._items.values()),
                notes_count=len(self._notes),
                public_watchlists_count=len(self._indexes.public_ids()),
                owners_count=self._indexes.owner_count(),
            )

    def reset(self):
        """Clear all state and restart id sequencing."""
        with self._lock:
            self._watchlists.clear()
            self._items.clear()
            self._notes.clear()
            self._indexes.clear()
            self._ids.reset()
            logger.info("Watchlist store reset")

    def check_consistency(self) -> List[str]:
        """
        Recompute derived state from primary records and compare.

        Returns:
            Human-readable violations; empty when every invariant holds
        """
        with self._lock:
            problems = []
            expected_owners: Dict[str, set] = {}
            expected_coins: Dict[str, set] = {}
            expected_public = set()

            for wid, watchlist in self._watchlists.items():
                expected_owners.setdefault(watchlist.owner_id, set()).add(wid)
                if watchlist.is_public:
                    expected_public.add(wid)
                if wid not in self._items:
                    problems.append(f"Watchlist {wid} has no item list")

            for wid, items in self._items.items():
                if wid not in self._watchlists:
                    problems.append(f"Items reference missing watchlist {wid}")
                seen = set()
                for item in items:
                    if item.watchlist_id != wid:
                        problems.append(f"Item {item.id} filed under {wid} but references {item.watchlist_id}")
                    if item.coin_id in seen:
                        problems.append(f"Duplicate coin {item.coin_id} in watchlist {wid}")
                    seen.add(item.coin_id)
                    expected_coins.setdefault(item.coin_id, set()).add(wid)

            for note in self._notes.values():
                if note.watchlist_id not in self._watchlists:
                    problems.append(f"Note {note.id} references missing watchlist {note.watchlist_id}")

            actual = self._indexes.snapshot()
            if actual["owners"] != expected_owners:
                problems.append("Owner index out of sync with watchlists")
            if actual["public"] != expected_public:
                problems.append("Public index out of sync with watchlist visibility")
            if actual["coins"] != expected_coins:
                problems.append("Coin index out of sync with watchlist items")
            return problems
