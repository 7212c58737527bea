"""
Secondary indexes over the watchlist store.

Three derived lookups are kept next to the primary records:
- owner id -> watchlist ids (creation order)
- public watchlist ids (insertion order, drives the public directory)
- coin id -> ids of watchlists holding that coin

IndexManager never touches primary records; the store calls it inside
the same locked step as the primary mutation.
"""

from typing import Any, Dict, List, Set


class IndexManager:
    """Owner, public-directory and coin reverse indexes."""

    def __init__(self):
        self._by_owner: Dict[str, Dict[str, None]] = {}
        self._public: Dict[str, None] = {}
        self._by_coin: Dict[str, Set[str]] = {}

    # Owner index

    def add_owned(self, owner_id: str, watchlist_id: str):
        self._by_owner.setdefault(owner_id, {})[watchlist_id] = None

    def remove_owned(self, owner_id: str, watchlist_id: str):
        owned = self._by_owner.get(owner_id)
        if owned is None:
            return
        owned.pop(watchlist_id, None)
        if not owned:
            del self._by_owner[owner_id]

    def owned_by(self, owner_id: str) -> List[str]:
        return list(self._by_owner.get(owner_id, {}))

    def owner_count(self) -> int:
        return len(self._by_owner)

    # Public directory index

    def set_public(self, watchlist_id: str, is_public: bool):
        if is_public:
            self._public.setdefault(watchlist_id, None)
        else:
            self._public.pop(watchlist_id, None)

    def public_ids(self) -> List[str]:
        return list(self._public)

    # Coin reverse index

    def add_coin(self, coin_id: str, watchlist_id: str):
        self._by_coin.setdefault(coin_id, set()).add(watchlist_id)

    def remove_coin(self, coin_id: str, watchlist_id: str):
        holders = self._by_coin.get(coin_id)
        if holders is None:
            return
        holders.discard(watchlist_id)
        if not holders:
            del self._by_coin[coin_id]

    def watchlists_with_coin(self, coin_id: str) -> Set[str]:
        return set(self._by_coin.get(coin_id, ()))

    def drop_watchlist(self, owner_id: str, watchlist_id: str, coin_ids):
        """Remove every index entry that references a watchlist."""
        self.remove_owned(owner_id, watchlist_id)
        self._public.pop(watchlist_id, None)
        for coin_id in coin_ids:
            self.remove_coin(coin_id, watchlist_id)

    def snapshot(self) -> Dict[str, Any]:
        """Copy of all three indexes, for consistency checks."""
        return {
            "owners": {owner: set(ids) for owner, ids in self._by_owner.items()},
            "public": set(self._public),
            "coins": {coin: set(ids) for coin, ids in self._by_coin.items()},
        }

    def clear(self):
        self._by_owner.clear()
        self._public.clear()
        self._by_coin.clear()
