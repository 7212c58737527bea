"""
Unit tests for the in-memory watchlist store.

Tests cover:
- Watchlist lifecycle and index maintenance
- Cascading deletes
- Item uniqueness and limits
- Note authorization against the watchlist owner
- Stats, reset and consistency checks
"""

import pytest

from coinwatch.errors import ErrorCode, WatchlistError
from coinwatch.models import ItemPatch, NotePatch, WatchlistPatch
from coinwatch.watchlist_storage import WatchlistStore


def assert_error(excinfo, code):
    assert excinfo.value.code == code


class TestWatchlistLifecycle:
    """Tests for create/get/update/delete of watchlists."""

    def test_create_sets_timestamps_and_indexes(self, store):
        """New watchlist is registered under its owner and, if public, in the directory."""
        wl = store.create_watchlist("alice", "DeFi", "Lending coins", True, ["defi"])

        assert wl.id.startswith("id_")
        assert wl.created_at == wl.updated_at
        assert wl.owner_id == "alice"
        assert [w.id for w in store.get_user_watchlists("alice")] == [wl.id]
        assert [w.id for w in store.public_watchlists()] == [wl.id]
        assert store.check_consistency() == []

    def test_private_watchlist_not_in_directory(self, store):
        store.create_watchlist("alice", "Secret")
        assert store.public_watchlists() == []

    def test_ids_are_unique(self, store):
        ids = {store.create_watchlist("alice", f"wl {i}").id for i in range(50)}
        assert len(ids) == 50

    def test_tags_are_an_ordered_set(self, store):
        wl = store.create_watchlist("alice", "Tags", tags=["l2", "defi", "l2"])
        assert wl.tags == ["l2", "defi"]

    def test_get_enriches_with_items_and_notes(self, store):
        wl = store.create_watchlist("alice", "DeFi", is_public=True)
        store.add_item(wl.id, "alice", "bitcoin")
        store.add_note(wl.id, "alice", "Looks good")

        detail = store.get_watchlist(wl.id, "alice")
        assert [i.coin_id for i in detail.items] == ["bitcoin"]
        assert [n.content for n in detail.notes] == ["Looks good"]

    def test_get_missing_is_not_found(self, store):
        with pytest.raises(WatchlistError) as excinfo:
            store.get_watchlist("nope", "alice")
        assert_error(excinfo, ErrorCode.NOT_FOUND)

    def test_update_merges_only_supplied_fields(self, store):
        wl = store.create_watchlist("alice", "Old", "Keep me", tags=["a"])
        updated = store.update_watchlist(wl.id, "alice", WatchlistPatch(name="New"))

        assert updated.name == "New"
        assert updated.description == "Keep me"
        assert updated.tags == ["a"]
        assert updated.updated_at >= wl.updated_at
        assert updated.created_at == wl.created_at

    def test_update_can_clear_description(self, store):
        wl = store.create_watchlist("alice", "Name", "Description")
        updated = store.update_watchlist(wl.id, "alice", WatchlistPatch(description=None))
        assert updated.description is None

    def test_visibility_change_updates_public_index(self, store):
        """Public index tracks is_public after every visibility change."""
        wl = store.create_watchlist("alice", "Flip")

        store.update_watchlist(wl.id, "alice", WatchlistPatch(is_public=True))
        assert [w.id for w in store.public_watchlists()] == [wl.id]

        store.update_watchlist(wl.id, "alice", WatchlistPatch(is_public=False))
        assert store.public_watchlists() == []
        assert store.check_consistency() == []

    def test_update_by_other_user_forbidden(self, store):
        wl = store.create_watchlist("alice", "Mine", is_public=True)
        with pytest.raises(WatchlistError) as excinfo:
            store.update_watchlist(wl.id, "bob", WatchlistPatch(name="Stolen"))
        assert_error(excinfo, ErrorCode.FORBIDDEN)
        assert store.get_watchlist(wl.id, "alice").name == "Mine"

    def test_update_missing_is_not_found(self, store):
        with pytest.raises(WatchlistError) as excinfo:
            store.update_watchlist("nope", "alice", WatchlistPatch(name="x"))
        assert_error(excinfo, ErrorCode.NOT_FOUND)

    def test_returned_records_are_copies(self, store):
        wl = store.create_watchlist("alice", "Original")
        wl.name = "Mutated"
        detail = store.get_watchlist(wl.id, "alice")
        detail.tags.append("sneaky")
        assert store.get_watchlist(wl.id, "alice").name == "Original"
        assert store.get_watchlist(wl.id, "alice").tags == []


class TestCascadingDelete:
    """Deleting a watchlist leaves nothing behind."""

    def test_delete_removes_items_notes_and_indexes(self, store):
        wl = store.create_watchlist("alice", "Doomed", is_public=True)
        other = store.create_watchlist("alice", "Survivor")
        store.add_item(wl.id, "alice", "bitcoin")
        store.add_item(other.id, "alice", "bitcoin")
        note = store.add_note(wl.id, "alice", "bye")
        kept = store.add_note(other.id, "alice", "stay")

        store.delete_watchlist(wl.id, "alice")

        with pytest.raises(WatchlistError) as excinfo:
            store.get_watchlist(wl.id, "alice")
        assert_error(excinfo, ErrorCode.NOT_FOUND)
        with pytest.raises(WatchlistError):
            store.get_note(note.id, "alice")
        assert store.get_note(kept.id, "alice").content == "stay"
        assert store.public_watchlists() == []
        assert [w.id for w in store.get_user_watchlists("alice")] == [other.id]
        assert store.watchlists_with_coin("bitcoin") == [other.id]
        assert store.check_consistency() == []

    def test_delete_last_watchlist_drops_owner(self, store):
        wl = store.create_watchlist("alice", "Only")
        store.delete_watchlist(wl.id, "alice")
        assert store.get_stats().owners_count == 0

    def test_delete_by_other_user_forbidden(self, store):
        wl = store.create_watchlist("alice", "Mine")
        with pytest.raises(WatchlistError) as excinfo:
            store.delete_watchlist(wl.id, "bob")
        assert_error(excinfo, ErrorCode.FORBIDDEN)
        assert store.get_stats().watchlists_count == 1


class TestItems:
    """Tests for coins within a watchlist."""

    def test_add_item_defaults(self, store):
        wl = store.create_watchlist("alice", "Coins")
        item = store.add_item(wl.id, "alice", "bitcoin")
        assert item.symbol == "BITCOIN"
        assert item.name == "bitcoin"
        assert item.watchlist_id == wl.id
        assert store.watchlists_with_coin("bitcoin") == [wl.id]

    def test_duplicate_coin_rejected(self, store):
        """Adding the same coin twice fails the second time."""
        wl = store.create_watchlist("alice", "Coins")
        store.add_item(wl.id, "alice", "bitcoin")

        with pytest.raises(WatchlistError) as excinfo:
            store.add_item(wl.id, "alice", "bitcoin")
        assert_error(excinfo, ErrorCode.VALIDATION_ERROR)
        assert len(store.get_watchlist(wl.id, "alice").items) == 1

    def test_item_limit_enforced(self):
        store = WatchlistStore(max_items_per_watchlist=2)
        wl = store.create_watchlist("alice", "Small")
        store.add_item(wl.id, "alice", "a")
        store.add_item(wl.id, "alice", "b")
        with pytest.raises(WatchlistError) as excinfo:
            store.add_item(wl.id, "alice", "c")
        assert_error(excinfo, ErrorCode.VALIDATION_ERROR)
        assert store.watchlists_with_coin("c") == []

    def test_add_item_to_public_watchlist_of_other_user_forbidden(self, store):
        wl = store.create_watchlist("alice", "Public", is_public=True)
        with pytest.raises(WatchlistError) as excinfo:
            store.add_item(wl.id, "bob", "bitcoin")
        assert_error(excinfo, ErrorCode.FORBIDDEN)

    def test_add_item_to_missing_watchlist_not_found(self, store):
        with pytest.raises(WatchlistError) as excinfo:
            store.add_item("nope", "alice", "bitcoin")
        assert_error(excinfo, ErrorCode.NOT_FOUND)

    def test_update_item(self, store):
        wl = store.create_watchlist("alice", "Coins")
        store.add_item(wl.id, "alice", "bitcoin", target_price=50000.0, notes="hold")

        updated = store.update_item(wl.id, "alice", "bitcoin", ItemPatch(target_price=60000.0))
        assert updated.target_price == 60000.0
        assert updated.notes == "hold"

        cleared = store.update_item(wl.id, "alice", "bitcoin", ItemPatch(notes=None))
        assert cleared.notes is None

    def test_update_missing_item_not_found(self, store):
        wl = store.create_watchlist("alice", "Coins")
        with pytest.raises(WatchlistError) as excinfo:
            store.update_item(wl.id, "alice", "dogecoin", ItemPatch(target_price=1.0))
        assert_error(excinfo, ErrorCode.NOT_FOUND)

    def test_remove_item_updates_coin_index(self, store):
        first = store.create_watchlist("alice", "One")
        second = store.create_watchlist("bob", "Two")
        store.add_item(first.id, "alice", "ethereum")
        store.add_item(second.id, "bob", "ethereum")

        store.remove_item(first.id, "alice", "ethereum")

        assert store.watchlists_with_coin("ethereum") == [second.id]
        assert store.get_watchlist(first.id, "alice").items == []
        assert store.check_consistency() == []

    def test_remove_missing_item_not_found(self, store):
        wl = store.create_watchlist("alice", "Coins")
        with pytest.raises(WatchlistError) as excinfo:
            store.remove_item(wl.id, "alice", "bitcoin")
        assert_error(excinfo, ErrorCode.NOT_FOUND)


class TestNotes:
    """Tests for notes and their inherited access rules."""

    def test_add_and_filter_notes_by_coin(self, store):
        wl = store.create_watchlist("alice", "Notes")
        store.add_note(wl.id, "alice", "general")
        store.add_note(wl.id, "alice", "about btc", coin_id="bitcoin")

        assert len(store.get_watchlist_notes(wl.id, "alice")) == 2
        btc_notes = store.get_watchlist_notes(wl.id, "alice", coin_id="bitcoin")
        assert [n.content for n in btc_notes] == ["about btc"]

    def test_notes_of_private_watchlist_hidden(self, store):
        wl = store.create_watchlist("alice", "Private")
        note = store.add_note(wl.id, "alice", "secret")

        for requester in ("bob", None):
            with pytest.raises(WatchlistError) as excinfo:
                store.get_note(note.id, requester)
            assert_error(excinfo, ErrorCode.FORBIDDEN)

    def test_notes_of_public_watchlist_readable_by_anyone(self, store):
        wl = store.create_watchlist("alice", "Public", is_public=True)
        note = store.add_note(wl.id, "alice", "shared")
        assert store.get_note(note.id, None).content == "shared"
        assert len(store.get_watchlist_notes(wl.id, "bob")) == 1

    def test_update_note_refreshes_timestamp(self, store):
        wl = store.create_watchlist("alice", "Notes")
        note = store.add_note(wl.id, "alice", "draft")
        updated = store.update_note(note.id, "alice", NotePatch(content="final"))
        assert updated.content == "final"
        assert updated.updated_at >= note.updated_at
        assert updated.created_at == note.created_at

    def test_only_owner_writes_notes_even_when_public(self, store):
        wl = store.create_watchlist("alice", "Public", is_public=True)
        note = store.add_note(wl.id, "alice", "mine")

        with pytest.raises(WatchlistError) as excinfo:
            store.update_note(note.id, "bob", NotePatch(content="hacked"))
        assert_error(excinfo, ErrorCode.FORBIDDEN)
        with pytest.raises(WatchlistError) as excinfo:
            store.delete_note(note.id, "bob")
        assert_error(excinfo, ErrorCode.FORBIDDEN)
        with pytest.raises(WatchlistError) as excinfo:
            store.add_note(wl.id, "bob", "spam")
        assert_error(excinfo, ErrorCode.FORBIDDEN)

    def test_missing_note_is_not_found_before_forbidden(self, store):
        with pytest.raises(WatchlistError) as excinfo:
            store.delete_note("nope", "bob")
        assert_error(excinfo, ErrorCode.NOT_FOUND)

    def test_delete_note(self, store):
        wl = store.create_watchlist("alice", "Notes")
        note = store.add_note(wl.id, "alice", "temp")
        store.delete_note(note.id, "alice")
        assert store.get_watchlist_notes(wl.id, "alice") == []


class TestUtilities:
    """Stats, reset and consistency checks."""

    def test_stats(self, store):
        a = store.create_watchlist("alice", "A", is_public=True)
        store.create_watchlist("alice", "B")
        c = store.create_watchlist("bob", "C")
        store.add_item(a.id, "alice", "bitcoin")
        store.add_item(c.id, "bob", "bitcoin")
        store.add_item(c.id, "bob", "ethereum")
        store.add_note(a.id, "alice", "note")

        stats = store.get_stats()
        assert stats.watchlists_count == 3
        assert stats.items_count == 3
        assert stats.notes_count == 1
        assert stats.public_watchlists_count == 1
        assert stats.owners_count == 2

    def test_reset_clears_everything_and_restarts_ids(self, store):
        first = store.create_watchlist("alice", "A", is_public=True)
        store.add_item(first.id, "alice", "bitcoin")
        store.reset()

        stats = store.get_stats()
        assert stats.watchlists_count == 0
        assert stats.owners_count == 0
        assert store.watchlists_with_coin("bitcoin") == []
        assert store.create_watchlist("alice", "B").id.endswith("_1")

    def test_consistency_detects_index_drift(self, store):
        wl = store.create_watchlist("alice", "A")
        store._indexes.set_public(wl.id, True)
        problems = store.check_consistency()
        assert any("Public index" in p for p in problems)
