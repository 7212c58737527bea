from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, Query, Request, status
from .auth import get_optional_user_id, require_user_id
from .data_sources import ConnectionManager, DataSourceError
from .errors import forbidden, internal
from .service import WatchlistService
from .system_health import check_store_health
from . import validators

router = APIRouter()


def get_service(request: Request) -> WatchlistService:
    return request.app.state.service


def get_market(request: Request) -> ConnectionManager:
    return request.app.state.market


def _params(payload: Optional[Dict[str, Any]], **path_params) -> Dict[str, Any]:
    """Merge a JSON body with path parameters (path wins)."""
    params = dict(payload or {})
    params.update(path_params)
    return params


# ----------------------------------------------------------------------
# Watchlists
# ----------------------------------------------------------------------

@router.post("/watchlists", status_code=status.HTTP_201_CREATED)
def create_watchlist_endpoint(
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Create a new watchlist owned by the requester."""
    created = service.create_watchlist(user_id, _params(payload))
    return {
        "message": "Watchlist created successfully",
        "watchlist": created.model_dump(mode="json")
    }


@router.get("/watchlists/mine")
def get_my_watchlists_endpoint(
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Get all watchlists owned by the requester."""
    watchlists = service.get_my_watchlists(user_id)
    return {
        "total_watchlists": len(watchlists),
        "watchlists": [w.model_dump(mode="json") for w in watchlists]
    }


@router.get("/watchlists/public")
def list_public_watchlists_endpoint(
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size (max 100)"),
    search: Optional[str] = Query(None, description="Case-insensitive search in name or description"),
    tags: Optional[List[str]] = Query(None, description="Match watchlists sharing any of these tags"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """
    Browse the public watchlist directory.

    - **page**: Page number (default 1)
    - **limit**: Page size (default 20, clamped to 1-100)
    - **search**: Substring filter on name or description
    - **tags**: Tag filter (any match); repeat the parameter for several tags
    """
    result = service.list_public_watchlists(
        user_id, {"page": page, "limit": limit, "search": search, "tags": tags}
    )
    return result.model_dump(mode="json")


@router.get("/watchlists/{watchlist_id}")
def get_watchlist_endpoint(
    watchlist_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Get a watchlist with its coins and notes."""
    watchlist = service.get_watchlist(user_id, {"watchlist_id": watchlist_id})
    return {"watchlist": watchlist.model_dump(mode="json")}


@router.patch("/watchlists/{watchlist_id}")
def update_watchlist_endpoint(
    watchlist_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Update name, description, visibility or tags of a watchlist."""
    updated = service.update_watchlist(user_id, _params(payload, watchlist_id=watchlist_id))
    return {
        "message": "Watchlist updated successfully",
        "watchlist": updated.model_dump(mode="json")
    }


@router.delete("/watchlists/{watchlist_id}")
def delete_watchlist_endpoint(
    watchlist_id: str,
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Delete a watchlist together with its coins and notes."""
    service.delete_watchlist(user_id, {"watchlist_id": watchlist_id})
    return {
        "message": "Watchlist deleted successfully",
        "watchlist_id": watchlist_id
    }


# ----------------------------------------------------------------------
# Coins in a watchlist
# ----------------------------------------------------------------------

@router.post("/watchlists/{watchlist_id}/items", status_code=status.HTTP_201_CREATED)
def add_item_endpoint(
    watchlist_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Add a coin to a watchlist."""
    item = service.add_item(user_id, _params(payload, watchlist_id=watchlist_id))
    return {
        "message": "Coin added successfully",
        "item": item.model_dump(mode="json")
    }


@router.patch("/watchlists/{watchlist_id}/items/{coin_id}")
def update_item_endpoint(
    watchlist_id: str,
    coin_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Update the target price or notes of a coin in a watchlist."""
    item = service.update_item(user_id, _params(payload, watchlist_id=watchlist_id, coin_id=coin_id))
    return {
        "message": "Coin updated successfully",
        "item": item.model_dump(mode="json")
    }


@router.delete("/watchlists/{watchlist_id}/items/{coin_id}")
def remove_item_endpoint(
    watchlist_id: str,
    coin_id: str,
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Remove a coin from a watchlist."""
    service.remove_item(user_id, {"watchlist_id": watchlist_id, "coin_id": coin_id})
    return {
        "message": "Coin removed successfully",
        "watchlist_id": watchlist_id,
        "coin_id": coin_id
    }


# ----------------------------------------------------------------------
# Notes
# ----------------------------------------------------------------------

@router.post("/watchlists/{watchlist_id}/notes", status_code=status.HTTP_201_CREATED)
def add_note_endpoint(
    watchlist_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Attach a note to a watchlist, optionally about one coin."""
    note = service.add_note(user_id, _params(payload, watchlist_id=watchlist_id))
    return {
        "message": "Note added successfully",
        "note": note.model_dump(mode="json")
    }


@router.get("/watchlists/{watchlist_id}/notes")
def get_watchlist_notes_endpoint(
    watchlist_id: str,
    coin_id: Optional[str] = Query(None, description="Only notes about this coin"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Get the notes of a watchlist."""
    notes = service.get_watchlist_notes(user_id, {"watchlist_id": watchlist_id, "coin_id": coin_id})
    return {
        "total_notes": len(notes),
        "notes": [n.model_dump(mode="json") for n in notes]
    }


@router.get("/notes/{note_id}")
def get_note_endpoint(
    note_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Get a single note."""
    note = service.get_note(user_id, {"note_id": note_id})
    return {"note": note.model_dump(mode="json")}


@router.patch("/notes/{note_id}")
def update_note_endpoint(
    note_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Replace the content of a note."""
    note = service.update_note(user_id, _params(payload, note_id=note_id))
    return {
        "message": "Note updated successfully",
        "note": note.model_dump(mode="json")
    }


@router.delete("/notes/{note_id}")
def delete_note_endpoint(
    note_id: str,
    user_id: str = Depends(require_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Delete a note."""
    service.delete_note(user_id, {"note_id": note_id})
    return {
        "message": "Note deleted successfully",
        "note_id": note_id
    }


# ----------------------------------------------------------------------
# Stats, health, admin
# ----------------------------------------------------------------------

@router.get("/stats")
def get_stats_endpoint(service: WatchlistService = Depends(get_service)):
    """Aggregate counts over the store."""
    return service.get_stats().model_dump()


@router.get("/health")
def health_endpoint(service: WatchlistService = Depends(get_service)):
    """Check store invariants."""
    return check_store_health(service.store)


@router.post("/admin/reset")
def reset_endpoint(request: Request, service: WatchlistService = Depends(get_service)):
    """Clear all state. Disabled in production."""
    if request.app.state.settings.is_production:
        raise forbidden("Reset is disabled in production")
    service.reset()
    return {"message": "State reset successfully"}


# ----------------------------------------------------------------------
# Market data (coin catalog lookup)
# ----------------------------------------------------------------------

def _market_call(request: Request, operation):
    try:
        return get_market(request).call(operation)
    except DataSourceError as e:
        settings = request.app.state.settings
        details = {"reason": str(e)} if settings.expose_error_details else None
        raise internal("Market data service unavailable", details) from e


@router.get("/market/search")
def search_coins_endpoint(
    request: Request,
    query: Optional[str] = Query(None, description="Coin name or symbol"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Search the coin catalog."""
    term = validators.required_string(query, "query")
    service.limiter.check(
        user_id, "market",
        service.settings.rate_limit_read,
        service.settings.rate_limit_window_seconds
    )
    coins = _market_call(request, lambda client: client.search_coins(term))
    return {"total_coins": len(coins), "coins": coins}


@router.get("/market/coins/{coin_id}")
def get_coin_endpoint(
    request: Request,
    coin_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: WatchlistService = Depends(get_service)
):
    """Get catalog metadata for one coin."""
    coin_id = validators.coin_id(coin_id)
    service.limiter.check(
        user_id, "market",
        service.settings.rate_limit_read,
        service.settings.rate_limit_window_seconds
    )
    return {"coin": _market_call(request, lambda client: client.get_coin(coin_id))}
