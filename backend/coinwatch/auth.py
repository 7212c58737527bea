"""
Requester identity for the HTTP adapter.

API key-based authentication: each key maps to a user id. With
ENABLE_AUTH=false (local development) the X-User-Id header is trusted
as the identity instead.
"""

import secrets
import threading
from typing import Dict, Optional
from fastapi import Request, Security
from fastapi.security import APIKeyHeader
from .errors import unauthorized

# API Key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)

# In-memory API key storage
# Format: {api_key: {"user_id": str, "email": Optional[str]}}
_api_keys: Dict[str, dict] = {}
_api_keys_lock = threading.Lock()


def generate_api_key() -> str:
    """Generate a new API key."""
    return secrets.token_urlsafe(32)


def register_api_key(user_id: str, email: Optional[str] = None) -> str:
    """
    Register a new API key for a user.
    
    Args:
        user_id: User identifier the key authenticates as
        email: Optional contact email
        
    Returns:
        Generated API key
    """
    api_key = generate_api_key()
    with _api_keys_lock:
        _api_keys[api_key] = {"user_id": user_id, "email": email}
    return api_key


def get_api_key_info(api_key: str) -> Optional[dict]:
    """Get information about an API key."""
    return _api_keys.get(api_key)


def revoke_api_key(api_key: str) -> bool:
    """Revoke an API key."""
    with _api_keys_lock:
        return _api_keys.pop(api_key, None) is not None


def get_optional_user_id(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
    header_user_id: Optional[str] = Security(user_id_header)
) -> Optional[str]:
    """
    Dependency resolving the requester, or None for anonymous reads.
    
    Raises:
        WatchlistError: UNAUTHORIZED if an API key is presented but unknown
    """
    settings = request.app.state.settings
    if not settings.enable_auth:
        return header_user_id.strip() if header_user_id and header_user_id.strip() else None

    if not api_key:
        return None
    key_info = get_api_key_info(api_key)
    if not key_info:
        raise unauthorized("Invalid API key")
    return key_info["user_id"]


def require_user_id(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
    header_user_id: Optional[str] = Security(user_id_header)
) -> str:
    """Dependency requiring an authenticated requester."""
    user_id = get_optional_user_id(request, api_key, header_user_id)
    if not user_id:
        raise unauthorized("User authentication required")
    return user_id
