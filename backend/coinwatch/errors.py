"""
Error taxonomy shared by every component.

Every public operation either returns a complete value or raises a
WatchlistError carrying exactly one ErrorCode. Callers branch on
``error.code``, never on the exception class.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Closed set of failure kinds."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}


class WatchlistError(Exception):
    """
    Error raised by the watchlist core.
    
    Attributes:
        code: Failure kind
        message: Human-readable message
        details: Optional structured context (limits, ids, retry delay)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.code]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": "WatchlistError",
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"WatchlistError({self.code.value}, {self.message!r})"


def unauthorized(message: str = "Authentication required") -> WatchlistError:
    return WatchlistError(ErrorCode.UNAUTHORIZED, message)


def not_found(resource: str, resource_id: Optional[str] = None) -> WatchlistError:
    suffix = f" with id {resource_id}" if resource_id else ""
    return WatchlistError(ErrorCode.NOT_FOUND, f"{resource}{suffix} not found")


def forbidden(message: str = "Access denied") -> WatchlistError:
    return WatchlistError(ErrorCode.FORBIDDEN, message)


def validation(message: str, details: Optional[Dict[str, Any]] = None) -> WatchlistError:
    return WatchlistError(ErrorCode.VALIDATION_ERROR, message, details)


def rate_limited(message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None) -> WatchlistError:
    return WatchlistError(ErrorCode.RATE_LIMITED, message, details)


def internal(message: str = "Internal server error", details: Optional[Dict[str, Any]] = None) -> WatchlistError:
    return WatchlistError(ErrorCode.INTERNAL_ERROR, message, details)


def wrap_errors(exc: BaseException, expose_details: bool) -> WatchlistError:
    """
    Convert any exception into a WatchlistError.
    
    Taxonomy errors pass through unchanged. Anything else is logged and
    becomes INTERNAL_ERROR; the original message is attached only when
    ``expose_details`` is set.
    """
    if isinstance(exc, WatchlistError):
        return exc
    logger.error("Unexpected error", exc_info=exc)
    details = {"reason": f"{type(exc).__name__}: {exc}"} if expose_details else None
    return internal("An unexpected error occurred", details)


def create_error_response(exc: BaseException, expose_details: bool) -> Dict[str, Any]:
    """Build the serializable error payload returned to the adapter."""
    return wrap_errors(exc, expose_details).to_dict()
