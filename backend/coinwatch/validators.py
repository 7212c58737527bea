"""
Input validation for everything that reaches the store.

Each check takes a raw external value and a field name, and either returns
the normalized value or raises a VALIDATION_ERROR naming the field.
"""

import math
from typing import Any, Callable, List, Optional, TypeVar
from .errors import ErrorCode, WatchlistError, validation

MAX_ITEMS_PER_WATCHLIST = 100
MAX_NOTE_LENGTH = 1000
MAX_WATCHLIST_NAME_LENGTH = 100
MAX_WATCHLIST_DESCRIPTION_LENGTH = 500
MAX_TAGS_PER_WATCHLIST = 10
MAX_TAG_LENGTH = 50
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

T = TypeVar("T")


def _missing(value: Any) -> bool:
    return value is None


def require_present(value: Any, field_name: str):
    if value is None or value == "":
        raise validation(f"{field_name} is required", {"field": field_name})


def required_string(value: Any, field_name: str, max_length: Optional[int] = None) -> str:
    """
    Validate a required string.

    The value is trimmed first; emptiness and length are checked against
    the trimmed value.

    Returns:
        Trimmed string
    """
    require_present(value, field_name)
    if not isinstance(value, str):
        raise validation(f"{field_name} must be a string", {"field": field_name})
    trimmed = value.strip()
    if not trimmed:
        raise validation(f"{field_name} cannot be empty", {"field": field_name})
    if max_length is not None and len(trimmed) > max_length:
        raise validation(
            f"{field_name} must be {max_length} characters or less",
            {"field": field_name, "max_length": max_length}
        )
    return trimmed


def optional_string(value: Any, field_name: str, max_length: Optional[int] = None) -> Optional[str]:
    """Like required_string, but None or blank input yields None."""
    if _missing(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return required_string(value, field_name, max_length)


def number(
    value: Any,
    field_name: str,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    allow_zero: bool = False,
    required: bool = True
) -> Optional[float]:
    """
    Validate a numeric value.

    Args:
        value: Raw value (number or numeric string)
        field_name: Name used in error messages
        min_value: Inclusive lower bound
        max_value: Inclusive upper bound
        allow_zero: Skip the "greater than zero" check
        required: Raise when the value is missing

    Returns:
        The value as a float, or None when optional and missing
    """
    if _missing(value):
        if required:
            raise validation(f"{field_name} is required", {"field": field_name})
        return None

    if isinstance(value, bool):
        raise validation(f"{field_name} must be a valid number", {"field": field_name})
    try:
        num = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        raise validation(f"{field_name} must be a valid number", {"field": field_name})
    if not math.isfinite(num):
        raise validation(f"{field_name} must be a valid number", {"field": field_name})

    if not allow_zero and num <= 0:
        raise validation(f"{field_name} must be greater than zero", {"field": field_name})
    if min_value is not None and num < min_value:
        raise validation(f"{field_name} must be at least {min_value}", {"field": field_name})
    if max_value is not None and num > max_value:
        raise validation(f"{field_name} must be at most {max_value}", {"field": field_name})
    return num


def optional_number(value: Any, field_name: str, **options) -> Optional[float]:
    return number(value, field_name, required=False, **options)


def optional_boolean(value: Any, field_name: str, required: bool = False) -> Optional[bool]:
    """Accept booleans or the strings true/false/1/0 (any case)."""
    if _missing(value):
        if required:
            raise validation(f"{field_name} is required", {"field": field_name})
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
    raise validation(f"{field_name} must be a boolean value", {"field": field_name})


def optional_array(
    value: Any,
    field_name: str,
    item_validator: Callable[[Any, int], T],
    max_length: Optional[int] = None,
    required: bool = False
) -> Optional[List[T]]:
    """
    Validate a list, passing each element through ``item_validator``.

    A failure from the element validator is re-raised with the field name
    prefixed onto its message.
    """
    if _missing(value):
        if required:
            raise validation(f"{field_name} is required", {"field": field_name})
        return None
    if not isinstance(value, (list, tuple)):
        raise validation(f"{field_name} must be an array", {"field": field_name})
    if max_length is not None and len(value) > max_length:
        raise validation(
            f"{field_name} cannot have more than {max_length} items",
            {"field": field_name, "max_length": max_length}
        )
    try:
        return [item_validator(item, index) for index, item in enumerate(value)]
    except WatchlistError as e:
        if e.code != ErrorCode.VALIDATION_ERROR:
            raise
        raise WatchlistError(e.code, f"Invalid {field_name}: {e.message}", e.details) from e


# Field-level checks built from the generic ones above

def watchlist_name(value: Any) -> str:
    return required_string(value, "name", MAX_WATCHLIST_NAME_LENGTH)


def watchlist_description(value: Any) -> Optional[str]:
    return optional_string(value, "description", MAX_WATCHLIST_DESCRIPTION_LENGTH)


def tag(value: Any, index: int) -> str:
    return required_string(value, f"tag[{index}]", MAX_TAG_LENGTH)


def tags(value: Any) -> Optional[List[str]]:
    return optional_array(value, "tags", tag, MAX_TAGS_PER_WATCHLIST)


def note_content(value: Any) -> str:
    return required_string(value, "content", MAX_NOTE_LENGTH)


def coin_id(value: Any, field_name: str = "coin_id") -> str:
    return required_string(value, field_name)


def target_price(value: Any) -> Optional[float]:
    return optional_number(value, "target_price")


def page_number(value: Any) -> int:
    """Page defaults to 1 and is floored at 1."""
    page = optional_number(value, "page", allow_zero=True)
    if page is None:
        return 1
    return max(1, int(page))


def page_size(value: Any) -> int:
    """Limit defaults to DEFAULT_PAGE_SIZE (also for 0) and is clamped to [1, MAX_PAGE_SIZE]."""
    limit = optional_number(value, "limit", allow_zero=True)
    if not limit:
        return DEFAULT_PAGE_SIZE
    return min(MAX_PAGE_SIZE, max(1, int(limit)))


def filter_tags(value: Any) -> Optional[List[str]]:
    """Directory tag filter: trimmed, blanks dropped, None when empty."""
    if isinstance(value, str):
        value = [value]
    raw = optional_array(value, "tags", lambda item, index: item)
    if not raw:
        return None
    cleaned = [t.strip() for t in raw if isinstance(t, str) and t.strip()]
    return cleaned or None
