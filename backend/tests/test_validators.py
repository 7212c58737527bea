"""
Unit tests for input validation.
"""

import pytest

from coinwatch import validators
from coinwatch.errors import ErrorCode, WatchlistError


def validation_message(func, *args, **kwargs) -> str:
    with pytest.raises(WatchlistError) as excinfo:
        func(*args, **kwargs)
    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR
    return excinfo.value.message


class TestRequiredString:
    """Tests for required_string."""

    def test_trims(self):
        assert validators.required_string("  DeFi  ", "name") == "DeFi"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        assert validation_message(validators.required_string, value, "name") == "name is required"

    def test_not_a_string(self):
        assert "must be a string" in validation_message(validators.required_string, 42, "name")

    def test_whitespace_only_rejected_regardless_of_max_length(self):
        """Whitespace-only input is empty once trimmed."""
        message = validation_message(validators.required_string, "     ", "name", 3)
        assert message == "name cannot be empty"

    def test_length_checked_after_trimming(self):
        assert validators.required_string("  abc  ", "name", 3) == "abc"
        assert "3 characters or less" in validation_message(
            validators.required_string, "abcd", "name", 3
        )

    def test_watchlist_name_limit(self):
        validators.watchlist_name("x" * 100)
        validation_message(validators.watchlist_name, "x" * 101)


class TestNumber:
    """Tests for number validation."""

    def test_coerces_numeric_strings(self):
        assert validators.number("12.5", "price") == 12.5

    @pytest.mark.parametrize("value", ["abc", "inf", float("nan"), True, [1]])
    def test_rejects_non_numbers(self, value):
        assert "valid number" in validation_message(validators.number, value, "price")

    def test_zero_rejected_unless_allowed(self):
        assert "greater than zero" in validation_message(validators.number, 0, "price")
        assert validators.number(0, "price", allow_zero=True) == 0

    def test_bounds(self):
        assert "at least 5" in validation_message(validators.number, 2, "n", min_value=5)
        assert "at most 5" in validation_message(validators.number, 9, "n", max_value=5)

    def test_optional_missing(self):
        assert validators.optional_number(None, "price") is None
        validation_message(validators.number, None, "price")

    def test_huge_integer_is_invalid(self):
        assert "valid number" in validation_message(validators.number, 10 ** 400, "price")
        assert "valid number" in validation_message(validators.page_number, 10 ** 400)


class TestBoolean:
    """Tests for optional_boolean."""

    @pytest.mark.parametrize("value,expected", [
        (True, True), (False, False), ("TRUE", True), ("false", False), ("1", True), ("0", False),
    ])
    def test_accepted_values(self, value, expected):
        assert validators.optional_boolean(value, "is_public") is expected

    @pytest.mark.parametrize("value", ["yes", 1, "", {}])
    def test_rejected_values(self, value):
        assert "boolean" in validation_message(validators.optional_boolean, value, "is_public")

    def test_missing(self):
        assert validators.optional_boolean(None, "is_public") is None
        validation_message(validators.optional_boolean, None, "is_public", required=True)


class TestArray:
    """Tests for optional_array and tags."""

    def test_not_an_array(self):
        assert "must be an array" in validation_message(validators.tags, "defi")

    def test_too_many_tags(self):
        message = validation_message(validators.tags, [f"t{i}" for i in range(11)])
        assert "more than 10 items" in message

    def test_element_failure_prefixed_with_field(self):
        message = validation_message(validators.tags, ["ok", "x" * 51])
        assert message.startswith("Invalid tags: tag[1]")

    def test_tags_trimmed(self):
        assert validators.tags([" defi ", "l2"]) == ["defi", "l2"]


class TestPagination:
    """Tests for page/limit normalization."""

    @pytest.mark.parametrize("value,expected", [(None, 1), (0, 1), (-3, 1), ("2", 2), (3.7, 3)])
    def test_page(self, value, expected):
        assert validators.page_number(value) == expected

    @pytest.mark.parametrize("value,expected", [(None, 20), (0, 20), (-5, 1), (500, 100), ("15", 15)])
    def test_limit(self, value, expected):
        assert validators.page_size(value) == expected

    def test_bad_page(self):
        validation_message(validators.page_number, "first")

    def test_filter_tags(self):
        assert validators.filter_tags([" defi ", "", "  "]) == ["defi"]
        assert validators.filter_tags([]) is None
        assert validators.filter_tags("nft") == ["nft"]
