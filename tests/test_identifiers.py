"""Tests for identifier quoting."""

import pytest

from mysql_mcp.errors import InvalidIdentifier
from mysql_mcp.identifiers import MAX_IDENTIFIER_LENGTH, quote_ident, quote_qualified, truncate_query


class TestQuoteIdent:
    """quote_ident() wraps valid names in backticks and rejects the rest."""

    def test_simple_name(self):
        assert quote_ident("users") == "`users`"

    @pytest.mark.parametrize("name", ["users", "order_items", "2024_sales", "ünïcode", "a-b", "x$y", "Mixed.Case"])
    def test_round_trip(self, name):
        assert quote_ident(name) == "`" + name + "`"

    def test_max_length_accepted(self):
        name = "a" * MAX_IDENTIFIER_LENGTH
        assert quote_ident(name) == f"`{name}`"

    def test_over_max_length_rejected(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            quote_ident("a" * (MAX_IDENTIFIER_LENGTH + 1))
        assert exc_info.value.reason == "identifier too long"

    def test_empty_rejected(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            quote_ident("")
        assert exc_info.value.reason == "identifier cannot be empty"

    @pytest.mark.parametrize("char", [" ", "\t", "\n", "\r", ";", "`", "\\"])
    def test_forbidden_character_rejected(self, char):
        with pytest.raises(InvalidIdentifier) as exc_info:
            quote_ident(f"bad{char}name")
        assert exc_info.value.reason == "identifier contains invalid characters"

    def test_space_in_name_rejected(self):
        with pytest.raises(InvalidIdentifier):
            quote_ident("user table")

    def test_backtick_breakout_rejected(self):
        with pytest.raises(InvalidIdentifier):
            quote_ident("users`; DROP TABLE users; --")

    def test_error_kind(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            quote_ident("a;b")
        assert exc_info.value.kind == "InvalidIdentifier"


class TestQuoteQualified:
    def test_database_and_table(self):
        assert quote_qualified("shop", "orders") == "`shop`.`orders`"

    def test_invalid_table_rejected(self):
        with pytest.raises(InvalidIdentifier):
            quote_qualified("shop", "orders`x")

    def test_invalid_database_rejected(self):
        with pytest.raises(InvalidIdentifier):
            quote_qualified("", "orders")


class TestTruncateQuery:
    def test_short_query_unchanged(self):
        assert truncate_query("SELECT 1") == "SELECT 1"

    def test_long_query_truncated(self):
        result = truncate_query("x" * 500)
        assert result == "x" * 200 + "..."

    def test_custom_length(self):
        assert truncate_query("abcdef", max_len=3) == "abc..."
