#!/usr/bin/env python3
"""Unit tests for identifier validation and quoting."""

import pytest

from nebula_mapper.models.models import Settings
from nebula_mapper.services.domain.graph import (
    escape_identifier,
    format_identifier,
    is_valid_identifier,
    quote_identifier,
)
from nebula_mapper.services.domain.graph.identifiers import get_index_name


class TestQuoteIdentifier:
    def test_plain_name_left_bare(self):
        assert quote_identifier("valid_name") == "valid_name"
        assert quote_identifier("_private9") == "_private9"

    def test_leading_digit_quoted(self):
        assert quote_identifier("2bad") == "`2bad`"

    @pytest.mark.parametrize("name", ["has space", "dash-ed", "dot.ted", "café"])
    def test_special_characters_quoted(self, name):
        assert quote_identifier(name) == f"`{name}`"

    def test_escape_always_quotes(self):
        assert escape_identifier("valid_name") == "`valid_name`"

    def test_embedded_backticks_doubled(self):
        assert escape_identifier("a`b") == "`a``b`"
        assert quote_identifier("x`) VALUES (1)") == "`x``) VALUES (1)`"

    def test_format_follows_settings(self):
        assert format_identifier("Place", Settings()) == "`Place`"
        assert format_identifier("Place", Settings(quote_all_identifiers=False)) == "Place"
        assert format_identifier("2x", Settings(quote_all_identifiers=False)) == "`2x`"


class TestIsValidIdentifier:
    @pytest.mark.parametrize("name", ["Place", "_id", "user_comment_count", "a" * 128])
    def test_valid(self, name):
        assert is_valid_identifier(name)

    @pytest.mark.parametrize("name", ["", "1abc", "bad-name", "a" * 129, "SPACE", "Edge", "yield", "where"])
    def test_invalid(self, name):
        assert not is_valid_identifier(name)


def test_index_name():
    assert get_index_name("Place", "cid") == "Place_cid_idx"
