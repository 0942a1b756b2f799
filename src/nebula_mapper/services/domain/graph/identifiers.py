#!/usr/bin/env python3
"""Identifier rules shared by schema and data statements."""

import re

from ....models.models import Settings

MAX_IDENTIFIER_LENGTH = 128

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Reserved keywords in Nebula Graph
RESERVED_KEYWORDS = frozenset({
    "SPACE", "TAG", "EDGE", "VERTEX", "INDEX",
    "INSERT", "UPDATE", "DELETE", "WHERE", "YIELD",
})


def is_valid_identifier(name: str) -> bool:
    """Check that ``name`` can be used as a tag, edge or property name."""
    if not name or len(name) > MAX_IDENTIFIER_LENGTH:
        return False
    if name.upper() in RESERVED_KEYWORDS:
        return False
    return bool(IDENTIFIER_PATTERN.match(name))


def _is_plain(identifier: str) -> bool:
    first, rest = identifier[0], identifier[1:]
    if not (first.isascii() and (first.isalpha() or first == "_")):
        return False
    return all(c.isascii() and (c.isalnum() or c == "_") for c in rest)


def quote_identifier(identifier: str) -> str:
    """Back-tick quote an identifier only when it is not a plain name.

    >>> quote_identifier("valid_name")
    'valid_name'
    >>> quote_identifier("2bad")
    '`2bad`'
    """
    if identifier and not _is_plain(identifier):
        return escape_identifier(identifier)
    return identifier


def escape_identifier(identifier: str) -> str:
    """Always back-tick quote an identifier, doubling any embedded back-tick."""
    return "`" + identifier.replace("`", "``") + "`"


def format_identifier(identifier: str, settings: Settings) -> str:
    """Render an identifier for an emitted statement."""
    if settings.quote_all_identifiers:
        return escape_identifier(identifier)
    return quote_identifier(identifier)


def get_index_name(element_name: str, property_name: str) -> str:
    return f"{element_name}_{property_name}_idx"
