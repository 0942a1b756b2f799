#!/usr/bin/env python3
"""
Base error type shared by every nebula-mapper domain.

Each domain defines its own subclasses next to the code that raises them
(path resolution, transforms, schema derivation, statement compilation,
mapping loading). All of them carry a human-readable message plus optional
context (an element name, a property, a path) so callers can report exactly
one failure per operation.
"""

from typing import Optional


class NebulaMapperError(Exception):
    """Root of all errors raised by nebula-mapper operations."""

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message
