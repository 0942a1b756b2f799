"""
JSON Path Domain

Resolves slash-delimited paths (with [n] array indexes) against generic
JSON documents, with a shared cache of parsed paths.
"""

from .resolver import (
    IndexOutOfBoundsError,
    PathError,
    PathNotFoundError,
    PathResolver,
    PathTypeMismatchError,
    default_resolver,
    get_array_or_single,
    has_path,
    resolve,
)

__all__ = [
    "PathResolver",
    "default_resolver",
    "resolve",
    "has_path",
    "get_array_or_single",
    "PathError",
    "PathNotFoundError",
    "PathTypeMismatchError",
    "IndexOutOfBoundsError",
]
