#!/usr/bin/env python3
"""Slash-delimited path resolution over generic JSON documents.

A path such as ``/comment/list/[0]/userId`` is split on ``/`` into segments.
A segment of the form ``[n]`` indexes into the current list; any other
segment is a key lookup on the current dict. ``key[n]`` is accepted as a
shorthand for ``key/[n]``. The leading slash is optional and an empty path
resolves to the document itself.

Parsed segment lists are cached per path string. Many mappings are applied
to many documents, so the same handful of paths is parsed over and over
otherwise.
"""
import logging
import re
import threading
from typing import Any

from ....core.errors import NebulaMapperError

logger = logging.getLogger(__name__)

_INDEX_SEGMENT = re.compile(r"^\[(.*)\]$")
_INDEX_TOKEN = re.compile(r"\[[^\[\]]*\]")
_KEY_WITH_INDEXES = re.compile(r"^([^\[\]]*)((?:\[[^\[\]]*\])+)$")


class PathError(NebulaMapperError):
    """Raised when a path cannot be resolved against a document."""

    def __init__(self, message: str, path: str = None, segment: str = None):
        super().__init__(message, path)
        self.path = path
        self.segment = segment


class PathNotFoundError(PathError):
    """A key segment is missing from the current object."""


class PathTypeMismatchError(PathError):
    """The current location is not the container kind the segment needs."""


class IndexOutOfBoundsError(PathError):
    """An index segment is past the end of the current array."""


def split_path(path: str) -> list[str]:
    """Split a raw path into segments.

    Args:
        path: Raw path like "/a/b/[0]" or "a/b[0]"

    Returns:
        List of segments like ["a", "b", "[0]"]
    """
    segments = []
    for part in path.split("/"):
        if not part:
            continue
        match = _KEY_WITH_INDEXES.match(part)
        if match:
            # "key[0][1]" -> "key", "[0]", "[1]"
            key, indexes = match.groups()
            if key:
                segments.append(key)
            segments.extend(_INDEX_TOKEN.findall(indexes))
        else:
            segments.append(part)
    return segments


def parse_index(segment: str) -> int | None:
    """Return the index of an ``[n]`` segment, or None for key segments.

    Raises:
        PathError: If the brackets hold something other than a non-negative integer
    """
    match = _INDEX_SEGMENT.match(segment)
    if not match:
        return None
    raw = match.group(1)
    if not (raw.isascii() and raw.isdigit()):
        raise PathError(f"Invalid array index: {segment}", segment=segment)
    return int(raw)


class PathResolver:
    """Resolves paths against documents, caching parsed segment lists.

    Lookups read the cache without locking; a newly seen path is parsed and
    inserted under a lock, re-checking first so racing threads parse it once.
    The cache grows with the number of distinct paths and is never evicted.
    """

    def __init__(self):
        self._cache: dict[str, tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def get_segments(self, path: str) -> tuple[str, ...]:
        segments = self._cache.get(path)
        if segments is not None:
            return segments

        with self._lock:
            segments = self._cache.get(path)
            if segments is None:
                segments = tuple(split_path(path))
                self._cache[path] = segments
                logger.debug(f"Cached path {path!r} as {list(segments)}")
            return segments

    def resolve(self, document: Any, path: str) -> Any:
        """Navigate ``document`` along ``path``.

        Args:
            document: Parsed JSON tree (dicts, lists, scalars)
            path: Slash-delimited path

        Returns:
            The value found at the path (may be None for JSON null)

        Raises:
            PathNotFoundError: A key is missing
            PathTypeMismatchError: Expected an object or array but found something else
            IndexOutOfBoundsError: An index is past the end of an array
            PathError: An index segment is malformed
        """
        current = document
        for segment in self.get_segments(path):
            try:
                index = parse_index(segment)
            except PathError as e:
                raise PathError(e.message, path=path, segment=segment) from e

            if index is not None:
                if not isinstance(current, list):
                    raise PathTypeMismatchError(
                        f"Expected array at path segment: {segment}", path=path, segment=segment
                    )
                if index >= len(current):
                    raise IndexOutOfBoundsError(
                        f"Array index out of bounds: {segment} (length {len(current)})",
                        path=path,
                        segment=segment,
                    )
                current = current[index]
                continue

            if not isinstance(current, dict):
                raise PathTypeMismatchError(
                    f"Expected object at path segment: {segment}", path=path, segment=segment
                )
            if segment not in current:
                raise PathNotFoundError(f"Property not found: {segment}", path=path, segment=segment)
            current = current[segment]

        return current

    def validate_path(self, path: str) -> tuple[str, ...]:
        """Parse ``path`` without a document, checking every index segment.

        Raises:
            PathError: An index segment is malformed
        """
        segments = self.get_segments(path)
        for segment in segments:
            try:
                parse_index(segment)
            except PathError as e:
                raise PathError(e.message, path=path, segment=segment) from e
        return segments

    def has_path(self, document: Any, path: str) -> bool:
        try:
            self.resolve(document, path)
        except PathError:
            return False
        return True

    def get_array_or_single(self, document: Any, path: str) -> list[Any]:
        """Resolve ``path`` and always return a list of records.

        An array is returned as-is; an object or scalar is wrapped in a
        one-element list so one mapping serves both one-to-one and
        one-to-many document shapes.
        """
        value = self.resolve(document, path)
        if isinstance(value, list):
            return value
        return [value]

    def clear_cache(self):
        with self._lock:
            self._cache.clear()

    def cache_size(self) -> int:
        return len(self._cache)


# Process-wide resolver shared by callers that do not bring their own
default_resolver = PathResolver()


def resolve(document: Any, path: str) -> Any:
    return default_resolver.resolve(document, path)


def has_path(document: Any, path: str) -> bool:
    return default_resolver.has_path(document, path)


def get_array_or_single(document: Any, path: str) -> list[Any]:
    return default_resolver.get_array_or_single(document, path)
