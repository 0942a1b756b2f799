#!/usr/bin/env python3
"""Named value transforms applied to extracted property values.

A property can declare a transform (``{type: price_normalize}``) instead of
relying on direct coercion to its target type. Transforms are looked up by
name in a ``TransformRegistry`` that the compiler receives explicitly.

Built-in transforms:
- time_format: parse with the ``format`` parameter (strptime pattern) and
  re-emit as ``YYYY-MM-DD HH:MM:SS``
- price_normalize: keep only the digits and parse them as an integer
- string_normalize: trim and collapse internal whitespace runs
- array_join: split on ``delimiter`` (default ","), trim each part, re-join
- to_boolean: true/1/yes -> true, false/0/no -> false (case-insensitive)

Every built-in first coerces the source value to text.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from ....core.errors import NebulaMapperError

logger = logging.getLogger(__name__)

NORMALIZED_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
INT64_MAX = 2 ** 63 - 1

_WHITESPACE_RUN = re.compile(r"\s+")

_BOOLEAN_WORDS = {
    "true": True,
    "1": True,
    "yes": True,
    "false": False,
    "0": False,
    "no": False,
}


class TransformError(NebulaMapperError):
    """Raised when a transform cannot be applied."""

    def __init__(self, message: str, context: Optional[str] = None, source_value: Optional[str] = None):
        super().__init__(message, context)
        self.source_value = source_value


class TransformNotFoundError(TransformError):
    """Raised when no transform is registered under the requested name."""


@dataclass
class TransformValue:
    """Input and output of a transform.

    ``source_type`` is the kind of the JSON value the transform consumed
    (STRING, INT64, DOUBLE or BOOL); ``target_type`` is the type the result
    is meant for.
    """
    value: Union[str, int, float, bool]
    source_type: str
    target_type: str


TransformFunction = Callable[[TransformValue, dict[str, str]], TransformValue]


def value_to_text(value: TransformValue) -> str:
    """Coerce a transform input to text."""
    raw = value.value
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (int, float)):
        return repr(raw)
    raise TransformError(f"Cannot convert value of type {type(raw).__name__} to text")


def time_transform(value: TransformValue, params: dict[str, str]) -> TransformValue:
    time_format = params.get("format")
    if not time_format:
        raise TransformError("Missing required parameter: format", "time_format")

    text = value_to_text(value)
    try:
        parsed = datetime.strptime(text, time_format)
    except ValueError as e:
        raise TransformError(f"Failed to parse time string: {e}", "time_format", text) from e

    return TransformValue(parsed.strftime(NORMALIZED_TIME_FORMAT), "STRING", "TIMESTAMP")


def price_transform(value: TransformValue, params: dict[str, str]) -> TransformValue:
    text = value_to_text(value)
    # Strip currency symbols and separators
    digits = "".join(c for c in text if c.isascii() and c.isdigit())
    if not digits:
        raise TransformError("Error parsing price: no digits found", "price_normalize", text)
    price = int(digits)
    if price > INT64_MAX:
        raise TransformError("Error parsing price: out of range", "price_normalize", text)
    return TransformValue(price, "STRING", "INT64")


def string_transform(value: TransformValue, params: dict[str, str]) -> TransformValue:
    text = value_to_text(value)
    normalized = _WHITESPACE_RUN.sub(" ", text.strip())
    return TransformValue(normalized, "STRING", "STRING")


def array_join_transform(value: TransformValue, params: dict[str, str]) -> TransformValue:
    delimiter = params.get("delimiter") or ","
    text = value_to_text(value)
    parts = [part.strip() for part in text.split(delimiter)]
    return TransformValue(delimiter.join(parts), "STRING", "STRING")


def boolean_transform(value: TransformValue, params: dict[str, str]) -> TransformValue:
    text = value_to_text(value)
    parsed = _BOOLEAN_WORDS.get(text.strip().lower())
    if parsed is None:
        raise TransformError("Invalid boolean value", "to_boolean", text)
    return TransformValue(parsed, "STRING", "BOOL")


BUILTIN_TRANSFORMS: dict[str, TransformFunction] = {
    "time_format": time_transform,
    "price_normalize": price_transform,
    "string_normalize": string_transform,
    "array_join": array_join_transform,
    "to_boolean": boolean_transform,
}


class TransformRegistry:
    """Maps transform names to transform functions.

    Registration happens before compilation; a compiler freezes the
    registry it is given, after which further registration is rejected.
    There is no removal.
    """

    def __init__(self, transforms: Optional[dict[str, TransformFunction]] = None):
        self._transforms: dict[str, TransformFunction] = dict(transforms or {})
        self._frozen = False

    @classmethod
    def with_builtins(cls) -> "TransformRegistry":
        return cls(BUILTIN_TRANSFORMS)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        self._frozen = True

    def register(self, name: str, transform: TransformFunction):
        if self._frozen:
            raise TransformError(f"Cannot register transform '{name}': registry is frozen")
        if name in self._transforms:
            logger.warning(f"Replacing registered transform '{name}'")
        self._transforms[name] = transform

    def has_transform(self, name: str) -> bool:
        return name in self._transforms

    def names(self) -> list[str]:
        return sorted(self._transforms)

    def apply(self, name: str, value: TransformValue, params: Optional[dict[str, str]] = None) -> TransformValue:
        """Apply the transform registered as ``name``.

        Raises:
            TransformNotFoundError: Nothing is registered under ``name``
            TransformError: The transform rejected the value or its parameters
        """
        transform = self._transforms.get(name)
        if transform is None:
            raise TransformNotFoundError(f"Transform not found: {name}")
        return transform(value, params or {})


def default_registry() -> TransformRegistry:
    """Create a fresh registry holding the built-in transforms."""
    return TransformRegistry.with_builtins()
