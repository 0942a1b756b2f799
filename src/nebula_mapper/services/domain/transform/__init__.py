"""
Transform Domain

Named, parameterized value conversions that mapping properties can apply
before their values are formatted into statements.
"""

from .engine import (
    BUILTIN_TRANSFORMS,
    TransformError,
    TransformNotFoundError,
    TransformRegistry,
    TransformValue,
    default_registry,
)

__all__ = [
    "TransformRegistry",
    "TransformValue",
    "TransformError",
    "TransformNotFoundError",
    "BUILTIN_TRANSFORMS",
    "default_registry",
]
