"""
Mapping Domain

Loads mapping configurations into GraphMapping models and validates them
before compilation.
"""

from .loader import MappingError, load_mapping, load_mapping_file
from .validation import (
    MappingValidator,
    ValidationMessage,
    ValidationResult,
    ValidationSeverity,
)

__all__ = [
    'load_mapping',
    'load_mapping_file',
    'MappingError',
    'MappingValidator',
    'ValidationMessage',
    'ValidationResult',
    'ValidationSeverity',
]
