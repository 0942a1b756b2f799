"""
JSON to Graph Domain

Compiles JSON documents into Nebula Graph data statements:
- Vertex ID resolution (single and composite keys)
- Declared property extraction, transforms and coercion
- Dynamic fields for undeclared record fields
- Batched INSERT and per-record UPSERT emission
"""

from .converter import (
    NullKeyError,
    StatementCompiler,
    StatementError,
    ValueConversionError,
    format_value,
    generate_batch_statements,
    infer_type,
)

__all__ = [
    'StatementCompiler',
    'generate_batch_statements',
    'StatementError',
    'NullKeyError',
    'ValueConversionError',
    'format_value',
    'infer_type',
]
