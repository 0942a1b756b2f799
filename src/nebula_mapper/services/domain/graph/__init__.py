"""
Graph Schema Domain

Handles Nebula Graph schema derivation from mappings:
- Abstract type conversion and identifier validation
- CREATE TAG/EDGE and index statements
- Cleanup (DROP) statements
- Merging of schema fragments
"""

from .identifiers import escape_identifier, format_identifier, is_valid_identifier, quote_identifier
from .schema_manager import (
    GraphSchemaManager,
    IdentifierError,
    SchemaError,
    SchemaTypeError,
    get_graph_schema_manager,
    normalize_type_name,
)

__all__ = [
    'GraphSchemaManager',
    'get_graph_schema_manager',
    'SchemaError',
    'SchemaTypeError',
    'IdentifierError',
    'normalize_type_name',
    'quote_identifier',
    'escape_identifier',
    'format_identifier',
    'is_valid_identifier',
]
