#!/usr/bin/env python3

import logging
from typing import Optional, Union

from ....core.errors import NebulaMapperError
from ....models.models import (
    EdgeConstraints,
    EdgeMapping,
    GraphMapping,
    Property,
    SchemaElement,
    SchemaProperty,
    Settings,
    VertexMapping,
)
from .identifiers import format_identifier, get_index_name, is_valid_identifier

logger = logging.getLogger(__name__)

# Nebula's maximum string length
MAX_STRING_LENGTH = 65535

# Store-native types accepted as-is
VALID_TYPES = frozenset({
    "BOOL", "INT", "INT8", "INT16", "INT32", "INT64",
    "FLOAT", "DOUBLE", "STRING", "FIXED_STRING",
    "TIMESTAMP", "DATE", "TIME", "DATETIME",
})

STRING_TYPES = frozenset({"STRING", "FIXED_STRING", "VARCHAR"})

NUMERIC_TYPES = frozenset({"INT", "INT8", "INT16", "INT32", "INT64", "FLOAT", "DOUBLE"})

# Default lengths for string types
DEFAULT_LENGTHS = {
    "STRING": 256,
    "FIXED_STRING": 32,
    "VARCHAR": 256,
}

# Abstract type names and their synonyms
TYPE_MAP = {
    "INT": "INT64",
    "INTEGER": "INT64",
    "FLOAT": "DOUBLE",
    "DOUBLE": "DOUBLE",
    "BOOL": "BOOL",
    "BOOLEAN": "BOOL",
    "TIMESTAMP": "TIMESTAMP",
    "DATE": "DATE",
    "TIME": "TIME",
    "DATETIME": "DATETIME",
}

TTL_CLAUSE = 'ttl_duration = 0, ttl_col = ""'


class SchemaError(NebulaMapperError):
    """Raised when a schema element cannot be derived from a mapping."""


class SchemaTypeError(SchemaError):
    """Unsupported type name, or a string length over the maximum."""


class IdentifierError(SchemaError):
    """Malformed or reserved name, or a duplicate property within one element."""


def base_type(type_name: str) -> str:
    """Strip a length suffix: ``STRING(256)`` -> ``STRING``."""
    return type_name.split("(", 1)[0].strip().upper()


def is_numeric_type(type_name: str) -> bool:
    return base_type(type_name) in NUMERIC_TYPES


def is_string_type(type_name: str) -> bool:
    return base_type(type_name) in STRING_TYPES


def normalize_type_name(type_name: str) -> str:
    """Map an abstract type name onto its canonical store name, without lengths.

    Unknown names are returned upper-cased so callers can report them.
    """
    upper_type = type_name.strip().upper()
    return TYPE_MAP.get(upper_type, upper_type)


def format_default(type_name: str, default_value: str) -> str:
    """Render a DEFAULT clause value for a property of ``type_name``."""
    if is_string_type(type_name):
        if len(default_value) >= 2 and default_value[0] == default_value[-1] == '"':
            return default_value
        escaped = default_value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if base_type(type_name) == "BOOL":
        return default_value.strip().lower()
    return default_value


class GraphSchemaManager:
    """Derives Nebula Graph schema statements from graph mappings"""

    def convert_to_nebula_type(self, type_name: str, string_length: int = 0) -> str:
        """Convert an abstract property type into a store-native type string.

        Args:
            type_name: Abstract type such as "int", "Integer" or "STRING"
            string_length: Length for string types; 0 selects the per-type default

        Returns:
            Native type like "INT64" or "STRING(256)"

        Raises:
            SchemaTypeError: Unsupported type or string length above 65535
        """
        upper_type = type_name.strip().upper()

        if upper_type in STRING_TYPES:
            length = string_length if string_length and string_length > 0 else DEFAULT_LENGTHS[upper_type]
            if length > MAX_STRING_LENGTH:
                raise SchemaTypeError(f"String length exceeds maximum allowed ({MAX_STRING_LENGTH}): {length}", type_name)
            return f"{upper_type}({length})"

        if upper_type in TYPE_MAP:
            return TYPE_MAP[upper_type]

        if upper_type in VALID_TYPES:
            return upper_type

        raise SchemaTypeError(f"Unsupported type: {type_name}")

    def validate_identifier(self, name: str, context: Optional[str] = None):
        """Raise IdentifierError unless ``name`` is a usable identifier."""
        if not is_valid_identifier(name):
            raise IdentifierError(f"Invalid identifier: {name!r}", context)

    def validate_element_names(self, mapping_element: Union[VertexMapping, EdgeMapping]):
        """Check the element and property names of a mapping element.

        Raises:
            IdentifierError: Bad element/property name or duplicate property
        """
        if isinstance(mapping_element, EdgeMapping):
            name = mapping_element.edge_name
        else:
            name = mapping_element.tag_name
        self.validate_identifier(name)

        seen = set()
        for prop in mapping_element.properties:
            self.validate_identifier(prop.name, name)
            if prop.name in seen:
                raise IdentifierError(f"Duplicate property name: {prop.name}", name)
            seen.add(prop.name)

    def validate_schema_element(self, element: SchemaElement):
        """Validate names, duplicates and native types of a schema element.

        Raises:
            IdentifierError: Bad element/property name or duplicate property
            SchemaTypeError: Property type is not a recognized native type
        """
        self.validate_identifier(element.name)

        seen = set()
        for prop in element.properties:
            self.validate_identifier(prop.name, element.name)
            if prop.name in seen:
                raise IdentifierError(f"Duplicate property name: {prop.name}", element.name)
            seen.add(prop.name)

            if base_type(prop.type) not in VALID_TYPES and base_type(prop.type) != "VARCHAR":
                raise SchemaTypeError(f"Invalid property type: {prop.type}", f"{element.name}.{prop.name}")
            if prop.fixed_length is not None and prop.fixed_length > MAX_STRING_LENGTH:
                raise SchemaTypeError(
                    f"String length exceeds maximum allowed ({MAX_STRING_LENGTH}): {prop.fixed_length}",
                    f"{element.name}.{prop.name}"
                )

    def _build_schema_property(self, prop: Property, settings: Settings, element_name: str) -> SchemaProperty:
        string_length = prop.max_length or settings.default_string_length or 0
        try:
            native_type = self.convert_to_nebula_type(prop.target_type, string_length)
        except SchemaTypeError as e:
            raise SchemaTypeError(e.message, f"{element_name}.{prop.name}") from e

        fixed_length = None
        if is_string_type(native_type):
            fixed_length = int(native_type[native_type.index("(") + 1:-1])

        return SchemaProperty(
            name=prop.name,
            type=native_type,
            nullable=prop.optional,
            indexable=prop.indexable,
            default_value=prop.default_value,
            fixed_length=fixed_length,
        )

    def build_schema_element(
        self,
        mapping_element: Union[VertexMapping, EdgeMapping],
        settings: Settings = Settings()
    ) -> SchemaElement:
        """Build and validate the schema element for a vertex or edge mapping"""
        if isinstance(mapping_element, EdgeMapping):
            element = SchemaElement(
                name=mapping_element.edge_name,
                is_edge=True,
                edge_constraints=EdgeConstraints(
                    from_types={mapping_element.from_.tag_name},
                    to_types={mapping_element.to.tag_name},
                ),
            )
        else:
            element = SchemaElement(name=mapping_element.tag_name, is_edge=False)

        self.validate_identifier(element.name)
        for prop in mapping_element.properties:
            element.properties.append(self._build_schema_property(prop, settings, element.name))

        self.validate_schema_element(element)
        return element

    def _create_element_statement(self, element: SchemaElement, settings: Settings) -> str:
        kind = "EDGE" if element.is_edge else "TAG"
        lines = []
        for prop in element.properties:
            line = f"    {format_identifier(prop.name, settings)} {prop.type}"
            if not prop.nullable:
                line += " NOT NULL"
            if prop.default_value is not None:
                line += f" DEFAULT {format_default(prop.type, prop.default_value)}"
            lines.append(line)

        name = format_identifier(element.name, settings)
        if not lines:
            return f"CREATE {kind} IF NOT EXISTS {name} () {TTL_CLAUSE};"
        body = ",\n".join(lines)
        return f"CREATE {kind} IF NOT EXISTS {name} (\n{body}\n) {TTL_CLAUSE};"

    def _create_index_statement(self, element: SchemaElement, prop: SchemaProperty, settings: Settings) -> str:
        kind = "EDGE" if element.is_edge else "TAG"
        column = format_identifier(prop.name, settings)
        if is_string_type(prop.type) and prop.fixed_length:
            column += f"({prop.fixed_length})"
        index_name = format_identifier(get_index_name(element.name, prop.name), settings)
        return (
            f"CREATE {kind} INDEX IF NOT EXISTS {index_name} "
            f"ON {format_identifier(element.name, settings)}({column});"
        )

    def _iter_elements(self, mapping: GraphMapping):
        for vertex in mapping.vertices:
            yield self.build_schema_element(vertex, mapping.settings)
        for edge in mapping.edges:
            yield self.build_schema_element(edge, mapping.settings)

    def generate_schema_statements(self, mapping: GraphMapping) -> list[str]:
        """Generate CREATE TAG/EDGE statements, each followed by its index statements.

        Vertices come first, then edges, both in declaration order.

        Raises:
            SchemaError: The first invalid element, property, or type found
        """
        statements = []
        for element in self._iter_elements(mapping):
            statements.append(self._create_element_statement(element, mapping.settings))
            for prop in element.properties:
                if prop.indexable:
                    statements.append(self._create_index_statement(element, prop, mapping.settings))

        logger.info(
            f"Generated {len(statements)} schema statements for "
            f"{len(mapping.vertices)} tags and {len(mapping.edges)} edges"
        )
        return statements

    def generate_index_statements(self, mapping: GraphMapping) -> list[str]:
        """Generate only the index statements, for indexable numeric and string properties"""
        statements = []
        for element in self._iter_elements(mapping):
            for prop in element.properties:
                if not prop.indexable:
                    continue
                if not is_numeric_type(prop.type) and not is_string_type(prop.type):
                    logger.debug(f"Skipping index on {element.name}.{prop.name}: {prop.type} is not indexable")
                    continue
                statements.append(self._create_index_statement(element, prop, mapping.settings))
        return statements

    def generate_cleanup_statements(self, mapping: GraphMapping) -> list[str]:
        """Generate DROP statements: every property index first, then every tag and edge"""
        settings = mapping.settings
        statements = []

        for vertex in mapping.vertices:
            for prop in vertex.properties:
                index_name = format_identifier(get_index_name(vertex.tag_name, prop.name), settings)
                statements.append(f"DROP TAG INDEX IF EXISTS {index_name};")

        for edge in mapping.edges:
            for prop in edge.properties:
                index_name = format_identifier(get_index_name(edge.edge_name, prop.name), settings)
                statements.append(f"DROP EDGE INDEX IF EXISTS {index_name};")

        for vertex in mapping.vertices:
            statements.append(f"DROP TAG IF EXISTS {format_identifier(vertex.tag_name, settings)};")

        for edge in mapping.edges:
            statements.append(f"DROP EDGE IF EXISTS {format_identifier(edge.edge_name, settings)};")

        return statements

    def merge_schema_properties(self, existing: SchemaElement, new_schema: SchemaElement) -> SchemaElement:
        """Merge two schema fragments describing the same tag or edge.

        The result holds the union of properties; for a shared property
        nullability is OR'd, the later default wins when present, and the
        larger fixed length is kept. Edge constraint sets are unioned.

        Raises:
            SchemaError: Names or element kinds differ
        """
        if existing.name != new_schema.name or existing.is_edge != new_schema.is_edge:
            raise SchemaError("Schema elements do not match", f"{existing.name} vs {new_schema.name}")

        merged = SchemaElement(
            name=existing.name,
            is_edge=existing.is_edge,
            properties=[SchemaProperty(**vars(p)) for p in existing.properties],
            edge_constraints=EdgeConstraints(
                from_types=set(existing.edge_constraints.from_types),
                to_types=set(existing.edge_constraints.to_types),
            ),
        )
        by_name = {prop.name: prop for prop in merged.properties}

        for new_prop in new_schema.properties:
            current = by_name.get(new_prop.name)
            if current is None:
                added = SchemaProperty(**vars(new_prop))
                merged.properties.append(added)
                by_name[added.name] = added
                continue

            current.nullable = current.nullable or new_prop.nullable
            if new_prop.default_value is not None:
                current.default_value = new_prop.default_value
            if new_prop.fixed_length is not None:
                current.fixed_length = max(current.fixed_length or 0, new_prop.fixed_length)
                if is_string_type(current.type):
                    current.type = f"{base_type(current.type)}({current.fixed_length})"

        if merged.is_edge:
            merged.edge_constraints.from_types |= new_schema.edge_constraints.from_types
            merged.edge_constraints.to_types |= new_schema.edge_constraints.to_types

        return merged


def get_graph_schema_manager() -> GraphSchemaManager:
    """Get a GraphSchemaManager instance"""
    return GraphSchemaManager()
