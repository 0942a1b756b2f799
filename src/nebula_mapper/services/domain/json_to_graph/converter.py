#!/usr/bin/env python3
"""JSON to Nebula Graph statement compiler.

This module turns a generic JSON document into INSERT/UPSERT statements using a
``GraphMapping``. Each vertex mapping names a ``source_path`` that resolves to
one record or a list of records; every record yields one vertex whose ID comes
from the mapping's key path(s). Edge mappings work the same way, taking the
source and destination IDs from their ``from``/``to`` endpoints.

Example mapping (YAML form) and document:

  tags:
    Place:
      source_path: /
      key_path: /cid
      properties:
        cid: {json_path: /cid, type: INT}
        name: {json_path: /name, type: STRING}

  {"cid": 1, "name": "A"}

compiles to:

  INSERT VERTEX `Place` (`cid`, `name`) VALUES "1":(1, "A");

Vertices are emitted first (per mapping, in declaration order), then edges.
Records of a tag without dynamic fields are batched into multi-tuple INSERTs
and de-duplicated by vertex ID; tags with dynamic fields emit one UPSERT per
record because each record may carry a different property set.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from ....core.config import compiler_config
from ....core.errors import NebulaMapperError
from ....models.models import (
    EdgeMapping,
    ExtractedValue,
    GraphMapping,
    Property,
    Settings,
    ValueKind,
    VertexMapping,
)
from ..graph.identifiers import format_identifier, is_valid_identifier
from ..graph.schema_manager import get_graph_schema_manager, normalize_type_name
from ..json_path import PathError, PathNotFoundError, PathResolver, default_resolver
from ..transform import TransformError, TransformRegistry, TransformValue, default_registry

logger = logging.getLogger(__name__)

INTEGER_TYPES = frozenset({"INT", "INT8", "INT16", "INT32", "INT64"})
FLOAT_TYPES = frozenset({"FLOAT", "DOUBLE"})

STRING_ESCAPES = str.maketrans({
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
})


class StatementError(NebulaMapperError):
    """Raised when a record cannot be compiled into a statement."""

    def __init__(self, message: str, context: Optional[str] = None, json_path: Optional[str] = None):
        super().__init__(message, context)
        self.json_path = json_path

    def __str__(self) -> str:
        text = super().__str__()
        if self.json_path:
            return f"{text} at {self.json_path}"
        return text


class NullKeyError(StatementError):
    """A vertex or edge key resolved to null."""


class ValueConversionError(StatementError):
    """A value cannot be converted to its declared target type."""


def json_kind(value: Any) -> Optional[ValueKind]:
    """Return the literal kind of a JSON scalar, or None for objects/arrays/null."""
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT64
    if isinstance(value, float):
        return ValueKind.DOUBLE
    if isinstance(value, str):
        return ValueKind.STRING
    return None


def infer_type(value: Any) -> str:
    """Infer a native type from a JSON value's own kind; anything else is STRING."""
    kind = json_kind(value)
    return kind.value if kind is not None else "STRING"


def escape_string(value: str) -> str:
    return value.translate(STRING_ESCAPES)


def format_value(value: ExtractedValue) -> str:
    """Render an extracted value as a statement literal.

    Strings are double-quoted, booleans are true/false, null is NULL and
    numbers use their default text.
    """
    if value.is_null:
        return "NULL"
    if value.kind == ValueKind.STRING:
        return f'"{escape_string(value.value)}"'
    if value.kind == ValueKind.BOOL:
        return "true" if value.value else "false"
    if value.kind == ValueKind.INT64:
        return str(value.value)
    if not math.isfinite(value.value):
        raise ValueConversionError(f"Value conversion error: {value.value!r} is not a finite number")
    return repr(value.value)


def coerce_value(raw: Any, target_type: str, json_path: str) -> ExtractedValue:
    """Coerce a non-null JSON value to an abstract target type.

    Raises:
        ValueConversionError: The JSON kind does not fit the target type
    """
    normalized = normalize_type_name(target_type)
    kind = json_kind(raw)

    if normalized in INTEGER_TYPES:
        if kind == ValueKind.INT64:
            return ExtractedValue.of(raw, target_type)
        if kind == ValueKind.DOUBLE and math.isfinite(raw) and raw.is_integer():
            return ExtractedValue.of(int(raw), target_type)
    elif normalized in FLOAT_TYPES:
        if kind == ValueKind.INT64 or (kind == ValueKind.DOUBLE and math.isfinite(raw)):
            return ExtractedValue.of(float(raw), target_type)
    elif normalized == "BOOL":
        if kind == ValueKind.BOOL:
            return ExtractedValue.of(raw, target_type)
    elif kind == ValueKind.STRING:
        return ExtractedValue.of(raw, target_type)

    if kind == ValueKind.DOUBLE and not math.isfinite(raw):
        found = repr(raw)
    else:
        found = kind.value if kind is not None else type(raw).__name__
    raise ValueConversionError(
        f"Value conversion error: cannot convert {found} to {target_type}",
        json_path=json_path
    )


def key_text(raw: Any, key_path: str) -> str:
    """Convert a resolved key value to its ID text.

    Raises:
        NullKeyError: The key is null
        ValueConversionError: The key is a boolean, object or array
    """
    if raw is None:
        raise NullKeyError("Vertex ID cannot be null", json_path=key_path)
    kind = json_kind(raw)
    if kind == ValueKind.STRING:
        return raw
    if kind == ValueKind.INT64:
        return str(raw)
    if kind == ValueKind.DOUBLE:
        if not math.isfinite(raw):
            raise ValueConversionError(f"Invalid vertex ID: {raw!r}", json_path=key_path)
        if raw.is_integer():
            return str(int(raw))
        return repr(raw)
    found = kind.value if kind is not None else type(raw).__name__
    raise ValueConversionError(f"Invalid vertex ID type: {found}", json_path=key_path)


@dataclass
class _Batch:
    """Tuples waiting to be flushed into one INSERT statement."""
    header: str
    batch_size: int
    tuples: list[str] = field(default_factory=list)
    statement_count: int = 0

    def add(self, tuple_text: str, statements: list[str]):
        self.tuples.append(tuple_text)
        if len(self.tuples) >= self.batch_size:
            self.flush(statements)

    def flush(self, statements: list[str]):
        if not self.tuples:
            return
        statements.append(f"{self.header} VALUES {', '.join(self.tuples)};")
        logger.debug(f"Flushed {len(self.tuples)} tuples: {self.header}")
        self.tuples = []
        self.statement_count += 1


class StatementCompiler:
    """Compiles JSON documents into Nebula Graph data statements.

    The transform registry is frozen when the compiler is built, so custom
    transforms must be registered beforehand.
    """

    def __init__(self, registry: Optional[TransformRegistry] = None, resolver: Optional[PathResolver] = None):
        self.registry = registry if registry is not None else default_registry()
        self.registry.freeze()
        self.resolver = resolver if resolver is not None else default_resolver

    def _resolve(self, record: Any, path: str, context: str) -> Any:
        try:
            return self.resolver.resolve(record, path)
        except PathError as e:
            raise StatementError(f"Failed to extract value: {e.message}", context, path) from e

    def _records(self, document: Any, source_path: str, context: str) -> list[Any]:
        try:
            return self.resolver.get_array_or_single(document, source_path)
        except PathError as e:
            raise StatementError(f"Failed to resolve source path: {e.message}", context, source_path) from e

    def get_vertex_id(self, record: Any, key_paths: tuple[str, ...], settings: Settings, context: str = None) -> str:
        """Resolve a (possibly composite) key into a quoted vertex ID.

        Composite key parts are joined with ``settings.key_separator``.

        Raises:
            NullKeyError: Any key part is null
            ValueConversionError: A key part is not a string or number
            StatementError: A key path does not resolve
        """
        if not key_paths:
            raise StatementError("Key path is empty", context)
        parts = []
        for key_path in key_paths:
            raw = self._resolve(record, key_path, context)
            try:
                parts.append(key_text(raw, key_path))
            except StatementError as e:
                e.context = context
                raise
        return f'"{escape_string(settings.key_separator.join(parts))}"'

    def _apply_transform(self, raw: Any, prop: Property, settings: Settings, context: str) -> ExtractedValue:
        kind = json_kind(raw)
        if kind is None:
            raise StatementError("Unsupported value type for transformation", context, prop.json_path)

        params = dict(prop.transform.params)
        if prop.transform.name == "array_join" and not params.get("delimiter"):
            params["delimiter"] = settings.array_delimiter

        try:
            result = self.registry.apply(
                prop.transform.name,
                TransformValue(raw, kind.value, prop.target_type),
                params
            )
        except TransformError as e:
            raise StatementError(f"Transform error: {e}", context, prop.json_path) from e

        try:
            return ExtractedValue.of(result.value, prop.target_type)
        except TypeError as e:
            raise ValueConversionError(f"Transform result is not a literal: {e}", context, prop.json_path) from e

    def extract_value(self, record: Any, prop: Property, settings: Settings = Settings(), context: str = None) -> ExtractedValue:
        """Extract, transform or coerce one declared property of a record.

        A missing path on an optional property yields NULL; on any other
        property it is an error.

        Raises:
            StatementError: Path, transform or conversion failure
        """
        try:
            raw = self.resolver.resolve(record, prop.json_path)
        except PathNotFoundError as e:
            if prop.optional:
                return ExtractedValue.null(prop.target_type)
            raise StatementError(f"Failed to extract value: {e.message}", context, prop.json_path) from e
        except PathError as e:
            raise StatementError(f"Failed to extract value: {e.message}", context, prop.json_path) from e

        if raw is None:
            return ExtractedValue.null(prop.target_type)

        if prop.transform is not None:
            return self._apply_transform(raw, prop, settings, context)

        try:
            return coerce_value(raw, prop.target_type, prop.json_path)
        except ValueConversionError as e:
            e.context = context
            raise

    def process_dynamic_properties(self, record: Any, vertex: VertexMapping) -> list[tuple[str, ExtractedValue]]:
        """Collect undeclared scalar fields of a record as extra properties.

        Fields that are declared (by property name or by the first segment
        of a declared json_path), excluded, null, objects or arrays are
        skipped. So are keys that are not valid identifiers and fields whose
        inferred type is outside a non-empty ``allowed_types`` set.

        Raises:
            ValueConversionError: A field holds NaN or an infinity
        """
        if not isinstance(record, dict):
            return []

        config = vertex.dynamic_fields
        declared = {prop.name for prop in vertex.properties}
        for prop in vertex.properties:
            segments = self.resolver.get_segments(prop.json_path)
            if segments:
                declared.add(segments[0])
        allowed = {normalize_type_name(t) for t in config.allowed_types}

        extra = []
        for key, raw in record.items():
            if key in declared or key in config.excluded_properties:
                continue
            if json_kind(raw) is None:
                continue
            if not is_valid_identifier(key):
                logger.warning(f"Skipping dynamic field {vertex.tag_name}.{key!r}: not a valid property name")
                continue
            if isinstance(raw, float) and not math.isfinite(raw):
                raise ValueConversionError(
                    f"Value conversion error: {raw!r} is not a finite number", vertex.tag_name, f"/{key}"
                )
            inferred = infer_type(raw)
            if allowed and inferred not in allowed:
                logger.debug(f"Skipping dynamic field {vertex.tag_name}.{key}: {inferred} not allowed")
                continue
            extra.append((key, ExtractedValue.of(raw, inferred)))
        return extra

    def _format_properties(self, record: Any, properties: tuple[Property, ...], settings: Settings, context: str) -> list[str]:
        return [
            format_value(self.extract_value(record, prop, settings, f"{context}.{prop.name}"))
            for prop in properties
        ]

    def _compile_vertices(self, vertex: VertexMapping, document: Any, settings: Settings,
                          batch_size: int, seen_ids: set[str], statements: list[str]):
        tag = format_identifier(vertex.tag_name, settings)
        # Property list is fixed per tag for batched inserts
        prop_names = [format_identifier(prop.name, settings) for prop in vertex.properties]
        batch = _Batch(f"INSERT VERTEX {tag} ({', '.join(prop_names)})", batch_size)
        dynamic = vertex.dynamic_fields.enabled

        records = self._records(document, vertex.source_path, vertex.tag_name)
        skipped = 0
        for record in records:
            vertex_id = self.get_vertex_id(record, vertex.key_path, settings, vertex.tag_name)

            if not dynamic:
                if vertex_id in seen_ids:
                    skipped += 1
                    continue
                seen_ids.add(vertex_id)

            values = self._format_properties(record, vertex.properties, settings, vertex.tag_name)

            if dynamic:
                names = list(prop_names)
                for key, value in self.process_dynamic_properties(record, vertex):
                    names.append(format_identifier(key, settings))
                    values.append(format_value(value))
                statements.append(
                    f"UPSERT VERTEX {tag} {vertex_id} ({', '.join(names)}) VALUES ({', '.join(values)});"
                )
            else:
                batch.add(f"{vertex_id}:({', '.join(values)})", statements)

        batch.flush(statements)
        if skipped:
            logger.debug(f"Skipped {skipped} duplicate {vertex.tag_name} records")
        logger.info(f"Compiled {len(records) - skipped} {vertex.tag_name} records")

    def _compile_edges(self, edge: EdgeMapping, document: Any, settings: Settings,
                       batch_size: int, statements: list[str]):
        name = format_identifier(edge.edge_name, settings)
        prop_names = [format_identifier(prop.name, settings) for prop in edge.properties]
        batch = _Batch(f"INSERT EDGE {name} ({', '.join(prop_names)})", batch_size)

        records = self._records(document, edge.source_path, edge.edge_name)
        for record in records:
            src_id = self.get_vertex_id(record, edge.from_.key_path, settings, f"{edge.edge_name}.from")
            dst_id = self.get_vertex_id(record, edge.to.key_path, settings, f"{edge.edge_name}.to")
            values = self._format_properties(record, edge.properties, settings, edge.edge_name)
            batch.add(f"{src_id} -> {dst_id}:({', '.join(values)})", statements)

        batch.flush(statements)
        logger.info(f"Compiled {len(records)} {edge.edge_name} edges")

    def compile(self, mapping: GraphMapping, document: Any, batch_size: Optional[int] = None) -> list[str]:
        """Compile a document into data statements.

        Args:
            mapping: Graph mapping to apply
            document: Parsed JSON document
            batch_size: Max tuples per INSERT; defaults to the configured batch size

        Returns:
            Ordered statements: all vertex mappings, then all edge mappings

        Raises:
            IdentifierError: A tag, edge or property name is invalid or duplicated
            StatementError: The first failure; no partial output is returned
        """
        batch_size = compiler_config.get_batch_size(batch_size)
        if batch_size < 1:
            raise StatementError(f"Batch size must be at least 1, got {batch_size}")

        schema_manager = get_graph_schema_manager()
        for element in (*mapping.vertices, *mapping.edges):
            schema_manager.validate_element_names(element)

        settings = mapping.settings
        statements: list[str] = []
        seen_ids: dict[str, set[str]] = {}

        for vertex in mapping.vertices:
            self._compile_vertices(
                vertex, document, settings, batch_size,
                seen_ids.setdefault(vertex.tag_name, set()), statements
            )

        for edge in mapping.edges:
            self._compile_edges(edge, document, settings, batch_size, statements)

        logger.info(
            f"Generated {len(statements)} statements from {len(mapping.vertices)} vertex "
            f"and {len(mapping.edges)} edge mappings (batch size {batch_size})"
        )
        return statements


def generate_batch_statements(
    mapping: GraphMapping,
    document: Any,
    batch_size: Optional[int] = None,
    registry: Optional[TransformRegistry] = None
) -> list[str]:
    """Compile ``document`` with a one-off compiler.

    Args:
        mapping: Graph mapping to apply
        document: Parsed JSON document
        batch_size: Max tuples per INSERT statement
        registry: Transform registry; the built-ins when omitted

    Returns:
        Ordered list of statements
    """
    return StatementCompiler(registry=registry).compile(mapping, document, batch_size)
