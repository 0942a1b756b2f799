#!/usr/bin/env python3
"""Mapping validation before compilation.

This module checks a loaded GraphMapping to catch problems that would
otherwise surface halfway through a compile:
- Tag, edge and property names are valid Nebula identifiers
- Property types are known abstract types
- JSON paths are well formed (and resolve, when a sample document is given)
- Transforms are registered
- Edge endpoints refer to declared tags

Unlike compilation, validation collects every problem it finds.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ....models.models import DynamicFieldsConfig, GraphMapping, Property
from ..graph.identifiers import is_valid_identifier
from ..graph.schema_manager import SchemaTypeError, get_graph_schema_manager
from ..json_path import PathError, PathResolver, default_resolver
from ..transform import TransformRegistry

logger = logging.getLogger(__name__)


class ValidationSeverity(str, Enum):
    """Severity level for validation messages."""
    ERROR = "error"      # Compilation would fail
    WARNING = "warning"  # Compiles, but likely not what was intended


class ValidationErrorType(str, Enum):
    """Types of validation errors that block compilation."""
    INVALID_IDENTIFIER = "invalid_identifier"
    DUPLICATE_PROPERTY = "duplicate_property"
    INVALID_TYPE = "invalid_type"
    INVALID_PATH = "invalid_path"
    EMPTY_KEY = "empty_key"
    UNKNOWN_TRANSFORM = "unknown_transform"
    UNRESOLVED_SOURCE = "unresolved_source"


class ValidationWarningType(str, Enum):
    """Types of validation warnings."""
    UNDECLARED_ENDPOINT = "undeclared_endpoint"
    DYNAMIC_TAGS_DISABLED = "dynamic_tags_disabled"


@dataclass
class ValidationMessage:
    """A validation message (error or warning)."""
    severity: ValidationSeverity
    type: str
    message: str
    element: Optional[str] = None
    recommendation: Optional[str] = None


@dataclass
class ValidationSummary:
    """Summary statistics for the validated mapping."""
    tags: int = 0
    edges: int = 0
    properties: int = 0


@dataclass
class ValidationResult:
    """Result of mapping validation."""
    valid: bool
    can_proceed: bool  # False if errors, True if only warnings
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)
    summary: Optional[ValidationSummary] = None


def has_balanced_brackets(path: str) -> bool:
    depth = 0
    for char in path:
        if char == "[":
            depth += 1
            if depth > 1:
                return False
        elif char == "]":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class MappingValidator:
    """Validates a GraphMapping before it is compiled."""

    def __init__(self, resolver: Optional[PathResolver] = None):
        self.resolver = resolver if resolver is not None else default_resolver
        self.schema_manager = get_graph_schema_manager()

    def _error(self, result: ValidationResult, error_type: ValidationErrorType, message: str,
               element: Optional[str] = None, recommendation: Optional[str] = None):
        result.errors.append(ValidationMessage(
            severity=ValidationSeverity.ERROR,
            type=error_type.value,
            message=message,
            element=element,
            recommendation=recommendation
        ))

    def _warning(self, result: ValidationResult, warning_type: ValidationWarningType, message: str,
                 element: Optional[str] = None, recommendation: Optional[str] = None):
        result.warnings.append(ValidationMessage(
            severity=ValidationSeverity.WARNING,
            type=warning_type.value,
            message=message,
            element=element,
            recommendation=recommendation
        ))

    def is_known_type(self, type_name: str) -> bool:
        try:
            self.schema_manager.convert_to_nebula_type(type_name)
        except SchemaTypeError:
            return False
        return True

    def validate_identifier(self, name: str, element: str, result: ValidationResult, what: str = "identifier"):
        if not is_valid_identifier(name):
            self._error(
                result, ValidationErrorType.INVALID_IDENTIFIER,
                f"Invalid {what}: {name!r}",
                element=element,
                recommendation="Start with a letter or underscore, use only letters, digits and underscores, "
                               "and avoid reserved keywords"
            )

    def validate_path(self, path: str, element: str, result: ValidationResult, what: str = "JSON path",
                      allow_root: bool = False):
        """Check a path is non-empty, bracket-balanced and uses numeric indexes.

        With ``allow_root`` an empty path is accepted as the document root.
        """
        if not path:
            if allow_root:
                return
            self._error(result, ValidationErrorType.INVALID_PATH, f"{what} cannot be empty", element=element)
            return
        if not has_balanced_brackets(path):
            self._error(result, ValidationErrorType.INVALID_PATH, f"Unbalanced brackets in {what}: {path}", element=element)
            return
        try:
            self.resolver.validate_path(path)
        except PathError as e:
            self._error(result, ValidationErrorType.INVALID_PATH, f"Invalid {what} {path}: {e.message}", element=element)

    def validate_key_paths(self, key_paths: tuple[str, ...], element: str, result: ValidationResult):
        if not key_paths:
            self._error(result, ValidationErrorType.EMPTY_KEY, "Key path cannot be empty", element=element)
            return
        for key_path in key_paths:
            self.validate_path(key_path, element, result, "key path")

    def validate_properties(self, properties: tuple[Property, ...], element: str, result: ValidationResult,
                            registry: Optional[TransformRegistry] = None):
        """Validate names, types, paths and transforms of an element's properties."""
        seen = set()
        for prop in properties:
            prop_element = f"{element}.{prop.name}"
            if prop.name in seen:
                self._error(result, ValidationErrorType.DUPLICATE_PROPERTY,
                            f"Duplicate property name: {prop.name}", element=element)
            seen.add(prop.name)

            self.validate_identifier(prop.name, prop_element, result, "property name")
            if not self.is_known_type(prop.target_type):
                self._error(result, ValidationErrorType.INVALID_TYPE,
                            f"Invalid property type: {prop.target_type}", element=prop_element)
            self.validate_path(prop.json_path, prop_element, result)

            if prop.transform is not None and registry is not None and not registry.has_transform(prop.transform.name):
                self._error(
                    result, ValidationErrorType.UNKNOWN_TRANSFORM,
                    f"Transform not found: {prop.transform.name}",
                    element=prop_element,
                    recommendation=f"Use one of: {', '.join(registry.names())}"
                )

    def validate_dynamic_fields(self, config: DynamicFieldsConfig, element: str, mapping: GraphMapping,
                                result: ValidationResult):
        if not config.enabled:
            return
        for type_name in sorted(config.allowed_types):
            if not self.is_known_type(type_name):
                self._error(result, ValidationErrorType.INVALID_TYPE,
                            f"Invalid dynamic field type: {type_name}", element=element)
        if not mapping.settings.allow_dynamic_tags:
            self._warning(
                result, ValidationWarningType.DYNAMIC_TAGS_DISABLED,
                "Dynamic fields are enabled but settings.dynamic_tags is false",
                element=element,
                recommendation="Set dynamic_tags: true in settings, or disable dynamic_fields for this tag"
            )

    def validate_source(self, document: Any, source_path: str, element: str, result: ValidationResult):
        if not self.resolver.has_path(document, source_path):
            self._error(result, ValidationErrorType.UNRESOLVED_SOURCE,
                        f"Source path does not resolve in document: {source_path}", element=element)

    def validate(
        self,
        mapping: GraphMapping,
        registry: Optional[TransformRegistry] = None,
        document: Any = None
    ) -> ValidationResult:
        """Validate a graph mapping.

        Args:
            mapping: Mapping to validate
            registry: When given, transforms must be registered in it
            document: When given, every source path must resolve in it

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(valid=True, can_proceed=True)
        declared_tags = {vertex.tag_name for vertex in mapping.vertices}

        for vertex in mapping.vertices:
            element = vertex.tag_name
            self.validate_identifier(element, element, result, "tag name")
            self.validate_path(vertex.source_path, element, result, "source path", allow_root=True)
            self.validate_key_paths(vertex.key_path, element, result)
            self.validate_properties(vertex.properties, element, result, registry)
            self.validate_dynamic_fields(vertex.dynamic_fields, element, mapping, result)
            if document is not None:
                self.validate_source(document, vertex.source_path, element, result)

        for edge in mapping.edges:
            element = edge.edge_name
            self.validate_identifier(element, element, result, "edge name")
            self.validate_path(edge.source_path, element, result, "source path", allow_root=True)
            for label, endpoint in (("source", edge.from_), ("target", edge.to)):
                self.validate_identifier(endpoint.tag_name, element, result, f"{label} tag identifier")
                self.validate_key_paths(endpoint.key_path, f"{element}.{label}", result)
                if endpoint.tag_name not in declared_tags:
                    self._warning(
                        result, ValidationWarningType.UNDECLARED_ENDPOINT,
                        f"Edge {label} tag '{endpoint.tag_name}' is not declared as a tag mapping",
                        element=element
                    )
            self.validate_properties(edge.properties, element, result, registry)
            if document is not None:
                self.validate_source(document, edge.source_path, element, result)

        result.summary = ValidationSummary(
            tags=len(mapping.vertices),
            edges=len(mapping.edges),
            properties=sum(len(v.properties) for v in mapping.vertices) + sum(len(e.properties) for e in mapping.edges)
        )
        result.valid = len(result.errors) == 0
        result.can_proceed = len(result.errors) == 0

        if result.errors:
            logger.warning(f"Mapping validation found {len(result.errors)} errors and {len(result.warnings)} warnings")
        else:
            logger.info(f"Mapping validation passed with {len(result.warnings)} warnings")

        return result
