#!/usr/bin/env python3

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Pydantic Models
#
# Mapping models are built once from a parsed configuration and are frozen
# for the duration of a compile run.


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_string_length: Optional[int] = None  # None or 0 -> per-type default
    array_delimiter: str = ","
    allow_dynamic_tags: bool = False
    key_separator: str = "_"  # Joins composite key parts
    quote_all_identifiers: bool = True


class TransformSpec(BaseModel):
    """Named transform plus its string parameters."""
    model_config = ConfigDict(frozen=True)

    name: str
    params: dict[str, str] = {}


class Property(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    json_path: str
    target_type: str  # Abstract type: BOOL, INT, FLOAT, DOUBLE, STRING, ...
    optional: bool = False
    indexable: bool = False
    default_value: Optional[str] = None
    max_length: Optional[int] = None  # For STRING / FIXED_STRING
    transform: Optional[TransformSpec] = None


class DynamicFieldsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    allowed_types: frozenset[str] = frozenset()  # Empty -> unrestricted
    excluded_properties: frozenset[str] = frozenset()


class VertexMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag_name: str
    source_path: str
    key_path: tuple[str, ...]  # More than one entry -> composite key
    properties: tuple[Property, ...] = ()
    dynamic_fields: DynamicFieldsConfig = DynamicFieldsConfig()


class EdgeEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag_name: str
    key_path: tuple[str, ...]


class EdgeMapping(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    edge_name: str
    source_path: str
    from_: EdgeEndpoint = Field(alias="from")
    to: EdgeEndpoint
    properties: tuple[Property, ...] = ()


class GraphMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    vertices: tuple[VertexMapping, ...] = ()
    edges: tuple[EdgeMapping, ...] = ()
    settings: Settings = Settings()


# Transient values


@dataclass
class EdgeConstraints:
    """Admissible endpoint tags of an edge type."""
    from_types: set[str] = field(default_factory=set)
    to_types: set[str] = field(default_factory=set)


@dataclass
class SchemaProperty:
    name: str
    type: str  # Store-native type string, e.g. INT64 or STRING(256)
    nullable: bool = False
    indexable: bool = False
    default_value: Optional[str] = None
    fixed_length: Optional[int] = None


@dataclass
class SchemaElement:
    """A tag or edge type as it will be declared in the store."""
    name: str
    is_edge: bool = False
    properties: list[SchemaProperty] = field(default_factory=list)
    edge_constraints: EdgeConstraints = field(default_factory=EdgeConstraints)


class ValueKind(str, Enum):
    """Variants of an extracted literal."""
    STRING = "STRING"
    INT64 = "INT64"
    DOUBLE = "DOUBLE"
    BOOL = "BOOL"


ScalarValue = Union[str, int, float, bool]


@dataclass
class ExtractedValue:
    """A property value ready for formatting.

    ``kind`` names which variant ``value`` holds; ``target_type`` is the
    declared type of the owning property. Null values have no kind.
    """
    target_type: str
    kind: Optional[ValueKind] = None
    value: Optional[ScalarValue] = None
    is_null: bool = False

    @classmethod
    def null(cls, target_type: str) -> "ExtractedValue":
        return cls(target_type=target_type, is_null=True)

    @classmethod
    def of(cls, value: ScalarValue, target_type: str) -> "ExtractedValue":
        """Wrap a Python scalar, tagging it with the matching kind."""
        # bool first: bool is a subclass of int
        if isinstance(value, bool):
            kind = ValueKind.BOOL
        elif isinstance(value, int):
            kind = ValueKind.INT64
        elif isinstance(value, float):
            kind = ValueKind.DOUBLE
        elif isinstance(value, str):
            kind = ValueKind.STRING
        else:
            raise TypeError(f"Unsupported literal type: {type(value).__name__}")
        return cls(target_type=target_type, kind=kind, value=value)
