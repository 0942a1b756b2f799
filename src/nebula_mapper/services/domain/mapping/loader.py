#!/usr/bin/env python3
"""Load GraphMapping objects from parsed YAML/JSON mapping configurations.

Canonical form:

  settings:
    string_length: 256
    array_delimiter: ","
    dynamic_tags: false
    key_separator: "_"
  tags:
    Place:
      source_path: /basicInfo
      key_path: /cid              # or a list of paths for a composite key
      dynamic_fields: false       # or {enabled, allowed_types, excluded_properties}
      properties:
        cid: {json_path: /cid, type: INT, index: true}
  edges:
    Comment:
      source_path: /comments
      from: {tag: User, key_path: /userId}
      to: {tag: Place, key_path: /cid}
      properties:
        rating: {json_path: /rating, type: INT, transform: {type: price_normalize}}

Properties (and tags/edges) may also be given as a list of dicts carrying a
``name``. Common alternative key names are accepted, see the ``*_KEYS``
tuples below.
"""

import logging
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import yaml
from pydantic import ValidationError

from ....core.config import compiler_config
from ....core.errors import NebulaMapperError
from ....models.models import GraphMapping

logger = logging.getLogger(__name__)

# Accepted spellings, first match wins
SOURCE_PATH_KEYS = ("source_path", "json_path")
KEY_PATH_KEYS = ("key_path", "keys", "key", "key_field")
PROPERTY_PATH_KEYS = ("json_path", "json")
PROPERTY_TYPE_KEYS = ("type", "nebula_type")
INDEXABLE_KEYS = ("indexable", "index")
DEFAULT_KEYS = ("default", "default_value")
DYNAMIC_FIELDS_KEYS = ("dynamic_fields", "allow_dynamic_fields")
TRANSFORM_NAME_KEYS = ("type", "name")


class MappingError(NebulaMapperError):
    """Raised when a mapping configuration is malformed."""


def _first(raw: dict[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _require_dict(raw: Any, context: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MappingError(f"Expected a mapping, got {type(raw).__name__}", context)
    return raw


def _named_items(raw: Any, context: str, name_from_path: bool = False) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield (name, definition) pairs from a name-keyed mapping or a list of dicts."""
    if raw is None:
        return
    if isinstance(raw, dict):
        for name, definition in raw.items():
            yield str(name), _require_dict(definition, f"{context}.{name}")
        return
    if isinstance(raw, list):
        for position, definition in enumerate(raw):
            definition = _require_dict(definition, f"{context}[{position}]")
            name = definition.get("name")
            if not name:
                # Unnamed properties take the last segment of their path
                path = _first(definition, PROPERTY_PATH_KEYS) if name_from_path else None
                if not path:
                    raise MappingError("Entry needs a 'name'", f"{context}[{position}]")
                name = str(path).rstrip("/").rsplit("/", 1)[-1]
            yield str(name), definition
        return
    raise MappingError(f"Expected a mapping or a list, got {type(raw).__name__}", context)


def _key_paths(raw: Any, context: str) -> list[str]:
    if raw is None:
        raise MappingError("Missing key path", context)
    if isinstance(raw, (list, tuple)):
        if not raw:
            raise MappingError("Key path list cannot be empty", context)
        return [str(part) for part in raw]
    return [str(raw)]


def _transform(raw: Any, context: str) -> Optional[dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return {"name": raw, "params": {}}
    raw = _require_dict(raw, context)
    name = _first(raw, TRANSFORM_NAME_KEYS)
    if not name:
        raise MappingError("Transform needs a 'type'", context)
    params = _require_dict(raw.get("params") or {}, f"{context}.params")
    return {"name": str(name), "params": {str(k): str(v) for k, v in params.items()}}


def _property(name: str, raw: dict[str, Any], context: str) -> dict[str, Any]:
    json_path = _first(raw, PROPERTY_PATH_KEYS)
    if json_path is None:
        raise MappingError("Property needs a 'json_path'", context)
    target_type = _first(raw, PROPERTY_TYPE_KEYS)
    if target_type is None:
        raise MappingError("Property needs a 'type'", context)

    default_value = _first(raw, DEFAULT_KEYS)
    if isinstance(default_value, bool):
        default_value = "true" if default_value else "false"

    return {
        "name": name,
        "json_path": str(json_path),
        "target_type": str(target_type),
        "optional": bool(raw.get("optional", False)),
        "indexable": bool(_first(raw, INDEXABLE_KEYS, False)),
        "default_value": None if default_value is None else str(default_value),
        "max_length": raw.get("max_length"),
        "transform": _transform(raw.get("transform"), f"{context}.transform"),
    }


def _properties(raw: Any, context: str) -> list[dict[str, Any]]:
    return [
        _property(name, definition, f"{context}.{name}")
        for name, definition in _named_items(raw, context, name_from_path=True)
    ]


def _dynamic_fields(raw: Any, context: str) -> dict[str, Any]:
    if raw is None or isinstance(raw, bool):
        return {"enabled": bool(raw)}
    raw = _require_dict(raw, context)
    return {
        "enabled": bool(raw.get("enabled", True)),
        "allowed_types": [str(t) for t in raw.get("allowed_types") or []],
        "excluded_properties": [str(p) for p in raw.get("excluded_properties") or []],
    }


def _endpoint(raw: Any, context: str) -> dict[str, Any]:
    raw = _require_dict(raw, context)
    tag = raw.get("tag")
    if not tag:
        raise MappingError("Edge endpoint needs a 'tag'", context)
    return {"tag_name": str(tag), "key_path": _key_paths(_first(raw, KEY_PATH_KEYS), context)}


def _vertex(name: str, raw: dict[str, Any]) -> dict[str, Any]:
    context = f"tags.{name}"
    return {
        "tag_name": name,
        "source_path": str(_first(raw, SOURCE_PATH_KEYS, "/")),
        "key_path": _key_paths(_first(raw, KEY_PATH_KEYS), context),
        "properties": _properties(raw.get("properties"), f"{context}.properties"),
        "dynamic_fields": _dynamic_fields(_first(raw, DYNAMIC_FIELDS_KEYS), f"{context}.dynamic_fields"),
    }


def _edge(name: str, raw: dict[str, Any]) -> dict[str, Any]:
    context = f"edges.{name}"
    if "from" in raw or "to" in raw:
        source = _endpoint(raw.get("from"), f"{context}.from")
        target = _endpoint(raw.get("to"), f"{context}.to")
    else:
        # Flat form: source_tag/source_key, target_tag/target_key
        source = _endpoint({"tag": raw.get("source_tag"), "key_path": raw.get("source_key")}, f"{context}.from")
        target = _endpoint({"tag": raw.get("target_tag"), "key_path": raw.get("target_key")}, f"{context}.to")
    return {
        "edge_name": name,
        "source_path": str(_first(raw, SOURCE_PATH_KEYS, "/")),
        "from": source,
        "to": target,
        "properties": _properties(raw.get("properties"), f"{context}.properties"),
    }


def _settings(raw: Any) -> dict[str, Any]:
    raw = _require_dict(raw or {}, "settings")
    settings = {
        "default_string_length": _first(raw, ("string_length", "default_string_length")),
        "array_delimiter": raw.get("array_delimiter", ","),
        "allow_dynamic_tags": bool(_first(raw, ("dynamic_tags", "allow_dynamic_tags"), False)),
        "key_separator": raw.get("key_separator", compiler_config.KEY_SEPARATOR),
        "quote_all_identifiers": bool(raw.get("quote_all_identifiers", compiler_config.QUOTE_ALL_IDENTIFIERS)),
    }
    return settings


def load_mapping(config: dict[str, Any]) -> GraphMapping:
    """Build a GraphMapping from a parsed mapping configuration.

    Args:
        config: Parsed YAML/JSON mapping (see module docstring)

    Returns:
        Frozen GraphMapping

    Raises:
        MappingError: The configuration is malformed
    """
    config = _require_dict(config, "mapping")
    try:
        mapping = GraphMapping.model_validate({
            "settings": _settings(config.get("settings")),
            "vertices": [_vertex(name, raw) for name, raw in _named_items(config.get("tags"), "tags")],
            "edges": [_edge(name, raw) for name, raw in _named_items(config.get("edges"), "edges")],
        })
    except ValidationError as e:
        raise MappingError(f"Invalid mapping: {e}") from e

    logger.info(f"Loaded mapping with {len(mapping.vertices)} tags and {len(mapping.edges)} edges")
    return mapping


def load_mapping_file(path: Union[str, Path]) -> GraphMapping:
    """Load a mapping from a YAML (or JSON) file.

    Raises:
        MappingError: The file cannot be read or parsed, or the mapping is malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise MappingError(f"Failed to read mapping file: {e}", str(path)) from e
    except yaml.YAMLError as e:
        raise MappingError(f"Failed to parse YAML content: {e}", str(path)) from e

    if config is None:
        raise MappingError("Mapping file is empty", str(path))
    logger.debug(f"Parsed mapping file {path}")
    return load_mapping(config)
