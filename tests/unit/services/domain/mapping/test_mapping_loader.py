#!/usr/bin/env python3
"""Unit tests for loading mapping configurations."""

from pathlib import Path
from unittest.mock import patch

import pytest

from nebula_mapper.core.config import compiler_config
from nebula_mapper.services.domain.mapping import MappingError, load_mapping, load_mapping_file

FIXTURES = Path(__file__).parent.parent.parent.parent.parent / "fixtures"


class TestLoadMappingFile:
    def test_fixture_mapping(self):
        mapping = load_mapping_file(FIXTURES / "place_mapping.yaml")

        assert [v.tag_name for v in mapping.vertices] == ["Place", "User"]
        assert [e.edge_name for e in mapping.edges] == ["Comment"]
        assert mapping.settings.default_string_length == 128
        assert mapping.settings.allow_dynamic_tags is True

        place, user = mapping.vertices
        assert place.source_path == "/basicInfo"
        assert place.key_path == ("/cid",)
        assert [p.name for p in place.properties] == ["cid", "name", "phone"]
        assert place.properties[0].indexable
        assert place.properties[2].optional

        assert [p.name for p in user.properties] == ["user_id", "username"]
        assert user.dynamic_fields.enabled
        assert user.dynamic_fields.allowed_types == frozenset({"INT", "STRING"})
        assert user.dynamic_fields.excluded_properties == frozenset({"profile"})

    def test_fixture_edge(self):
        comment = load_mapping_file(FIXTURES / "place_mapping.yaml").edges[0]

        assert comment.from_.tag_name == "User"
        assert comment.from_.key_path == ("/kakaoMapUserId",)
        assert comment.to.tag_name == "Place"
        assert comment.to.key_path == ("/placeId",)
        liked, date = comment.properties[1], comment.properties[2]
        assert liked.transform.name == "to_boolean"
        assert liked.transform.params == {}
        assert date.transform.name == "time_format"
        assert date.transform.params == {"format": "%Y.%m.%d."}

    def test_missing_file(self, tmp_path):
        with pytest.raises(MappingError, match="Failed to read mapping file"):
            load_mapping_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("tags: [unclosed\n", encoding="utf-8")
        with pytest.raises(MappingError, match="Failed to parse YAML"):
            load_mapping_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(MappingError, match="empty"):
            load_mapping_file(path)


class TestLoadMapping:
    def test_aliases(self):
        mapping = load_mapping({
            "tags": {
                "Item": {
                    "json_path": "/items",
                    "key_field": "/sku",
                    "allow_dynamic_fields": True,
                    "properties": {
                        "sku": {"json": "/sku", "nebula_type": "STRING", "indexable": True, "default": "none"},
                    },
                },
            },
        })

        item = mapping.vertices[0]
        assert item.source_path == "/items"
        assert item.key_path == ("/sku",)
        assert item.dynamic_fields.enabled
        prop = item.properties[0]
        assert prop.json_path == "/sku"
        assert prop.target_type == "STRING"
        assert prop.indexable
        assert prop.default_value == "none"

    def test_source_path_defaults_to_root(self):
        mapping = load_mapping({
            "tags": {"Place": {"key_path": "/cid", "properties": {"cid": {"json_path": "/cid", "type": "INT"}}}},
            "edges": {"Self": {"from": {"tag": "Place", "key_path": "/cid"}, "to": {"tag": "Place", "key_path": "/cid"}}},
        })
        assert mapping.vertices[0].source_path == "/"
        assert mapping.edges[0].source_path == "/"

    def test_composite_keys(self):
        mapping = load_mapping({"tags": {"Stop": {"source_path": "/", "keys": ["/line", "/seq"]}}})
        assert mapping.vertices[0].key_path == ("/line", "/seq")

    def test_flat_edge_endpoints(self):
        mapping = load_mapping({
            "edges": {
                "Comment": {
                    "source_path": "/list",
                    "source_tag": "User",
                    "source_key": "/userId",
                    "target_tag": "Place",
                    "target_key": "/cid",
                },
            },
        })
        edge = mapping.edges[0]
        assert (edge.from_.tag_name, edge.from_.key_path) == ("User", ("/userId",))
        assert (edge.to.tag_name, edge.to.key_path) == ("Place", ("/cid",))
        assert edge.properties == ()

    def test_list_form_tags(self):
        mapping = load_mapping({"tags": [{"name": "A", "source_path": "/a", "key_path": "/id"}]})
        assert mapping.vertices[0].tag_name == "A"

    def test_bool_default_and_params_stringified(self):
        mapping = load_mapping({"tags": {"A": {"key_path": "/id", "properties": {
            "on": {"json_path": "/on", "type": "BOOL", "default": False},
            "tags": {"json_path": "/tags", "type": "STRING",
                     "transform": {"type": "array_join", "params": {"delimiter": 1}}},
        }}}})
        on, tags = mapping.vertices[0].properties
        assert on.default_value == "false"
        assert tags.transform.params == {"delimiter": "1"}

    def test_settings_defaults(self):
        settings = load_mapping({}).settings
        assert settings.default_string_length is None
        assert settings.array_delimiter == ","
        assert settings.allow_dynamic_tags is False
        assert settings.key_separator == "_"
        assert settings.quote_all_identifiers is True

    def test_key_separator_from_config(self):
        with patch.object(compiler_config, "KEY_SEPARATOR", "-"):
            assert load_mapping({}).settings.key_separator == "-"
        assert load_mapping({"settings": {"key_separator": "|"}}).settings.key_separator == "|"

    def test_mapping_is_frozen(self):
        mapping = load_mapping({"tags": {"A": {"key_path": "/id"}}})
        with pytest.raises(Exception):
            mapping.vertices[0].tag_name = "B"

    @pytest.mark.parametrize("config,message", [
        ({"tags": {"A": {"source_path": "/"}}}, "Missing key path"),
        ({"tags": {"A": {"key_path": []}}}, "cannot be empty"),
        ({"tags": {"A": {"key_path": "/id", "properties": {"p": {"type": "INT"}}}}}, "json_path"),
        ({"tags": {"A": {"key_path": "/id", "properties": {"p": {"json_path": "/p"}}}}}, "type"),
        ({"tags": {"A": {"key_path": "/id", "properties": [{"type": "INT"}]}}}, "name"),
        ({"tags": {"A": {"key_path": "/id", "properties": {"p": {"json_path": "/p", "type": "INT",
                                                                  "transform": {"params": {}}}}}}}, "Transform needs"),
        ({"edges": {"E": {"from": {"key_path": "/a"}, "to": {"tag": "B", "key_path": "/b"}}}}, "tag"),
        ({"tags": "not a mapping"}, "Expected a mapping or a list"),
        ({"tags": {"A": "oops"}}, "Expected a mapping"),
        (["not", "a", "dict"], "Expected a mapping"),
    ])
    def test_malformed(self, config, message):
        with pytest.raises(MappingError, match=message):
            load_mapping(config)

    def test_pydantic_errors_wrapped(self):
        with pytest.raises(MappingError, match="Invalid mapping") as exc_info:
            load_mapping({"tags": {"A": {"key_path": "/id", "properties": {
                "p": {"json_path": "/p", "type": "STRING", "max_length": "lots"},
            }}}})
        assert exc_info.value.__cause__ is not None
