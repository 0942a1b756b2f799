#!/usr/bin/env python3
"""Unit tests for mapping validation."""

from nebula_mapper.services.domain.mapping.validation import (
    MappingValidator,
    ValidationErrorType,
    ValidationSeverity,
    ValidationWarningType,
    has_balanced_brackets,
)
from nebula_mapper.services.domain.transform import default_registry
from tests.utils.factories import (
    DynamicFieldsConfigFactory,
    EdgeEndpointFactory,
    EdgeMappingFactory,
    GraphMappingFactory,
    PropertyFactory,
    SettingsFactory,
    TransformSpecFactory,
    VertexMappingFactory,
)


def error_types(result):
    return [m.type for m in result.errors]


def warning_types(result):
    return [m.type for m in result.warnings]


def valid_mapping():
    user = VertexMappingFactory(tag_name="User", key_path=("/userId",),
                                properties=(PropertyFactory(name="userId"),))
    place = VertexMappingFactory(tag_name="Place", key_path=("/placeId",),
                                 properties=(PropertyFactory(name="placeId", target_type="INT"),))
    likes = EdgeMappingFactory(edge_name="Likes")
    return GraphMappingFactory(vertices=(user, place), edges=(likes,))


class TestValidMapping:
    def test_passes(self):
        result = MappingValidator().validate(valid_mapping(), registry=default_registry())

        assert result.valid
        assert result.can_proceed
        assert result.errors == []
        assert result.warnings == []
        assert result.summary.tags == 2
        assert result.summary.edges == 1
        assert result.summary.properties == 2


class TestErrors:
    def test_invalid_identifiers(self):
        vertex = VertexMappingFactory(tag_name="2bad", properties=(PropertyFactory(name="bad-prop"),))
        result = MappingValidator().validate(GraphMappingFactory(vertices=(vertex,)))

        assert not result.valid
        assert not result.can_proceed
        assert error_types(result) == [ValidationErrorType.INVALID_IDENTIFIER.value] * 2
        assert result.errors[0].severity == ValidationSeverity.ERROR
        assert result.errors[1].element == "2bad.bad-prop"

    def test_collects_every_error(self):
        vertex = VertexMappingFactory(tag_name="Thing", key_path=(), properties=(
            PropertyFactory(name="a", target_type="BLOB"),
            PropertyFactory(name="a", json_path=""),
            PropertyFactory(name="c", json_path="/x[0"),
        ))
        result = MappingValidator().validate(GraphMappingFactory(vertices=(vertex,)))

        assert sorted(error_types(result)) == sorted([
            ValidationErrorType.EMPTY_KEY.value,
            ValidationErrorType.INVALID_TYPE.value,
            ValidationErrorType.DUPLICATE_PROPERTY.value,
            ValidationErrorType.INVALID_PATH.value,
            ValidationErrorType.INVALID_PATH.value,
        ])

    def test_bad_index_in_path(self):
        vertex = VertexMappingFactory(properties=(PropertyFactory(name="p", json_path="/list/[first]"),))
        result = MappingValidator().validate(GraphMappingFactory(vertices=(vertex,)))
        assert error_types(result) == [ValidationErrorType.INVALID_PATH.value]

    def test_unknown_transform(self):
        prop = PropertyFactory(name="p", transform=TransformSpecFactory(name="nope"))
        vertex = VertexMappingFactory(properties=(prop,))
        mapping = GraphMappingFactory(vertices=(vertex,))

        result = MappingValidator().validate(mapping, registry=default_registry())
        assert error_types(result) == [ValidationErrorType.UNKNOWN_TRANSFORM.value]
        assert "to_boolean" in result.errors[0].recommendation

        # Without a registry transforms are not checked
        assert MappingValidator().validate(mapping).valid

    def test_invalid_dynamic_type(self):
        vertex = VertexMappingFactory(dynamic_fields=DynamicFieldsConfigFactory(allowed_types=frozenset({"INT", "LIST"})))
        mapping = GraphMappingFactory(vertices=(vertex,), settings=SettingsFactory(allow_dynamic_tags=True))

        result = MappingValidator().validate(mapping)
        assert error_types(result) == [ValidationErrorType.INVALID_TYPE.value]
        assert "LIST" in result.errors[0].message

    def test_invalid_endpoint_tag(self):
        edge = EdgeMappingFactory(from_=EdgeEndpointFactory(tag_name="bad tag"))
        result = MappingValidator().validate(GraphMappingFactory(edges=(edge,)))
        assert ValidationErrorType.INVALID_IDENTIFIER.value in error_types(result)

    def test_empty_source_path_is_root(self):
        vertex = VertexMappingFactory(tag_name="Place", source_path="", key_path=("/cid",), properties=())
        edge = EdgeMappingFactory(source_path="", from_=EdgeEndpointFactory(tag_name="Place", key_path=("/cid",)),
                                  to=EdgeEndpointFactory(tag_name="Place", key_path=("/cid",)), properties=())
        result = MappingValidator().validate(GraphMappingFactory(vertices=(vertex,), edges=(edge,)), document={"cid": 1})
        assert result.valid
        assert result.errors == []

    def test_unresolved_source_path(self):
        user = VertexMappingFactory(tag_name="User", source_path="/users", key_path=("/userId",), properties=())
        mapping = GraphMappingFactory(vertices=(user,))

        result = MappingValidator().validate(mapping, document={"people": []})
        assert error_types(result) == [ValidationErrorType.UNRESOLVED_SOURCE.value]

        assert MappingValidator().validate(mapping, document={"users": []}).valid


class TestWarnings:
    def test_undeclared_endpoint(self):
        edge = EdgeMappingFactory(edge_name="Likes")
        result = MappingValidator().validate(GraphMappingFactory(edges=(edge,)))

        assert result.valid
        assert result.can_proceed
        assert warning_types(result) == [ValidationWarningType.UNDECLARED_ENDPOINT.value] * 2
        assert result.warnings[0].severity == ValidationSeverity.WARNING

    def test_dynamic_tags_disabled(self):
        vertex = VertexMappingFactory(dynamic_fields=DynamicFieldsConfigFactory())
        result = MappingValidator().validate(GraphMappingFactory(vertices=(vertex,)))

        assert result.valid
        assert warning_types(result) == [ValidationWarningType.DYNAMIC_TAGS_DISABLED.value]

    def test_dynamic_tags_enabled(self):
        vertex = VertexMappingFactory(dynamic_fields=DynamicFieldsConfigFactory())
        mapping = GraphMappingFactory(vertices=(vertex,), settings=SettingsFactory(allow_dynamic_tags=True))
        assert MappingValidator().validate(mapping).warnings == []


def test_balanced_brackets():
    assert has_balanced_brackets("/a/[0]/b[1]")
    assert not has_balanced_brackets("/a/[0")
    assert not has_balanced_brackets("/a/0]")
    assert not has_balanced_brackets("/a/[[0]]")
