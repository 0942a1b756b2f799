#!/usr/bin/env python3

import factory

from nebula_mapper.models.models import (
    DynamicFieldsConfig,
    EdgeEndpoint,
    EdgeMapping,
    GraphMapping,
    Property,
    Settings,
    TransformSpec,
    VertexMapping,
)


class SettingsFactory(factory.Factory):
    """Factory for mapping settings"""

    class Meta:
        model = Settings

    default_string_length = None
    array_delimiter = ","
    allow_dynamic_tags = False
    key_separator = "_"
    quote_all_identifiers = True


class TransformSpecFactory(factory.Factory):
    class Meta:
        model = TransformSpec

    name = "string_normalize"
    params = factory.LazyFunction(dict)


class PropertyFactory(factory.Factory):
    """Factory for declared properties; json_path follows the name by default"""

    class Meta:
        model = Property

    name = factory.Sequence(lambda n: f"prop_{n}")
    json_path = factory.LazyAttribute(lambda o: f"/{o.name}")
    target_type = "STRING"
    optional = False
    indexable = False
    default_value = None
    max_length = None
    transform = None


class DynamicFieldsConfigFactory(factory.Factory):
    class Meta:
        model = DynamicFieldsConfig

    enabled = True
    allowed_types = frozenset()
    excluded_properties = frozenset()


class VertexMappingFactory(factory.Factory):
    """Factory for vertex (tag) mappings"""

    class Meta:
        model = VertexMapping

    tag_name = factory.Sequence(lambda n: f"Tag{n}")
    source_path = "/"
    key_path = ("/id",)
    properties = factory.LazyFunction(lambda: (PropertyFactory(name="id", target_type="STRING"),))
    dynamic_fields = factory.LazyFunction(DynamicFieldsConfig)


class EdgeEndpointFactory(factory.Factory):
    class Meta:
        model = EdgeEndpoint

    tag_name = "User"
    key_path = ("/userId",)


class EdgeMappingFactory(factory.Factory):
    """Factory for edge mappings; ``from`` is a Python keyword so use ``from_``"""

    class Meta:
        model = EdgeMapping

    edge_name = factory.Sequence(lambda n: f"Edge{n}")
    source_path = "/"
    from_ = factory.SubFactory(EdgeEndpointFactory, tag_name="User", key_path=("/userId",))
    to = factory.SubFactory(EdgeEndpointFactory, tag_name="Place", key_path=("/placeId",))
    properties = ()


class GraphMappingFactory(factory.Factory):
    """Factory for complete graph mappings"""

    class Meta:
        model = GraphMapping

    vertices = ()
    edges = ()
    settings = factory.SubFactory(SettingsFactory)
