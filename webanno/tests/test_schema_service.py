"""
Integration tests for AnnotationSchemaService.

Run with: python -m pytest webanno/tests/test_schema_service.py -v
"""

import pytest

from annotation_model.upgrade import RELATION, SPAN

from webanno.errors import NotFoundError, ValidationFailedError
from webanno.feature.slot import SlotFeatureSupport
from webanno.feature.support import LINK_WITH_ROLE, MULTI_VALUE_ARRAY


class TestLayers:
    """Tests for layer management."""

    def test_default_layers(self, services, project):
        layers = services.schema.list_layers(project)

        assert [(l.name, l.type) for l in layers] == [
            ("named_entity", SPAN), ("pos", SPAN), ("dependency", RELATION),
        ]
        assert layers[2].attach_layer.name == "pos"
        assert [f.name for f in layers[0].features] == ["value", "identifier"]

    def test_relation_layer_needs_span_layer(self, services, project):
        schema = services.schema
        with pytest.raises(ValidationFailedError, match="must attach to a span layer"):
            schema.create_layer(project, "coref", type=RELATION)
        with pytest.raises(ValidationFailedError):
            schema.create_layer(
                project, "meta", type=RELATION, attach_layer=schema.get_layer_by_name(project, "dependency")
            )

    def test_invalid_layer_definitions(self, services, project):
        with pytest.raises(ValidationFailedError):
            services.schema.create_layer(project, "chunk", type="document")
        with pytest.raises(ValidationFailedError, match="already exists"):
            services.schema.create_layer(project, "pos")

    def test_attached_layer_cannot_be_removed(self, services, project):
        schema = services.schema
        with pytest.raises(ValidationFailedError, match="is used by relation layer"):
            schema.remove_layer(schema.get_layer_by_name(project, "pos"))

        schema.remove_layer(schema.get_layer_by_name(project, "dependency"))
        schema.remove_layer(schema.get_layer_by_name(project, "pos"))
        with pytest.raises(NotFoundError):
            schema.get_layer_by_name(project, "pos")

    def test_disabled_layers(self, services, project):
        schema = services.schema
        schema.update_layer(schema.get_layer_by_name(project, "pos"), enabled=False)

        assert [l.name for l in schema.list_layers(project, enabled_only=True)] == ["named_entity", "dependency"]


class TestFeatures:
    """Tests for feature management."""

    def test_unsupported_feature_type_is_rejected(self, services, project):
        layer = services.schema.get_layer_by_name(project, "pos")

        with pytest.raises(ValidationFailedError, match="Unsupported feature"):
            services.schema.create_feature(layer, "lemma", "blob")

        assert [f.name for f in services.schema.list_features(layer)] == ["PosValue"]

    def test_link_feature(self, services, project):
        schema = services.schema
        layer = schema.create_layer(project, "event")

        feature = schema.create_feature(
            layer, "arguments", "named_entity",
            multi_value_mode=MULTI_VALUE_ARRAY, link_mode=LINK_WITH_ROLE,
        )

        assert services.registry.get_feature_support(feature).support_id == "slot"

    def test_link_feature_must_target_span_layer(self, services, project):
        schema = services.schema
        layer = schema.create_layer(project, "event")

        with pytest.raises(ValidationFailedError, match="must point to a span layer"):
            schema.create_feature(
                layer, "arguments", "dependency",
                multi_value_mode=MULTI_VALUE_ARRAY, link_mode=LINK_WITH_ROLE,
            )

    def test_duplicate_feature(self, services, project):
        layer = services.schema.get_layer_by_name(project, "pos")
        with pytest.raises(ValidationFailedError, match="already exists"):
            services.schema.create_feature(layer, "PosValue", "string")

    def test_update_and_remove_feature(self, services, project):
        schema = services.schema
        layer = schema.get_layer_by_name(project, "named_entity")
        feature = schema.get_feature(layer, "identifier")

        schema.update_feature(feature, required=True, ui_name="KB id")
        assert schema.get_feature_by_id(project, feature.id).ui_name == "KB id"

        schema.remove_feature(feature)
        assert [f.name for f in schema.list_features(layer)] == ["value"]

    def test_layer_schemas_carry_default_values(self, services, project):
        schema = services.schema
        layer = schema.create_layer(project, "event")
        schema.create_feature(
            layer, "arguments", "named_entity",
            multi_value_mode=MULTI_VALUE_ARRAY, link_mode=LINK_WITH_ROLE,
        )

        schemas = {s.name: s for s in schema.get_layer_schemas(project)}

        assert schemas["named_entity"].features == {"value": None, "identifier": None}
        assert schemas["event"].features == {"arguments": []}
        assert schemas["dependency"].type == RELATION

    def test_new_feature_does_not_inherit_removed_feature_support(self, services, project):
        schema = services.schema
        layer = schema.get_layer_by_name(project, "named_entity")
        note = schema.create_feature(layer, "note", "string")
        assert services.registry.get_feature_support(note).support_id == "primitive"
        old_id = note.id
        schema.remove_feature(note)

        link = schema.create_feature(
            layer, "args", "pos",
            multi_value_mode=MULTI_VALUE_ARRAY, link_mode=LINK_WITH_ROLE,
        )

        assert link.id != old_id
        assert isinstance(services.registry.get_feature_support(link), SlotFeatureSupport)
