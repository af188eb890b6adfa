import json
import logging
from pathlib import Path

import pytest

from strapi_typegen.errors import SchemaExtractionError
from strapi_typegen.parser.declarations import (
    DeclarationInput,
    DeclarationSchemaExtractor,
    component_uid_from_name,
    content_type_uid_from_name,
    extract_declarations,
    parse_type_expression,
)
from strapi_typegen.parser.detect import detect_format
from strapi_typegen.parser.structured import extract_structured
from strapi_typegen.schema_hash import compute_schema_hash

FIXTURES = Path(__file__).parent / "fixtures"


def _structured():
    return extract_structured(json.loads((FIXTURES / "schema.json").read_text(encoding="utf-8")))


def _declarations():
    return extract_declarations(
        (FIXTURES / "contentTypes.d.ts").read_text(encoding="utf-8"),
        (FIXTURES / "components.d.ts").read_text(encoding="utf-8"),
    )


class TestStructuredExtractor:
    def test_entities(self):
        schema = _structured()
        assert [ct.clean_name for ct in schema.content_types] == ["Item", "Category", "Homepage", "User"]
        assert [c.clean_name for c in schema.components] == ["SharedSeo", "LandingHero"]

    def test_item_buckets(self):
        item = _structured().find("Item")
        assert [a.name for a in item.attributes] == ["title", "price", "status"]
        assert [r.name for r in item.relations] == ["category", "owner"]
        assert [m.name for m in item.media] == ["image"]
        assert item.is_populatable

    def test_relation_target_filtering(self):
        item = _structured().find("Item")
        names = {r.name for r in item.relations}
        assert "reviewer" not in names
        assert "folder" not in names
        assert "owner" in names

    def test_kinds_and_plugin(self):
        schema = _structured()
        assert schema.find("Homepage").kind == "single"
        assert schema.find("User").plugin_name == "users-permissions"
        assert schema.find("Item").collection_name == "items"

    def test_entities_alias(self):
        schema = extract_structured({"entities": {"api::item.item": {"attributes": {"title": {"type": "string"}}}}})
        assert schema.content_types[0].clean_name == "Item"

    def test_unresolved_relation_dropped(self):
        schema = extract_structured({"contentTypes": {"api::item.item": {"attributes": {
            "tag": {"type": "relation", "relation": "manyToMany", "target": "api::tag.tag"},
        }}}})
        assert schema.content_types[0].relations == []

    def test_not_a_mapping_is_fatal(self):
        with pytest.raises(SchemaExtractionError):
            extract_structured(["api::item.item"])

    def test_missing_content_types_is_fatal(self):
        with pytest.raises(SchemaExtractionError):
            extract_structured({"components": {}})

    def test_malformed_attribute_is_skipped(self):
        schema = extract_structured({"contentTypes": {"api::item.item": {"attributes": {
            "broken": "not a mapping",
            "title": {"type": "string"},
        }}}})
        assert [a.name for a in schema.content_types[0].attributes] == ["title"]

    def test_name_collision_warns(self, caplog):
        source = {
            "contentTypes": {"api::seo.seo": {"attributes": {}}},
            "components": {"seo": {"attributes": {}}},
        }
        with caplog.at_level(logging.WARNING):
            schema = extract_structured(source)
        assert len(schema.content_types) == 1 and len(schema.components) == 1
        assert "share the type name Seo" in caplog.text


class TestDeclarationExtractor:
    def test_same_ir_as_structured(self):
        assert _declarations() == _structured()

    def test_same_hash_as_structured(self):
        assert compute_schema_hash(_declarations().model_dump()) == compute_schema_hash(_structured().model_dump())

    def test_multiline_relation(self):
        item = _declarations().find("Item")
        category = item.relations[0]
        assert category.relation_type == "manyToOne"
        assert category.target == "api::category.category"

    def test_no_interfaces_is_fatal(self):
        with pytest.raises(SchemaExtractionError):
            extract_declarations("export const x = 1")

    def test_unsupported_input_is_fatal(self):
        with pytest.raises(SchemaExtractionError):
            DeclarationSchemaExtractor().extract(42)

    def test_accepts_mapping(self):
        source = DeclarationInput(content_types=(FIXTURES / "contentTypes.d.ts").read_text(encoding="utf-8"))
        schema = DeclarationSchemaExtractor().extract(source.model_dump())
        assert schema.find("Item") is not None
        # Component declarations are missing, so component fields are dropped
        assert schema.find("Homepage").components == []

    def test_unbalanced_interface_is_skipped(self):
        text = (
            "export interface ApiTagTag extends Struct.CollectionTypeSchema {\n"
            "  attributes: { name: Schema.Attribute.String; };\n"
            "}\n"
            "export interface ApiBrokenBroken extends Struct.CollectionTypeSchema {\n"
            "  attributes: { name: Schema.Attribute.String;\n"
        )
        schema = extract_declarations(text)
        assert [ct.clean_name for ct in schema.content_types] == ["Tag"]


class TestTypeExpression:
    def test_required_and_private_markers(self):
        assert parse_type_expression("Schema.Attribute.Required & Schema.Attribute.String") == {
            "type": "string",
            "required": True,
        }
        assert parse_type_expression("Schema.Attribute.String & Schema.Attribute.Private")["private"] is True

    def test_modifiers_do_not_set_type(self):
        raw = parse_type_expression("Schema.Attribute.Integer & Schema.Attribute.SetMinMax<{ min: 1 }, number>")
        assert raw["type"] == "integer"

    def test_media_multiple(self):
        assert parse_type_expression("Schema.Attribute.Media<'images' | 'files', true>") == {
            "type": "media",
            "multiple": True,
        }

    def test_component_repeatable(self):
        raw = parse_type_expression("Schema.Attribute.Component<'shared.seo', true>")
        assert raw == {"type": "component", "component": "shared.seo", "repeatable": True}

    def test_unparseable(self):
        assert parse_type_expression("!!!") is None

    def test_uid_from_names(self):
        assert content_type_uid_from_name("ApiGuideTypeGuideType") == "api::guide-type.guide-type"
        assert content_type_uid_from_name("PluginUsersPermissionsRole") == "plugin::users-permissions.role"
        assert component_uid_from_name("LandingEditorFeature") == "landing.editor-feature"


class TestDetectFormat:
    def test_json_schema(self):
        assert detect_format(FIXTURES / "schema.json") == "structured"

    def test_declaration_file(self):
        assert detect_format(FIXTURES / "contentTypes.d.ts") == "declarations"

    def test_directory(self):
        assert detect_format(FIXTURES) == "declarations"

    def test_yaml_schema(self, tmp_path):
        f = tmp_path / "schema.yaml"
        f.write_text("contentTypes:\n  api::item.item:\n    attributes: {}\n")
        assert detect_format(f) == "structured"

    def test_declaration_text_without_ts_suffix(self, tmp_path):
        f = tmp_path / "schema.txt"
        f.write_text("export interface ApiItemItem { attributes: {} }")
        assert detect_format(f) == "declarations"
