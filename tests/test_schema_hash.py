import json
from pathlib import Path

from strapi_typegen.parser.base import ExtraControllerType
from strapi_typegen.parser.endpoint_types import parse_namespace_file
from strapi_typegen.parser.routes import load_endpoints
from strapi_typegen.parser.structured import extract_structured
from strapi_typegen.schema_hash import (
    compute_schema_hash,
    hash_input,
    normalize,
    read_schema_hash,
    render_schema_meta,
    schemas_match,
    short_hash,
)

FIXTURES = Path(__file__).parent / "fixtures"


def _raw():
    return json.loads((FIXTURES / "schema.json").read_text(encoding="utf-8"))


class TestComputeHash:
    def test_key_order_does_not_matter(self):
        assert compute_schema_hash({"a": 1, "b": {"c": 2, "d": 3}}) == compute_schema_hash({"b": {"d": 3, "c": 2}, "a": 1})

    def test_list_order_matters(self):
        assert compute_schema_hash([1, 2]) != compute_schema_hash([2, 1])

    def test_normalize_is_recursive(self):
        assert list(normalize({"b": [{"z": 1, "y": 2}], "a": 0})) == ["a", "b"]
        assert list(normalize({"b": [{"z": 1, "y": 2}]})["b"][0]) == ["y", "z"]

    def test_hex_digest(self):
        digest = compute_schema_hash({})
        assert len(digest) == 64
        assert int(digest, 16) >= 0

    def test_same_schema_twice(self):
        first = compute_schema_hash(hash_input(extract_structured(_raw())))
        second = compute_schema_hash(hash_input(extract_structured(_raw())))
        assert first == second

    def test_required_flag_changes_hash(self):
        raw = _raw()
        before = compute_schema_hash(hash_input(extract_structured(raw)))
        raw["contentTypes"]["api::item.item"]["attributes"]["price"]["required"] = True
        after = compute_schema_hash(hash_input(extract_structured(raw)))
        assert before != after

    def test_routes_change_hash(self):
        schema = extract_structured(_raw())
        endpoints = load_endpoints([{"method": "GET", "path": "/x", "handler": "x.find"}])
        assert compute_schema_hash(hash_input(schema)) != compute_schema_hash(hash_input(schema, endpoints))

    def test_namespace_types_change_hash(self):
        schema = extract_structured(_raw())
        before = parse_namespace_file("export namespace CheckoutAPI { export interface BuyPlanRequest { planId: string } }")
        after = parse_namespace_file(
            "export namespace CheckoutAPI { export interface BuyPlanRequest { planId: string; coupon: string } }"
        )
        assert compute_schema_hash(hash_input(schema, custom_types=before)) != compute_schema_hash(
            hash_input(schema, custom_types=after)
        )
        assert compute_schema_hash(hash_input(schema)) != compute_schema_hash(hash_input(schema, custom_types=before))

    def test_extra_types_change_hash(self):
        schema = extract_structured(_raw())
        extra = [ExtraControllerType(controller="checkout", type_name="Plan", type_definition="{ id: string }")]
        assert compute_schema_hash(hash_input(schema)) != compute_schema_hash(hash_input(schema, extra_types=extra))

    def test_dropped_fields_do_not_change_hash(self):
        raw = _raw()
        before = compute_schema_hash(hash_input(extract_structured(raw)))
        raw["contentTypes"]["api::item.item"]["attributes"]["another"] = {"type": "customField"}
        assert compute_schema_hash(hash_input(extract_structured(raw))) == before


class TestSchemaMeta:
    def test_render(self):
        assert render_schema_meta("abc123", "2024-01-01T00:00:00.000Z") == (
            "/**\n"
            " * Schema metadata - auto-generated, do not edit\n"
            " * Generated at: 2024-01-01T00:00:00.000Z\n"
            " */\n"
            "\n"
            "export const SCHEMA_HASH = 'abc123'\n"
            "export const GENERATED_AT = '2024-01-01T00:00:00.000Z'\n"
        )

    def test_read_back(self):
        assert read_schema_hash(render_schema_meta("abc123", "now")) == "abc123"
        assert read_schema_hash('export const SCHEMA_HASH = "def"') == "def"
        assert read_schema_hash("nothing here") is None

    def test_helpers(self):
        assert short_hash("0123456789abcdef") == "01234567"
        assert schemas_match("abc", "abc")
        assert not schemas_match("abc", "abd")
        assert not schemas_match(None, None)
