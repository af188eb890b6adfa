import json
from pathlib import Path

from strapi_typegen.generator.client import ClientGenerator, controller_matches, entity_type_params
from strapi_typegen.generator.custom_api import CustomApiGenerator, strip_path_prefix, template_path
from strapi_typegen.generator.overloads import POPULATE_FORMS, populate_overloads
from strapi_typegen.parser.base import ParsedRoute
from strapi_typegen.parser.endpoint_types import parse_namespace_file
from strapi_typegen.parser.routes import load_endpoints
from strapi_typegen.parser.structured import extract_structured

FIXTURES = Path(__file__).parent / "fixtures"


def _schema():
    return extract_structured(json.loads((FIXTURES / "schema.json").read_text(encoding="utf-8")))


def _endpoints():
    return load_endpoints(json.loads((FIXTURES / "routes.json").read_text(encoding="utf-8")))


def _doc(endpoints=None, **kwargs):
    return ClientGenerator().build(_schema(), endpoints, **kwargs)


class TestOverloads:
    def test_order(self):
        overloads = populate_overloads("Item", "ItemFilters", "ItemPopulateParam", lambda t: f"Promise<{t}[]>")
        assert [s.form for s in overloads] == list(POPULATE_FORMS) == ["object", "wildcard", "array", "general"]

    def test_return_shapes(self):
        overloads = populate_overloads("Item", "ItemFilters", "ItemPopulateParam", lambda t: f"Promise<{t}[]>")
        obj, wildcard, array, general = overloads
        assert obj.returns == "Promise<SelectFields<GetPopulated<Item, TPopulate>, Item, TFields>[]>"
        assert wildcard.returns == "Promise<SelectFields<GetPopulated<Item, '*'>, Item, TFields>[]>"
        assert array.returns == obj.returns
        assert general.returns == "Promise<SelectFields<Item, Item, TFields>[]>"
        assert obj.type_params[0] == "const TPopulate extends ItemPopulateParam"
        assert array.type_params[0] == "const TPopulate extends readonly (keyof ItemPopulateParam & string)[]"

    def test_leading_params(self):
        overloads = populate_overloads("T", "F", "P", lambda t: t, leading=["documentId: string"])
        assert all(s.params[0] == "documentId: string" for s in overloads)


class TestCrudClasses:
    def test_collection_api_methods(self):
        collection = _doc().get("CollectionAPI")
        names = [m.name for m in collection.members if m.kind == "method"]
        assert names == ["find", "findWithMeta", "findOne", "create", "update", "delete"]

    def test_read_methods_expose_populate_forms(self):
        collection = _doc().get("CollectionAPI")
        for name in ("find", "findWithMeta", "findOne"):
            assert [s.form for s in collection.method(name).overloads] == ["object", "wildcard", "array", "general"]

    def test_find_one_is_nullable(self):
        find_one = _doc().get("CollectionAPI").method("findOne")
        assert all(s.returns.endswith(" | null>") for s in find_one.overloads)
        assert all(s.params[0] == "documentId: string" for s in find_one.overloads)

    def test_single_type_api(self):
        single = _doc().get("SingleTypeAPI")
        assert [m.name for m in single.members if m.kind == "method"] == ["find", "update"]
        assert single.method("find").overloads[0].returns.startswith("Promise<SelectFields<")
        assert not single.method("find").overloads[0].returns.endswith("[]>")

    def test_endpoint_is_protected(self):
        rendered = _doc().get("CollectionAPI").render()
        assert "protected endpoint: string" in rendered


class TestGetPopulated:
    def test_one_branch_per_populatable_content_type(self):
        alias = _doc().get("GetPopulated")
        branches = [line for line in alias.type.splitlines() if line.strip().startswith("Equal<")]
        assert len(branches) == 3
        assert "Equal<TBase, Item> extends true ? ItemGetPayload<{ populate: TPopulate }> :" in alias.type
        assert alias.type.endswith("TBase")

    def test_empty_schema(self):
        doc = ClientGenerator().build(extract_structured({"contentTypes": {}}))
        assert doc.get("GetPopulated").type == "TBase"


class TestCustomRoutes:
    def test_entity_subclass(self):
        item_api = _doc(_endpoints()).get("ItemAPI")
        assert item_api.extends == "CollectionAPI<Item, ItemInput, ItemFilters, ItemPopulateParam>"
        assert [m.name for m in item_api.members] == ["incrementRun", "related"]

    def test_entity_paths_are_relative_to_endpoint(self):
        item_api = _doc(_endpoints()).get("ItemAPI")
        related = item_api.method("related")
        assert related.params == ["id: string"]
        assert related.body[0] == "const url = `${this.config.baseURL}/api/${this.endpoint}/${id}/related`"

    def test_custom_types_are_used(self):
        run = _doc(_endpoints()).get("ItemAPI").method("incrementRun")
        assert run.params == ["id: string", "data?: ItemAPI.IncrementRunRequest | FormData"]
        assert run.returns == "Promise<ItemAPI.IncrementRunResponse>"

    def test_standalone_controller(self):
        doc = _doc(_endpoints())
        checkout = doc.get("CheckoutAPI")
        assert checkout.extends == "BaseAPI"
        buy = checkout.method("buyPlan")
        assert buy.body[0] == "const url = `${this.config.baseURL}/api/checkout/buy-plan`"
        assert buy.returns == "Promise<any>"

    def test_namespace_file_types(self):
        custom = parse_namespace_file((FIXTURES / "api-types.d.ts").read_text(encoding="utf-8"))
        doc = _doc(_endpoints(), custom_types=custom)
        buy = doc.get("CheckoutAPI").method("buyPlan")
        assert buy.returns == "Promise<CheckoutAPI.BuyPlanResponse>"
        assert "export namespace CheckoutAPI {" in doc.render()

    def test_auth_controllers_get_no_class(self):
        doc = _doc(_endpoints())
        assert doc.get("AuthAPI").extends == "BaseAPI"
        assert doc.get("UserAPI") is None

    def test_no_routes_no_custom_classes(self):
        names = [d.name for d in _doc().of_kind("class")]
        assert names == ["CollectionAPI", "SingleTypeAPI", "AuthAPI", "StrapiClient"]


class TestCustomApiHelpers:
    def test_template_path(self):
        assert template_path("/items/:id/related/:slug") == "/items/${id}/related/${slug}"

    def test_strip_on_segment_boundary(self):
        assert strip_path_prefix("/items/:id", ["/items"]) == "/:id"
        assert strip_path_prefix("/items-archive", ["/items"]) == "/items-archive"
        assert strip_path_prefix("/item/run", ["/items", "/item"]) == "/run"

    def test_plugin_standalone_path(self):
        route = ParsedRoute(
            method="GET", path="/stats", handler="stats.index", controller="stats", action="index",
            plugin_name="analytics",
        )
        method = CustomApiGenerator().method(route, standalone=True)
        assert method.body[0] == "const url = `${this.config.baseURL}/api/analytics/stats`"
        unprefixed = CustomApiGenerator().method(route.model_copy(update={"prefix": ""}), standalone=True)
        assert unprefixed.body[0] == "const url = `${this.config.baseURL}/api/stats`"

    def test_delete_method(self):
        route = ParsedRoute(
            method="DELETE", path="/items/:id/cache", handler="item.clearCache", controller="item", action="clearCache",
            params=["id"],
        )
        method = CustomApiGenerator().method(route, endpoint="items")
        assert method.body[1:] == [
            "const response = await this.request<StrapiResponse<any>>(",
            "  url,",
            "  { method: 'DELETE' }",
            ")",
            "return response.data",
        ]


class TestStrapiClient:
    def test_entity_matching(self):
        schema = _schema()
        assert controller_matches(schema.find("Item"), "item")
        assert controller_matches(schema.find("Category"), "category")
        assert not controller_matches(schema.find("Item"), "items-archive")
        assert entity_type_params(schema.find("User")) == "<User, UserInput, UserFilters>"

    def test_properties_and_endpoints(self):
        rendered = _doc().get("StrapiClient").render()
        assert "  items: CollectionAPI<Item, ItemInput, ItemFilters, ItemPopulateParam>" in rendered
        assert "  homepage: SingleTypeAPI<Homepage, HomepageInput, HomepageFilters, HomepagePopulateParam>" in rendered
        assert "    this.categories = new CollectionAPI('categories', this.config)" in rendered
        assert "    this.homepage = new SingleTypeAPI('homepage', this.config)" in rendered

    def test_plugin_prefix_by_default(self):
        rendered = _doc().get("StrapiClient").render()
        assert "new CollectionAPI('users-permissions/users', this.config)" in rendered

    def test_empty_prefix_override(self):
        rendered = _doc(_endpoints()).get("StrapiClient").render()
        assert "new CollectionAPI('users', this.config)" in rendered

    def test_custom_and_standalone_properties(self):
        rendered = _doc(_endpoints()).get("StrapiClient").render()
        assert "  items: ItemAPI\n" in rendered
        assert "    this.items = new ItemAPI('items', this.config)" in rendered
        assert "  checkout: CheckoutAPI" in rendered
        assert "    this.checkout = new CheckoutAPI(this.config)" in rendered

    def test_client_is_exported_and_validates(self):
        client = _doc().get("StrapiClient")
        assert client.exported
        rendered = client.render()
        assert "async validateSchema()" in rendered
        assert "if (config.validateSchema) {" in rendered


class TestRenderedClient:
    def test_imports(self):
        text = ClientGenerator().generate(_schema())
        first = text.splitlines()[3]
        assert first.startswith("import type { Item, ItemGetPayload, ItemPopulateParam, ItemInput, Category,")
        assert ", User, UserInput, " in first
        assert "import qs from 'qs'" in text

    def test_sections_in_order(self):
        text = ClientGenerator().generate(_schema(), _endpoints())
        order = [
            "// Auto-generated Strapi API client",
            "export namespace ItemAPI {",
            "export interface StrapiResponse<T> {",
            "class BaseAPI {",
            "export type GetPopulated<TBase, TPopulate> =",
            "export interface LoginCredentials {",
            "class CollectionAPI<",
            "class SingleTypeAPI<",
            "class ItemAPI extends CollectionAPI<",
            "class CheckoutAPI extends BaseAPI {",
            "class AuthAPI extends BaseAPI {",
            "export class StrapiClient {",
        ]
        positions = [text.index(marker) for marker in order]
        assert positions == sorted(positions)

    def test_deterministic(self):
        assert ClientGenerator().generate(_schema(), _endpoints()) == ClientGenerator().generate(_schema(), _endpoints())
