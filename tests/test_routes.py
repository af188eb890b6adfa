import json
from pathlib import Path

import pytest

from strapi_typegen.errors import RouteExtractionError
from strapi_typegen.parser.base import ParsedEndpoint
from strapi_typegen.parser.routes import endpoints_to_routes, load_endpoints, parse_handler, parse_route_file

FIXTURES = Path(__file__).parent / "fixtures"


def _endpoints():
    return load_endpoints(json.loads((FIXTURES / "routes.json").read_text(encoding="utf-8")))


class TestParseHandler:
    @pytest.mark.parametrize("handler,expected", [
        ("checkout.buyPlan", ("checkout", "buyPlan")),
        ("api::item.item.customAction", ("item", "customAction")),
        ("plugin::users-permissions.user.find", ("user", "find")),
        ("health", ("health", "index")),
    ])
    def test_split(self, handler, expected):
        assert parse_handler(handler) == expected


class TestLoadEndpoints:
    def test_invalid_descriptors_are_skipped(self):
        endpoints = _endpoints()
        assert len(endpoints) == 7

    def test_normalization(self):
        checkout = [e for e in _endpoints() if e.controller == "checkout"][0]
        assert checkout.method == "POST"
        assert checkout.path == "/checkout/buy-plan"
        assert checkout.action == "buyPlan"

    def test_plugin_fields(self):
        login = [e for e in _endpoints() if e.path == "/auth/local"][0]
        assert login.plugin_name == "users-permissions"
        assert login.prefix == ""
        assert login.controller == "auth"

    def test_types(self):
        run = [e for e in _endpoints() if e.action == "incrementRun"][0]
        assert run.types.body == "{ amount: number }"
        related = [e for e in _endpoints() if e.action == "related"][0]
        assert related.types is None

    def test_bare_list_is_accepted(self):
        endpoints = load_endpoints([{"method": "GET", "path": "/x", "handler": "x.find"}])
        assert endpoints[0].controller == "x"

    def test_not_a_list_is_fatal(self):
        with pytest.raises(RouteExtractionError):
            load_endpoints({"routes": []})
        with pytest.raises(RouteExtractionError):
            load_endpoints("GET /items")


class TestRouteFile:
    def test_scan(self):
        endpoints = parse_route_file((FIXTURES / "item.routes.ts").read_text(encoding="utf-8"))
        assert [(e.method, e.path, e.controller, e.action) for e in endpoints] == [
            ("POST", "/items/:id/run", "item", "incrementRun"),
            ("GET", "/items/:id/related", "item", "related"),
        ]

    def test_prefix_override(self):
        text = "{ method: 'GET', path: '/me', handler: 'user.me', config: { prefix: '' } }"
        endpoints = parse_route_file(text, plugin_name="users-permissions")
        assert endpoints[0].prefix == ""
        assert endpoints[0].plugin_name == "users-permissions"


class TestEndpointsToRoutes:
    def test_group_by_controller(self):
        routes = endpoints_to_routes(_endpoints())
        assert list(routes.by_controller) == ["item", "checkout", "auth", "user"]
        assert [r.action for r in routes.by_controller["item"]] == ["incrementRun", "related"]

    def test_params(self):
        routes = endpoints_to_routes(_endpoints())
        assert routes.by_controller["item"][0].params == ["id"]

    def test_unsupported_method_is_skipped(self):
        endpoint = ParsedEndpoint(method="HEAD", path="/x", handler="x.head", controller="x", action="head")
        assert endpoints_to_routes([endpoint]).all == []
