"""Client methods for custom routes."""

import re

from strapi_typegen.parser.base import ParsedCustomTypes, ParsedRoute
from strapi_typegen.parser.naming import to_camel_case
from strapi_typegen.generator.document import Method, Raw

BODY_METHODS = ("POST", "PUT", "PATCH")

_PARAM_RE = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")


def template_path(path: str) -> str:
    """/items/:id/run -> /items/${id}/run"""
    return _PARAM_RE.sub(r"${\1}", path)


def strip_path_prefix(path: str, prefixes: list[str]) -> str:
    """Drop the first prefix that ends on a path-segment boundary."""
    for prefix in prefixes:
        if path == prefix or path.startswith(prefix + "/"):
            return path[len(prefix):]
    return path


class CustomApiGenerator:
    """Turns ParsedRoutes of one controller into client methods.

    Entity classes resolve URLs against ``this.endpoint``; standalone classes
    use the full route path.
    """

    def __init__(self, custom_types: ParsedCustomTypes | None = None):
        self.custom_types = custom_types or ParsedCustomTypes()

    def type_definitions(self) -> Raw | None:
        if not self.custom_types.type_definitions:
            return None
        return Raw(text="// Custom API namespace types\n\n" + "\n\n".join(self.custom_types.type_definitions))

    def methods(self, routes: list[ParsedRoute], standalone: bool = False, endpoint: str | None = None) -> list[Method]:
        return [self.method(route, standalone, endpoint) for route in routes]

    def method(self, route: ParsedRoute, standalone: bool = False, endpoint: str | None = None) -> Method:
        types = self.custom_types.types
        custom = types.get(route.handler) or types.get(f"{route.controller}.{route.action}")
        input_type = custom.input_type if custom and custom.input_type else "any"
        output_type = custom.output_type if custom and custom.output_type else "any"

        params = [f"{param}: string" for param in route.params]
        if route.method in BODY_METHODS:
            params.append(f"data?: {input_type} | FormData")

        if standalone:
            url = f"`${{this.config.baseURL}}/api{self._standalone_path(route)}`"
        else:
            url = f"`${{this.config.baseURL}}/api/${{this.endpoint}}{self._entity_path(route, endpoint)}`"

        return Method(
            name=to_camel_case(route.action),
            params=params,
            returns=f"Promise<{output_type}>",
            doc=f"{route.method} {route.path}\nHandler: {route.handler}",
            body=[f"const url = {url}", *self._request(route, output_type), "return response.data"],
        )

    def _request(self, route: ParsedRoute, output_type: str) -> list[str]:
        call = f"const response = await this.request<StrapiResponse<{output_type}>>("
        if route.method in BODY_METHODS:
            return [
                "const body = data instanceof FormData",
                "  ? data",
                "  : data ? JSON.stringify(data) : undefined",
                "",
                call,
                "  url,",
                "  {",
                f"    method: '{route.method}',",
                "    body,",
                "  }",
                ")",
            ]
        if route.method == "GET":
            return [f"{call}url)"]
        return [call, "  url,", f"  {{ method: '{route.method}' }}", ")"]

    def _entity_path(self, route: ParsedRoute, endpoint: str | None) -> str:
        """/items/:id/run -> /${id}/run (relative to the entity endpoint)."""
        prefixes = [f"/{endpoint}"] if endpoint else []
        prefixes += [f"/{route.controller}s", f"/{route.controller}"]
        return template_path(strip_path_prefix(route.path, prefixes))

    def _standalone_path(self, route: ParsedRoute) -> str:
        path = route.path
        if route.plugin_name and route.prefix != "":
            path = f"/{route.plugin_name}{path}"
        return template_path(path)
