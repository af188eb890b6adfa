"""Custom route extraction.

Routes arrive either as descriptors served by the backend plugin
(``{method, path, handler, controller, action, types?, pluginName?, prefix?}``)
or as the text of a route declaration file. Both end up as ParsedEndpoint,
then as ParsedRoutes grouped by controller.
"""

import logging
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from strapi_typegen.errors import RouteExtractionError
from .base import EndpointTypes, ParsedEndpoint, ParsedRoute, ParsedRoutes
from .brackets import extract_block, strip_comments
from .naming import extract_path_params

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

_ROUTE_RE = re.compile(
    r"""\{\s*method\s*:\s*['"](\w+)['"]\s*,\s*path\s*:\s*['"]([^'"]+)['"]\s*,\s*handler\s*:\s*['"]([^'"]+)['"]"""
)
_PREFIX_RE = re.compile(r"""\bprefix\s*:\s*['"]([^'"]*)['"]""")


class RouteDescriptor(BaseModel):
    """One route as delivered by the backend."""

    model_config = ConfigDict(extra="ignore")

    method: str
    path: str
    handler: str
    controller: str | None = None
    action: str | None = None
    types: EndpointTypes | None = None
    plugin_name: str | None = Field(None, validation_alias=AliasChoices("pluginName", "plugin_name"))
    prefix: str | None = None


def parse_handler(handler: str) -> tuple[str, str]:
    """Split a handler into (controller, action).

    checkout.buyPlan -> (checkout, buyPlan)
    api::item.item.customAction -> (item, customAction)
    plugin::users-permissions.user.find -> (user, find)
    """
    normalized = handler
    if "::" in normalized:
        parts = normalized.split("::")[1].split(".")
        normalized = ".".join(parts[1:]) or parts[0]

    parts = normalized.split(".")
    if len(parts) >= 2:
        return parts[0], ".".join(parts[1:])
    return normalized, "index"


def load_endpoints(data: Any) -> list[ParsedEndpoint]:
    """Validate route descriptors served by the backend.

    A descriptor that is not a mapping, or lacks method/path/handler, is
    skipped. Input that is not a list at all is fatal.
    """
    if isinstance(data, dict) and "endpoints" in data:
        data = data["endpoints"]
    if not isinstance(data, list):
        raise RouteExtractionError(f"Routes must be a list, got {type(data).__name__}")

    endpoints = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.debug("Skipping route #%d: not a mapping", index)
            continue
        try:
            desc = RouteDescriptor.model_validate(item)
        except ValidationError as e:
            logger.debug("Skipping route #%d: %s", index, e.errors()[0]["msg"])
            continue
        controller, action = parse_handler(desc.handler)
        endpoints.append(
            ParsedEndpoint(
                method=desc.method.upper(),
                path=_with_slash(desc.path),
                handler=desc.handler,
                controller=desc.controller or controller,
                action=desc.action or action,
                types=desc.types if desc.types and not desc.types.is_empty() else None,
                plugin_name=desc.plugin_name,
                prefix=desc.prefix,
            )
        )
    return endpoints


def parse_route_file(text: str, plugin_name: str | None = None) -> list[ParsedEndpoint]:
    """Scan route declaration text for ``{ method, path, handler }`` objects."""
    text = strip_comments(text)
    endpoints = []
    for match in _ROUTE_RE.finditer(text):
        method, path, handler = match.groups()
        controller, action = parse_handler(handler)
        block = extract_block(text, match.start()) or ""
        prefix = _PREFIX_RE.search(block)
        endpoints.append(
            ParsedEndpoint(
                method=method.upper(),
                path=_with_slash(path),
                handler=handler,
                controller=controller,
                action=action,
                plugin_name=plugin_name,
                prefix=prefix.group(1) if prefix else None,
            )
        )
    return endpoints


def endpoints_to_routes(endpoints: list[ParsedEndpoint]) -> ParsedRoutes:
    """Convert endpoints to routes grouped by controller, in input order."""
    all_routes = []
    by_controller: dict[str, list[ParsedRoute]] = {}
    for endpoint in endpoints:
        if endpoint.method not in HTTP_METHODS:
            logger.debug("Skipping route %s %s: unsupported method", endpoint.method, endpoint.path)
            continue
        route = ParsedRoute(
            method=endpoint.method,
            path=endpoint.path,
            handler=endpoint.handler,
            controller=endpoint.controller,
            action=endpoint.action,
            params=extract_path_params(endpoint.path),
            plugin_name=endpoint.plugin_name,
            prefix=endpoint.prefix,
        )
        all_routes.append(route)
        by_controller.setdefault(route.controller, []).append(route)
    return ParsedRoutes(all=all_routes, by_controller=by_controller)


def _with_slash(path: str) -> str:
    return path if path.startswith("/") else "/" + path
