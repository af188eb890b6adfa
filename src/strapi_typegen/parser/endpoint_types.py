"""Request/response types for custom routes.

Three sources feed the same ParsedCustomTypes result:

* the ``export interface Endpoints { action: { body; response; params; query } }``
  block of a controller file,
* extra ``export type`` / ``export interface`` declarations of that file,
* hand-written API namespace files (``export namespace TeamInvitationAPI { ... }``).
"""

import logging
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from strapi_typegen.errors import RouteExtractionError
from .base import (
    CustomEndpointType,
    EndpointTypes,
    ExtraControllerType,
    ParsedCustomTypes,
    ParsedEndpoint,
)
from .brackets import block_after, extract_block, search_top_level, strip_comments, take_member
from .naming import lower_first, to_pascal_case, to_pascal_case_preserve

logger = logging.getLogger(__name__)

SLOTS = ("body", "response", "params", "query")

_ENDPOINTS_RE = re.compile(r"export\s+interface\s+Endpoints\s*\{")
_ACTION_RE = re.compile(r"(\w+)\s*:\s*\{")
_EXTRA_TYPE_RE = re.compile(r"export\s+type\s+(\w+)\s*=\s*")
_EXTRA_INTERFACE_RE = re.compile(r"export\s+interface\s+(\w+)\s*\{")
_DECLARATION_END_RE = re.compile(r"\n(?=export\s|const\s|let\s|var\s|function\s|class\s|default\s|import\s)")
_NAMESPACE_RE = re.compile(r"export\s+(?:declare\s+)?namespace\s+(\w+API)\s*\{")
_NS_INTERFACE_RE = re.compile(r"(?:export\s+)?interface\s+(\w+)")

# Declared type-name suffix -> side of the (request, response) pair.
SUFFIXES = (
    ("Request", "request"),
    ("Response", "response"),
    ("FormData", "request"),
    ("Event", "request"),
    ("Input", "request"),
    ("Output", "response"),
)

COMMON_ACTION_WORDS = ("Subscription", "Member", "Invitation")


def parse_controller_endpoints(text: str) -> dict[str, EndpointTypes]:
    """Per-action type slots from a controller's ``Endpoints`` interface."""
    text = strip_comments(text)
    found = block_after(text, _ENDPOINTS_RE)
    if found is None:
        return {}
    block = found[0]

    result = {}
    pos = 0
    while True:
        match = _ACTION_RE.search(block, pos)
        if match is None:
            break
        action = match.group(1)
        action_block = extract_block(block, match.end() - 1)
        if action_block is None:
            logger.debug("Skipping action %s: unbalanced braces", action)
            break
        pos = match.end() + len(action_block) + 1
        types = EndpointTypes(**{slot: _slot(action_block, slot) for slot in SLOTS})
        if not types.is_empty():
            result[action] = types
    return result


def _slot(block: str, name: str) -> str | None:
    match = search_top_level(block, rf"\b{name}\s*[?]?\s*:\s*")
    if match is None:
        return None
    rest = block[match.end():]
    if rest.startswith("{"):
        inner = extract_block(rest, 0)
        return f"{{ {inner} }}" if inner is not None else None
    simple = take_member(rest)
    return simple or None


def parse_extra_types(text: str, controller: str) -> list[ExtraControllerType]:
    """Standalone exported types of a controller file, Endpoints excluded."""
    text = strip_comments(text)
    extra = []

    for match in _EXTRA_TYPE_RE.finditer(text):
        if match.group(1) == "Endpoints":
            continue
        rest = text[match.end():]
        end = _DECLARATION_END_RE.search(rest)
        definition = (rest[:end.start()] if end else rest).strip()
        extra.append(ExtraControllerType(controller=controller, type_name=match.group(1), type_definition=definition))

    for match in _EXTRA_INTERFACE_RE.finditer(text):
        if match.group(1) == "Endpoints":
            continue
        inner = extract_block(text, match.end() - 1)
        if inner is None:
            continue
        extra.append(ExtraControllerType(controller=controller, type_name=match.group(1), type_definition=f"{{ {inner} }}"))

    return extra


def dedupe_extra_types(extra: list[ExtraControllerType]) -> list[ExtraControllerType]:
    """Keep the first declaration per controller + type name."""
    seen = set()
    result = []
    for item in extra:
        key = f"{item.controller}:{item.type_name}"
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


class ExtraTypeDescriptor(BaseModel):
    """One extra controller type as delivered by the backend."""

    model_config = ConfigDict(extra="ignore")

    controller: str
    type_name: str = Field(validation_alias=AliasChoices("typeName", "type_name"))
    type_definition: str = Field(validation_alias=AliasChoices("typeDefinition", "type_definition"))


def load_extra_types(data: Any) -> list[ExtraControllerType]:
    """Validate extra controller types served next to the route descriptors.

    Malformed entries are skipped; input that is not a list is fatal.
    """
    if not isinstance(data, list):
        raise RouteExtractionError(f"Extra types must be a list, got {type(data).__name__}")

    extra = []
    for index, item in enumerate(data):
        try:
            desc = ExtraTypeDescriptor.model_validate(item)
        except ValidationError as e:
            logger.debug("Skipping extra type #%d: %s", index, e.errors()[0]["msg"])
            continue
        extra.append(ExtraControllerType(**desc.model_dump()))
    return dedupe_extra_types(extra)


def attach_controller_types(endpoints: list[ParsedEndpoint], controller: str, text: str) -> list[ParsedEndpoint]:
    """Fill in ``types`` for the endpoints of one controller from its source text."""
    action_types = parse_controller_endpoints(text)
    result = []
    for endpoint in endpoints:
        if endpoint.controller == controller and endpoint.types is None and endpoint.action in action_types:
            endpoint = endpoint.model_copy(update={"types": action_types[endpoint.action]})
        result.append(endpoint)
    return result


def unwrap_data_wrapper(response: str) -> str:
    """``{ data: { url: string } }`` -> ``{ url: string }``.

    Clients already return ``response.data``, so the wrapper is dropped.
    """
    trimmed = response.strip()
    if not trimmed.startswith("{"):
        return trimmed
    match = re.match(r"^\{\s*data\s*:\s*", trimmed)
    if match is None:
        return trimmed
    after = trimmed[match.end():]
    if not after.endswith("}"):
        return trimmed
    inner = after[:-1].strip()
    return re.sub(r";\s*$", "", inner).strip()


def endpoints_to_custom_types(
    endpoints: list[ParsedEndpoint],
    extra_types: list[ExtraControllerType] | None = None,
) -> ParsedCustomTypes:
    """Build one ``<Controller>API`` namespace per controller with declared types."""
    by_controller: dict[str, list[ParsedEndpoint]] = {}
    for endpoint in endpoints:
        if endpoint.types:
            by_controller.setdefault(endpoint.controller, []).append(endpoint)

    extra_by_controller: dict[str, list[ExtraControllerType]] = {}
    for extra in extra_types or []:
        extra_by_controller.setdefault(extra.controller, []).append(extra)

    controllers = list(dict.fromkeys([*by_controller, *extra_by_controller]))
    types: dict[str, CustomEndpointType] = {}
    definitions = []
    imports = []

    for controller in controllers:
        namespace = to_pascal_case_preserve(controller) + "API"
        lines = []

        for extra in extra_by_controller.get(controller, []):
            lines.append(f"  export type {extra.type_name} = {extra.type_definition}")

        for endpoint in by_controller.get(controller, []):
            action = to_pascal_case_preserve(endpoint.action)
            mapping = types.get(endpoint.handler, CustomEndpointType(handler=endpoint.handler))
            if endpoint.types.body:
                lines.append(f"  export type {action}Request = {endpoint.types.body}")
                mapping = mapping.model_copy(update={"input_type": f"{namespace}.{action}Request"})
            if endpoint.types.response:
                lines.append(f"  export type {action}Response = {unwrap_data_wrapper(endpoint.types.response)}")
                mapping = mapping.model_copy(update={"output_type": f"{namespace}.{action}Response"})
            if mapping.input_type or mapping.output_type:
                types[endpoint.handler] = mapping

        if lines:
            definitions.append("\n".join([f"export namespace {namespace} {{", *lines, "}"]))
            imports.append(namespace)

    return ParsedCustomTypes(types=types, type_definitions=definitions, namespace_imports=imports)


def namespace_to_controller(namespace: str) -> str:
    """TeamInvitationAPI -> team-invitation, AIStudioAPI -> ai-studio."""
    name = re.sub(r"API$", "", namespace)
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", name)
    name = re.sub(r"([a-z\d])([A-Z])", r"\1-\2", name)
    return name.lower()


def handler_variations(controller: str, action: str) -> list[str]:
    """Handlers a namespace action may stand for.

    checkout + CreateCheckout -> checkout.createCheckout, checkout.create
    """
    handlers = [f"{controller}.{lower_first(action)}"]
    controller_pascal = to_pascal_case(controller)
    removals = [controller_pascal, "Webhook", *COMMON_ACTION_WORDS]
    for word in removals:
        if word and word in action:
            stripped = action.replace(word, "", 1)
            if stripped and stripped != action:
                handlers.append(f"{controller}.{lower_first(stripped)}")
    return list(dict.fromkeys(handlers))


def parse_namespace_file(text: str) -> ParsedCustomTypes:
    """Handler -> type mappings from ``export namespace XAPI { interface ... }`` text."""
    text = strip_comments(text)
    types: dict[str, CustomEndpointType] = {}
    definitions = []
    imports = []

    pos = 0
    while True:
        match = _NAMESPACE_RE.search(text, pos)
        if match is None:
            break
        body = extract_block(text, match.end() - 1)
        if body is None:
            logger.debug("Skipping namespace %s: unbalanced braces", match.group(1))
            break
        pos = match.end() + len(body) + 1
        namespace = match.group(1)
        controller = namespace_to_controller(namespace)
        definitions.append(text[match.start():pos].strip())
        imports.append(namespace)

        pairs: dict[str, dict[str, str]] = {}
        for interface in _NS_INTERFACE_RE.findall(body):
            for suffix, side in SUFFIXES:
                if interface.endswith(suffix):
                    action = interface[: -len(suffix)]
                    pairs.setdefault(action, {})[side] = interface
                    break

        for action, pair in pairs.items():
            for handler in handler_variations(controller, action):
                types[handler] = CustomEndpointType(
                    handler=handler,
                    input_type=f"{namespace}.{pair['request']}" if "request" in pair else None,
                    output_type=f"{namespace}.{pair['response']}" if "response" in pair else None,
                )

    return ParsedCustomTypes(types=types, type_definitions=definitions, namespace_imports=imports)


def merge_custom_types(*parts: ParsedCustomTypes) -> ParsedCustomTypes:
    """Combine results; later mappings for the same handler win."""
    types: dict[str, CustomEndpointType] = {}
    definitions: list[str] = []
    imports: list[str] = []
    for part in parts:
        types.update(part.types)
        definitions.extend(part.type_definitions)
        imports.extend(part.namespace_imports)
    return ParsedCustomTypes(types=types, type_definitions=definitions, namespace_imports=imports)
