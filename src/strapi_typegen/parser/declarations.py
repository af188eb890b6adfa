"""Declaration-text schema front-end.

Reads the ``contentTypes.d.ts`` / ``components.d.ts`` files the backend
generates. Each field is a type expression built from a small vocabulary of
``Schema.Attribute.*`` constructors joined with ``&``::

    title: Schema.Attribute.String & Schema.Attribute.Required;
    category: Schema.Attribute.Relation<'manyToOne', 'api::category.category'>;

This is not a TypeScript parser: anything outside that vocabulary is dropped.
"""

import logging
import re
from typing import Any, Iterable

from pydantic import BaseModel

from strapi_typegen.errors import SchemaExtractionError
from .brackets import (
    block_after,
    parse_generic,
    parse_string_list,
    split_top_level,
    strip_comments,
    unquote,
)
from .extractor import RawEntity, SchemaExtractor
from .naming import clean_name_from_interface, to_kebab_case

logger = logging.getLogger(__name__)

_INTERFACE_RE = re.compile(r"\binterface\s+([A-Za-z_$][\w$]*)\s*(?:extends\s+([^{]+))?\{")
_ATTRIBUTES_RE = re.compile(r"\battributes\s*:\s*\{")
_COLLECTION_RE = re.compile(r"\bcollectionName\s*:\s*['\"]([^'\"]+)['\"]")
_UID_MAP_ENTRY_RE = re.compile(r"['\"]([^'\"]+)['\"]\s*:\s*([A-Za-z_$][\w$]*)")
_MEMBER_RE = re.compile(r"^\s*(['\"]?[A-Za-z_$][\w$-]*['\"]?)\s*\??\s*:\s*(.+)$", re.DOTALL)

UID_MAPS = ("ContentTypeSchemas", "ComponentSchemas")
AUTH_INTERFACES = ("PluginUsersPermissionsUser", "PluginUsersPermissionsRole")

SCALAR_CONSTRUCTORS = {
    "String": "string",
    "Text": "text",
    "RichText": "richtext",
    "Blocks": "blocks",
    "Email": "email",
    "Integer": "integer",
    "BigInteger": "biginteger",
    "Float": "float",
    "Decimal": "decimal",
    "Boolean": "boolean",
    "Date": "date",
    "DateTime": "datetime",
    "Time": "time",
    "JSON": "json",
    "Timestamp": "timestamp",
    "UID": "uid",
    "Password": "password",
}

# Constructors that only annotate a base type.
MODIFIERS = {
    "Required", "Private", "Unique", "Configurable", "DefaultTo", "SetMinMax",
    "SetMinMaxLength", "SetPluginOptions", "CustomField", "Writable", "NonWritable",
    "Visible", "Hidden",
}


class DeclarationInput(BaseModel):
    """Raw declaration texts, as read from the generated .d.ts files."""

    content_types: str = ""
    components: str = ""


class DeclarationSchemaExtractor(SchemaExtractor):
    """Front-end for generated declaration text."""

    def read_entities(self, source: Any) -> Iterable[RawEntity]:
        if isinstance(source, dict):
            source = DeclarationInput.model_validate(source)
        if not isinstance(source, DeclarationInput):
            raise SchemaExtractionError(f"Unsupported declaration input: {type(source).__name__}")

        content_text = strip_comments(source.content_types)
        component_text = strip_comments(source.components)
        content_decls = list(_interfaces(content_text))
        component_decls = list(_interfaces(component_text))
        if not content_decls and not component_decls:
            raise SchemaExtractionError("No interface declarations found in schema text")

        uids = _uid_map(content_text) | _uid_map(component_text)

        for name, _, body in component_decls:
            if name in UID_MAPS:
                continue
            yield RawEntity(
                uid=uids.get(name) or component_uid_from_name(name),
                is_component=True,
                fields=_fields(body),
            )

        for name, heritage, body in content_decls:
            if name in UID_MAPS:
                continue
            if not (name.startswith("Api") or name in AUTH_INTERFACES):
                logger.debug("Skipping interface %s: not an exposed content type", name)
                continue
            collection = _COLLECTION_RE.search(body)
            yield RawEntity(
                uid=uids.get(name) or content_type_uid_from_name(name),
                name=name,
                kind="single" if "SingleTypeSchema" in (heritage or "") else "collection",
                collection_name=collection.group(1) if collection else "",
                fields=_fields(body),
            )


def _interfaces(text: str) -> Iterable[tuple[str, str | None, str]]:
    """Yield (name, heritage, body) for every interface, including ones inside module blocks."""
    pos = 0
    while True:
        match = _INTERFACE_RE.search(text, pos)
        if match is None:
            return
        found = block_after(text, _INTERFACE_RE, match.start())
        if found is None:
            logger.debug("Skipping unbalanced interface %s", match.group(1))
            pos = match.end()
            continue
        body, end = found
        yield match.group(1), match.group(2), body
        pos = end


def _uid_map(text: str) -> dict[str, str]:
    """Interface name -> uid, from the ContentTypeSchemas/ComponentSchemas maps."""
    result = {}
    for name in UID_MAPS:
        found = block_after(text, rf"\binterface\s+{name}\s*\{{")
        if found is None:
            continue
        for uid, interface in _UID_MAP_ENTRY_RE.findall(found[0]):
            result[interface] = uid
    return result


def _fields(body: str) -> list[tuple[str, dict]]:
    found = block_after(body, _ATTRIBUTES_RE)
    if found is None:
        return []
    fields = []
    for member in split_top_level(" ".join(found[0].split()), ";"):
        match = _MEMBER_RE.match(member)
        if match is None:
            logger.debug("Skipping unparseable member %r", member)
            continue
        name = unquote(match.group(1))
        raw = parse_type_expression(match.group(2))
        if raw is None:
            logger.debug("Skipping field %s: unrecognised type expression", name)
            continue
        fields.append((name, raw))
    return fields


def parse_type_expression(expr: str) -> dict | None:
    """Turn one field type expression into a raw attribute dict.

    The Required and Private markers are read independently of the base
    constructor. Returns None when no part of the expression parses.
    """
    raw: dict[str, Any] = {}
    parsed_any = False
    for part in split_top_level(expr, "&"):
        parsed = parse_generic(part)
        if parsed is None:
            continue
        parsed_any = True
        constructor, args = parsed
        short = constructor.split(".")[-1]
        if short == "Required":
            raw["required"] = True
        elif short == "Private":
            raw["private"] = True
        elif short in MODIFIERS or "type" in raw:
            continue
        else:
            raw.update(_base_type(short, args))
    if not parsed_any:
        return None
    raw.setdefault("type", "")
    return raw


def _base_type(constructor: str, args: list[str]) -> dict[str, Any]:
    if constructor == "Relation":
        if len(args) < 2:
            return {"type": "relation", "target": ""}
        return {"type": "relation", "relation": unquote(args[0]), "target": unquote(args[1])}
    if constructor == "Component":
        return {
            "type": "component",
            "component": unquote(args[0]) if args else "",
            "repeatable": len(args) > 1 and args[1].strip() == "true",
        }
    if constructor == "DynamicZone":
        return {"type": "dynamiczone", "components": parse_string_list(args[0]) if args else []}
    if constructor == "Media":
        return {"type": "media", "multiple": len(args) > 1 and args[1].strip() == "true"}
    if constructor == "Enumeration":
        return {"type": "enumeration", "enum": parse_string_list(args[0]) if args else []}
    if constructor in SCALAR_CONSTRUCTORS:
        return {"type": SCALAR_CONSTRUCTORS[constructor]}
    return {"type": constructor}


def content_type_uid_from_name(name: str) -> str:
    """ApiGuideTypeGuideType -> api::guide-type.guide-type."""
    if name in AUTH_INTERFACES:
        return "plugin::users-permissions." + name[len("PluginUsersPermissions"):].lower()
    model = to_kebab_case(clean_name_from_interface(name))
    return f"api::{model}.{model}"


def component_uid_from_name(name: str) -> str:
    """LandingEditorFeature -> landing.editor-feature."""
    match = re.match(r"^([A-Z][a-z0-9]*)(.*)$", name)
    if match is None or not match.group(2):
        return to_kebab_case(name)
    return f"{match.group(1).lower()}.{to_kebab_case(match.group(2))}"


def extract_declarations(content_types: str, components: str = ""):
    """Shortcut: declaration texts -> ParsedSchema."""
    source = DeclarationInput(content_types=content_types, components=components)
    return DeclarationSchemaExtractor().extract(source)
