"""Field -> TypeScript type text."""

from strapi_typegen.parser.base import (
    AttributeType,
    ComponentField,
    DynamicZoneField,
    MediaField,
    Relation,
)

RELATION_REF = "{ id: number; documentId: string }"

BASE_TYPES = {
    "string": "string",
    "text": "string",
    "richtext": "string",
    "email": "string",
    "blocks": "BlocksContent",
    "integer": "number",
    "biginteger": "number",
    "float": "number",
    "decimal": "number",
    "boolean": "boolean",
    "date": "string",
    "datetime": "string",
    "time": "string",
    "json": "unknown",
}


def enum_union(values: list[str]) -> str:
    """['a', 'b'] -> 'a' | 'b'. An empty value set is plain string."""
    if not values:
        return "string"
    return " | ".join(f"'{v}'" for v in values)


def base_type(attr_type: AttributeType) -> str:
    if attr_type.kind == "enumeration":
        return enum_union(attr_type.values)
    return BASE_TYPES.get(attr_type.kind, "any")


def nullable(ts_type: str, required: bool) -> str:
    return ts_type if required else f"{ts_type} | null"


def attribute_type(attr_type: AttributeType, required: bool) -> str:
    """Scalar type, with ``| null`` appended when the field is optional."""
    return nullable(base_type(attr_type), required)


def relation_ref_type(rel: Relation) -> str:
    """Unpopulated relation as returned inside components."""
    return f"{RELATION_REF}[]" if rel.is_array else f"{RELATION_REF} | null"


def relation_populated_type(rel: Relation, target: str | None = None) -> str:
    """To-many relations are arrays, to-one relations are nullable."""
    target = target or rel.target_type
    return f"{target}[]" if rel.is_array else f"{target} | null"


def media_type(media: MediaField) -> str:
    return "MediaFile[]" if media.multiple else "MediaFile"


def component_type(comp: ComponentField, suffix: str = "") -> str:
    name = comp.component_type + suffix
    return f"{name}[]" if comp.repeatable else name


def dynamic_zone_type(zone: DynamicZoneField, suffix: str = "") -> str:
    return "(" + " | ".join(t + suffix for t in zone.component_types) + ")[]"


def id_input_type(is_array: bool) -> str:
    """Relations and media are written as ids."""
    return "number[] | null" if is_array else "number | null"
