"""Filter types: operator interfaces, typed query params and per-entity filters."""

from pathlib import Path

from strapi_typegen.parser.base import Attribute, ContentType
from strapi_typegen.generator.document import Interface, Property, Raw
from strapi_typegen.generator.ts_types import enum_union

TEMPLATES_DIR = Path(__file__).parent / "templates"

ID_FILTER = "number | IdFilterOperators"
DOCUMENT_ID_FILTER = "string | StringFilterOperators"
RELATION_FILTER = "{ id?: number | IdFilterOperators; documentId?: string | StringFilterOperators; [key: string]: any }"
MEDIA_FILTER = "{ id?: number | IdFilterOperators; [key: string]: any }"

OPERATOR_SETS = {
    "string": "string | StringFilterOperators",
    "text": "string | StringFilterOperators",
    "richtext": "string | StringFilterOperators",
    "email": "string | StringFilterOperators",
    "integer": "number | NumberFilterOperators",
    "biginteger": "number | NumberFilterOperators",
    "float": "number | NumberFilterOperators",
    "decimal": "number | NumberFilterOperators",
    "boolean": "boolean | BooleanFilterOperators",
    "date": "string | DateFilterOperators",
    "datetime": "string | DateFilterOperators",
    "time": "string | DateFilterOperators",
}


def filter_utility_types() -> Raw:
    return Raw(text=(TEMPLATES_DIR / "filter_operators.ts").read_text(encoding="utf-8"))


def typed_query_params() -> Raw:
    return Raw(text=(TEMPLATES_DIR / "typed_query_params.ts").read_text(encoding="utf-8"))


def attribute_filter_type(attr: Attribute) -> str:
    kind = attr.type.kind
    if kind == "enumeration":
        return f"({enum_union(attr.type.values)}) | StringFilterOperators"
    return OPERATOR_SETS.get(kind, "any")


def entity_filters(ct: ContentType) -> Interface:
    """``XFilters``: one optional member per filterable field plus $and/$or/$not."""
    name = f"{ct.clean_name}Filters"
    properties = [
        Property(name="id", type=ID_FILTER, optional=True),
        Property(name="documentId", type=DOCUMENT_ID_FILTER, optional=True),
    ]
    properties += [Property(name=a.name, type=attribute_filter_type(a), optional=True) for a in ct.attributes]
    properties += [Property(name=r.name, type=RELATION_FILTER, optional=True) for r in ct.relations]
    properties += [Property(name=m.name, type=MEDIA_FILTER, optional=True) for m in ct.media]
    return Interface(
        name=name,
        extends=[f"LogicalOperators<{name}>"],
        doc=f"Type-safe filters for {ct.clean_name}",
        properties=properties,
    )
