"""Structured schema front-end.

Reads the schema map served by the backend plugin::

    {"contentTypes": {uid: {kind, collectionName, attributes}},
     "components": {uid: {category, attributes}}}

``entities`` is accepted as an alias of ``contentTypes``.
"""

import logging
from typing import Any, Iterable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from strapi_typegen.errors import SchemaExtractionError
from .extractor import RawEntity, SchemaExtractor

logger = logging.getLogger(__name__)


class StrapiAttribute(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = ""
    required: bool = False
    private: bool = False
    relation: str | None = None
    target: str | None = None
    component: str | None = None
    repeatable: bool = False
    components: list[str] = []
    enum: list[str] = []
    multiple: bool = False


class StrapiContentType(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    kind: str = "collectionType"
    collection_name: str = Field("", alias="collectionName")
    attributes: dict[str, Any] = {}


class StrapiComponent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: str = ""
    attributes: dict[str, Any] = {}


class ExtractedSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content_types: dict[str, StrapiContentType] = Field(
        validation_alias=AliasChoices("contentTypes", "entities"),
    )
    components: dict[str, StrapiComponent] = {}


class StructuredSchemaExtractor(SchemaExtractor):
    """Front-end for an already-materialized schema map."""

    def read_entities(self, source: Any) -> Iterable[RawEntity]:
        schema = self._validate(source)

        for uid, comp in schema.components.items():
            yield RawEntity(uid=uid, is_component=True, fields=_fields(comp.attributes))

        for uid, ct in schema.content_types.items():
            yield RawEntity(
                uid=uid,
                kind="single" if ct.kind == "singleType" else "collection",
                collection_name=ct.collection_name,
                fields=_fields(ct.attributes),
            )

    def _validate(self, source: Any) -> ExtractedSchema:
        if not isinstance(source, dict):
            raise SchemaExtractionError(f"Schema must be a mapping, got {type(source).__name__}")
        try:
            return ExtractedSchema.model_validate(source)
        except ValidationError as e:
            raise SchemaExtractionError(f"Malformed schema: {e}") from e


def _fields(attributes: dict[str, Any]) -> list[tuple[str, dict]]:
    fields = []
    for name, raw in attributes.items():
        try:
            attr = StrapiAttribute.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed attribute %s", name)
            continue
        fields.append((name, attr.model_dump(exclude_none=True)))
    return fields


def extract_structured(source: Any):
    """Shortcut: structured schema map -> ParsedSchema."""
    return StructuredSchemaExtractor().extract(source)
