"""Entity type synthesis: base, input, populate-param, payload and filter types."""

import logging
from pathlib import Path

from strapi_typegen.parser.base import Component, ContentType, Entity, ParsedSchema
from strapi_typegen.generator.document import (
    Document,
    Interface,
    PayloadBranch,
    PayloadType,
    Property,
    TypeAlias,
    property_key,
)
from strapi_typegen.generator.filters import entity_filters, filter_utility_types, typed_query_params
from strapi_typegen.generator.ts_types import (
    attribute_type,
    component_type,
    dynamic_zone_type,
    id_input_type,
    media_type,
    nullable,
    relation_populated_type,
    relation_ref_type,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

HEADER = "// Auto-generated TypeScript types from Strapi schema\n// Do not edit manually"

POPULATE_SECTION = """// ============================================
// PopulateParam types for type-safe populate
// ============================================"""

PAYLOAD_SECTION = """// Payload types for populate support
//
// Usage:
// type ItemWithCategory = ItemGetPayload<{ populate: { category: true } }>
//
// Relations, media, components and dynamic zones are only part of the type
// when the populate argument asks for them."""


class TypesGenerator:
    """Build ``types.ts`` from a ParsedSchema."""

    def __init__(self):
        self.schema = ParsedSchema()

    def generate(self, schema: ParsedSchema) -> str:
        return self.build(schema).render()

    def build(self, schema: ParsedSchema) -> Document:
        self.schema = schema
        doc = Document()
        doc.raw(HEADER)
        doc.raw((TEMPLATES_DIR / "base_types.ts").read_text(encoding="utf-8"))
        doc.raw((TEMPLATES_DIR / "helper_types.ts").read_text(encoding="utf-8"))

        doc.add(*(self._component_interface(c) for c in schema.components))
        doc.add(*(self._component_input(c) for c in schema.components))
        doc.add(*(self._content_type_interface(ct) for ct in schema.content_types))
        doc.add(*(self._content_type_input(ct) for ct in schema.content_types))

        doc.raw(POPULATE_SECTION)
        for entity in [*schema.components, *schema.content_types]:
            param = self._populate_param(entity)
            if param is not None:
                doc.add(param)

        doc.raw(PAYLOAD_SECTION)
        for entity in [*schema.components, *schema.content_types]:
            if entity.is_populatable:
                doc.add(self._payload_type(entity))

        doc.add(filter_utility_types(), typed_query_params())
        doc.add(*(entity_filters(ct) for ct in schema.content_types))
        logger.debug(
            "Built types for %d content types, %d components",
            len(schema.content_types),
            len(schema.components),
        )
        return doc

    # -- base and input types --------------------------------------------------

    def _component_interface(self, component: Component) -> Interface:
        properties = [
            Property(name="id", type="number"),
            Property(name="__component", type=f"'{component.uid}'"),
        ]
        properties += [Property(name=a.name, type=attribute_type(a.type, a.required)) for a in component.attributes]
        properties += [Property(name=m.name, type=nullable(media_type(m), m.required)) for m in component.media]
        properties += [Property(name=r.name, type=relation_ref_type(r)) for r in component.relations]
        properties += [
            Property(name=c.name, type=nullable(component_type(c), c.required)) for c in component.components
        ]
        properties += [
            Property(name=z.name, type=nullable(dynamic_zone_type(z), z.required)) for z in component.dynamic_zones
        ]
        return Interface(name=component.clean_name, properties=properties)

    def _component_input(self, component: Component) -> Interface:
        properties = [
            Property(name="id", type="number", optional=True),
            Property(name="__component", type=f"'{component.uid}'"),
        ]
        properties += self._input_fields(component)
        return Interface(
            name=f"{component.clean_name}Input",
            doc=f"Input type for creating/updating {component.clean_name}",
            properties=properties,
        )

    def _content_type_interface(self, ct: ContentType) -> Interface:
        properties = [
            Property(name="__typename", type=f"'{ct.clean_name}'", optional=True, readonly=True),
            Property(name="id", type="number"),
            Property(name="documentId", type="string"),
            Property(name="createdAt", type="string"),
            Property(name="updatedAt", type="string"),
        ]
        properties += [Property(name=a.name, type=attribute_type(a.type, a.required)) for a in ct.attributes]
        return Interface(name=ct.clean_name, properties=properties)

    def _content_type_input(self, ct: ContentType) -> Interface:
        return Interface(
            name=f"{ct.clean_name}Input",
            doc=f"Input type for creating/updating {ct.clean_name}",
            properties=self._input_fields(ct),
        )

    def _input_fields(self, entity: Entity) -> list[Property]:
        """Every field optional; relations and media as ids, components as their Input variant.

        Scalars keep their base nullability, so an optional field can still be cleared with null.
        """
        properties = [Property(name=a.name, type=attribute_type(a.type, a.required), optional=True) for a in entity.attributes]
        properties += [Property(name=m.name, type=id_input_type(m.multiple), optional=True) for m in entity.media]
        properties += [Property(name=r.name, type=id_input_type(r.is_array), optional=True) for r in entity.relations]
        properties += [
            Property(name=c.name, type=f"{component_type(c, 'Input')} | null", optional=True)
            for c in entity.components
        ]
        properties += [
            Property(name=z.name, type=f"{dynamic_zone_type(z, 'Input')} | null", optional=True)
            for z in entity.dynamic_zones
        ]
        return properties

    # -- populate params -------------------------------------------------------

    def _nested_populate(self, target: str) -> list[str]:
        if not self.schema.is_populatable(target):
            return []
        return [f"populate?: {target}PopulateParam | (keyof {target}PopulateParam & string)[] | '*'"]

    def _populate_param(self, entity: Entity) -> TypeAlias | None:
        """``XPopulateParam``: per populatable field, ``true`` or an options object."""
        if not entity.is_populatable:
            return None

        properties = []
        for rel in entity.relations:
            t = rel.target_type
            options = [f"fields?: _EntityField<{t}>[]", *self._nested_populate(t)]
            options += [
                f"filters?: {t}Filters",
                f"sort?: _SortValue<{t}> | _SortValue<{t}>[]",
                "limit?: number",
                "start?: number",
            ]
            properties.append(Property(name=rel.name, type=f"true | {{ {'; '.join(options)} }}", optional=True))

        for media in entity.media:
            properties.append(
                Property(name=media.name, type="true | { fields?: (keyof MediaFile & string)[] }", optional=True)
            )

        for comp in entity.components:
            t = comp.component_type
            options = [f"fields?: (keyof {t} & string)[]", *self._nested_populate(t)]
            properties.append(Property(name=comp.name, type=f"true | {{ {'; '.join(options)} }}", optional=True))

        for zone in entity.dynamic_zones:
            entries = []
            for uid, t in zip(zone.components, zone.component_types):
                options = [f"fields?: (keyof {t} & string)[]", *self._nested_populate(t)]
                entries.append(f"'{uid}'?: true | {{ {'; '.join(options)} }}")
            properties.append(Property(name=zone.name, type=f"true | {{ on?: {{ {'; '.join(entries)} }} }}", optional=True))

        return TypeAlias(name=f"{entity.clean_name}PopulateParam", properties=properties)

    # -- payload types ---------------------------------------------------------

    def _payload_type(self, entity: Entity) -> PayloadType:
        """Three branches over the populate argument (wildcard, array, object) and a fallback.

        Nested populate on a populatable target refers to the target's own
        GetPayload by name, so mutually recursive entities are never unrolled.
        """
        return PayloadType(
            name=f"{entity.clean_name}GetPayload",
            base=entity.clean_name,
            comment=f"Payload type for {entity.clean_name} with populate support",
            branches=[
                PayloadBranch(kind="wildcard", fields=self._wildcard_fields(entity)),
                PayloadBranch(kind="array", fields=self._array_fields(entity)),
                PayloadBranch(kind="object", fields=self._object_fields(entity)),
            ],
        )

    def _populated_shapes(self, entity: Entity) -> list[tuple[str, str]]:
        """(field, one-level populated type) for every populatable field."""
        shapes = [(r.name, relation_populated_type(r)) for r in entity.relations]
        shapes += [(m.name, media_type(m)) for m in entity.media]
        shapes += [(c.name, component_type(c)) for c in entity.components]
        shapes += [(z.name, dynamic_zone_type(z)) for z in entity.dynamic_zones]
        return shapes

    def _wildcard_fields(self, entity: Entity) -> list[str]:
        return [f"{property_key(name)}?: {ts}" for name, ts in self._populated_shapes(entity)]

    def _array_fields(self, entity: Entity) -> list[str]:
        return [f"{property_key(name)}?: '{name}' extends Pop[number] ? {ts} : never" for name, ts in self._populated_shapes(entity)]

    def _object_fields(self, entity: Entity) -> list[str]:
        fields = []
        for rel in entity.relations:
            applied = self._applied(rel.name, rel.target_type)
            fields.append(self._keyed(rel.name, relation_populated_type(rel, applied)))
        for media in entity.media:
            applied = f"_ApplyFields<MediaFile, MediaFile, Pop['{media.name}']>"
            fields.append(self._keyed(media.name, f"{applied}[]" if media.multiple else applied))
        for comp in entity.components:
            applied = self._applied(comp.name, comp.component_type)
            fields.append(self._keyed(comp.name, f"{applied}[]" if comp.repeatable else applied))
        for zone in entity.dynamic_zones:
            fields.append(self._keyed(zone.name, dynamic_zone_type(zone)))
        return fields

    def _applied(self, field: str, target: str) -> str:
        """Target shape under ``Pop[field]``, threading a nested populate into the target's payload."""
        entry = f"Pop['{field}']"
        if self.schema.is_populatable(target):
            full = f"{entry} extends {{ populate: infer NestedPop }} ? {target}GetPayload<{{ populate: NestedPop }}> : {target}"
        else:
            full = target
        return f"_ApplyFields<{full}, {target}, {entry}>"

    @staticmethod
    def _keyed(name: str, ts: str) -> str:
        return f"{property_key(name)}?: '{name}' extends keyof Pop ? {ts} : never"
