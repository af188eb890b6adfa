"""Schema extractor strategy.

Front-ends only know how to read their input format. They yield RawEntity
records (uid + raw attribute dicts) and this base class does the rest:
entity filtering, field classification, reference resolution and assembly
of the ParsedSchema.
"""

import logging
from collections import Counter
from typing import Any, Iterable, Literal

from pydantic import BaseModel

from .base import (
    Component,
    ComponentField,
    ContentType,
    DynamicZoneField,
    Entity,
    MediaField,
    ParsedSchema,
    Relation,
)
from .classify import classify_field, is_allowed_entity
from .naming import (
    clean_name_from_uid,
    component_category,
    convert_component_name,
    plugin_name_from_uid,
    uid_to_interface_name,
)

logger = logging.getLogger(__name__)


class RawEntity(BaseModel):
    """One entity as read by a front-end, before classification."""

    uid: str
    is_component: bool = False
    name: str = ""
    clean_name: str = ""
    kind: Literal["collection", "single"] = "collection"
    collection_name: str = ""
    fields: list[tuple[str, dict[str, Any]]] = []


class SchemaExtractor:
    """Base class for the schema front-ends.

    Subclasses implement ``read_entities``; ``extract`` is shared.
    """

    def read_entities(self, source: Any) -> Iterable[RawEntity]:
        raise NotImplementedError

    def extract(self, source: Any) -> ParsedSchema:
        raw_entities = list(self.read_entities(source))
        raw_components = [r for r in raw_entities if r.is_component]
        raw_types = [r for r in raw_entities if not r.is_component and self._keep(r.uid)]

        components = [self._build_component(r) for r in raw_components]
        content_types = [self._build_content_type(r) for r in raw_types]

        component_uids = {c.uid for c in components}
        known_names = {e.clean_name for e in content_types}
        components = [self._resolve(c, known_names, component_uids) for c in components]
        content_types = [self._resolve(c, known_names, component_uids) for c in content_types]

        self._warn_collisions(content_types, components)
        return ParsedSchema(content_types=content_types, components=components)

    def _keep(self, uid: str) -> bool:
        if is_allowed_entity(uid):
            return True
        logger.debug("Skipping entity %s: namespace is not exposed", uid)
        return False

    def _classify(self, raw: RawEntity) -> dict[str, list]:
        buckets = {"attributes": [], "relations": [], "media": [], "components": [], "dynamic_zones": []}
        for field_name, field_raw in raw.fields:
            field = classify_field(field_name, field_raw)
            if field is None:
                continue
            buckets[_bucket_of(field)].append(field)
        return buckets

    def _build_content_type(self, raw: RawEntity) -> ContentType:
        return ContentType(
            uid=raw.uid,
            name=raw.name or uid_to_interface_name(raw.uid),
            clean_name=raw.clean_name or clean_name_from_uid(raw.uid),
            kind=raw.kind,
            collection_name=raw.collection_name,
            plugin_name=plugin_name_from_uid(raw.uid),
            **self._classify(raw),
        )

    def _build_component(self, raw: RawEntity) -> Component:
        clean_name = convert_component_name(raw.uid)
        return Component(
            uid=raw.uid,
            name=clean_name,
            clean_name=clean_name,
            category=component_category(raw.uid),
            **self._classify(raw),
        )

    def _resolve(self, entity: Entity, known_names: set[str], component_uids: set[str]) -> Entity:
        """Drop references to entities this schema does not contain."""
        relations = []
        for rel in entity.relations:
            if rel.target_type in known_names:
                relations.append(rel)
            else:
                logger.debug("Dropping relation %s.%s: unresolved target %s", entity.uid, rel.name, rel.target)

        fields = []
        for comp in entity.components:
            if comp.component in component_uids:
                fields.append(comp)
            else:
                logger.debug("Dropping component field %s.%s: unknown component %s", entity.uid, comp.name, comp.component)

        zones = []
        for zone in entity.dynamic_zones:
            uids = [uid for uid in zone.components if uid in component_uids]
            if not uids:
                logger.debug("Dropping dynamic zone %s.%s: no known components", entity.uid, zone.name)
                continue
            if len(uids) != len(zone.components):
                zone = zone.model_copy(update={
                    "components": uids,
                    "component_types": [convert_component_name(uid) for uid in uids],
                })
            zones.append(zone)

        return entity.model_copy(update={"relations": relations, "components": fields, "dynamic_zones": zones})

    def _warn_collisions(self, content_types: list[ContentType], components: list[Component]) -> None:
        counts = Counter(e.clean_name for e in [*content_types, *components])
        for name, count in counts.items():
            if count > 1:
                uids = [e.uid for e in [*content_types, *components] if e.clean_name == name]
                logger.warning("%d entities share the type name %s: %s", count, name, ", ".join(uids))


def _bucket_of(field) -> str:
    if isinstance(field, Relation):
        return "relations"
    if isinstance(field, ComponentField):
        return "components"
    if isinstance(field, DynamicZoneField):
        return "dynamic_zones"
    if isinstance(field, MediaField):
        return "media"
    return "attributes"
