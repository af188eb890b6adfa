"""Field-bucket classification shared by both schema front-ends.

A front-end only has to turn one raw field into a plain attribute dict
(``type``, ``required``, ``private``, ``relation``, ``target``, ``component``,
``repeatable``, ``components``, ``enum``, ``multiple``); everything after that
is decided here.
"""

import logging
import re

from .base import (
    Attribute,
    AttributeType,
    ComponentField,
    DynamicZoneField,
    MediaField,
    Relation,
)
from .naming import clean_name_from_uid, convert_component_name

logger = logging.getLogger(__name__)

SYSTEM_FIELDS = ("id", "documentId", "createdAt", "updatedAt")
PRIVATE_FIELDS = ("createdBy", "updatedBy", "publishedAt", "locale", "localizations")

SCALAR_KINDS = frozenset({
    "string", "text", "richtext", "blocks", "email",
    "integer", "biginteger", "float", "decimal", "boolean",
    "date", "datetime", "time", "json", "enumeration",
})

# Raw kinds that are stored as one of the closed scalar kinds.
SCALAR_ALIASES = {
    "password": "string",
    "uid": "string",
    "timestamp": "datetime",
}

RELATION_KINDS = {
    "onetoone": "oneToOne",
    "onetomany": "oneToMany",
    "manytoone": "manyToOne",
    "manytomany": "manyToMany",
}

AUTH_PLUGIN = "users-permissions"
AUTH_ENTITY_UIDS = ("plugin::users-permissions.user", "plugin::users-permissions.role")

Field = Attribute | Relation | MediaField | ComponentField | DynamicZoneField


def is_skipped_field(name: str, raw: dict) -> bool:
    """System, audit and explicitly private fields never become attributes."""
    return name in SYSTEM_FIELDS or name in PRIVATE_FIELDS or bool(raw.get("private"))


def is_allowed_entity(uid: str) -> bool:
    """Only api:: entities and the authentication plugin's user/role are kept."""
    return uid.startswith("api::") or uid in AUTH_ENTITY_UIDS


def is_allowed_target(target: str) -> bool:
    if target.startswith("admin::"):
        return False
    if target.startswith("plugin::"):
        return target.split("::", 1)[1].startswith(AUTH_PLUGIN + ".")
    return bool(target)


def normalize_relation_type(relation: str) -> str | None:
    """oneToMany / one-to-many / ONE_TO_MANY -> oneToMany.

    Polymorphic (morph*) relations return None; anything else unknown is
    treated as manyToOne.
    """
    normalized = re.sub(r"[^a-z]", "", relation.lower())
    if normalized.startswith("morph"):
        return None
    return RELATION_KINDS.get(normalized, "manyToOne")


def scalar_type(raw: dict) -> AttributeType | None:
    kind = raw.get("type", "")
    kind = SCALAR_ALIASES.get(kind, kind)
    if kind not in SCALAR_KINDS:
        return None
    if kind == "enumeration":
        return AttributeType(kind=kind, values=[str(v) for v in raw.get("enum") or []])
    return AttributeType(kind=kind)


def classify_field(name: str, raw: dict) -> Field | None:
    """Put one raw field into exactly one bucket, or drop it (None)."""
    if is_skipped_field(name, raw):
        logger.debug("Skipping managed field %s", name)
        return None

    kind = raw.get("type")
    required = bool(raw.get("required", False))

    if kind == "relation":
        target = raw.get("target") or ""
        if not is_allowed_target(target):
            logger.debug("Dropping relation %s: target %r is not exposed", name, target)
            return None
        relation_type = normalize_relation_type(raw.get("relation") or "")
        if relation_type is None:
            logger.debug("Dropping polymorphic relation %s", name)
            return None
        return Relation(
            name=name,
            relation_type=relation_type,
            target=target,
            target_type=clean_name_from_uid(target),
            required=required,
        )

    if kind == "media":
        return MediaField(name=name, multiple=bool(raw.get("multiple", False)), required=required)

    if kind == "component":
        uid = raw.get("component") or ""
        if not uid:
            logger.debug("Dropping component field %s without a component uid", name)
            return None
        return ComponentField(
            name=name,
            component=uid,
            component_type=convert_component_name(uid),
            repeatable=bool(raw.get("repeatable", False)),
            required=required,
        )

    if kind == "dynamiczone":
        uids = list(raw.get("components") or [])
        return DynamicZoneField(
            name=name,
            components=uids,
            component_types=[convert_component_name(uid) for uid in uids],
            required=required,
        )

    attr_type = scalar_type(raw)
    if attr_type is None:
        logger.debug("Dropping field %s: unknown kind %r", name, kind)
        return None
    return Attribute(name=name, type=attr_type, required=required)
