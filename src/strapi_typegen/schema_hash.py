"""Deterministic content hash over schema + routes."""

import hashlib
import json
import re
from typing import Any

from strapi_typegen.parser.base import ExtraControllerType, ParsedCustomTypes, ParsedEndpoint, ParsedSchema

_HASH_RE = re.compile(r"""SCHEMA_HASH\s*=\s*['"]([^'"]+)['"]""")


def normalize(value: Any) -> Any:
    """Recursively sort mapping keys; lists keep their order."""
    if isinstance(value, dict):
        return {key: normalize(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    return value


def compute_schema_hash(value: Any) -> str:
    """SHA-256 hex digest of the normalized JSON form of ``value``."""
    text = json.dumps(normalize(value), separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_input(
    schema: ParsedSchema,
    endpoints: list[ParsedEndpoint] | None = None,
    extra_types: list[ExtraControllerType] | None = None,
    custom_types: ParsedCustomTypes | None = None,
) -> dict:
    """Everything that shapes the generated text, as plain JSON data."""
    custom_types = custom_types or ParsedCustomTypes()
    return {
        "schema": schema.model_dump(mode="json"),
        "endpoints": [e.model_dump(mode="json") for e in endpoints or []],
        "extraTypes": [t.model_dump(mode="json") for t in extra_types or []],
        "customTypes": custom_types.model_dump(mode="json", include={"types", "type_definitions"}),
    }


def short_hash(value: str) -> str:
    return value[:8]


def schemas_match(local: str | None, remote: str | None) -> bool:
    return bool(local) and local == remote


def render_schema_meta(schema_hash: str, generated_at: str) -> str:
    return (
        "/**\n"
        " * Schema metadata - auto-generated, do not edit\n"
        f" * Generated at: {generated_at}\n"
        " */\n"
        "\n"
        f"export const SCHEMA_HASH = '{schema_hash}'\n"
        f"export const GENERATED_AT = '{generated_at}'\n"
    )


def read_schema_hash(text: str) -> str | None:
    """Read SCHEMA_HASH back out of a schema-meta.ts text."""
    match = _HASH_RE.search(text)
    return match.group(1) if match else None
