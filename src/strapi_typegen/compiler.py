"""The compilation pipeline: IR in, text buffers out."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from strapi_typegen.parser.base import ExtraControllerType, ParsedCustomTypes, ParsedEndpoint, ParsedSchema
from strapi_typegen.generator.client import ClientGenerator
from strapi_typegen.generator.types import TypesGenerator
from strapi_typegen.schema_hash import compute_schema_hash, hash_input, render_schema_meta, short_hash

logger = logging.getLogger(__name__)

INDEX_TEXT = """// Auto-generated Strapi client entry point
export * from './types.js'
export * from './client.js'
"""


class CompilationResult(BaseModel):
    types: str
    client: str
    index: str
    schema_meta: str
    hash: str
    generated_at: str

    def files(self) -> dict[str, str]:
        """Output file name -> content."""
        return {
            "types.ts": self.types,
            "client.ts": self.client,
            "index.ts": self.index,
            "schema-meta.ts": self.schema_meta,
        }


def compile_schema(
    schema: ParsedSchema,
    endpoints: list[ParsedEndpoint] | None = None,
    extra_types: list[ExtraControllerType] | None = None,
    custom_types: ParsedCustomTypes | None = None,
    generated_at: str | None = None,
) -> CompilationResult:
    """Synthesize all outputs for one schema.

    ``generated_at`` only feeds the metadata text; pass it explicitly for
    byte-identical reruns.
    """
    endpoints = endpoints or []
    generated_at = generated_at or datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    schema_hash = compute_schema_hash(hash_input(schema, endpoints, extra_types, custom_types))
    logger.info(
        "Compiling %d content types, %d components, %d endpoints (hash %s)",
        len(schema.content_types),
        len(schema.components),
        len(endpoints),
        short_hash(schema_hash),
    )

    return CompilationResult(
        types=TypesGenerator().generate(schema),
        client=ClientGenerator().generate(schema, endpoints, extra_types, custom_types),
        index=INDEX_TEXT,
        schema_meta=render_schema_meta(schema_hash, generated_at),
        hash=schema_hash,
        generated_at=generated_at,
    )
