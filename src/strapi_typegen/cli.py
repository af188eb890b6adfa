"""CLI entry point for strapi-typegen."""

import json
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import BaseModel

from strapi_typegen.config import get_settings
from strapi_typegen.errors import SchemaExtractionError, StrapiTypegenError
from strapi_typegen.log import configure_logging
from strapi_typegen.parser.base import ExtraControllerType, ParsedCustomTypes, ParsedEndpoint, ParsedSchema
from strapi_typegen.parser.declarations import DeclarationInput, DeclarationSchemaExtractor
from strapi_typegen.parser.detect import DECLARATION_FILES, detect_format
from strapi_typegen.parser.endpoint_types import (
    attach_controller_types,
    dedupe_extra_types,
    load_extra_types,
    parse_extra_types,
    parse_namespace_file,
)
from strapi_typegen.parser.routes import load_endpoints, parse_route_file
from strapi_typegen.parser.structured import StructuredSchemaExtractor
from strapi_typegen.compiler import compile_schema
from strapi_typegen.schema_hash import compute_schema_hash, hash_input, read_schema_hash, short_hash


class CompilerInputs(BaseModel):
    """Everything read from disk for one run."""

    parsed_schema: ParsedSchema
    endpoints: list[ParsedEndpoint] = []
    extra_types: list[ExtraControllerType] = []
    custom_types: ParsedCustomTypes = ParsedCustomTypes()

    def content_hash(self) -> str:
        return compute_schema_hash(hash_input(self.parsed_schema, self.endpoints, self.extra_types, self.custom_types))


def _load_data(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaExtractionError(f"Cannot read {path}: {e}") from e


def _declaration_input(path: Path) -> DeclarationInput:
    if path.is_dir():
        content_types, components = (path / name for name in DECLARATION_FILES)
        return DeclarationInput(
            content_types=content_types.read_text(encoding="utf-8") if content_types.exists() else "",
            components=components.read_text(encoding="utf-8") if components.exists() else "",
        )
    text = path.read_text(encoding="utf-8")
    if path.name == DECLARATION_FILES[1]:
        return DeclarationInput(components=text)
    return DeclarationInput(content_types=text)


def _load_schema(path: Path, fmt: str) -> CompilerInputs:
    """Parse a schema input; a backend payload may also carry endpoints and extra types."""
    if fmt == "auto":
        fmt = detect_format(path)

    if fmt == "declarations":
        return CompilerInputs(parsed_schema=DeclarationSchemaExtractor().extract(_declaration_input(path)))

    data = _load_data(path)
    endpoints = []
    extra_types = []
    if isinstance(data, dict) and "schema" in data:
        if data.get("endpoints"):
            endpoints = load_endpoints(data["endpoints"])
        if data.get("extraTypes"):
            extra_types = load_extra_types(data["extraTypes"])
        data = data["schema"]
    return CompilerInputs(
        parsed_schema=StructuredSchemaExtractor().extract(data),
        endpoints=endpoints,
        extra_types=extra_types,
    )


def _load_routes(path: Path) -> list[ParsedEndpoint]:
    if path.suffix in (".ts", ".js"):
        return parse_route_file(path.read_text(encoding="utf-8"))
    return load_endpoints(_load_data(path))


def controller_name(path: Path) -> str:
    """item.controller.ts -> item, api/item/controllers/item.ts -> item."""
    return path.name.split(".")[0]


def _load_inputs(
    schema_path: Path,
    fmt: str,
    routes_path: Path | None,
    controller_paths: tuple[Path, ...] = (),
    api_types_path: Path | None = None,
) -> CompilerInputs:
    inputs = _load_schema(schema_path, fmt)
    endpoints = inputs.endpoints
    extra_types = list(inputs.extra_types)
    if routes_path is not None:
        endpoints = _load_routes(routes_path)

    for path in controller_paths:
        controller = controller_name(path)
        text = path.read_text(encoding="utf-8")
        endpoints = attach_controller_types(endpoints, controller, text)
        extra_types += parse_extra_types(text, controller)

    custom_types = ParsedCustomTypes()
    if api_types_path is not None:
        custom_types = parse_namespace_file(api_types_path.read_text(encoding="utf-8"))

    return inputs.model_copy(update={
        "endpoints": endpoints,
        "extra_types": dedupe_extra_types(extra_types),
        "custom_types": custom_types,
    })


def input_options(f):
    """Options shared by every command that reads a schema."""
    f = click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "structured", "declarations"]), help="Schema input format.")(f)
    f = click.option("--api-types", "api_types_path", default=None, type=click.Path(exists=True, path_type=Path), help="File with `export namespace XAPI { ... }` declarations.")(f)
    f = click.option("--controller", "controller_paths", multiple=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Controller source with an `Endpoints` interface; the file name names the controller. Repeatable.")(f)
    f = click.option("--routes", "routes_path", default=None, type=click.Path(exists=True, path_type=Path), help="Route descriptors (JSON/YAML) or a route declaration file.")(f)
    return f


@click.group()
@click.option("--log-level", default=None, help="Logging level (default from STRAPI_TYPEGEN_LOG_LEVEL).")
def main(log_level: str | None):
    """strapi-typegen: compile a Strapi schema into TypeScript types and a typed client."""
    configure_logging(log_level or get_settings().log_level)


@main.command()
@click.argument("schema_path", type=click.Path(exists=True, path_type=Path))
@input_options
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output directory (default from STRAPI_TYPEGEN_OUTPUT_DIR).")
@click.option("-f", "--force", is_flag=True, help="Write even if the schema hash is unchanged.")
def generate(
    schema_path: Path,
    routes_path: Path | None,
    controller_paths: tuple[Path, ...],
    api_types_path: Path | None,
    fmt: str,
    output: Path | None,
    force: bool,
):
    """Generate types.ts, client.ts, index.ts and schema-meta.ts."""
    settings = get_settings()
    output = output or Path(settings.output_dir)

    try:
        click.echo(f"Parsing {schema_path} (format: {fmt})...")
        inputs = _load_inputs(schema_path, fmt, routes_path, controller_paths, api_types_path)
    except StrapiTypegenError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    schema = inputs.parsed_schema
    click.echo(
        f"Found {len(schema.content_types)} content types, "
        f"{len(schema.components)} components, {len(inputs.endpoints)} endpoints."
    )

    result = compile_schema(schema, inputs.endpoints, inputs.extra_types, inputs.custom_types)

    meta_path = output / "schema-meta.ts"
    if not force and meta_path.exists():
        if read_schema_hash(meta_path.read_text(encoding="utf-8")) == result.hash:
            click.echo(f"Schema unchanged ({short_hash(result.hash)}), skipping. Use --force to regenerate.")
            return

    output.mkdir(parents=True, exist_ok=True)
    for filename, content in result.files().items():
        file_path = output / filename
        file_path.write_text(content, encoding="utf-8")
        click.echo(f"  Created {file_path}")

    click.echo(f"Done! {settings.package_name} v{settings.version} types written to {output} (hash {short_hash(result.hash)})")


@main.command("hash")
@click.argument("schema_path", type=click.Path(exists=True, path_type=Path))
@input_options
def hash_command(
    schema_path: Path,
    routes_path: Path | None,
    controller_paths: tuple[Path, ...],
    api_types_path: Path | None,
    fmt: str,
):
    """Print the content hash of a schema and its routes."""
    try:
        inputs = _load_inputs(schema_path, fmt, routes_path, controller_paths, api_types_path)
    except StrapiTypegenError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(inputs.content_hash())
