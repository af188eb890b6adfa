"""Client synthesis: CRUD wrappers, custom-route classes and the aggregate StrapiClient."""

import logging
import re
from pathlib import Path

from strapi_typegen.parser.base import (
    ContentType,
    ExtraControllerType,
    ParsedCustomTypes,
    ParsedEndpoint,
    ParsedRoute,
    ParsedRoutes,
    ParsedSchema,
)
from strapi_typegen.parser.endpoint_types import endpoints_to_custom_types, merge_custom_types
from strapi_typegen.parser.naming import to_camel_case, to_endpoint_name, to_kebab_case, to_pascal_case
from strapi_typegen.parser.routes import endpoints_to_routes
from strapi_typegen.generator.auth_api import AUTH_CONTROLLERS, AuthApiGenerator
from strapi_typegen.generator.custom_api import CustomApiGenerator
from strapi_typegen.generator.document import (
    ClassDecl,
    Document,
    Interface,
    Method,
    Property,
    Raw,
    TypeAlias,
)
from strapi_typegen.generator.overloads import populate_overloads

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

HEADER = "// Auto-generated Strapi API client\n// Do not edit manually"

FILTER_UTILITIES = (
    "StringFilterOperators",
    "NumberFilterOperators",
    "BooleanFilterOperators",
    "DateFilterOperators",
    "IdFilterOperators",
    "LogicalOperators",
)

CRUD_CONSTRUCTOR = """  constructor(
    protected endpoint: string,
    config: StrapiClientConfig
  ) {
    super(config)
  }"""

STANDALONE_CONSTRUCTOR = """  constructor(config: StrapiClientConfig) {
    super(config)
  }"""

FORM_BODY = [
    "const body = data instanceof FormData",
    "  ? data",
    "  : JSON.stringify({ data })",
    "",
]


def controller_matches(ct: ContentType, controller: str) -> bool:
    """A controller belongs to a content type by its kebab name or its plural minus a trailing s."""
    plural = to_endpoint_name(ct.clean_name, single=False)
    return controller in (to_kebab_case(ct.clean_name), re.sub(r"s$", "", plural))


def entity_endpoint(ct: ContentType) -> str:
    return to_endpoint_name(ct.clean_name, single=ct.kind == "single")


def entity_type_params(ct: ContentType) -> str:
    name = ct.clean_name
    params = [name, f"{name}Input", f"{name}Filters"]
    if ct.is_populatable:
        params.append(f"{name}PopulateParam")
    return f"<{', '.join(params)}>"


class ClientGenerator:
    """Build ``client.ts`` from the schema and the custom routes."""

    def __init__(self):
        self.schema = ParsedSchema()
        self.routes = ParsedRoutes()

    def generate(
        self,
        schema: ParsedSchema,
        endpoints: list[ParsedEndpoint] | None = None,
        extra_types: list[ExtraControllerType] | None = None,
        custom_types: ParsedCustomTypes | None = None,
    ) -> str:
        return self.build(schema, endpoints, extra_types, custom_types).render()

    def build(
        self,
        schema: ParsedSchema,
        endpoints: list[ParsedEndpoint] | None = None,
        extra_types: list[ExtraControllerType] | None = None,
        custom_types: ParsedCustomTypes | None = None,
    ) -> Document:
        self.schema = schema
        endpoints = endpoints or []
        self.routes = endpoints_to_routes(endpoints)
        types = merge_custom_types(endpoints_to_custom_types(endpoints, extra_types), custom_types or ParsedCustomTypes())
        custom_api = CustomApiGenerator(types)
        auth_api = AuthApiGenerator(schema)

        doc = Document()
        doc.raw(HEADER)
        doc.raw(self._imports())
        definitions = custom_api.type_definitions()
        if definitions is not None:
            doc.add(definitions)

        doc.add(*self._utility_types())
        doc.add(*auth_api.auth_types())
        doc.add(self._collection_api(), self._single_type_api())
        doc.add(*self._custom_classes(custom_api))
        doc.add(auth_api.auth_class(self.routes.by_controller.get("auth"), self.routes.by_controller.get("user")))
        doc.add(self._strapi_client())
        return doc

    # -- header ----------------------------------------------------------------

    def _imports(self) -> str:
        names = []
        filters = []
        for ct in self.schema.content_types:
            names.append(ct.clean_name)
            if ct.is_populatable:
                names += [f"{ct.clean_name}GetPayload", f"{ct.clean_name}PopulateParam"]
            names.append(f"{ct.clean_name}Input")
            filters.append(f"{ct.clean_name}Filters")
        names.append("MediaFile")
        filters += FILTER_UTILITIES
        return "\n".join([
            f"import type {{ {', '.join(names)} }} from './types.js'",
            f"import type {{ {', '.join(filters)} }} from './types.js'",
            "import qs from 'qs'",
        ])

    # -- runtime support types -------------------------------------------------

    def _utility_types(self) -> list:
        no_typename = "Exclude<keyof T & string, '__typename'>"
        return [
            Interface(name="StrapiResponse", type_params=["T"], properties=[
                Property(name="data", type="T"),
                Property(
                    name="meta",
                    type="{ pagination?: { page: number; pageSize: number; pageCount: number; total: number } }",
                    optional=True,
                ),
            ]),
            Raw(text=(TEMPLATES_DIR / "errors.ts").read_text(encoding="utf-8")),
            Raw(text=(TEMPLATES_DIR / "base_api.ts").read_text(encoding="utf-8")),
            TypeAlias(
                name="StrapiSortOption",
                type_params=["T"],
                exported=False,
                type=f'{no_typename} | `${{{no_typename}}}:${{"asc" | "desc"}}`',
            ),
            Interface(
                name="QueryParams",
                type_params=[
                    "TEntity = any",
                    "TFilters = Record<string, any>",
                    "TPopulate = any",
                    "TFields extends string = Exclude<keyof TEntity & string, '__typename'>",
                ],
                properties=[
                    Property(name="filters", type="TFilters", optional=True),
                    Property(name="sort", type="StrapiSortOption<TEntity> | StrapiSortOption<TEntity>[]", optional=True),
                    Property(
                        name="pagination",
                        type="{ page?: number; pageSize?: number; limit?: number; start?: number }",
                        optional=True,
                    ),
                    Property(name="populate", type="TPopulate", optional=True),
                    Property(name="fields", type="TFields[]", optional=True),
                ],
            ),
            Interface(name="NextOptions", properties=[
                Property(name="revalidate", type="number | false", optional=True),
                Property(name="tags", type="string[]", optional=True),
                Property(name="cache", type="RequestCache", optional=True),
                Property(name="headers", type="Record<string, string | undefined>", optional=True),
            ]),
            Interface(name="StrapiClientConfig", properties=[
                Property(name="baseURL", type="string"),
                Property(name="token", type="string", optional=True),
                Property(name="fetch", type="typeof fetch", optional=True),
                Property(name="debug", type="boolean", optional=True),
                Property(name="credentials", type="RequestCredentials", optional=True),
                Property(
                    name="timeout",
                    type="number",
                    optional=True,
                    doc="Request timeout in milliseconds. When set, requests that take longer will be aborted.",
                ),
                Property(
                    name="validateSchema",
                    type="boolean",
                    optional=True,
                    doc="Enable schema validation on init (dev mode). Logs warning if types are outdated.",
                ),
            ]),
            TypeAlias(
                name="Equal",
                type_params=["X", "Y"],
                doc="Utility type for exact type equality check",
                type="(<T>() => T extends X ? 1 : 2) extends (<T>() => T extends Y ? 1 : 2) ? true : false",
            ),
            self._get_populated(),
            TypeAlias(
                name="SelectFields",
                type_params=["TFull", "TBase", "TFields extends string"],
                doc="Utility type for narrowing return type based on fields parameter",
                type=(
                    "[TFields] extends [never] ? TFull : "
                    "Pick<TBase, Extract<TFields | 'id' | 'documentId', keyof TBase>> & Omit<TFull, keyof TBase>"
                ),
            ),
        ]

    def _get_populated(self) -> TypeAlias:
        """One exact-equality branch per populatable content type, then TBase."""
        branches = [
            f"Equal<TBase, {ct.clean_name}> extends true ? {ct.clean_name}GetPayload<{{ populate: TPopulate }}> :"
            for ct in self.schema.content_types
            if ct.is_populatable
        ]
        return TypeAlias(
            name="GetPopulated",
            type_params=["TBase", "TPopulate"],
            doc=(
                "Utility type to automatically infer populated type based on base type\n"
                "Uses exact equality instead of extends to avoid structural typing issues"
            ),
            type="\n  ".join([*branches, "TBase"]) if branches else "TBase",
        )

    # -- CRUD wrappers ---------------------------------------------------------

    def _crud_overloads(self, wrap, leading=None):
        return populate_overloads("TBase", "TFilters", "TPopulateKeys", wrap, leading)

    def _collection_api(self) -> ClassDecl:
        read_body = "const query = this.buildQueryString(params)"
        list_url = "const url = `${this.config.baseURL}/api/${this.endpoint}${query}`"
        item_url = "const url = `${this.config.baseURL}/api/${this.endpoint}/${documentId}`"
        return ClassDecl(
            name="CollectionAPI",
            comment="Collection API wrapper with type-safe populate support",
            type_params=self._crud_type_params(),
            extends="BaseAPI",
            members=[
                Raw(text=CRUD_CONSTRUCTOR),
                Method(
                    name="find",
                    overloads=self._crud_overloads(lambda t: f"Promise<{t}[]>"),
                    params=["params?: any", "nextOptions?: any"],
                    returns="Promise<any>",
                    body=[
                        read_body,
                        list_url,
                        "const response = await this.request<StrapiResponse<any[]>>(url, {}, nextOptions)",
                        "return response.data",
                    ],
                ),
                Method(
                    name="findWithMeta",
                    overloads=self._crud_overloads(lambda t: f"Promise<StrapiResponse<{t}[]>>"),
                    params=["params?: any", "nextOptions?: any"],
                    returns="Promise<any>",
                    body=[read_body, list_url, "return this.request<StrapiResponse<any[]>>(url, {}, nextOptions)"],
                ),
                Method(
                    name="findOne",
                    overloads=self._crud_overloads(lambda t: f"Promise<{t} | null>", ["documentId: string"]),
                    params=["documentId: string", "params?: any", "nextOptions?: any"],
                    returns="Promise<any>",
                    body=[
                        read_body,
                        "const url = `${this.config.baseURL}/api/${this.endpoint}/${documentId}${query}`",
                        "const response = await this.request<StrapiResponse<any>>(url, {}, nextOptions)",
                        "return response.data",
                    ],
                ),
                Method(
                    name="create",
                    params=["data: TInput | FormData", "nextOptions?: NextOptions"],
                    returns="Promise<TBase>",
                    body=[
                        *FORM_BODY,
                        "const url = `${this.config.baseURL}/api/${this.endpoint}`",
                        *self._write_call("POST"),
                        "return response.data",
                    ],
                ),
                Method(
                    name="update",
                    params=["documentId: string", "data: TInput | FormData", "nextOptions?: NextOptions"],
                    returns="Promise<TBase>",
                    body=[*FORM_BODY, item_url, *self._write_call("PUT"), "return response.data"],
                ),
                Method(
                    name="delete",
                    params=["documentId: string", "nextOptions?: NextOptions"],
                    returns="Promise<TBase | null>",
                    body=[
                        item_url,
                        "const response = await this.request<StrapiResponse<TBase> | null>(",
                        "  url,",
                        "  { method: 'DELETE' },",
                        "  nextOptions",
                        ")",
                        "return response?.data ?? null",
                    ],
                ),
            ],
        )

    def _single_type_api(self) -> ClassDecl:
        return ClassDecl(
            name="SingleTypeAPI",
            comment="Single Type API wrapper with type-safe populate support",
            type_params=self._crud_type_params(),
            extends="BaseAPI",
            members=[
                Raw(text=CRUD_CONSTRUCTOR),
                Method(
                    name="find",
                    overloads=self._crud_overloads(lambda t: f"Promise<{t}>"),
                    params=["params?: any", "nextOptions?: any"],
                    returns="Promise<any>",
                    body=[
                        "const query = this.buildQueryString(params)",
                        "const url = `${this.config.baseURL}/api/${this.endpoint}${query}`",
                        "const response = await this.request<StrapiResponse<any>>(url, {}, nextOptions)",
                        "return response.data",
                    ],
                ),
                Method(
                    name="update",
                    params=["data: TInput | FormData", "nextOptions?: NextOptions"],
                    returns="Promise<TBase>",
                    body=[
                        *FORM_BODY,
                        "const url = `${this.config.baseURL}/api/${this.endpoint}`",
                        *self._write_call("PUT"),
                        "return response.data",
                    ],
                ),
            ],
        )

    @staticmethod
    def _crud_type_params() -> list[str]:
        return [
            "TBase",
            "TInput = Partial<TBase>",
            "TFilters = Record<string, any>",
            "TPopulateKeys extends Record<string, any> = Record<string, any>",
        ]

    @staticmethod
    def _write_call(method: str) -> list[str]:
        return [
            "const response = await this.request<StrapiResponse<TBase>>(",
            "  url,",
            "  {",
            f"    method: '{method}',",
            "    body,",
            "  },",
            "  nextOptions",
            ")",
        ]

    # -- custom routes ---------------------------------------------------------

    def entity_for(self, controller: str) -> ContentType | None:
        for ct in self.schema.content_types:
            if controller_matches(ct, controller):
                return ct
        return None

    def _custom_controllers(self) -> list[tuple[str, list[ParsedRoute]]]:
        return [(c, routes) for c, routes in self.routes.by_controller.items() if c not in AUTH_CONTROLLERS]

    def _custom_classes(self, custom_api: CustomApiGenerator) -> list[ClassDecl]:
        classes = []
        for controller, routes in self._custom_controllers():
            ct = self.entity_for(controller)
            if ct is not None:
                base = "SingleTypeAPI" if ct.kind == "single" else "CollectionAPI"
                classes.append(ClassDecl(
                    name=f"{ct.clean_name}API",
                    extends=f"{base}{entity_type_params(ct)}",
                    comment=f"Custom API class for {ct.clean_name} ({ct.kind} type) with custom routes",
                    members=custom_api.methods(routes, endpoint=entity_endpoint(ct)),
                ))
            else:
                logger.debug("Controller %s has no content type, emitting a standalone class", controller)
                classes.append(ClassDecl(
                    name=to_pascal_case(controller) + "API",
                    extends="BaseAPI",
                    comment=f"Standalone API class for {controller} controller",
                    members=[Raw(text=STANDALONE_CONSTRUCTOR), *custom_api.methods(routes, standalone=True)],
                ))
        return classes

    # -- aggregate client ------------------------------------------------------

    def _has_custom_class(self, ct: ContentType) -> bool:
        return any(controller_matches(ct, c) for c, _ in self._custom_controllers())

    def final_endpoint(self, ct: ContentType) -> str:
        """Plugin content types live under their plugin prefix unless a route declares prefix ''."""
        endpoint = entity_endpoint(ct)
        if not ct.plugin_name:
            return endpoint
        routes = [r for c, rs in self.routes.by_controller.items() if controller_matches(ct, c) for r in rs]
        if any(r.prefix == "" for r in routes):
            return endpoint
        return f"{ct.plugin_name}/{endpoint}"

    def _strapi_client(self) -> ClassDecl:
        fields = ["  private config: StrapiClientConfig", "", "  // Auth API for users-permissions plugin", "  authentication: AuthAPI", ""]
        inits = []
        for ct in self.schema.content_types:
            prop = to_camel_case(entity_endpoint(ct))
            if self._has_custom_class(ct):
                cls, type_params = f"{ct.clean_name}API", ""
            else:
                cls = "SingleTypeAPI" if ct.kind == "single" else "CollectionAPI"
                type_params = entity_type_params(ct)
            fields.append(f"  {prop}: {cls}{type_params}")
            inits.append(f"    this.{prop} = new {cls}('{self.final_endpoint(ct)}', this.config)")

        for controller, _ in self._custom_controllers():
            if self.entity_for(controller) is None:
                prop = to_camel_case(controller)
                cls = to_pascal_case(controller) + "API"
                fields.append(f"  {prop}: {cls}")
                inits.append(f"    this.{prop} = new {cls}(this.config)")

        constructor = "\n".join([
            "  constructor(config: StrapiClientConfig) {",
            "    this.config = config",
            "    this.authentication = new AuthAPI(this.config)",
            "",
            *inits,
            "",
            (TEMPLATES_DIR / "validate_on_init.ts").read_text(encoding="utf-8").rstrip("\n"),
            "  }",
        ])
        return ClassDecl(
            name="StrapiClient",
            exported=True,
            comment="Main Strapi client",
            members=[
                Raw(text="\n".join(fields).rstrip("\n")),
                Raw(text=constructor),
                Raw(text=(TEMPLATES_DIR / "client_validation.ts").read_text(encoding="utf-8")),
            ],
        )
