"""Unified data models for the parsed content schema and custom routes.

Both schema front-ends (structured map, declaration text) and the route
extractor convert their input into these models. Generators only read them.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

ScalarKind = Literal[
    "string",
    "text",
    "richtext",
    "blocks",
    "email",
    "integer",
    "biginteger",
    "float",
    "decimal",
    "boolean",
    "date",
    "datetime",
    "time",
    "json",
    "enumeration",
]

RelationKind = Literal["oneToOne", "oneToMany", "manyToOne", "manyToMany"]

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class AttributeType(_Frozen):
    """Tagged scalar type. Only enumerations carry values."""

    kind: ScalarKind
    values: list[str] = []


class Attribute(_Frozen):
    """A scalar field."""

    name: str
    type: AttributeType
    required: bool = False


class Relation(_Frozen):
    name: str
    relation_type: RelationKind
    target: str  # api::category.category
    target_type: str  # Category
    required: bool = False

    @property
    def is_array(self) -> bool:
        return self.relation_type in ("oneToMany", "manyToMany")


class MediaField(_Frozen):
    name: str
    multiple: bool = False
    required: bool = False


class ComponentField(_Frozen):
    name: str
    component: str  # landing.editor-feature
    component_type: str  # LandingEditorFeature
    repeatable: bool = False
    required: bool = False


class DynamicZoneField(_Frozen):
    name: str
    components: list[str]  # ordered component UIDs
    component_types: list[str]
    required: bool = False


class Entity(_Frozen):
    """Fields shared by content types and components.

    Every raw field lands in exactly one of the five buckets.
    """

    uid: str
    name: str  # ApiItemItem / LandingEditorFeature
    clean_name: str  # Item / LandingEditorFeature
    attributes: list[Attribute] = []
    relations: list[Relation] = []
    media: list[MediaField] = []
    components: list[ComponentField] = []
    dynamic_zones: list[DynamicZoneField] = []

    @property
    def is_populatable(self) -> bool:
        return bool(self.relations or self.media or self.components or self.dynamic_zones)


class ContentType(Entity):
    kind: Literal["collection", "single"] = "collection"
    collection_name: str = ""
    plugin_name: str | None = None  # users-permissions for plugin content types


class Component(Entity):
    category: str = ""


class ParsedSchema(_Frozen):
    """Aggregate root of one compilation run."""

    content_types: list[ContentType] = []
    components: list[Component] = []

    def find(self, clean_name: str) -> Entity | None:
        """Look up a content type or component by its clean name."""
        for entity in self.content_types:
            if entity.clean_name == clean_name:
                return entity
        for entity in self.components:
            if entity.clean_name == clean_name:
                return entity
        return None

    def is_populatable(self, clean_name: str) -> bool:
        entity = self.find(clean_name)
        return entity is not None and entity.is_populatable


class EndpointTypes(_Frozen):
    """Optional type texts declared for one controller action."""

    body: str | None = None
    response: str | None = None
    params: str | None = None
    query: str | None = None

    def is_empty(self) -> bool:
        return not (self.body or self.response or self.params or self.query)


class ParsedEndpoint(_Frozen):
    """A route descriptor as delivered by the backend (or a route-file scan)."""

    method: str
    path: str
    handler: str
    controller: str
    action: str
    types: EndpointTypes | None = None
    plugin_name: str | None = None
    prefix: str | None = None  # None means the plugin's default prefix


class ExtraControllerType(_Frozen):
    """A standalone exported type found in a controller file."""

    controller: str
    type_name: str
    type_definition: str


class ParsedRoute(_Frozen):
    method: HttpMethod
    path: str  # /items/:id/action
    handler: str  # api::item.item.incrementRun
    controller: str  # item
    action: str  # incrementRun
    params: list[str] = []
    plugin_name: str | None = None
    prefix: str | None = None


class ParsedRoutes(_Frozen):
    all: list[ParsedRoute] = []
    by_controller: dict[str, list[ParsedRoute]] = {}


class CustomEndpointType(_Frozen):
    handler: str  # team-invitation.create
    input_type: str | None = None  # TeamInvitationAPI.CreateRequest
    output_type: str | None = None  # TeamInvitationAPI.CreateResponse


class ParsedCustomTypes(_Frozen):
    types: dict[str, CustomEndpointType] = {}  # keyed by handler
    type_definitions: list[str] = []  # namespace declarations, emitted verbatim
    namespace_imports: list[str] = []
