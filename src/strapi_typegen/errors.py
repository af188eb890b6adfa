"""Failures that abort a compilation run.

Unknown attribute kinds, unresolved references and unparseable single fields
or routes are not errors: they are dropped (or skipped) by the extractors and
reported on the log. Only top-level input that cannot be read at all raises.
"""


class StrapiTypegenError(Exception):
    """Base class for all fatal compilation failures."""


class SchemaExtractionError(StrapiTypegenError):
    """The schema input is unreadable or malformed at the top level."""


class RouteExtractionError(StrapiTypegenError):
    """The route input is unreadable or malformed at the top level."""
