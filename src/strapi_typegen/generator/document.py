"""Structured TypeScript document.

Generators build a Document out of declarations and render it at the end, so
the shape of the output (which interfaces exist, how many branches a payload
type has, the order of method overloads) can be inspected before it becomes
text.
"""

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

INDENT = "  "

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


def property_key(name: str) -> str:
    """Quote a member name that is not a plain identifier."""
    return name if _IDENTIFIER_RE.match(name) else f"'{name}'"


def _jsdoc(doc: str, indent: str = "", inline: bool = False) -> list[str]:
    lines = doc.splitlines()
    if inline and len(lines) == 1:
        return [f"{indent}/** {lines[0]} */"]
    return [f"{indent}/**", *(f"{indent} * {line}".rstrip() for line in lines), f"{indent} */"]


def _type_params(params: list[str]) -> str:
    return f"<{', '.join(params)}>" if params else ""


class Property(BaseModel):
    name: str
    type: str
    optional: bool = False
    readonly: bool = False
    doc: str | None = None

    def render(self, indent: str = INDENT) -> list[str]:
        lines = _jsdoc(self.doc, indent, inline=True) if self.doc else []
        readonly = "readonly " if self.readonly else ""
        optional = "?" if self.optional else ""
        lines.append(f"{indent}{readonly}{property_key(self.name)}{optional}: {self.type}")
        return lines


def object_type(properties: list[Property], indent: str = "") -> str:
    """``{ a: string }`` spread over several lines."""
    if not properties:
        return "{}"
    body = [line for prop in properties for line in prop.render(indent + INDENT)]
    return "\n".join(["{", *body, f"{indent}}}"])


class Interface(BaseModel):
    kind: Literal["interface"] = "interface"
    name: str
    properties: list[Property] = []
    extends: list[str] = []
    type_params: list[str] = []
    exported: bool = True
    doc: str | None = None

    def find_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def render(self) -> str:
        lines = _jsdoc(self.doc) if self.doc else []
        export = "export " if self.exported else ""
        extends = f" extends {', '.join(self.extends)}" if self.extends else ""
        lines.append(f"{export}interface {self.name}{_type_params(self.type_params)}{extends} {{")
        for prop in self.properties:
            lines.extend(prop.render())
        lines.append("}")
        return "\n".join(lines)


class TypeAlias(BaseModel):
    """``type Name<T> = ...``. With properties, the right-hand side is an object type."""

    kind: Literal["alias"] = "alias"
    name: str
    type: str = ""
    properties: list[Property] | None = None
    type_params: list[str] = []
    exported: bool = True
    doc: str | None = None

    def render(self) -> str:
        lines = _jsdoc(self.doc) if self.doc else []
        export = "export " if self.exported else ""
        rhs = object_type(self.properties) if self.properties is not None else self.type
        lines.append(f"{export}type {self.name}{_type_params(self.type_params)} = {rhs}")
        return "\n".join(lines)


class Raw(BaseModel):
    """Verbatim text: comments, static blocks, hand-shaped members."""

    kind: Literal["raw"] = "raw"
    text: str

    def render(self) -> str:
        return self.text.rstrip("\n")


BRANCH_CONDITIONS = {
    "wildcard": "'*' | true",
    "array": "readonly (infer _)[]",
    "object": None,
}


class PayloadBranch(BaseModel):
    """One arm of a payload type, selected by the shape of ``Pop``."""

    kind: Literal["wildcard", "array", "object"]
    fields: list[str]

    @property
    def condition(self) -> str | None:
        return BRANCH_CONDITIONS[self.kind]


class PayloadType(BaseModel):
    """``XGetPayload<P>``: the base type intersected with a branch over ``P['populate']``.

    Branches render in order as a conditional chain; the last one is the
    unconditional arm. ``fallback`` applies when ``P`` has no populate key.
    """

    kind: Literal["payload"] = "payload"
    name: str
    base: str
    branches: list[PayloadBranch]
    fallback: str = "{}"
    comment: str | None = None

    def render(self) -> str:
        lines = [f"// {self.comment}"] if self.comment else []
        lines += [
            f"export type {self.name}<P extends {{ populate?: any }} = {{}}> =",
            f"  {self.base} &",
            "  (P extends { populate: infer Pop }",
        ]
        prefix = "?"
        depth = 4
        last = len(self.branches) - 1
        for i, branch in enumerate(self.branches):
            pad = " " * depth
            if i < last and branch.condition:
                lines.append(f"{pad}{prefix} Pop extends {branch.condition}")
                lines.append(f"{pad}  ? {{")
                lines.extend(f"{pad}      {field}" for field in branch.fields)
                lines.append(f"{pad}    }}")
                prefix = ":"
                depth += 2
            else:
                lines.append(f"{pad}{prefix} {{")
                lines.extend(f"{pad}    {field}" for field in branch.fields)
                lines.append(f"{pad}  }}")
        lines.append(f"    : {self.fallback})")
        return "\n".join(lines)


class Signature(BaseModel):
    """One overload: type parameters, parameters and return type."""

    params: list[str] = []
    returns: str
    type_params: list[str] = []
    comment: str | None = None
    form: str | None = None  # populate form this overload accepts, if any


class Method(BaseModel):
    """A class method, optionally preceded by its overload signatures."""

    kind: Literal["method"] = "method"
    name: str
    params: list[str] = []
    returns: str
    body: list[str] = []
    overloads: list[Signature] = []
    is_async: bool = True
    doc: str | None = None

    def render(self) -> str:
        lines = _jsdoc(self.doc, INDENT) if self.doc else []
        if self.overloads and self.doc:
            lines.append("")
        for sig in self.overloads:
            if sig.comment:
                lines.append(f"{INDENT}// {sig.comment}")
            head = f"{INDENT}{self.name}{_type_params(sig.type_params)}"
            if not sig.params:
                lines.append(f"{head}(): {sig.returns}")
                continue
            lines.append(f"{head}(")
            lines.append(",\n".join(f"{INDENT * 2}{param}" for param in sig.params))
            lines.append(f"{INDENT}): {sig.returns}")
        if self.overloads:
            lines.append("")
        prefix = "async " if self.is_async else ""
        lines.append(f"{INDENT}{prefix}{self.name}({', '.join(self.params)}): {self.returns} {{")
        lines.extend(f"{INDENT * 2}{line}" if line else "" for line in self.body)
        lines.append(f"{INDENT}}}")
        return "\n".join(lines)


class ClassDecl(BaseModel):
    kind: Literal["class"] = "class"
    name: str
    extends: str | None = None
    type_params: list[str] = []
    members: list[Method | Raw] = []
    exported: bool = False
    comment: str | None = None

    def method(self, name: str) -> Method | None:
        for member in self.members:
            if isinstance(member, Method) and member.name == name:
                return member
        return None

    def render(self) -> str:
        lines = [f"// {self.comment}"] if self.comment else []
        export = "export " if self.exported else ""
        if len(self.type_params) > 2:
            params = "\n".join([
                "<",
                ",\n".join(f"{INDENT}{param}" for param in self.type_params),
                ">",
            ])
        else:
            params = _type_params(self.type_params)
        extends = f" extends {self.extends}" if self.extends else ""
        lines.append(f"{export}class {self.name}{params}{extends} {{")
        lines.append("\n\n".join(member.render() for member in self.members))
        lines.append("}")
        return "\n".join(lines)


Declaration = Annotated[
    Union[Interface, TypeAlias, Raw, PayloadType, ClassDecl],
    Field(discriminator="kind"),
]


class Document(BaseModel):
    """An ordered list of top-level declarations."""

    declarations: list[Declaration] = []

    def add(self, *declarations: Declaration) -> "Document":
        self.declarations.extend(declarations)
        return self

    def raw(self, text: str) -> "Document":
        return self.add(Raw(text=text))

    def of_kind(self, kind: str) -> list[Declaration]:
        return [d for d in self.declarations if d.kind == kind]

    def get(self, name: str) -> "Declaration | None":
        for decl in self.declarations:
            if getattr(decl, "name", None) == name:
                return decl
        return None

    def render(self) -> str:
        return "\n\n".join(decl.render() for decl in self.declarations) + "\n"
