"""Identifier casing, pluralization and UID decomposition.

Every name that ends up in generated text goes through these functions, so
both schema front-ends and both generators agree on spelling.
"""

import re

ABBREVIATIONS = ["AI", "API", "UI", "URL", "ID", "HTTP", "SSE", "SDK"]

_PATH_PARAM_RE = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")
_SEPARATOR_RE = re.compile(r"[-_]")


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def lower_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def to_pascal_case(value: str) -> str:
    """team-invitation -> TeamInvitation."""
    return "".join(capitalize(part) for part in _SEPARATOR_RE.split(value))


def to_camel_case(value: str) -> str:
    """forgot-password -> forgotPassword. Only lowercase letters are lifted."""
    return re.sub(r"[-_]([a-z])", lambda m: m.group(1).upper(), value)


def to_kebab_case(value: str) -> str:
    """TeamInvitation -> team-invitation, HTTPServer -> http-server."""
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", value)
    value = re.sub(r"([A-Z])([A-Z][a-z])", r"\1-\2", value)
    return value.lower()


def to_pascal_case_preserve(value: str) -> str:
    """Like to_pascal_case, but a leading known abbreviation stays upper-case.

    ai-studio -> AIStudio, team-invitation -> TeamInvitation.
    """
    result = to_pascal_case(value)
    for abbr in ABBREVIATIONS:
        pattern = f"^{abbr[0]}{abbr[1:].lower()}(?=[A-Z]|$)"
        result = re.sub(pattern, abbr, result)
    return result


def pluralize(word: str) -> str:
    if word.endswith("y") and not re.search(r"[aeiou]y$", word, re.IGNORECASE):
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def extract_path_params(path: str) -> list[str]:
    """/items/:id/action -> ['id']"""
    return _PATH_PARAM_RE.findall(path)


def to_endpoint_name(clean_name: str, single: bool = False) -> str:
    """Item -> items, SaveGame -> save-games, Homepage (single) -> homepage."""
    kebab = to_kebab_case(clean_name)
    return kebab if single else pluralize(kebab)


def convert_component_name(uid: str) -> str:
    """landing.editor-feature -> LandingEditorFeature."""
    return "".join(to_pascal_case(part) for part in uid.split("."))


def component_category(uid: str) -> str:
    return uid.split(".")[0] or uid


def is_namespaced(uid: str) -> bool:
    return "::" in uid


def clean_name_from_uid(uid: str) -> str:
    """api::guide-type.guide-type -> GuideType, shared.seo -> SharedSeo."""
    if not is_namespaced(uid):
        return convert_component_name(uid)
    rest = uid.split("::", 1)[1]
    model = rest.split(".")[-1] or rest
    return to_pascal_case(model)


def uid_to_interface_name(uid: str) -> str:
    """api::item.item -> ApiItemItem."""
    return "".join(to_pascal_case(part) for part in re.split(r"[:.]+", uid) if part)


def collapse_repeated(name: str) -> str:
    """ItemItem -> Item, GuideTypeGuideType -> GuideType.

    Returns the prefix P when the rest of the name equals P ignoring case,
    otherwise the name unchanged.
    """
    half, odd = divmod(len(name), 2)
    if half and not odd and name[:half].lower() == name[half:].lower():
        return capitalize(name[:half])
    return name


def clean_name_from_interface(name: str) -> str:
    """ApiItemItem -> Item, PluginUsersPermissionsUser -> User."""
    if name.startswith("PluginUsersPermissions"):
        return name[len("PluginUsersPermissions"):] or name
    if name.startswith("Api"):
        return collapse_repeated(name[3:])
    return collapse_repeated(name)


def plugin_name_from_uid(uid: str) -> str | None:
    """plugin::users-permissions.user -> users-permissions."""
    if not uid.startswith("plugin::"):
        return None
    return uid.split("::", 1)[1].split(".")[0]
