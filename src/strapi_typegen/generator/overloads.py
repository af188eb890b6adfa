"""Populate-aware overload sets for read methods.

Overload order matters to the TypeScript checker: the object form must come
before the array form, and the general form is last.
"""

from typing import Callable

from strapi_typegen.generator.document import Signature

POPULATE_FORMS = ("object", "wildcard", "array", "general")

COMMENTS = {
    "object": "Overload: with populate object -> populated return type",
    "wildcard": "Overload: with populate '*' or true -> all fields populated",
    "array": "Overload: with populate array -> populated return type",
    "general": "Overload: general case -> base return type",
}


def fields_param(base: str) -> str:
    return f"const TFields extends Exclude<keyof {base} & string, '__typename'> = never"


def populate_overloads(
    base: str,
    filters: str,
    populate_keys: str,
    wrap: Callable[[str], str],
    leading: list[str] | None = None,
) -> list[Signature]:
    """One signature per populate form, in POPULATE_FORMS order.

    ``wrap`` turns the selected entity shape into the method's return type,
    e.g. ``lambda t: f"Promise<{t}[]>"``.
    """
    leading = leading or []
    fields = fields_param(base)
    next_options = "nextOptions?: NextOptions"
    populated = wrap(f"SelectFields<GetPopulated<{base}, TPopulate>, {base}, TFields>")
    populate_params = f"params: {{ populate: TPopulate }} & QueryParams<{base}, {filters}, TPopulate, TFields>"

    shapes = {
        "object": Signature(
            type_params=[f"const TPopulate extends {populate_keys}", fields],
            params=[*leading, populate_params, next_options],
            returns=populated,
        ),
        "wildcard": Signature(
            type_params=[fields],
            params=[
                *leading,
                f"params: {{ populate: '*' | true }} & QueryParams<{base}, {filters}, '*' | true, TFields>",
                next_options,
            ],
            returns=wrap(f"SelectFields<GetPopulated<{base}, '*'>, {base}, TFields>"),
        ),
        "array": Signature(
            type_params=[f"const TPopulate extends readonly (keyof {populate_keys} & string)[]", fields],
            params=[*leading, populate_params, next_options],
            returns=populated,
        ),
        "general": Signature(
            type_params=[fields],
            params=[
                *leading,
                f"params?: QueryParams<{base}, {filters}, {populate_keys} | (keyof {populate_keys} & string)[] | '*' | boolean, TFields>",
                next_options,
            ],
            returns=wrap(f"SelectFields<{base}, {base}, TFields>"),
        ),
    }
    return [shapes[form].model_copy(update={"comment": COMMENTS[form], "form": form}) for form in POPULATE_FORMS]
