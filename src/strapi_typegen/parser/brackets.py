"""Small bracket-matching sub-parser for TypeScript-ish text.

Used by the declaration front-end and by the controller type extractor. It
tracks nesting depth over ``{} [] () <>`` and skips quoted strings, so a block
may contain arbitrarily nested object types.
"""

import re

OPENERS = {"{": "}", "[": "]", "(": ")", "<": ">"}
CLOSERS = {v: k for k, v in OPENERS.items()}
QUOTES = "'\"`"

_GENERIC_RE = re.compile(r"^\s*([A-Za-z_$][\w$.]*)\s*(<)?")


def _is_arrow(text: str, index: int) -> bool:
    return text[index] == ">" and index > 0 and text[index - 1] == "="


def _skip_string(text: str, index: int) -> int:
    """Return the index just past the string literal starting at index."""
    quote = text[index]
    i = index + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def find_matching(text: str, open_index: int) -> int:
    """Index of the bracket closing the one at open_index, or -1."""
    opener = text[open_index]
    if opener not in OPENERS:
        raise ValueError(f"not an opening bracket: {opener!r}")
    # Only the opener's own kind is counted; "<" inside "{}" bodies is a
    # comparison or arrow as often as a generic.
    closer = OPENERS[opener]
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            i = _skip_string(text, i)
            continue
        if ch == opener:
            depth += 1
        elif ch == closer and not _is_arrow(text, i):
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def extract_block(text: str, open_index: int) -> str | None:
    """Substring strictly between the bracket at open_index and its match."""
    end = find_matching(text, open_index)
    if end < 0:
        return None
    return text[open_index + 1:end]


def block_after(text: str, pattern: str | re.Pattern, start: int = 0) -> tuple[str, int] | None:
    """Find pattern (ending at an opening brace) and return (inner, end_index)."""
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    match = regex.search(text, start)
    if match is None:
        return None
    open_index = match.end() - 1
    end = find_matching(text, open_index)
    if end < 0:
        return None
    return text[open_index + 1:end], end + 1


def split_top_level(text: str, separator: str) -> list[str]:
    """Split on a one-character separator that is outside any bracket or string."""
    parts = []
    depth = 0
    current = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            end = _skip_string(text, i)
            current.append(text[i:end])
            i = end
            continue
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS and not _is_arrow(text, i):
            depth -= 1
        if ch == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return [p for p in parts if p]


def take_member(text: str) -> str:
    """Text up to the first ``;`` or line break outside any bracket or string."""
    depth = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            i = _skip_string(text, i)
            continue
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS and not _is_arrow(text, i):
            if depth == 0:
                break
            depth -= 1
        elif ch in ";\n" and depth == 0:
            break
        i += 1
    return text[:i].strip()


def parse_generic(expr: str) -> tuple[str, list[str]] | None:
    """``Ns.Name<'a', ['b']>`` -> ('Ns.Name', ["'a'", "['b']"]).

    A bare constructor returns an empty argument list. Unbalanced or
    unrecognised text returns None.
    """
    match = _GENERIC_RE.match(expr)
    if match is None:
        return None
    name = match.group(1)
    if match.group(2) is None:
        return name, []
    inner = extract_block(expr, match.end() - 1)
    if inner is None:
        return None
    return name, split_top_level(inner, ",")


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] in QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def parse_string_list(value: str) -> list[str]:
    """``['a', "b"]`` -> ['a', 'b']; anything that is not a list gives []."""
    value = value.strip()
    if not (value.startswith("[") and value.endswith("]")):
        return []
    return [unquote(item) for item in split_top_level(value[1:-1], ",")]


def strip_comments(text: str) -> str:
    """Drop // and /* */ comments outside string literals."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            end = _skip_string(text, i)
            out.append(text[i:end])
            i = end
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = len(text) if newline < 0 else newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = len(text) if close < 0 else close + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def depth_at(text: str, index: int) -> int:
    """Bracket nesting depth at index, ignoring quoted strings."""
    depth = 0
    i = 0
    while i < index:
        ch = text[i]
        if ch in QUOTES:
            i = _skip_string(text, i)
            continue
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS and not _is_arrow(text, i):
            depth -= 1
        i += 1
    return depth


def search_top_level(text: str, pattern: str | re.Pattern) -> re.Match | None:
    """First match of pattern that starts outside any bracket."""
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    for match in regex.finditer(text):
        if depth_at(text, match.start()) == 0:
            return match
    return None
