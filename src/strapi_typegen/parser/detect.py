"""Auto-detect which schema front-end an input needs."""

import json
from pathlib import Path

import yaml

DECLARATION_FILES = ("contentTypes.d.ts", "components.d.ts")
STRUCTURED_KEYS = ("contentTypes", "entities", "schema")


def detect_format(path: Path) -> str:
    """Detect the format of a schema input.

    Returns: 'structured' or 'declarations'.
    """
    if path.is_dir():
        return "declarations"

    if path.name.endswith(".ts"):
        return "declarations"

    text = path.read_text(encoding="utf-8")

    # Try JSON first, it is what the backend serves
    try:
        data = json.loads(text)
        if isinstance(data, dict) and any(key in data for key in STRUCTURED_KEYS):
            return "structured"
    except (json.JSONDecodeError, ValueError):
        pass

    try:
        data = yaml.safe_load(text)
        if isinstance(data, dict) and any(key in data for key in STRUCTURED_KEYS):
            return "structured"
    except yaml.YAMLError:
        pass

    if "interface " in text:
        return "declarations"
    return "structured"
