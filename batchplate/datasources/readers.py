"""Content-type detection and parsing for data source payloads."""

from __future__ import annotations

import csv
import io
import json
from pathlib import PurePosixPath
from typing import Any

import yaml

JSON_TYPE = "application/json"
YAML_TYPE = "application/yaml"
CSV_TYPE = "text/csv"
TEXT_TYPE = "text/plain"

_EXTENSION_TYPES = {
    ".json": JSON_TYPE,
    ".yaml": YAML_TYPE,
    ".yml": YAML_TYPE,
    ".csv": CSV_TYPE,
}

_TYPE_ALIASES = {
    "application/x-yaml": YAML_TYPE,
    "text/yaml": YAML_TYPE,
    "application/x-csv": CSV_TYPE,
}


class ParseError(ValueError):
    """Raised when a payload cannot be parsed as its content type."""


def normalize_type(content_type: str) -> str:
    """Strip parameters from a content type and map known aliases."""
    base = content_type.split(";", 1)[0].strip().lower()
    if base.endswith("+json"):
        return JSON_TYPE
    return _TYPE_ALIASES.get(base, base)


def type_from_path(path: str) -> str:
    """Guess a content type from a file extension, defaulting to plain text."""
    return _EXTENSION_TYPES.get(PurePosixPath(path).suffix.lower(), TEXT_TYPE)


def parse_payload(text: str, content_type: str) -> Any:
    """Parse ``text`` according to ``content_type``.

    Args:
        text: Raw payload
        content_type: MIME type, possibly with parameters

    Returns:
        Parsed value; unknown types are returned as text
    """
    kind = normalize_type(content_type)
    try:
        if kind == JSON_TYPE:
            return json.loads(text)
        if kind == YAML_TYPE:
            return yaml.safe_load(text)
        if kind == CSV_TYPE:
            return list(csv.DictReader(io.StringIO(text)))
    except (json.JSONDecodeError, yaml.YAMLError, csv.Error) as e:
        raise ParseError(f"Invalid {kind} content: {e}") from e
    return text
