"""Environment helpers exposed to templates."""

from __future__ import annotations

import os
import re
from typing import Any

_INT_PATTERN = re.compile(r"^-?\d+$")
_FLOAT_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?$")


def to_bool(value: Any, *, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    value_lower = str(value).strip().lower()
    if value_lower in {"true", "1", "yes", "on"}:
        return True
    if value_lower in {"false", "0", "no", "off"}:
        return False
    return default


def coerce_value(value: Any) -> bool | int | float | str:
    """Turn data source or environment text into a bool, int or float.

    Non-string scalars pass through unchanged, so values already parsed
    from JSON or YAML can be fed back in. Anything else is returned as text.
    """
    if isinstance(value, (bool, int, float)):
        return value
    text = str(value).strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if _INT_PATTERN.fullmatch(text):
        try:
            return int(text)
        except ValueError:
            # Beyond the interpreter's integer string limit.
            return text
    if _FLOAT_PATTERN.fullmatch(text):
        return float(text)
    return text


def split_csv(value: str) -> list[str]:
    """Split a comma-separated string into stripped, non-empty items."""
    if not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def getenv(name: str, default: str = "") -> str:
    """Return an environment variable, or ``default`` when unset or empty."""
    return os.environ.get(name) or default


def build_env_functions() -> dict[str, Any]:
    """Build the environment-related template functions.

    Returns:
        Mapping of template global name to value
    """
    return {
        "env": dict(os.environ),
        "getenv": getenv,
        "coerce": coerce_value,
        "to_bool": to_bool,
        "split_csv": split_csv,
    }
