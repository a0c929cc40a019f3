"""Output permission parsing."""

from __future__ import annotations

import re

from .errors import InvalidPermissionFormat

_OCTAL_PATTERN = re.compile(r"[0-7]*")
_MAX_MODE = 0xFFFFFFFF


def resolve_permission(value: str) -> tuple[int, bool]:
    """Parse an octal permission string.

    Args:
        value: Octal digits such as ``"644"``; empty means no override

    Returns:
        Tuple of (mode, override) where override is True only when
        ``value`` was non-empty
    """
    override = value != ""
    text = "0" + value
    if not _OCTAL_PATTERN.fullmatch(text):
        raise InvalidPermissionFormat(f"Invalid octal mode: {value!r}")

    mode = int(text, 8)
    if mode > _MAX_MODE:
        raise InvalidPermissionFormat(f"Octal mode out of range: {value!r}")

    return mode, override
