"""Auxiliary template alias resolution.

Turns ``[alias=]path`` arguments into a mapping of template name to file
path. A file argument is addressable by its alias (or its own path), while a
directory argument exposes each file directly inside it as ``prefix/name``.
"""

from __future__ import annotations

import logging
import os
import stat
from typing import Iterable

from ..core.errors import AuxTemplateNotFound

logger = logging.getLogger(__name__)


def split_template_arg(value: str) -> tuple[str, str]:
    """Split ``alias=path`` into (alias, path); alias is empty when absent."""
    if "=" not in value:
        return "", value
    alias, path = value.split("=", 1)
    return alias, path


def parse_template_arg(value: str, aliases: dict[str, str]) -> None:
    """Resolve a single argument into ``aliases``.

    Args:
        value: Raw ``[alias=]path`` argument
        aliases: Mapping updated in place; later keys overwrite earlier ones
    """
    alias, path = split_template_arg(value)

    try:
        is_dir = stat.S_ISDIR(os.stat(path).st_mode)
    except OSError as e:
        raise AuxTemplateNotFound(
            path, f"Template not found: {path} ({e.strerror or e})"
        ) from e

    if not is_dir:
        aliases[alias or path] = path
        return

    prefix = alias or path
    try:
        entries = sorted(os.scandir(path), key=lambda entry: entry.name)
    except OSError as e:
        raise AuxTemplateNotFound(
            path, f"Cannot list template directory: {path} ({e.strerror or e})"
        ) from e

    # One level only; nested directories are not descended into.
    for entry in entries:
        if entry.is_dir():
            continue
        aliases[os.path.join(prefix, entry.name)] = os.path.join(path, entry.name)


def parse_template_args(values: Iterable[str]) -> dict[str, str]:
    """Resolve every auxiliary template argument.

    Args:
        values: Raw ``[alias=]path`` arguments, in order

    Returns:
        Mapping of template name to file path
    """
    aliases: dict[str, str] = {}
    for value in values:
        parse_template_arg(value, aliases)

    if aliases:
        logger.debug(f"Resolved {len(aliases)} auxiliary template(s)")
    return aliases
