"""CLI argument parsers and validators."""

from __future__ import annotations

import typer

from ..core.errors import DataSourceSetupError, InvalidPermissionFormat
from ..core.permissions import resolve_permission
from ..datasources import parse_header, parse_source
from ..templating.aliases import split_template_arg


def parse_file_mode(value: str) -> str:
    """Validate an octal file mode string, returning it unchanged."""
    try:
        resolve_permission(value)
    except InvalidPermissionFormat as e:
        raise typer.BadParameter(str(e)) from e
    return value


def parse_datasource(value: str) -> str:
    """Validate a data source argument in format ALIAS=URI (or a bare path)."""
    try:
        parse_source(value)
    except DataSourceSetupError as e:
        raise typer.BadParameter(str(e)) from e
    return value


def parse_datasource_header(value: str) -> str:
    """Validate a header argument in format ALIAS=NAME: VALUE."""
    try:
        parse_header(value)
    except DataSourceSetupError as e:
        raise typer.BadParameter(str(e)) from e
    return value


def parse_template(value: str) -> str:
    """Validate an auxiliary template argument in format [ALIAS=]PATH."""
    alias, path = split_template_arg(value)
    if "=" in value and not alias:
        raise typer.BadParameter(f"Alias must not be empty, got: {value!r}")
    if not path:
        raise typer.BadParameter(f"Must be [ALIAS=]PATH, got: {value!r}")
    return value
