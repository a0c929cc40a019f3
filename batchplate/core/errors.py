"""Errors raised while preparing and running a batch render."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lifecycle import RunMetrics


class BatchplateError(Exception):
    """Base class for all run failures.

    ``metrics`` is attached by the top-level runner so callers can report
    counts and durations even when the run fails.
    """

    metrics: RunMetrics | None = None


class InvalidPermissionFormat(BatchplateError, ValueError):
    """Raised when an output permission string is not valid octal."""


class AuxTemplateNotFound(BatchplateError):
    """Raised when an auxiliary template path cannot be resolved."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class DataSourceSetupError(BatchplateError):
    """Raised when data source references cannot be turned into a data context."""


class DataSourceReadError(BatchplateError):
    """Raised when a data source cannot be read from inside a template."""


class GatherError(BatchplateError):
    """Raised when the configuration cannot be expanded into render items."""


class CompileError(BatchplateError):
    """Raised when a template fails to parse or bind."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class ExecutionError(BatchplateError):
    """Raised when a compiled template fails while rendering or writing."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name
