"""Domain models for batch rendering configuration and render items."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..templating.io import OutputSink
from .permissions import resolve_permission

DEFAULT_LEFT_DELIM = "{{"
DEFAULT_RIGHT_DELIM = "}}"
INLINE_NAME = "<arg>"


class RenderConfig(BaseModel):
    """Read-only description of a rendering request."""

    model_config = ConfigDict(frozen=True)

    input: str = Field(default="", description="Inline template text")
    input_files: tuple[str, ...] = Field(default=(), description="Input file paths")
    input_dir: str = Field(default="", description="Input directory")
    exclude_globs: tuple[str, ...] = Field(
        default=(), description="Glob patterns excluded under input_dir"
    )
    output_files: tuple[str, ...] = Field(
        default=(), description="Output file paths, parallel to input_files"
    )
    output_dir: str = Field(default=".", description="Output directory")
    out_mode: str = Field(default="", description="Output permissions (octal)")
    data_sources: tuple[str, ...] = Field(
        default=(), description="Data source references (alias=uri)"
    )
    data_source_headers: tuple[str, ...] = Field(
        default=(), description="Data source header overrides (alias=Name: value)"
    )
    left_delim: str = Field(default=DEFAULT_LEFT_DELIM, min_length=1)
    right_delim: str = Field(default=DEFAULT_RIGHT_DELIM, min_length=1)
    additional_templates: tuple[str, ...] = Field(
        default=(), description="Auxiliary templates ([alias=]path)"
    )

    @model_validator(mode="after")
    def _check_single_input(self) -> RenderConfig:
        selected = [
            name
            for name, value in (
                ("input", self.input),
                ("input_files", self.input_files),
                ("input_dir", self.input_dir),
            )
            if value
        ]
        if len(selected) > 1:
            raise ValueError(
                f"Only one input selection is allowed, got: {', '.join(selected)}"
            )
        return self

    def get_mode(self) -> tuple[int, bool]:
        """Return the output mode and whether it overrides the source mode."""
        return resolve_permission(self.out_mode)

    def describe(self) -> str:
        """Summarize the effective configuration, one setting per line."""
        lines: list[str] = []

        if self.input:
            lines.append(f"input: {INLINE_NAME}")
        elif self.input_dir:
            lines.append(f"input: {self.input_dir}")
        elif self.input_files:
            lines.append(f"input: {', '.join(self.input_files)}")

        if self.exclude_globs:
            lines.append(f"exclude: {', '.join(self.exclude_globs)}")

        if self.input_dir and self.output_dir != ".":
            lines.append(f"output: {self.output_dir}")
        elif self.output_files:
            lines.append(f"output: {', '.join(self.output_files)}")

        if self.out_mode:
            lines.append(f"chmod: {self.out_mode}")

        if self.data_sources:
            lines.append(f"datasources: {', '.join(self.data_sources)}")
        if self.data_source_headers:
            lines.append(
                f"datasourceheaders: {', '.join(self.data_source_headers)}"
            )

        if self.left_delim != DEFAULT_LEFT_DELIM:
            lines.append(f"left_delim: {self.left_delim}")
        if self.right_delim != DEFAULT_RIGHT_DELIM:
            lines.append(f"right_delim: {self.right_delim}")

        if self.additional_templates:
            lines.append(f"templates: {', '.join(self.additional_templates)}")

        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class RenderItem:
    """A single input bound to a single output sink.

    Attributes:
        name: Template name, usually the input path
        contents: Template source text
        target: Where rendered output goes
    """

    name: str
    contents: str
    target: OutputSink
