"""Main CLI application."""

from __future__ import annotations

import logging

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from .. import __version__
from ..core.errors import BatchplateError
from ..core.lifecycle import RunMetrics
from ..core.models import RenderConfig
from ..runner import run_templates
from ..settings import Settings
from .parsers import (
    parse_datasource,
    parse_datasource_header,
    parse_file_mode,
    parse_template,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="batchplate",
    help="Batch Jinja2 renderer driven by pluggable data sources.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"batchplate {__version__}")
        raise typer.Exit()


def report_metrics(metrics: RunMetrics) -> None:
    """Log the run summary and per-template durations."""
    logger.info(metrics.summary())
    logger.debug(f"Gathered in {metrics.gather_duration:.3f}s")
    for name, duration in metrics.render_duration.items():
        logger.debug(f"  {name}: {duration:.3f}s")


@app.command()
def render(
    input_text: Annotated[
        str,
        typer.Option(
            "--in",
            "-i",
            help="Template text to render (instead of reading files).",
            metavar="TEXT",
        ),
    ] = "",
    input_files: Annotated[
        list[str],
        typer.Option(
            "--file",
            "-f",
            help="Template file to render; '-' reads stdin. Repeatable.",
            metavar="FILE",
        ),
    ] = [],
    input_dir: Annotated[
        str,
        typer.Option(
            "--input-dir",
            help="Render every file under DIR (recursively).",
            metavar="DIR",
        ),
    ] = "",
    exclude_globs: Annotated[
        list[str],
        typer.Option(
            "--exclude",
            help="Glob of paths under --input-dir to skip. Repeatable.",
            metavar="GLOB",
        ),
    ] = [],
    output_files: Annotated[
        list[str],
        typer.Option(
            "--out",
            "-o",
            help="Output file, one per --file; '-' writes stdout. Repeatable.",
            metavar="FILE",
        ),
    ] = [],
    output_dir: Annotated[
        str,
        typer.Option(
            "--output-dir",
            help="Directory receiving output for --input-dir (default: cwd).",
            metavar="DIR",
        ),
    ] = ".",
    out_mode: Annotated[
        str,
        typer.Option(
            "--chmod",
            help="Output file permissions in octal (default: input file mode).",
            metavar="OCTAL",
        ),
    ] = "",
    data_sources: Annotated[
        list[str],
        typer.Option(
            "--datasource",
            "-d",
            help="Data source (format: ALIAS=URI or PATH). Repeatable.",
            metavar="ALIAS=URI",
        ),
    ] = [],
    data_source_headers: Annotated[
        list[str],
        typer.Option(
            "--datasource-header",
            "-H",
            help="HTTP header for a data source (format: 'ALIAS=NAME: VALUE'). Repeatable.",
            metavar="HEADER",
        ),
    ] = [],
    left_delim: Annotated[
        str | None,
        typer.Option(
            "--left-delim",
            help="Expression start delimiter (default: '{{').",
            metavar="DELIM",
        ),
    ] = None,
    right_delim: Annotated[
        str | None,
        typer.Option(
            "--right-delim",
            help="Expression end delimiter (default: '}}').",
            metavar="DELIM",
        ),
    ] = None,
    templates: Annotated[
        list[str],
        typer.Option(
            "--template",
            "-t",
            help="Auxiliary template file or directory (format: [ALIAS=]PATH). Repeatable.",
            metavar="[ALIAS=]PATH",
        ),
    ] = [],
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Render Jinja2 templates against configured data sources."""
    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    logger.debug("Starting batchplate")
    settings = Settings()

    try:
        config = RenderConfig(
            input=input_text,
            input_files=input_files,
            input_dir=input_dir,
            exclude_globs=exclude_globs,
            output_files=output_files,
            output_dir=output_dir,
            out_mode=parse_file_mode(out_mode),
            data_sources=[parse_datasource(ref) for ref in data_sources],
            data_source_headers=[
                parse_datasource_header(header) for header in data_source_headers
            ],
            left_delim=left_delim or settings.left_delim,
            right_delim=right_delim or settings.right_delim,
            additional_templates=[parse_template(arg) for arg in templates],
        )
    except ValidationError as e:
        raise typer.BadParameter(
            "; ".join(error["msg"] for error in e.errors())
        ) from e

    try:
        metrics = run_templates(config, settings=settings)
    except BatchplateError as e:
        logger.error(str(e))
        if e.metrics is not None:
            report_metrics(e.metrics)
        raise typer.Exit(1)

    report_metrics(metrics)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
