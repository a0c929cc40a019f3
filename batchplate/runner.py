"""Top-level batch run: setup, gather, render, cleanup."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Iterable

from .core.errors import BatchplateError, DataSourceSetupError
from .core.lifecycle import RunContext, RunMetrics
from .core.models import RenderConfig
from .datasources import DataContext
from .settings import Settings
from .templating.aliases import parse_template_args
from .templating.engine import Gatherer, Renderer
from .templating.gather import gather_templates

logger = logging.getLogger(__name__)

DataFactory = Callable[[Iterable[str], Iterable[str]], DataContext]


def run_templates(
    config: RenderConfig,
    *,
    gather: Gatherer | None = None,
    data_factory: DataFactory | None = None,
    settings: Settings | None = None,
) -> RunMetrics:
    """Run every template described by ``config``.

    Args:
        config: Render configuration
        gather: Gatherer override, defaults to ``gather_templates``
        data_factory: Builds the data context from data source and header refs
        settings: Process defaults, read from the environment when omitted

    Returns:
        Metrics for the completed run

    Raises:
        BatchplateError: On the first failure; ``error.metrics`` holds the
            metrics collected up to that point
    """
    settings = settings or Settings()
    if gather is None:
        gather = partial(gather_templates, default_mode=settings.default_mode)
    if data_factory is None:
        data_factory = partial(DataContext.from_refs, timeout=settings.http_timeout)

    with RunContext() as run:
        try:
            logger.debug(f"Configuration:\n{config.describe()}")
            config.get_mode()

            try:
                data = data_factory(config.data_sources, config.data_source_headers)
            except BatchplateError:
                raise
            except Exception as e:
                raise DataSourceSetupError(f"Failed to set up data sources: {e}") from e
            run.cleanup.add(data.cleanup)

            aliases = parse_template_args(config.additional_templates)
            renderer = Renderer(
                data.functions(), config.left_delim, config.right_delim, aliases
            )
            renderer.run_templates(config, run.metrics, gather)
        except BatchplateError as e:
            e.metrics = run.metrics
            raise

    logger.debug(f"Run finished: {run.metrics.summary()}")
    return run.metrics
