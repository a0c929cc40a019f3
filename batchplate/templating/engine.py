"""Template rendering engine."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Mapping

from jinja2 import BaseLoader, Environment, StrictUndefined, Template, TemplateNotFound
from jinja2 import TemplateError, meta

from ..core.errors import CompileError, ExecutionError, GatherError
from ..core.lifecycle import RunMetrics
from ..core.models import DEFAULT_LEFT_DELIM, DEFAULT_RIGHT_DELIM, RenderConfig, RenderItem
from .io import STDOUT, Closeable

logger = logging.getLogger(__name__)

Gatherer = Callable[[RenderConfig], list[RenderItem]]


class AliasLoader(BaseLoader):
    """Serves the item being rendered plus every auxiliary template by name."""

    def __init__(self, main_name: str, main_source: str, aliases: Mapping[str, str]):
        self.main_name = main_name
        self.main_source = main_source
        self.aliases = aliases

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, Callable[[], bool] | None]:
        if template == self.main_name:
            return self.main_source, None, lambda: True

        path = self.aliases.get(template)
        if path is None:
            raise TemplateNotFound(template)
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFound(template, f"Cannot read {path}: {e}") from e
        return source, path, lambda: True

    def list_templates(self) -> list[str]:
        return sorted({self.main_name, *self.aliases})


def create_environment(
    loader: BaseLoader,
    functions: Mapping[str, Any],
    left_delim: str = DEFAULT_LEFT_DELIM,
    right_delim: str = DEFAULT_RIGHT_DELIM,
) -> Environment:
    """Create a Jinja2 environment with the given delimiters and functions.

    Args:
        loader: Loader resolving template names
        functions: Callables and values exposed as template globals
        left_delim: Expression start delimiter
        right_delim: Expression end delimiter

    Returns:
        Configured Jinja2 environment
    """
    env = Environment(
        loader=loader,
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        variable_start_string=left_delim,
        variable_end_string=right_delim,
    )
    env.globals.update(functions)
    return env


class Renderer:
    """Compiles and executes render items against a shared function set.

    One instance is built per run and bound to the data context functions,
    the delimiter pair and the resolved auxiliary template aliases.
    """

    def __init__(
        self,
        functions: Mapping[str, Any],
        left_delim: str = DEFAULT_LEFT_DELIM,
        right_delim: str = DEFAULT_RIGHT_DELIM,
        template_aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.functions = functions
        self.left_delim = left_delim
        self.right_delim = right_delim
        self.template_aliases = dict(template_aliases or {})

    def compile(self, item: RenderItem) -> Template:
        """Build an executable template for ``item``.

        Auxiliary templates are parsed eagerly so syntax errors and
        references to unknown templates fail here rather than mid-render.
        """
        try:
            loader = AliasLoader(item.name, item.contents, self.template_aliases)
            env = create_environment(
                loader, self.functions, self.left_delim, self.right_delim
            )
            known = set(loader.list_templates())
            for name in [*self.template_aliases, item.name]:
                source, _, _ = loader.get_source(env, name)
                for referenced in meta.find_referenced_templates(env.parse(source)):
                    if referenced is not None and referenced not in known:
                        raise TemplateNotFound(referenced)
            return env.get_template(item.name)
        except TemplateError as e:
            raise CompileError(
                item.name, f"Failed to compile {item.name}: {e.message or e}"
            ) from e
        except (AssertionError, ValueError) as e:
            # Jinja2 rejects conflicting delimiters while building its lexer.
            raise CompileError(item.name, f"Failed to compile {item.name}: {e}") from e

    def run_template(self, item: RenderItem) -> None:
        """Compile and execute a single item into its output sink.

        Closing a file sink is what writes it to disk, so a failed close is
        reported as an ``ExecutionError`` unless an earlier error is already
        propagating.
        """
        logger.debug(f"Rendering template: {item.name}")

        failed = True
        try:
            template = self.compile(item)
            try:
                rendered_text = template.render()
            except Exception as e:
                raise ExecutionError(
                    item.name, f"Failed to render {item.name}: {e}"
                ) from e

            try:
                item.target.write(rendered_text)
            except Exception as e:
                raise ExecutionError(
                    item.name, f"Failed to write {item.name}: {e}"
                ) from e
            failed = False
        finally:
            self._close_target(item, failed)

        logger.info(f"Rendered {item.name} → {item.target!r}")

    def _close_target(self, item: RenderItem, failed: bool) -> None:
        if not isinstance(item.target, Closeable) or item.target is STDOUT:
            return
        try:
            item.target.close()
        except OSError as e:
            if not failed:
                raise ExecutionError(
                    item.name, f"Failed to write {item.name}: {e}"
                ) from e
            logger.warning(f"Failed to close output for {item.name}: {e}")

    def run_templates(
        self, config: RenderConfig, metrics: RunMetrics, gather: Gatherer
    ) -> None:
        """Gather and render every item, stopping at the first failure.

        Args:
            config: Render configuration
            metrics: Metrics for the current run, updated in place
            gather: Expands ``config`` into ordered render items
        """
        start = time.perf_counter()
        try:
            items = gather(config)
        except GatherError:
            metrics.errors += 1
            raise
        except Exception as e:
            metrics.errors += 1
            raise GatherError(f"Failed to gather templates: {e}") from e
        finally:
            metrics.gather_duration = time.perf_counter() - start

        metrics.templates_gathered = len(items)
        logger.debug(f"Gathered {len(items)} template(s)")

        start = time.perf_counter()
        try:
            for item in items:
                item_start = time.perf_counter()
                try:
                    self.run_template(item)
                except Exception:
                    metrics.errors += 1
                    raise
                finally:
                    metrics.render_duration[item.name] = (
                        time.perf_counter() - item_start
                    )
                metrics.templates_processed += 1
        finally:
            metrics.total_render_duration = time.perf_counter() - start
