"""Expansion of a render configuration into concrete render items."""

from __future__ import annotations

import fnmatch
import logging
import os
import stat
import sys
from pathlib import Path
from typing import Callable, Iterator

from ..core.errors import GatherError
from ..core.models import INLINE_NAME, RenderConfig, RenderItem
from .io import STDOUT, FileSink, OutputSink

logger = logging.getLogger(__name__)

STDIO_NAME = "-"


def _read_input(name: str) -> str:
    if name == STDIO_NAME:
        return sys.stdin.read()
    try:
        return Path(name).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise GatherError(f"Cannot read template {name}: {e}") from e


def _source_mode(name: str, default_mode: int) -> int:
    if name == STDIO_NAME:
        return default_mode
    try:
        return stat.S_IMODE(os.stat(name).st_mode)
    except OSError as e:
        raise GatherError(f"Cannot stat template {name}: {e}") from e


def _target(output: str, mode: int) -> OutputSink:
    if not output or output == STDIO_NAME:
        return STDOUT
    return FileSink(Path(output), mode)


def is_excluded(relative: str, patterns: tuple[str, ...]) -> bool:
    """Return True when ``relative`` matches any of the exclusion globs."""
    return any(fnmatch.fnmatchcase(relative, pattern) for pattern in patterns)


def walk_dir(input_dir: Path, patterns: tuple[str, ...]) -> Iterator[Path]:
    """Yield files under ``input_dir`` in sorted order, relative to it.

    Excluded directories are pruned, so nothing beneath them is visited.
    """
    for root, dirs, files in os.walk(input_dir):
        root_path = Path(root)
        dirs[:] = sorted(
            d
            for d in dirs
            if not is_excluded((root_path / d).relative_to(input_dir).as_posix(), patterns)
        )
        for name in sorted(files):
            relative = (root_path / name).relative_to(input_dir)
            if is_excluded(relative.as_posix(), patterns):
                logger.debug(f"Excluding {relative}")
                continue
            yield relative


def gather_templates(
    config: RenderConfig, *, default_mode: int = 0o644
) -> list[RenderItem]:
    """Expand ``config`` into ordered render items.

    Args:
        config: Render configuration
        default_mode: Output permissions when neither an override nor a
            source file mode is available

    Returns:
        Render items in rendering order
    """
    mode, override = config.get_mode()

    def output_mode(source: str | None) -> int:
        if override:
            return mode
        if source is None:
            return default_mode
        return _source_mode(source, default_mode)

    if config.input:
        output = config.output_files[0] if config.output_files else ""
        return [
            RenderItem(
                name=INLINE_NAME,
                contents=config.input,
                target=_target(output, output_mode(None)),
            )
        ]

    if config.input_dir:
        return _gather_dir(config, output_mode)

    if not config.input_files:
        return [
            RenderItem(
                name=STDIO_NAME,
                contents=_read_input(STDIO_NAME),
                target=_target(
                    config.output_files[0] if config.output_files else "",
                    output_mode(None),
                ),
            )
        ]

    if config.output_files and len(config.output_files) != len(config.input_files):
        raise GatherError(
            f"Must provide same number of outputs ({len(config.output_files)}) "
            f"as inputs ({len(config.input_files)})"
        )

    outputs = config.output_files or ("",) * len(config.input_files)
    return [
        RenderItem(
            name=name,
            contents=_read_input(name),
            target=_target(output, output_mode(name)),
        )
        for name, output in zip(config.input_files, outputs)
    ]


def _gather_dir(
    config: RenderConfig, output_mode: Callable[[str | None], int]
) -> list[RenderItem]:
    input_dir = Path(config.input_dir)
    if not input_dir.is_dir():
        raise GatherError(f"Input directory not found: {input_dir}")

    output_dir = Path(config.output_dir)
    items = []
    for relative in walk_dir(input_dir, config.exclude_globs):
        source = str(input_dir / relative)
        items.append(
            RenderItem(
                name=source,
                contents=_read_input(source),
                target=FileSink(output_dir / relative, output_mode(source)),
            )
        )

    logger.debug(f"Found {len(items)} template(s) in {input_dir}")
    return items
