"""Shared pytest fixtures for batchplate tests."""

from pathlib import Path

import pytest

from batchplate.core.lifecycle import RunMetrics
from batchplate.core.models import RenderItem
from batchplate.templating.io import FileSink

# =============================================================================
# Template Fixtures
# =============================================================================


@pytest.fixture
def write_file(tmp_path: Path):
    """Return a helper that writes ``text`` to ``tmp_path / name``."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def partials_dir(tmp_path: Path) -> Path:
    """Create a directory with two partials and a nested directory."""
    directory = tmp_path / "partials"
    directory.mkdir()
    (directory / "x").write_text("X", encoding="utf-8")
    (directory / "y").write_text("Y", encoding="utf-8")
    nested = directory / "nested"
    nested.mkdir()
    (nested / "z").write_text("Z", encoding="utf-8")
    return directory


@pytest.fixture
def make_item(tmp_path: Path):
    """Return a helper building a render item that writes under ``tmp_path``."""

    def _make(name: str, contents: str) -> RenderItem:
        return RenderItem(
            name=name,
            contents=contents,
            target=FileSink(tmp_path / f"{name}.out"),
        )

    return _make


# =============================================================================
# Run Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> RunMetrics:
    """Return fresh run metrics."""
    return RunMetrics()
