"""Unit tests for the top-level run."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from batchplate.core.errors import (
    AuxTemplateNotFound,
    CompileError,
    DataSourceSetupError,
    ExecutionError,
    GatherError,
    InvalidPermissionFormat,
)
from batchplate.core.models import RenderConfig, RenderItem
from batchplate.datasources import DataContext
from batchplate.runner import run_templates
from batchplate.settings import Settings


class TrackingData(DataContext):
    """Data context that records cleanup calls."""

    instances: list["TrackingData"] = []

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.cleaned = False
        TrackingData.instances.append(self)

    def cleanup(self) -> None:
        super().cleanup()
        self.cleaned = True


@pytest.fixture
def tracking_factory():
    TrackingData.instances = []

    def factory(refs, headers) -> TrackingData:
        return TrackingData.from_refs(refs, headers)

    return factory


class TestRunTemplates:
    """Tests for run_templates."""

    def test_two_files(self, write_file, tmp_path: Path, tracking_factory) -> None:
        """Test rendering two files into parallel outputs."""
        a = write_file("a.tmpl", "A")
        b = write_file("b.tmpl", "B")
        config = RenderConfig(
            input_files=[str(a), str(b)],
            output_files=[str(tmp_path / "a.out"), str(tmp_path / "b.out")],
        )

        metrics = run_templates(config, data_factory=tracking_factory)

        assert (tmp_path / "a.out").read_text() == "A"
        assert (tmp_path / "b.out").read_text() == "B"
        assert metrics.templates_processed == 2
        assert metrics.errors == 0
        assert TrackingData.instances[0].cleaned

    def test_second_template_fails(
        self, write_file, tmp_path: Path, tracking_factory
    ) -> None:
        """Test that the first output survives when the second template fails."""
        a = write_file("a.tmpl", "A")
        b = write_file("b.tmpl", "{{ undefined_function() }}")
        config = RenderConfig(
            input_files=[str(a), str(b)],
            output_files=[str(tmp_path / "a.out"), str(tmp_path / "b.out")],
        )

        with pytest.raises(ExecutionError) as excinfo:
            run_templates(config, data_factory=tracking_factory)

        metrics = excinfo.value.metrics
        assert (tmp_path / "a.out").read_text() == "A"
        assert metrics.templates_processed == 1
        assert metrics.errors == 1
        assert metrics.templates_gathered >= metrics.templates_processed + 1
        assert metrics.total_render_duration > 0
        assert TrackingData.instances[0].cleaned

    def test_data_sources_and_partials(self, write_file, tmp_path: Path) -> None:
        cfg = write_file("config.yaml", "name: demo\n")
        partial = write_file("partials/greeting.t", "Hello {{ ds('cfg').name }}")
        main = write_file("main.tmpl", "{% include 'p/greeting.t' %}!\n")
        out = tmp_path / "main.out"
        config = RenderConfig(
            input_files=[str(main)],
            output_files=[str(out)],
            data_sources=[f"cfg={cfg}"],
            additional_templates=[f"p={partial.parent}"],
        )

        run_templates(config)

        assert out.read_text() == "Hello demo!\n"

    def test_custom_delimiters(self, tmp_path: Path) -> None:
        out = tmp_path / "out.txt"
        config = RenderConfig(
            input="[[ getenv('BATCHPLATE_NOT_SET', 'dflt') ]] {{ kept }}",
            output_files=[str(out)],
            left_delim="[[",
            right_delim="]]",
        )

        run_templates(config)

        assert out.read_text() == "dflt {{ kept }}"

    def test_mode_override(self, write_file, tmp_path: Path) -> None:
        a = write_file("a.tmpl", "A")
        out = tmp_path / "a.out"

        run_templates(
            RenderConfig(input_files=[str(a)], output_files=[str(out)], out_mode="600")
        )

        assert out.stat().st_mode & 0o777 == 0o600

    def test_invalid_mode_before_setup(self, tracking_factory) -> None:
        """Test that a bad mode fails before data sources are built."""
        with pytest.raises(InvalidPermissionFormat) as excinfo:
            run_templates(
                RenderConfig(input="x", out_mode="rw"), data_factory=tracking_factory
            )

        assert TrackingData.instances == []
        assert excinfo.value.metrics is not None

    def test_missing_partial(self, tmp_path: Path, tracking_factory) -> None:
        """Test that alias resolution aborts before rendering."""
        gathered: list[RenderConfig] = []

        def gather(config: RenderConfig) -> list[RenderItem]:
            gathered.append(config)
            return []

        with pytest.raises(AuxTemplateNotFound):
            run_templates(
                RenderConfig(input="x", additional_templates=[str(tmp_path / "none")]),
                gather=gather,
                data_factory=tracking_factory,
            )

        assert gathered == []
        assert TrackingData.instances[0].cleaned

    def test_data_source_setup_error(self) -> None:
        with pytest.raises(DataSourceSetupError):
            run_templates(RenderConfig(input="x", data_sources=["x=ftp://host/file"]))

    def test_unexpected_setup_error_is_wrapped(self) -> None:
        def factory(refs, headers):
            raise RuntimeError("vault unreachable")

        with pytest.raises(DataSourceSetupError, match="vault unreachable"):
            run_templates(RenderConfig(input="x"), data_factory=factory)

    def test_gather_error(self, tracking_factory) -> None:
        def gather(config: RenderConfig) -> list[RenderItem]:
            raise GatherError("bad input")

        with pytest.raises(GatherError) as excinfo:
            run_templates(
                RenderConfig(input="x"), gather=gather, data_factory=tracking_factory
            )

        assert excinfo.value.metrics.errors == 1
        assert excinfo.value.metrics.templates_gathered == 0
        assert TrackingData.instances[0].cleaned

    def test_compile_error(self, tmp_path: Path) -> None:
        with pytest.raises(CompileError):
            run_templates(
                RenderConfig(
                    input="{% include 'nowhere' %}",
                    output_files=[str(tmp_path / "out")],
                )
            )

    def test_settings_default_mode(self, tmp_path: Path) -> None:
        out = tmp_path / "out.txt"

        run_templates(
            RenderConfig(input="x", output_files=[str(out)]),
            settings=Settings(default_mode=0o600),
        )

        assert out.stat().st_mode & 0o777 == 0o600

    def test_runs_are_independent(self, tmp_path: Path) -> None:
        """Test that each run gets fresh metrics."""
        config = RenderConfig(input="x", output_files=[str(tmp_path / "out")])

        first = run_templates(config)
        second = run_templates(config)

        assert first is not second
        assert second.templates_processed == 1

    def test_unwritable_output(self, tmp_path: Path, tracking_factory) -> None:
        """Test that an output path under a regular file fails with metrics."""
        (tmp_path / "blocker").write_text("")
        config = RenderConfig(
            input="A", output_files=[str(tmp_path / "blocker" / "a.out")]
        )

        with pytest.raises(ExecutionError) as excinfo:
            run_templates(config, data_factory=tracking_factory)

        metrics = excinfo.value.metrics
        assert metrics is not None
        assert metrics.errors == 1
        assert metrics.templates_gathered == 1
        assert metrics.templates_processed == 0
        assert TrackingData.instances[0].cleaned


class TestSettings:
    """Tests for environment-driven settings."""

    def test_default_mode_is_octal(self, monkeypatch) -> None:
        monkeypatch.setenv("BATCHPLATE_DEFAULT_MODE", "644")

        assert Settings().default_mode == 0o644

    def test_default_mode_with_leading_zero(self, monkeypatch) -> None:
        monkeypatch.setenv("BATCHPLATE_DEFAULT_MODE", "0600")

        assert Settings().default_mode == 0o600

    def test_empty_default_mode_uses_default(self, monkeypatch) -> None:
        monkeypatch.setenv("BATCHPLATE_DEFAULT_MODE", "")

        assert Settings().default_mode == 0o644

    def test_invalid_default_mode(self, monkeypatch) -> None:
        monkeypatch.setenv("BATCHPLATE_DEFAULT_MODE", "rw-r--r--")

        with pytest.raises(ValidationError):
            Settings()

    def test_default_mode_applied_to_output(
        self, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.setenv("BATCHPLATE_DEFAULT_MODE", "600")
        out = tmp_path / "out.txt"

        run_templates(RenderConfig(input="x", output_files=[str(out)]))

        assert out.stat().st_mode & 0o777 == 0o600
