"""Per-run metrics and cleanup handling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Callable

logger = logging.getLogger(__name__)

CleanupAction = Callable[[], object]


@dataclass
class RunMetrics:
    """Counts and wall-clock durations (seconds) collected during one run."""

    gather_duration: float = 0.0
    total_render_duration: float = 0.0
    render_duration: dict[str, float] = field(default_factory=dict)
    templates_gathered: int = 0
    templates_processed: int = 0
    errors: int = 0

    def summary(self) -> str:
        return (
            f"Rendered {self.templates_processed}/{self.templates_gathered} "
            f"template(s) with {self.errors} error(s) in "
            f"{self.gather_duration + self.total_render_duration:.3f}s"
        )


class CleanupRegistry:
    """Ordered release actions, run exactly once at the end of a run."""

    def __init__(self) -> None:
        self._actions: list[CleanupAction] = []
        self._done = False

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def done(self) -> bool:
        return self._done

    def add(self, action: CleanupAction) -> None:
        if self._done:
            raise RuntimeError("Cleanup registry has already run")
        self._actions.append(action)

    def run(self) -> None:
        """Invoke every action in registration order.

        Failures are logged and never propagated.
        """
        if self._done:
            raise RuntimeError("Cleanup registry has already run")
        self._done = True

        for action in self._actions:
            try:
                action()
            except Exception as e:
                logger.warning(f"Cleanup action {action!r} failed: {e}")


class RunContext:
    """Metrics and cleanup state scoped to a single run.

    Usage:
        with RunContext() as run:
            run.cleanup.add(client.close)
            ...
    """

    def __init__(self) -> None:
        self.metrics = RunMetrics()
        self.cleanup = CleanupRegistry()

    def __enter__(self) -> RunContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        logger.debug(f"Running {len(self.cleanup)} cleanup action(s)")
        self.cleanup.run()
