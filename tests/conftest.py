"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import signal
from collections.abc import Callable

import pytest

from preflight.pipeline.errors import InterruptedFailure, LaunchFailure
from preflight.pipeline.launcher import CommandLauncher
from preflight.pipeline.models import Stage


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that spawn real subprocesses")


class RecordingLauncher(CommandLauncher):
    """Launcher that records stage names instead of running anything.

    *outcomes* maps a stage name to an exit status, or to ``"launch"`` /
    ``"interrupt"`` to simulate those failures.  Unlisted stages exit 0.
    """

    def __init__(self, outcomes: dict[str, int | str] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.calls: list[str] = []

    def launch(self, stage: Stage) -> int:
        self.calls.append(stage.name)
        outcome = self.outcomes.get(stage.name, 0)
        if outcome == "launch":
            raise LaunchFailure(stage, "command not found or not executable")
        if outcome == "interrupt":
            raise InterruptedFailure(stage, signal.SIGTERM)
        return int(outcome)


@pytest.fixture()
def recorder() -> Callable[..., RecordingLauncher]:
    """Factory fixture: ``recorder({"B": 1})``."""
    return RecordingLauncher
