"""Failure taxonomy for pipeline stages.

Every stage failure carries the :class:`~preflight.pipeline.models.Stage`
it happened in and the exit code the CLI should report for it.  The three
kinds are kept distinct so callers can tell *"the tool could not be
started"* apart from *"the tool ran and said no"*.
"""

from __future__ import annotations

import signal
from typing import TYPE_CHECKING

from preflight.pipeline.models import FailureKind

if TYPE_CHECKING:
    from preflight.pipeline.models import Stage

# Shell conventions, matching what ``bash -e`` would have exited with.
COMMAND_NOT_FOUND_EXIT = 127
SIGNAL_EXIT_BASE = 128


class PipelineConfigError(ValueError):
    """Raised for unusable stage definitions or selections."""


class StageFailure(Exception):
    """Base class for anything that stops a stage from passing.

    Attributes
    ----------
    stage:
        The stage that failed.
    exit_code:
        Process exit code to surface for this failure.
    """

    kind: FailureKind

    def __init__(self, stage: Stage, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.stage = stage
        self.exit_code = exit_code


class LaunchFailure(StageFailure):
    """The stage's command could not be located or started."""

    kind = FailureKind.LAUNCH

    def __init__(self, stage: Stage, reason: str) -> None:
        super().__init__(
            stage,
            f"stage {stage.name!r}: cannot launch {stage.command!r}: {reason}",
            COMMAND_NOT_FOUND_EXIT,
        )
        self.reason = reason


class ExecutionFailure(StageFailure):
    """The stage's command ran to completion and returned non-zero."""

    kind = FailureKind.EXECUTION

    def __init__(self, stage: Stage, exit_status: int) -> None:
        # Negative statuses mean the child itself died from a signal.
        exit_code = exit_status if exit_status > 0 else SIGNAL_EXIT_BASE - exit_status
        super().__init__(
            stage,
            f"stage {stage.name!r} exited with status {exit_status}",
            exit_code or 1,
        )
        self.exit_status = exit_status


class InterruptedFailure(StageFailure):
    """The runner was signalled while the stage's command was running."""

    kind = FailureKind.INTERRUPTED

    def __init__(self, stage: Stage, signum: int) -> None:
        try:
            signame = signal.Signals(signum).name
        except ValueError:
            signame = f"signal {signum}"
        super().__init__(
            stage,
            f"stage {stage.name!r} interrupted by {signame}",
            SIGNAL_EXIT_BASE + signum,
        )
        self.signum = signum
