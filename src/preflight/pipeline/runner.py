"""Pipeline runner — executes stages one at a time, failing fast.

Usage::

    from preflight.pipeline import PipelineRunner, default_stages

    result = PipelineRunner().run(default_stages())
    print(result.status)          # success | failed_at('clippy')
    raise SystemExit(result.exit_code)

Every stage runs to completion before the next one is considered, so a
formatter stage always finishes rewriting the workspace before the linter
stage looks at it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from preflight.config import settings
from preflight.pipeline.errors import (
    ExecutionFailure,
    InterruptedFailure,
    PipelineConfigError,
    StageFailure,
)
from preflight.pipeline.launcher import (
    CommandLauncher,
    SubprocessLauncher,
    termination_signals_raise,
)
from preflight.pipeline.models import PipelineResult, Stage, StageRecord
from preflight.pipeline.stages import check_unique_names

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Sequential, fail-fast executor for an ordered list of stages.

    Parameters
    ----------
    launcher:
        Backend that starts each stage's command.  Defaults to a
        :class:`~preflight.pipeline.launcher.SubprocessLauncher`.
    clock:
        Monotonic clock used for stage durations.
    echo_commands:
        Log each command line before running it.  Defaults to
        ``settings.echo_commands``.
    """

    def __init__(
        self,
        launcher: CommandLauncher | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        echo_commands: bool | None = None,
    ) -> None:
        self._launcher = launcher if launcher is not None else SubprocessLauncher()
        self._clock = clock
        self.echo_commands = settings.echo_commands if echo_commands is None else echo_commands

    # -- public API -----------------------------------------------------------

    def run(self, stages: Sequence[Stage]) -> PipelineResult:
        """Run *stages* in declaration order and return the finalized result.

        A stage failure halts the run unless the stage sets
        ``continue_on_failure``; an interruption always halts it.

        Raises
        ------
        PipelineConfigError
            If *stages* is empty or two stages share a name.
        """
        if not stages:
            raise PipelineConfigError("a pipeline needs at least one stage")
        check_unique_names(stages)

        result = PipelineResult()
        with termination_signals_raise():
            for index, stage in enumerate(stages, start=1):
                record, failure = self._run_stage(stage, index, len(stages))
                result.append(record, failure)
                if failure is None:
                    continue
                if isinstance(failure, InterruptedFailure) or not stage.continue_on_failure:
                    logger.error("Pipeline stopped at %s: %s", stage.name, failure)
                    break
                logger.warning("%s failed, continuing (continue_on_failure): %s", stage.name, failure)

        status = result.finalize()
        logger.info("Pipeline finished: %s (%.1fs)", status, result.duration)
        return result

    # -- internals ------------------------------------------------------------

    def _run_stage(
        self, stage: Stage, index: int, total: int
    ) -> tuple[StageRecord, StageFailure | None]:
        logger.info("[%d/%d] %s", index, total, stage.name)
        if self.echo_commands:
            logger.info("+ %s", stage.command_line())

        started = self._clock()
        exit_status: int | None = None
        failure: StageFailure | None = None
        try:
            exit_status = self._launcher.launch(stage)
            if exit_status != 0:
                failure = ExecutionFailure(stage, exit_status)
        except StageFailure as exc:
            failure = exc
        duration = self._clock() - started

        if failure is None:
            logger.info("✓ %s (%.1fs)", stage.name, duration)
        else:
            logger.error("✗ %s (%.1fs): %s", stage.name, duration, failure)

        record = StageRecord(
            stage=stage,
            exit_status=exit_status,
            duration=duration,
            failure=failure.kind if failure is not None else None,
            message=str(failure) if failure is not None else "",
        )
        return record, failure


def run(stages: Sequence[Stage], launcher: CommandLauncher | None = None) -> PipelineResult:
    """Run *stages* with a default :class:`PipelineRunner`."""
    return PipelineRunner(launcher).run(stages)
