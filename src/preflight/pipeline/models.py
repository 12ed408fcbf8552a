"""Domain models for stage definitions and pipeline outcomes."""

from __future__ import annotations

import shlex
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, PrivateAttr

if TYPE_CHECKING:
    from preflight.pipeline.errors import StageFailure


class FailureKind(str, Enum):
    """Why a stage did not pass."""

    LAUNCH = "launch"
    EXECUTION = "execution"
    INTERRUPTED = "interrupted"


class Stage(BaseModel):
    """One named external command in the pipeline.

    Attributes
    ----------
    name:
        Identifier used for reporting and for ``--only`` / ``--skip``.
    command:
        Executable name (looked up on ``PATH``) or path.
    arguments:
        Arguments passed to *command*, in order.
    continue_on_failure:
        When ``True`` a non-zero exit is recorded but does not stop the run.
    enabled:
        Disabled stages stay in the configuration but are only run when
        selected explicitly.
    description:
        Free-form note shown by ``preflight --list``.
    """

    model_config = {"frozen": True}

    name: str = Field(min_length=1)
    command: str
    arguments: tuple[str, ...] = ()
    continue_on_failure: bool = False
    enabled: bool = True
    description: str = ""

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.arguments]

    def command_line(self) -> str:
        """Return the shell-quoted command line, for display only."""
        return shlex.join(self.argv)


class StageRecord(BaseModel):
    """What happened when one stage was attempted.

    ``exit_status`` is ``None`` when the command never produced one, i.e.
    it could not be launched or the run was interrupted.
    """

    stage: Stage
    exit_status: int | None
    duration: float = 0.0
    failure: FailureKind | None = None
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.failure is None


class PipelineStatus(BaseModel):
    """Tagged terminal status: ``success`` or ``failed_at(stage_name)``."""

    model_config = {"frozen": True}

    kind: Literal["success", "failed_at"]
    stage_name: str | None = None

    @classmethod
    def success(cls) -> PipelineStatus:
        return cls(kind="success")

    @classmethod
    def failed_at(cls, stage_name: str) -> PipelineStatus:
        return cls(kind="failed_at", stage_name=stage_name)

    @property
    def is_success(self) -> bool:
        return self.kind == "success"

    def __str__(self) -> str:
        if self.is_success:
            return "success"
        return f"failed_at({self.stage_name!r})"


class PipelineResult(BaseModel):
    """Outcome of one pipeline run.

    Created when the run starts, appended to once per attempted stage and
    finalized exactly once when the run halts.  ``status`` stays ``None``
    until then.
    """

    records: list[StageRecord] = Field(default_factory=list)
    status: PipelineStatus | None = None

    # parallel to records; None for stages that passed
    _failures: list[StageFailure | None] = PrivateAttr(default_factory=list)

    # -- lifecycle ------------------------------------------------------------

    def append(self, record: StageRecord, failure: StageFailure | None = None) -> None:
        """Add the record of an attempted stage."""
        if self.finalized:
            raise RuntimeError("cannot append to a finalized PipelineResult")
        self.records.append(record)
        self._failures.append(failure)

    def finalize(self) -> PipelineStatus:
        """Fix the overall status from the records gathered so far."""
        if self.finalized:
            raise RuntimeError("PipelineResult has already been finalized")
        failed = self.first_failure
        if failed is None:
            self.status = PipelineStatus.success()
        else:
            self.status = PipelineStatus.failed_at(failed.stage.name)
        return self.status

    @property
    def finalized(self) -> bool:
        return self.status is not None

    # -- queries --------------------------------------------------------------

    @property
    def succeeded(self) -> bool:
        return self.status is not None and self.status.is_success

    @property
    def first_failure(self) -> StageRecord | None:
        return next((r for r in self.records if not r.passed), None)

    @property
    def attempted(self) -> list[str]:
        """Names of the attempted stages, in the order they ran."""
        return [r.stage.name for r in self.records]

    @property
    def duration(self) -> float:
        return sum(r.duration for r in self.records)

    @property
    def exit_code(self) -> int:
        """Process exit code for this result.

        ``0`` on success, otherwise the exit code of the failure that decided
        the status, or ``1`` when none is known.
        """
        if not self.finalized:
            raise RuntimeError("PipelineResult has not been finalized")
        if self.succeeded:
            return 0
        failure = self._deciding_failure()
        return failure.exit_code if failure is not None else 1

    def raise_for_status(self) -> None:
        """Re-raise the failure that decided the status, if any."""
        if not self.finalized or self.succeeded:
            return
        failure = self._deciding_failure()
        if failure is not None:
            raise failure

    def _deciding_failure(self) -> StageFailure | None:
        for record, failure in zip(self.records, self._failures):
            if not record.passed:
                return failure
        return None
