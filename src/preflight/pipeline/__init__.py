"""
Pipeline — ordered, fail-fast execution of external check commands.

Public surface
--------------
- :class:`PipelineRunner` / :func:`run` — execute stages in order.
- :class:`Stage`, :class:`StageRecord`, :class:`PipelineStatus`,
  :class:`PipelineResult` — data models.
- :class:`CommandLauncher`, :class:`SubprocessLauncher` — how commands start.
- :class:`LaunchFailure`, :class:`ExecutionFailure`,
  :class:`InterruptedFailure` — stage failure taxonomy.
- :func:`default_stages`, :func:`load_stages`, :func:`select_stages` —
  stage catalogue and selection.
"""

from preflight.pipeline.errors import (
    ExecutionFailure,
    InterruptedFailure,
    LaunchFailure,
    PipelineConfigError,
    StageFailure,
)
from preflight.pipeline.launcher import CommandLauncher, SubprocessLauncher
from preflight.pipeline.models import (
    FailureKind,
    PipelineResult,
    PipelineStatus,
    Stage,
    StageRecord,
)
from preflight.pipeline.runner import PipelineRunner, run
from preflight.pipeline.stages import default_stages, load_stages, parse_stages, select_stages

__all__ = [
    "CommandLauncher",
    "ExecutionFailure",
    "FailureKind",
    "InterruptedFailure",
    "LaunchFailure",
    "PipelineConfigError",
    "PipelineResult",
    "PipelineRunner",
    "PipelineStatus",
    "Stage",
    "StageFailure",
    "StageRecord",
    "SubprocessLauncher",
    "default_stages",
    "load_stages",
    "parse_stages",
    "run",
    "select_stages",
]
