"""``preflight`` — run the workspace checks in order and exit with their status.

Examples
--------
    preflight                      # every enabled stage
    preflight --only fmt --only clippy
    preflight --skip build --include-disabled
    preflight --pipeline-file ci/checks.yaml --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from preflight.config import settings
from preflight.pipeline.errors import SIGNAL_EXIT_BASE, PipelineConfigError
from preflight.pipeline.launcher import CommandLauncher, TerminationRequested
from preflight.pipeline.models import PipelineResult, Stage
from preflight.pipeline.runner import PipelineRunner
from preflight.pipeline.stages import default_stages, load_stages, select_stages

logger = logging.getLogger(__name__)

USAGE_EXIT = 2
INTERRUPTED_EXIT = SIGNAL_EXIT_BASE + 2  # SIGINT
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="preflight",
        description="Run the workspace checks (compile, format, lint, test, build) in order.",
    )
    parser.add_argument(
        "--only",
        action="append",
        metavar="STAGE",
        help="Run only this stage (repeatable). Enables disabled stages.",
    )
    parser.add_argument(
        "--skip",
        action="append",
        metavar="STAGE",
        help="Leave this stage out (repeatable)",
    )
    parser.add_argument(
        "--include-disabled",
        action="store_true",
        help="Also run stages that are disabled in the configuration",
    )
    parser.add_argument(
        "--pipeline-file",
        default=settings.pipeline_file,
        help="YAML file with stage definitions (default: built-in stages)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the selected stages and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the commands that would run and exit",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.log_level.upper(),
        help="Log level (default: %(default)s)",
    )
    return parser


def resolve_stages(args: argparse.Namespace) -> list[Stage]:
    stages = load_stages(args.pipeline_file) if args.pipeline_file else default_stages()
    return select_stages(
        stages,
        only=args.only,
        skip=args.skip,
        include_disabled=args.include_disabled,
    )


def format_stage_list(stages: Sequence[Stage]) -> str:
    width = max(len(s.name) for s in stages)
    lines = []
    for stage in stages:
        flags = []
        if not stage.enabled:
            flags.append("disabled")
        if stage.continue_on_failure:
            flags.append("continue-on-failure")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        note = f"  # {stage.description}" if stage.description else ""
        lines.append(f"{stage.name:<{width}}  {stage.command_line()}{suffix}{note}")
    return "\n".join(lines)


def format_summary(result: PipelineResult) -> str:
    width = max([len("stage"), *(len(r.stage.name) for r in result.records)])
    lines = [f"{'stage':<{width}}  {'status':<12}  {'exit':>4}  {'time':>7}"]
    for record in result.records:
        status = "ok" if record.passed else record.failure.value
        exit_status = "-" if record.exit_status is None else str(record.exit_status)
        lines.append(
            f"{record.stage.name:<{width}}  {status:<12}  {exit_status:>4}  {record.duration:>6.1f}s"
        )
    lines.append(f"result: {result.status}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None, *, launcher: CommandLauncher | None = None) -> int:
    """Entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        # argparse does not check defaults, which come from PREFLIGHT_LOG_LEVEL.
        parser.error(f"invalid log level {args.log_level!r}; choose from: {', '.join(LOG_LEVELS)}")

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        stages = resolve_stages(args)
    except PipelineConfigError as exc:
        print(f"preflight: {exc}", file=sys.stderr)
        return USAGE_EXIT

    if args.list:
        print(format_stage_list(stages))
        return 0

    if args.dry_run:
        for stage in stages:
            print(f"+ {stage.command_line()}")
        return 0

    try:
        result = PipelineRunner(launcher).run(stages)
    except KeyboardInterrupt:
        logger.error("Interrupted between stages")
        return INTERRUPTED_EXIT
    except TerminationRequested as exc:
        logger.error("Terminated by signal %d between stages", exc.signum)
        return SIGNAL_EXIT_BASE + exc.signum

    print(format_summary(result))
    if not result.succeeded:
        print(f"preflight: pipeline failed at stage {result.status.stage_name!r}", file=sys.stderr)
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
