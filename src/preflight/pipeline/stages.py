"""Stage catalogue — the built-in checks, YAML pipeline files and selection.

Pipeline file format::

    stages:
      - name: check
        command: cargo
        arguments: [check, --workspace, --all-targets]
      - name: doctest
        command: cargo
        arguments: [test, --workspace, --doc]
        enabled: false
        description: this isn't a lib (yet?)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from preflight.pipeline.errors import PipelineConfigError
from preflight.pipeline.models import Stage

logger = logging.getLogger(__name__)


def default_stages() -> list[Stage]:
    """Return the built-in workspace checks, in the order they must run."""
    return [
        Stage(
            name="check",
            command="cargo",
            arguments=("check", "--workspace", "--all-targets"),
            description="type-check every target for the native platform",
        ),
        Stage(
            name="check-wasm",
            command="cargo",
            arguments=(
                "check",
                "--workspace",
                "--all-features",
                "--target",
                "wasm32-unknown-unknown",
            ),
            description="type-check the web target",
        ),
        Stage(
            name="fmt",
            command="cargo",
            arguments=("fmt", "--all"),
            description="format in place",
        ),
        Stage(
            name="clippy",
            command="cargo",
            arguments=(
                "clippy",
                "--workspace",
                "--all-targets",
                "--all-features",
                "--",
                "-D",
                "warnings",
                "-W",
                "clippy::all",
            ),
            description="lint, warnings are errors",
        ),
        Stage(
            name="test",
            command="cargo",
            arguments=("nextest", "r", "--workspace", "--all-features"),
            description="run the test suite",
        ),
        Stage(
            name="doctest",
            command="cargo",
            arguments=("test", "--workspace", "--doc"),
            enabled=False,
            description="documentation tests; off until the crate is a library",
        ),
        Stage(
            name="build",
            command="trunk",
            arguments=("build",),
            description="bundle the web artifact",
        ),
    ]


class PipelineFile(BaseModel):
    """Top-level shape of a YAML pipeline file."""

    stages: list[Stage]


def check_unique_names(stages: Iterable[Stage]) -> None:
    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise PipelineConfigError(f"duplicate stage name {stage.name!r}")
        seen.add(stage.name)


def parse_stages(text: str, *, source: str = "<string>") -> list[Stage]:
    """Parse pipeline YAML *text* into validated stages."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PipelineConfigError(f"{source}: invalid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise PipelineConfigError(f"{source}: expected a mapping with a 'stages' list")

    try:
        stages = PipelineFile.model_validate(data).stages
    except ValidationError as exc:
        raise PipelineConfigError(f"{source}: {exc}") from exc

    if not stages:
        raise PipelineConfigError(f"{source}: 'stages' must not be empty")
    check_unique_names(stages)
    return stages


def load_stages(path: str | Path) -> list[Stage]:
    """Load stages from the YAML pipeline file at *path*."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PipelineConfigError(f"cannot read pipeline file {path}: {exc}") from exc
    stages = parse_stages(text, source=str(path))
    logger.debug("Loaded %d stages from %s", len(stages), path)
    return stages


def select_stages(
    stages: Sequence[Stage],
    *,
    only: Sequence[str] | None = None,
    skip: Sequence[str] | None = None,
    include_disabled: bool = False,
) -> list[Stage]:
    """Pick the stages to run, keeping declaration order.

    Parameters
    ----------
    stages:
        The full, ordered stage list.
    only:
        If given, run just these stages.  Naming a disabled stage here
        enables it.
    skip:
        Stages to leave out.
    include_disabled:
        Also run stages declared with ``enabled: false``.

    Raises
    ------
    PipelineConfigError
        On unknown stage names, or when nothing is left to run.
    """
    known = {s.name for s in stages}
    for name in [*(only or ()), *(skip or ())]:
        if name not in known:
            raise PipelineConfigError(
                f"unknown stage {name!r}; choose from: {', '.join(s.name for s in stages)}"
            )

    wanted = set(only) if only else None
    skipped = set(skip or ())
    selected: list[Stage] = []
    for stage in stages:
        if stage.name in skipped:
            continue
        if wanted is not None:
            if stage.name in wanted:
                selected.append(stage)
            continue
        if stage.enabled or include_disabled:
            selected.append(stage)
        else:
            logger.info("Skipping disabled stage %s", stage.name)

    if not selected:
        raise PipelineConfigError("no stages selected")
    return selected
