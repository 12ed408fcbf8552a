"""Unit tests for the ``preflight`` command-line entry point."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from preflight.cli.main import main
from preflight.config import Settings

PIPELINE_YAML = """
stages:
  - {name: A, command: tool-a}
  - {name: B, command: tool-b}
  - {name: C, command: tool-c}
"""


@pytest.fixture()
def pipeline_file(tmp_path: Path) -> str:
    path = tmp_path / "pipeline.yaml"
    path.write_text(PIPELINE_YAML, encoding="utf-8")
    return str(path)


class TestExitCodes:
    def test_success_is_zero(self, recorder, pipeline_file: str, capsys) -> None:
        launcher = recorder()
        assert main(["--pipeline-file", pipeline_file], launcher=launcher) == 0
        assert launcher.calls == ["A", "B", "C"]
        assert "result: success" in capsys.readouterr().out

    def test_failing_stage_status_is_propagated(self, recorder, pipeline_file: str, capsys) -> None:
        launcher = recorder({"B": 3})
        assert main(["--pipeline-file", pipeline_file], launcher=launcher) == 3
        assert launcher.calls == ["A", "B"]
        captured = capsys.readouterr()
        assert "result: failed_at('B')" in captured.out
        assert "failed at stage 'B'" in captured.err

    def test_launch_failure_is_127(self, recorder, pipeline_file: str) -> None:
        assert main(["--pipeline-file", pipeline_file], launcher=recorder({"A": "launch"})) == 127

    def test_interrupted_stage(self, recorder, pipeline_file: str) -> None:
        code = main(["--pipeline-file", pipeline_file], launcher=recorder({"A": "interrupt"}))
        assert code == 128 + 15

    def test_unknown_stage_is_usage_error(self, recorder, capsys) -> None:
        assert main(["--only", "nope"], launcher=recorder()) == 2
        assert "unknown stage 'nope'" in capsys.readouterr().err

    def test_missing_pipeline_file(self, recorder, tmp_path: Path) -> None:
        assert main(["--pipeline-file", str(tmp_path / "none.yaml")], launcher=recorder()) == 2


class TestSelection:
    def test_default_catalogue_skips_doctest(self, recorder) -> None:
        launcher = recorder()
        assert main([], launcher=launcher) == 0
        assert launcher.calls == ["check", "check-wasm", "fmt", "clippy", "test", "build"]

    def test_only_and_skip(self, recorder, pipeline_file: str) -> None:
        launcher = recorder()
        main(["--pipeline-file", pipeline_file, "--only", "C", "--only", "A"], launcher=launcher)
        assert launcher.calls == ["A", "C"]

    def test_include_disabled(self, recorder) -> None:
        launcher = recorder()
        main(["--include-disabled", "--skip", "build"], launcher=launcher)
        assert launcher.calls[-1] == "doctest"


class TestListing:
    def test_list_does_not_run(self, recorder, capsys) -> None:
        launcher = recorder()
        assert main(["--list", "--include-disabled"], launcher=launcher) == 0
        assert launcher.calls == []
        out = capsys.readouterr().out
        assert "clippy" in out
        assert "[disabled]" in out

    def test_dry_run_prints_commands(self, recorder, capsys) -> None:
        launcher = recorder()
        assert main(["--dry-run", "--only", "fmt"], launcher=launcher) == 0
        assert launcher.calls == []
        assert capsys.readouterr().out.strip() == "+ cargo fmt --all"


@pytest.mark.integration
def test_real_commands_end_to_end(tmp_path: Path) -> None:
    path = tmp_path / "pipeline.yaml"
    path.write_text(
        "stages:\n"
        f"  - {{name: ok, command: {sys.executable!r}, arguments: ['-c', 'pass']}}\n"
        f"  - {{name: bad, command: {sys.executable!r}, arguments: ['-c', 'raise SystemExit(5)']}}\n"
        "  - {name: never, command: preflight-no-such-tool-xyz}\n",
        encoding="utf-8",
    )
    assert main(["--pipeline-file", str(path)]) == 5


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREFLIGHT_TERMINATE_GRACE_SECONDS", "1.5")
    monkeypatch.setenv("PREFLIGHT_ECHO_COMMANDS", "false")
    s = Settings()
    assert s.terminate_grace_seconds == 1.5
    assert s.echo_commands is False
    assert s.pipeline_file is None


def test_invalid_log_level_from_settings_is_usage_error(
    recorder, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    from preflight.cli import main as cli_main

    monkeypatch.setattr(cli_main.settings, "log_level", "verbose")
    with pytest.raises(SystemExit) as exc_info:
        main([], launcher=recorder())
    assert exc_info.value.code == 2
    assert "invalid log level 'VERBOSE'" in capsys.readouterr().err
