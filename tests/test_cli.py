from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from command_runner.cli.main import app
from command_runner.execution.base import ExecutionOptions, ExecutionResult


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path: Path, monkeypatch: Any) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in (
        "COMMAND_RUNNER_CONCURRENCY",
        "COMMAND_RUNNER_MAX_ATTEMPTS",
        "COMMAND_RUNNER_LOG_LEVEL",
        "COMMAND_RUNNER_QUIET",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_cli_run_succeeds() -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["run", "exit 0", "true"])

    assert result.exit_code == 0
    assert "Error" not in result.output


def test_cli_run_stops_at_first_failure(isolated_workspace: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        app, ["run", "exit 0", "echo bad 1>&2; exit 1", "touch never-created"]
    )

    assert result.exit_code == 1
    assert "Error: bad" in result.output
    assert not (isolated_workspace / "never-created").exists()


def test_cli_reports_failures_without_output() -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["run", "exit 4"])

    assert result.exit_code == 1
    assert "Error: command failed: exit 4" in result.output


def test_cli_parallel_passes_concurrency(monkeypatch: Any) -> None:
    runner = CliRunner()
    captured: dict[str, Any] = {}

    def fake_run_concurrent(commands: list[str], options: ExecutionOptions) -> ExecutionResult:
        captured["commands"] = commands
        captured["options"] = options
        return ExecutionResult.ok()

    monkeypatch.setattr("command_runner.cli.main.run_concurrent", fake_run_concurrent)

    result = runner.invoke(app, ["parallel", "exit 0", "exit 0", "--concurrency", "5"])

    assert result.exit_code == 0
    assert captured["commands"] == ["exit 0", "exit 0"]
    assert captured["options"].concurrency == 5


def test_cli_parallel_fails_on_any_failure() -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["parallel", "exit 0", "echo parallel-bad; exit 2"])

    assert result.exit_code == 1
    assert "Error: parallel-bad" in result.output


def test_cli_retry_until_success(isolated_workspace: Path) -> None:
    runner = CliRunner()
    command = "echo x >> attempts.txt; test $(wc -l < attempts.txt) -ge 3"

    result = runner.invoke(app, ["retry", command, "--max-attempts", "3"])

    assert result.exit_code == 0
    lines = (isolated_workspace / "attempts.txt").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3


def test_cli_retry_exhaustion(isolated_workspace: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["retry", "echo x >> attempts.txt; exit 1", "-n", "2"])

    assert result.exit_code == 1
    lines = (isolated_workspace / "attempts.txt").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2


def test_cli_batch_from_config(isolated_workspace: Path) -> None:
    config_path = isolated_workspace / "command_runner.yaml"
    config_path.write_text(
        """
batches:
  release:
    - touch built
    - touch published
""",
        encoding="utf-8",
    )
    runner = CliRunner()

    result = runner.invoke(app, ["batch", "release", "--config", str(config_path)])

    assert result.exit_code == 0
    assert (isolated_workspace / "built").exists()
    assert (isolated_workspace / "published").exists()


def test_cli_batch_parallel_uses_concurrent_runner(monkeypatch: Any) -> None:
    (Path.cwd() / "command_runner.yaml").write_text(
        "batches:\n  checks: ['exit 0', 'exit 0']\n", encoding="utf-8"
    )
    runner = CliRunner()
    calls: list[list[str]] = []

    def fake_run_concurrent(commands: list[str], options: ExecutionOptions) -> ExecutionResult:
        calls.append(commands)
        return ExecutionResult.failure("lint failed", command="exit 0")

    monkeypatch.setattr("command_runner.cli.main.run_concurrent", fake_run_concurrent)

    result = runner.invoke(app, ["batch", "checks", "--parallel"])

    assert result.exit_code == 1
    assert calls == [["exit 0", "exit 0"]]
    assert "Error: lint failed" in result.output


def test_cli_unknown_batch() -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["batch", "missing"])

    assert result.exit_code == 1
    assert "unknown batch 'missing'" in result.output


def test_cli_invalid_config(isolated_workspace: Path) -> None:
    (isolated_workspace / "command_runner.yaml").write_text("concurrency: -1\n", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["run", "exit 0"])

    assert result.exit_code == 1
    assert "concurrency must be a positive integer" in result.output


def test_cli_help_ignores_broken_config(isolated_workspace: Path) -> None:
    (isolated_workspace / "command_runner.yaml").write_text("concurrency: -1\n", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["run", "--help"])

    assert result.exit_code == 0
    assert "Usage" in result.output


def test_cli_batch_uses_log_level_from_given_config(
    isolated_workspace: Path, monkeypatch: Any
) -> None:
    (isolated_workspace / "command_runner.yaml").write_text("concurrency: -1\n", encoding="utf-8")
    config_dir = isolated_workspace / "project"
    config_dir.mkdir()
    (config_dir / "command_runner.yaml").write_text(
        "log_level: DEBUG\nbatches:\n  noop: ['exit 0']\n", encoding="utf-8"
    )
    levels: list[str] = []
    monkeypatch.setattr("command_runner.cli.main.configure_logging", levels.append)
    runner = CliRunner()

    result = runner.invoke(app, ["batch", "noop", "--config", str(config_dir)])

    assert result.exit_code == 0
    assert levels == ["DEBUG"]


def test_cli_log_level_option_overrides_config(monkeypatch: Any) -> None:
    (Path.cwd() / "command_runner.yaml").write_text("log_level: DEBUG\n", encoding="utf-8")
    levels: list[str] = []
    monkeypatch.setattr("command_runner.cli.main.configure_logging", levels.append)
    runner = CliRunner()

    result = runner.invoke(app, ["--log-level", "WARNING", "run", "exit 0"])

    assert result.exit_code == 0
    assert levels == ["WARNING"]
