"""CLI entrypoints for command-runner."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer

from command_runner.config import (
    ConfigError,
    RunnerConfig,
    apply_env_overrides,
    build_execution_options,
    load_config,
)
from command_runner.execution import (
    ExecutionResult,
    run_concurrent,
    run_sequential,
    run_with_retry,
)
from command_runner.util.logging import configure_logging

app = typer.Typer(help="Run shell commands sequentially, concurrently, or with retries.")


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    ctx.obj = {"log_level": log_level}


@app.command("run")
def run_command(
    ctx: typer.Context,
    commands: list[str] = typer.Argument(..., help="Shell commands to run in order."),
) -> None:
    """Run commands one after another, stopping at the first failure."""

    options = build_execution_options(_load(ctx, None))
    _exit_on_failure(run_sequential(commands, options))


@app.command("parallel")
def parallel_command(
    ctx: typer.Context,
    commands: list[str] = typer.Argument(..., help="Shell commands to run concurrently."),
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        "-c",
        min=1,
        help="Maximum number of commands running at once.",
    ),
) -> None:
    """Run commands concurrently and fail on the first failure observed."""

    config = _load(ctx, None)
    if concurrency is not None:
        config = replace(config, concurrency=concurrency)
    _exit_on_failure(run_concurrent(commands, build_execution_options(config)))


@app.command("retry")
def retry_command(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Shell command to run."),
    max_attempts: int | None = typer.Option(
        None,
        "--max-attempts",
        "-n",
        min=1,
        help="Maximum number of attempts before giving up.",
    ),
) -> None:
    """Run a command until it succeeds or the attempt budget is spent."""

    options = build_execution_options(_load(ctx, None))
    _exit_on_failure(run_with_retry(command, max_attempts, options))


@app.command("batch")
def batch_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of a batch defined in configuration."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Configuration file or project directory.",
    ),
    parallel: bool = typer.Option(
        False,
        "--parallel/--sequential",
        help="Run the batch concurrently instead of in order.",
    ),
) -> None:
    """Run a named batch of commands from configuration."""

    config = _load(ctx, config_path)
    commands = config.batches.get(name)
    if commands is None:
        typer.echo(f"Error: unknown batch '{name}'")
        raise typer.Exit(code=1)

    options = build_execution_options(config)
    if parallel:
        result = run_concurrent(commands, options)
    else:
        result = run_sequential(commands, options)
    _exit_on_failure(result)


def _load(ctx: typer.Context, path: Path | None) -> RunnerConfig:
    """Load configuration and set up logging; ``--log-level`` wins over config."""

    try:
        config = apply_env_overrides(load_config(path))
    except ConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    log_level = (ctx.obj or {}).get("log_level")
    configure_logging(log_level or config.log_level)
    return config


def _exit_on_failure(result: ExecutionResult) -> None:
    if result.success:
        return
    message = result.message.strip() or f"command failed: {result.command}"
    typer.echo(f"Error: {message}")
    raise typer.Exit(code=1)
