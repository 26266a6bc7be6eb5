"""Configuration models and loaders for command-runner."""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from command_runner.execution.base import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_ATTEMPTS,
    ExecutionOptions,
)

ENV_PREFIX = "COMMAND_RUNNER_"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or is invalid."""


@dataclass(frozen=True)
class RunnerConfig:
    """Top-level configuration for command runs.

    Attributes:
        concurrency: Default bound on in-flight commands for concurrent runs.
        max_attempts: Default attempt budget for retried commands.
        log_level: Logging level name for the CLI.
        quiet: Disable per-command log lines when true.
        batches: Named lists of shell commands runnable by name.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    log_level: str = "INFO"
    quiet: bool = False
    batches: dict[str, list[str]] = field(default_factory=dict)


def parse_boolean_env_variable(value: str | None) -> bool:
    """Interpret an environment variable as a boolean flag.

    Returns ``False`` for an unset variable, ``"false"`` (any case) or ``"0"``;
    everything else is ``True``.
    """

    if value is None or value.lower() == "false" or value == "0":
        return False
    return True


def load_config(path: Path | None = None) -> RunnerConfig:
    """Load runner configuration from disk.

    Args:
        path: Optional path to a configuration file or project directory.

    Returns:
        Parsed RunnerConfig with defaults applied when no config exists.

    Raises:
        ConfigError: If the file type is unsupported or its content is invalid.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return RunnerConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ConfigError(f"Unsupported config file type: {config_path}")

    return _parse_runner_config(raw_data)


def apply_env_overrides(
    config: RunnerConfig,
    environ: Mapping[str, str] | None = None,
) -> RunnerConfig:
    """Return a config copy with ``COMMAND_RUNNER_*`` environment overrides applied."""

    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    if f"{ENV_PREFIX}CONCURRENCY" in env:
        overrides["concurrency"] = _positive_int(env[f"{ENV_PREFIX}CONCURRENCY"], "concurrency")
    if f"{ENV_PREFIX}MAX_ATTEMPTS" in env:
        overrides["max_attempts"] = _positive_int(
            env[f"{ENV_PREFIX}MAX_ATTEMPTS"], "max_attempts"
        )
    if f"{ENV_PREFIX}LOG_LEVEL" in env:
        overrides["log_level"] = env[f"{ENV_PREFIX}LOG_LEVEL"]
    if f"{ENV_PREFIX}QUIET" in env:
        overrides["quiet"] = parse_boolean_env_variable(env[f"{ENV_PREFIX}QUIET"])
    return replace(config, **overrides)


def build_execution_options(config: RunnerConfig) -> ExecutionOptions:
    """Translate a RunnerConfig into ExecutionOptions."""

    if config.quiet:
        return ExecutionOptions(
            log=None,
            concurrency=config.concurrency,
            max_attempts=config.max_attempts,
        )
    return ExecutionOptions(concurrency=config.concurrency, max_attempts=config.max_attempts)


def _resolve_config_path(path: Path | None) -> Path | None:
    if path is None:
        base = Path(".")
    elif path.is_dir():
        base = path
    else:
        return path if path.exists() else None

    candidate_paths = [
        base / "command_runner.yaml",
        base / "command_runner.yml",
        base / "pyproject.toml",
    ]
    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        try:
            data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("command_runner", {})
        if not isinstance(tool_config, dict):
            raise ConfigError("tool.command_runner must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("YAML configuration must be a mapping.")
    return data


def _parse_runner_config(raw_data: dict[str, Any]) -> RunnerConfig:
    return RunnerConfig(
        concurrency=_positive_int(raw_data.get("concurrency", DEFAULT_CONCURRENCY), "concurrency"),
        max_attempts=_positive_int(
            raw_data.get("max_attempts", DEFAULT_MAX_ATTEMPTS), "max_attempts"
        ),
        log_level=str(raw_data.get("log_level", "INFO")),
        quiet=_parse_flag(raw_data.get("quiet", False)),
        batches=_parse_batches(raw_data.get("batches", None)),
    )


def _parse_batches(raw: Any) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("batches must be a mapping of batch names to command lists.")
    batches: dict[str, list[str]] = {}
    for name, commands in raw.items():
        if not isinstance(commands, list) or not commands:
            raise ConfigError(f"Batch '{name}' must be a non-empty list of commands.")
        batches[str(name)] = [str(command) for command in commands]
    return batches


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return parse_boolean_env_variable(value)
    return bool(value)


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}.") from exc
    if number < 1:
        raise ConfigError(f"{name} must be a positive integer, got {number}.")
    return number
