"""Run shell commands and callable tasks sequentially, concurrently, or with retries."""

from command_runner.commands import (
    CallableCommand,
    Command,
    ShellCommand,
    normalize_shell_command,
    to_command,
)
from command_runner.execution import (
    CommandFailedError,
    ExecutionOptions,
    ExecutionResult,
    drain_background_tasks,
    execute_command,
    execute_command_async,
    run_concurrent,
    run_concurrent_async,
    run_sequential,
    run_sequential_async,
    run_with_retry,
    run_with_retry_async,
    start_concurrent,
)

__all__ = [
    "CallableCommand",
    "Command",
    "CommandFailedError",
    "ExecutionOptions",
    "ExecutionResult",
    "ShellCommand",
    "drain_background_tasks",
    "execute_command",
    "execute_command_async",
    "normalize_shell_command",
    "run_concurrent",
    "run_concurrent_async",
    "run_sequential",
    "run_sequential_async",
    "run_with_retry",
    "run_with_retry_async",
    "start_concurrent",
    "to_command",
]
