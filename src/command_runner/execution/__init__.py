"""Command execution package."""

from command_runner.execution.base import (
    CommandFailedError,
    ExecutionOptions,
    ExecutionResult,
    LogSink,
)
from command_runner.execution.executor import execute_command, execute_command_async
from command_runner.execution.runners import (
    drain_background_tasks,
    run_concurrent,
    run_concurrent_async,
    run_sequential,
    run_sequential_async,
    run_with_retry,
    run_with_retry_async,
    start_concurrent,
)

__all__ = [
    "CommandFailedError",
    "ExecutionOptions",
    "ExecutionResult",
    "LogSink",
    "drain_background_tasks",
    "execute_command",
    "execute_command_async",
    "run_concurrent",
    "run_concurrent_async",
    "run_sequential",
    "run_sequential_async",
    "run_with_retry",
    "run_with_retry_async",
    "start_concurrent",
]
