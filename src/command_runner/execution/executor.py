"""Unit executor: runs exactly one command and normalizes its outcome."""

from __future__ import annotations

import asyncio
import inspect
import time

from command_runner.commands import CallableCommand, CommandLike, ShellCommand, to_command
from command_runner.execution.base import ExecutionOptions, ExecutionResult, LogSink
from command_runner.util.logging import get_logger

_logger = get_logger(__name__)


async def execute_command_async(
    command: CommandLike,
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Execute one shell command or callable task.

    Shell commands run in a child process so the event loop stays free while
    they execute. Callable tasks run inline; if they return an awaitable it is
    awaited. Failures never propagate as exceptions: a task that raises, or
    calls ``sys.exit``, yields a failed result. Only ``KeyboardInterrupt`` and
    task cancellation propagate.

    Args:
        command: The command to execute.
        options: Execution options. Only ``log`` is consulted here.

    Returns:
        ExecutionResult describing success or the failure message. For shell
        commands the message is stderr, or stdout when stderr is empty.
    """

    options = options or ExecutionOptions()
    match to_command(command):
        case ShellCommand() as shell:
            return await _execute_shell(shell, options.log)
        case CallableCommand() as task:
            return await _execute_callable(task, options.log)


def execute_command(
    command: CommandLike,
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Blocking wrapper around ``execute_command_async``."""

    return asyncio.run(execute_command_async(command, options))


async def _execute_callable(task: CallableCommand, log: LogSink | None) -> ExecutionResult:
    description = task.description
    if description is not None and log is not None:
        log(description)
    try:
        returned = task.func()
        if inspect.isawaitable(returned):
            await returned
    except (Exception, SystemExit) as exc:
        _logger.debug("Task %s failed: %r", description or task.func, exc)
        return ExecutionResult.failure(_exception_message(exc), command=description)
    return ExecutionResult.ok(description)


async def _execute_shell(shell: ShellCommand, log: LogSink | None) -> ExecutionResult:
    text = shell.normalized
    if log is not None:
        log(text)

    start = time.monotonic()
    try:
        process = await asyncio.create_subprocess_shell(
            text,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except OSError as exc:
        _logger.debug("Could not start shell command '%s': %s", text, exc)
        return ExecutionResult.failure(_exception_message(exc), command=text)
    duration = time.monotonic() - start
    _logger.debug(
        "Shell command '%s' finished with exit code %s in %.2fs.",
        text,
        process.returncode,
        duration,
    )

    if process.returncode == 0:
        return ExecutionResult.ok(text)
    message = _decode(stderr) or _decode(stdout)
    return ExecutionResult.failure(message, command=text)


def _decode(output: bytes | None) -> str:
    if not output:
        return ""
    return output.decode("utf-8", errors="replace")


def _exception_message(exc: BaseException) -> str:
    if isinstance(exc, SystemExit):
        return f"exited with status {exc.code}"
    return str(exc) or exc.__class__.__name__
