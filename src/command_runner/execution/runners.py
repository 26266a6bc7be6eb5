"""Batch runners: sequential, bounded-concurrency, and retry disciplines.

All runners return a single ``ExecutionResult``: success, or the one failure
that stopped the batch. None of them terminates work that has already been
dispatched. Stopping a batch only means no further commands are started.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from collections.abc import Coroutine, Iterable
from concurrent.futures import Future
from dataclasses import replace
from typing import Any, TypeVar

from command_runner.commands import Command, CommandLike, to_command
from command_runner.execution.base import ExecutionOptions, ExecutionResult
from command_runner.execution.executor import execute_command_async
from command_runner.util.logging import get_logger

_logger = get_logger(__name__)
_background_lock = threading.Lock()
_background_tasks: dict[asyncio.AbstractEventLoop, set[asyncio.Task[ExecutionResult]]] = {}

T = TypeVar("T")


async def run_sequential_async(
    commands: Iterable[CommandLike],
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Run commands one after another, stopping at the first failure.

    Mirrors shell ``set -e``: commands after a failing one are never started.

    Args:
        commands: Commands to run, in order.
        options: Execution options.

    Returns:
        Success, or the failure of the first failing command.
    """

    options = options or ExecutionOptions()
    for command in _coerce(commands):
        result = await execute_command_async(command, options)
        if not result.success:
            return result
    return ExecutionResult.ok()


async def run_concurrent_async(
    commands: Iterable[CommandLike],
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Run commands with at most ``options.concurrency`` in flight.

    A new command is dispatched whenever a slot frees up. The first failure
    observed is returned straight away and nothing further is dispatched.
    Commands already running are left to finish in the background and their
    outcomes are discarded; see ``drain_background_tasks``.

    When several commands fail close together, which failure is reported
    depends on completion timing and is not deterministic.

    Args:
        commands: Commands to run, in no guaranteed order.
        options: Execution options.

    Returns:
        Success once every command has succeeded, or the first observed failure.
    """

    options = options or ExecutionOptions()
    pending = deque(_coerce(commands))
    in_flight: set[asyncio.Task[ExecutionResult]] = set()

    while pending or in_flight:
        while pending and len(in_flight) < options.concurrency:
            command = pending.popleft()
            in_flight.add(asyncio.ensure_future(execute_command_async(command, options)))
        done, in_flight = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            result = task.result()
            if not result.success:
                _detach(in_flight)
                _logger.debug(
                    "Stopping batch after failure; %s command(s) still running, %s not started.",
                    len(in_flight),
                    len(pending),
                )
                return result
    return ExecutionResult.ok()


async def start_concurrent(
    commands: Iterable[CommandLike],
    options: ExecutionOptions | None = None,
) -> None:
    """Kick off a bounded-concurrency batch without waiting for it.

    WARNING: this is fire-and-forget. It returns as soon as dispatch has begun,
    and failures that happen afterwards are NOT reported to the caller. They
    only reach this module's logger at DEBUG level. Use
    ``run_concurrent_async`` when failures matter.

    The batch keeps running on the current event loop. Await
    ``drain_background_tasks`` before the loop shuts down to let it finish.
    """

    batch = _coerce(commands)
    task = asyncio.ensure_future(run_concurrent_async(batch, options))
    task.add_done_callback(_log_unobserved_failure)
    _track(task)
    # Yield once so the batch task starts dispatching before we return.
    await asyncio.sleep(0)


async def drain_background_tasks() -> None:
    """Wait until every detached or kicked-off command on this loop has settled."""

    loop = asyncio.get_running_loop()
    while True:
        with _background_lock:
            tasks = set(_background_tasks.get(loop, ()))
        if not tasks:
            return
        await asyncio.wait(tasks)


async def run_with_retry_async(
    command: CommandLike,
    max_attempts: int | None = None,
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Run one command until it succeeds or the attempt budget runs out.

    Attempts are strictly sequential and retried immediately, with no backoff.

    Args:
        command: The command to run.
        max_attempts: Attempt budget. Defaults to ``options.max_attempts``.
        options: Execution options.

    Returns:
        Success, or the failure of the last attempt. ``attempts`` on the
        result records how many attempts were made.
    """

    options = options or ExecutionOptions()
    if max_attempts is not None:
        options = replace(options, max_attempts=max_attempts)
    command = to_command(command)

    result = ExecutionResult.failure("No attempts made.")
    for attempt in range(1, options.max_attempts + 1):
        result = replace(await execute_command_async(command, options), attempts=attempt)
        if result.success:
            return result
        _logger.debug(
            "Attempt %s/%s of '%s' failed: %s",
            attempt,
            options.max_attempts,
            result.command,
            result.message,
        )
    return result


def run_sequential(
    commands: Iterable[CommandLike],
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Blocking wrapper around ``run_sequential_async``."""

    return _run_blocking(run_sequential_async(commands, options))


def run_concurrent(
    commands: Iterable[CommandLike],
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Blocking wrapper around ``run_concurrent_async``.

    Returns as soon as the first failure is observed. Commands that were
    already running keep going on the worker thread that owns the event loop;
    the interpreter waits for them before it exits.
    """

    return _run_blocking(run_concurrent_async(commands, options))


def run_with_retry(
    command: CommandLike,
    max_attempts: int | None = None,
    options: ExecutionOptions | None = None,
) -> ExecutionResult:
    """Blocking wrapper around ``run_with_retry_async``."""

    return _run_blocking(run_with_retry_async(command, max_attempts, options))


def _run_blocking(coroutine: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on a private event loop and return its result.

    The loop lives on a non-daemon worker thread. The result is handed back as
    soon as the coroutine finishes, while the loop stays up until detached
    commands settle, so their child processes are never killed by loop shutdown.
    """

    outcome: Future[T] = Future()

    async def main() -> None:
        try:
            outcome.set_result(await coroutine)
        except BaseException as exc:
            outcome.set_exception(exc)
        await drain_background_tasks()

    worker = threading.Thread(
        target=asyncio.run, args=(main(),), name="command-runner-loop"
    )
    worker.start()
    return outcome.result()


def _coerce(commands: Iterable[CommandLike]) -> list[Command]:
    return [to_command(command) for command in commands]


def _detach(tasks: Iterable[asyncio.Task[ExecutionResult]]) -> None:
    for task in tasks:
        _track(task)


def _track(task: asyncio.Task[ExecutionResult]) -> None:
    with _background_lock:
        _background_tasks.setdefault(task.get_loop(), set()).add(task)
    task.add_done_callback(_untrack)


def _untrack(task: asyncio.Task[ExecutionResult]) -> None:
    loop = task.get_loop()
    with _background_lock:
        tasks = _background_tasks.get(loop)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del _background_tasks[loop]


def _log_unobserved_failure(task: asyncio.Task[ExecutionResult]) -> None:
    if task.cancelled():
        return
    result = task.result()
    if not result.success:
        _logger.debug("Background batch failed at '%s': %s", result.command, result.message)
