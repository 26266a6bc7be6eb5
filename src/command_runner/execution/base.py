"""Execution options, results, and errors shared by the executor and runners."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from command_runner.util.logging import log_command

LogSink: TypeAlias = Callable[[str], None]

DEFAULT_CONCURRENCY = 3
DEFAULT_MAX_ATTEMPTS = 5


class CommandFailedError(RuntimeError):
    """Raised by ``ExecutionResult.raise_for_failure`` for a failed outcome."""

    def __init__(self, result: ExecutionResult) -> None:
        super().__init__(result.message)
        self.result = result


@dataclass(frozen=True)
class ExecutionOptions:
    """Configuration attached to a run.

    Attributes:
        log: Sink called with a description of each command right before it
            executes. ``None`` disables command logging.
        concurrency: Maximum number of commands in flight for concurrent runners.
        max_attempts: Maximum number of attempts for the retry runner.
    """

    log: LogSink | None = log_command
    concurrency: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be a positive integer.")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer.")


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of executing a single command or a batch.

    Attributes:
        success: Whether execution succeeded.
        command: Description of the command that produced the outcome, if any.
        message: Failure message; empty on success.
        attempts: Number of attempts made to reach this outcome.
    """

    success: bool
    command: str | None = None
    message: str = ""
    attempts: int = 1

    @classmethod
    def ok(cls, command: str | None = None) -> ExecutionResult:
        return cls(success=True, command=command)

    @classmethod
    def failure(cls, message: str, command: str | None = None) -> ExecutionResult:
        return cls(success=False, command=command, message=message)

    def raise_for_failure(self) -> None:
        """Raise ``CommandFailedError`` if this outcome is a failure."""

        if not self.success:
            raise CommandFailedError(self)
