"""Command data model: shell invocations and callable tasks."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

TaskFunction: TypeAlias = Callable[[], Awaitable[Any] | None]

_ANONYMOUS_NAMES = frozenset({"<lambda>"})


def normalize_shell_command(text: str) -> str:
    """Collapse whitespace runs (newlines included) to single spaces and trim.

    Args:
        text: Raw shell command text, possibly spanning several lines.

    Returns:
        A single-line form of the command, stable under repeated normalization.
    """

    return " ".join(text.split())


@dataclass(frozen=True)
class ShellCommand:
    """An external program invocation executed by the host shell.

    Attributes:
        text: The command text as supplied by the caller.
    """

    text: str

    @property
    def normalized(self) -> str:
        """Return the single-line text that is logged and executed."""

        return normalize_shell_command(self.text)

    @property
    def description(self) -> str:
        return self.normalized


@dataclass(frozen=True)
class CallableCommand:
    """A zero-argument task that completes synchronously or asynchronously.

    Attributes:
        func: The task to invoke. It may return an awaitable.
        name: Optional explicit name used for logging.
    """

    func: TaskFunction
    name: str | None = None

    @property
    def description(self) -> str | None:
        """Return ``<name>()`` when the task has a usable name, else ``None``."""

        name = self.name or getattr(self.func, "__name__", None)
        if not name or name in _ANONYMOUS_NAMES:
            return None
        return f"{name}()"


Command: TypeAlias = ShellCommand | CallableCommand
CommandLike: TypeAlias = Command | str | TaskFunction


def to_command(value: CommandLike) -> Command:
    """Coerce a plain string or callable into a Command.

    Args:
        value: A Command, a shell command string, or a zero-argument callable.

    Returns:
        The matching Command variant.

    Raises:
        TypeError: If the value is neither a string nor callable.
    """

    match value:
        case ShellCommand() | CallableCommand():
            return value
        case str():
            return ShellCommand(value)
        case _ if callable(value):
            return CallableCommand(value)
        case _:
            raise TypeError(
                f"Cannot build a command from {type(value).__name__!r}; "
                "expected a shell string or a zero-argument callable."
            )
