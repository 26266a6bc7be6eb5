"""Utility helpers package."""

from command_runner.util.logging import configure_logging, get_logger, log_command

__all__ = ["configure_logging", "get_logger", "log_command"]
