"""Command-line interface for command-runner."""
