"""Command-line interface for tasktags.

Every command prints one JSON envelope ``{success, data, error, meta}`` on
stdout and exits with status 1 on failure.
"""

from tasktags.cli.main import cli

__all__ = ["cli"]
