"""Exceptions raised by the record store and the mutation engine.

The CLI catches RivetError at the command boundary, prints one line and
exits non-zero. Nothing below that boundary swallows these.
"""


class RivetError(Exception):
    """Base class for every error the engine reports to a caller."""


class NotFoundError(RivetError):
    """No .rivet/systems.yaml in the start directory or any ancestor."""

    def __init__(self, start_dir):
        self.start_dir = start_dir
        super().__init__(
            f"No .rivet/systems.yaml found in {start_dir} or any parent directory"
        )


class ParseError(RivetError):
    """The document exists but could not be parsed into a project record."""

    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to parse {path}: {cause}")


class ValidationError(RivetError):
    """An operation's preconditions were not met. Nothing was written."""
