"""Exception hierarchy for jsonshelf.

All exceptions raised by the library derive from JSONShelfError. Missing
keys are never errors: reads return a default and ``has`` returns False.
"""

__all__ = [
    "AlreadyInitializedError",
    "ConfigError",
    "FileError",
    "InvalidPathError",
    "InvalidValueError",
    "JSONShelfError",
    "NotReadyError",
    "ParseError",
    "UnknownTableError",
]


class JSONShelfError(Exception):
    """Base class for all jsonshelf errors."""


class NotReadyError(JSONShelfError):
    """A table operation was attempted before the database was initialized."""


class AlreadyInitializedError(JSONShelfError):
    """init() was called on a database that is already initialized."""


class UnknownTableError(JSONShelfError):
    """An operation referenced a table name that was never registered."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"the table {table!r} is not registered")


class ConfigError(JSONShelfError):
    """The database configuration is invalid."""


class InvalidPathError(JSONShelfError):
    """A path could not be parsed into segments."""


class InvalidValueError(JSONShelfError):
    """A value cannot be represented as JSON."""


class FileError(JSONShelfError):
    """A backing file could not be read or written."""


class ParseError(JSONShelfError):
    """A backing file does not contain a valid JSON document."""
