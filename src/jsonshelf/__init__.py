"""An embedded, file-backed JSON document store with expiring entries."""

from importlib.metadata import version

from ._config import DatabaseOptions, TableOptions
from ._database import Database
from ._events import Event, EventBus
from ._exceptions import (
    AlreadyInitializedError,
    ConfigError,
    FileError,
    InvalidPathError,
    InvalidValueError,
    JSONShelfError,
    NotReadyError,
    ParseError,
    UnknownTableError,
)
from ._paths import Index, Key, parse_path
from ._table import Table
from ._timeouts import generate_token
from ._types import (
    Document,
    JSONArray,
    JSONObject,
    JSONPrimitive,
    JSONValue,
    PathLike,
    TimeoutEntry,
)

__version__ = version("jsonshelf")

__all__ = [
    "AlreadyInitializedError",
    "ConfigError",
    "Database",
    "DatabaseOptions",
    "Document",
    "Event",
    "EventBus",
    "FileError",
    "Index",
    "InvalidPathError",
    "InvalidValueError",
    "JSONArray",
    "JSONObject",
    "JSONPrimitive",
    "JSONShelfError",
    "JSONValue",
    "Key",
    "NotReadyError",
    "ParseError",
    "PathLike",
    "Table",
    "TableOptions",
    "TimeoutEntry",
    "UnknownTableError",
    "__version__",
    "generate_token",
    "parse_path",
]
