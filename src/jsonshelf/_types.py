"""Type aliases for jsonshelf.

This module contains ONLY type definitions for JSON values, paths and
timeout entries. It has no runtime dependencies on other jsonshelf modules so
that every module can import from it without creating cycles.
"""

from typing import TYPE_CHECKING, TypeAlias, TypedDict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._paths import Index, Key

# Using string annotations for forward references to avoid runtime | issues
JSONPrimitive: TypeAlias = "str | int | float | bool | None"
"""A JSON primitive value: string, number, boolean, or null."""

JSONArray: TypeAlias = "list[JSONValue]"
"""A JSON array containing any JSON values."""

JSONObject: TypeAlias = "dict[str, JSONValue]"
"""A JSON object mapping string keys to JSON values."""

JSONValue: TypeAlias = "JSONPrimitive | JSONArray | JSONObject"
"""Any JSON value: primitive, array, or object."""

Document: TypeAlias = "JSONObject | JSONArray"
"""The root value owned by a table."""

RawSegment: TypeAlias = "str | int"
"""A path segment as supplied by a caller."""

PathLike: TypeAlias = "str | int | Sequence[RawSegment | Key | Index]"
"""A path is one of:
- A dotted string such as ``"a.b[0].c"``
- A single integer index
- A sequence of segments (strings, integers or parsed segments)
"""


class TimeoutEntry(TypedDict):
    """An ephemeral entry stored in the timeouts table."""

    expires: int
    value: "JSONValue"
    time: int
    id: str

