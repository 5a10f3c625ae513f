"""Path parsing and value-level access into nested documents.

A path addresses a value inside a document. Callers may write it as a
dotted string (``"a.b[0].c"``) or as an explicit sequence of segments
(``["a", "b", 0, "c"]``). Both forms are parsed into the same tuple of
tagged segments, so every operation treats them identically.

A segment is an ``Index`` when it is a non-negative integer, or a string of
decimal digits without a leading zero; otherwise it is a ``Key``. The kind
of a segment only matters when ``set_path`` has to create a missing
intermediate container: an ``Index`` after it creates a list, a ``Key``
creates a dict.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, TypeAlias

from ._exceptions import InvalidPathError

if TYPE_CHECKING:
    from ._types import Document, JSONValue, PathLike

__all__ = [
    "Index",
    "Key",
    "Segment",
    "containers_along",
    "get_path",
    "has_path",
    "parse_path",
    "set_path",
    "unset_path",
]


@dataclass(frozen=True, slots=True)
class Key:
    """A mapping key segment."""

    name: str

    def as_key(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Index:
    """A list position segment. Also addresses ``str(index)`` in a mapping."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            msg = f"index must be non-negative, got {self.index}"
            raise InvalidPathError(msg)

    def as_key(self) -> str:
        return str(self.index)


Segment: TypeAlias = "Key | Index"

_MISSING: Final = object()

_INDEX_PATTERN = re.compile(r"0|[1-9][0-9]*")
_NAME = r"[^.\[\]]+"
_BRACKET = r"\[[0-9]+\]"
_PATH_PATTERN = re.compile(
    rf"(?:{_NAME}|{_BRACKET})(?:\.{_NAME}|{_BRACKET})*"
)
_TOKEN_PATTERN = re.compile(rf"\[([0-9]+)\]|({_NAME})")


def _segment_from_str(text: str) -> Segment:
    if _INDEX_PATTERN.fullmatch(text):
        return Index(int(text))
    return Key(text)


def _segment_from_int(value: int) -> Segment:
    if value >= 0:
        return Index(value)
    return Key(str(value))


def _parse_string(path: str) -> "tuple[Segment, ...]":
    if not path:
        return ()
    if not _PATH_PATTERN.fullmatch(path):
        msg = f"malformed path {path!r}"
        raise InvalidPathError(msg)
    segments: list[Segment] = []
    for match in _TOKEN_PATTERN.finditer(path):
        bracket, name = match.groups()
        if bracket is not None:
            segments.append(Index(int(bracket)))
        else:
            segments.append(_segment_from_str(name))
    return tuple(segments)


def _parse_segment(raw: object) -> Segment:
    if isinstance(raw, (Key, Index)):
        return raw
    # bool is an int subclass but never a valid segment
    if isinstance(raw, bool):
        msg = "path segments cannot be booleans"
        raise InvalidPathError(msg)
    if isinstance(raw, int):
        return _segment_from_int(raw)
    if isinstance(raw, str):
        return _segment_from_str(raw)
    msg = f"invalid path segment of type {type(raw).__name__}"
    raise InvalidPathError(msg)


def parse_path(path: "PathLike | Key | Index") -> "tuple[Segment, ...]":
    """Parse a path into a tuple of segments.

    Args:
        path: A dotted string, a single integer or segment, or a sequence of
            strings, integers and segments. Strings inside a sequence are
            never split on dots.

    Returns:
        The parsed segments. An empty string or sequence yields ``()``.

    Raises:
        InvalidPathError: If the path or one of its segments is malformed.
    """
    if isinstance(path, str):
        return _parse_string(path)
    if isinstance(path, (Key, Index, int)):
        return (_parse_segment(path),)
    if isinstance(path, Sequence):
        return tuple(_parse_segment(raw) for raw in path)
    msg = f"invalid path of type {type(path).__name__}"
    raise InvalidPathError(msg)


def _lookup(container: object, segment: Segment) -> object:
    if isinstance(container, dict):
        return container.get(segment.as_key(), _MISSING)
    if isinstance(container, list) and isinstance(segment, Index):
        if segment.index < len(container):
            return container[segment.index]
    return _MISSING


def _resolve(document: "Document", segments: "tuple[Segment, ...]") -> object:
    node: object = document
    for segment in segments:
        node = _lookup(node, segment)
        if node is _MISSING:
            break
    return node


def get_path(
    document: "Document",
    path: "PathLike",
    default: "JSONValue" = None,
) -> "JSONValue":
    """Get the value at a path, or ``default`` if nothing is stored there.

    A stored ``None`` is returned as ``None``, not replaced by the default.
    Missing intermediates and non-container intermediates both count as
    absent; this function never raises for a missing path.
    """
    segments = parse_path(path)
    if not segments:
        return default
    value = _resolve(document, segments)
    if value is _MISSING:
        return default
    return value  # pyright: ignore[reportReturnType]


def has_path(document: "Document", path: "PathLike") -> bool:
    """Return True if a value (including null) is stored at the path."""
    segments = parse_path(path)
    if not segments:
        return False
    return _resolve(document, segments) is not _MISSING


def containers_along(document: "Document", path: "PathLike") -> list[object]:
    """Return the existing containers a write to ``path`` would be stored in.

    The root comes first, followed by every existing container on the path
    up to, but not including, the target itself.
    """
    segments = parse_path(path)
    found: list[object] = [document]
    node: object = document
    for segment in segments[:-1]:
        node = _lookup(node, segment)
        if not isinstance(node, (dict, list)):
            break
        found.append(node)
    return found


def _check_assignable(document: "Document", segments: "tuple[Segment, ...]") -> None:
    # Walk the existing part of the path; new containers always fit.
    node: object = document
    for segment in segments:
        if isinstance(node, list) and isinstance(segment, Key):
            msg = f"cannot address key {segment.name!r} inside a list"
            raise InvalidPathError(msg)
        node = _lookup(node, segment)
        if not isinstance(node, (dict, list)):
            return


def _assign(container: "dict[str, object] | list[object]", segment: Segment, value: object) -> None:
    if isinstance(container, dict):
        container[segment.as_key()] = value
        return
    # _check_assignable guarantees an Index here
    index = segment.index  # pyright: ignore[reportAttributeAccessIssue]
    if index < len(container):
        container[index] = value
    else:
        container.extend([None] * (index - len(container)))
        container.append(value)


def set_path(document: "Document", path: "PathLike", value: "JSONValue") -> None:
    """Store a value at a path, creating intermediate containers as needed.

    A missing or non-container intermediate is replaced by a list when the
    following segment is an ``Index`` and by a dict otherwise. Assigning past
    the end of a list pads it with ``None``.

    Raises:
        InvalidPathError: If the path is empty or malformed, or a ``Key``
            segment would address an existing list.
    """
    segments = parse_path(path)
    if not segments:
        msg = "cannot set a value at an empty path"
        raise InvalidPathError(msg)
    _check_assignable(document, segments)

    node = document
    for segment, following in zip(segments, segments[1:]):
        child = _lookup(node, segment)
        if not isinstance(child, (dict, list)):
            child = [] if isinstance(following, Index) else {}
            _assign(node, segment, child)
        node = child
    _assign(node, segments[-1], value)


def unset_path(document: "Document", path: "PathLike") -> bool:
    """Remove the value at a path if present.

    Intermediate containers are never pruned, even if left empty. Removing
    a list element shifts the elements after it.

    Returns:
        True if something was removed, False if the path was already absent.
    """
    segments = parse_path(path)
    if not segments:
        return False
    parent = _resolve(document, segments[:-1])
    last = segments[-1]
    if isinstance(parent, dict):
        return parent.pop(last.as_key(), _MISSING) is not _MISSING
    if isinstance(parent, list) and isinstance(last, Index):
        if last.index < len(parent):
            del parent[last.index]
            return True
    return False
