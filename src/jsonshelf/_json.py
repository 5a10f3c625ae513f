"""JSON validation, serialization and parsing for table documents."""

import json
import math
from typing import TYPE_CHECKING, NoReturn

from ._constants import INDENT
from ._exceptions import InvalidValueError, ParseError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._types import Document, JSONValue

__all__ = ["parse_document", "serialize_document", "validate_json_value"]


def validate_json_value(value: object, *, ancestors: "Iterable[object]" = ()) -> "JSONValue":
    """Check that a value can be stored in a document.

    Args:
        value: The candidate value.
        ancestors: Containers the value will be stored inside. The value must
            not contain any of them, or storing it would create a cycle.

    Returns:
        The value unchanged, typed as a JSON value.

    Raises:
        InvalidValueError: If the value (or anything nested in it) is not a
            JSON primitive, list, or dict with string keys, or if it contains
            a reference cycle or a non-finite float.
    """
    _validate(value, {id(a) for a in ancestors})
    return value  # pyright: ignore[reportReturnType]


def _validate(value: object, seen: set[int]) -> None:
    if value is None or isinstance(value, (bool, int, str)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"non-finite number {value!r} is not valid JSON"
            raise InvalidValueError(msg)
        return
    if isinstance(value, (dict, list)):
        marker = id(value)
        if marker in seen:
            msg = "value contains a reference cycle"
            raise InvalidValueError(msg)
        seen.add(marker)
        if isinstance(value, dict):
            for key, item in value.items():
                if not isinstance(key, str):
                    msg = f"object keys must be strings, got {type(key).__name__}"
                    raise InvalidValueError(msg)
                _validate(item, seen)
        else:
            for item in value:
                _validate(item, seen)
        seen.discard(marker)
        return
    msg = f"value of type {type(value).__name__} is not JSON-representable"
    raise InvalidValueError(msg)


def serialize_document(document: "Document") -> str:
    """Serialize a document to pretty-printed JSON text.

    Output uses tab indentation and keeps non-ASCII characters as-is.
    """
    return json.dumps(document, indent=INDENT, ensure_ascii=False)


def _reject_constant(name: str) -> NoReturn:
    msg = f"invalid JSON constant {name}"
    raise ParseError(msg)


def parse_document(text: str) -> "Document":
    """Parse the text of a backing file.

    Args:
        text: File content.

    Returns:
        The parsed object or array.

    Raises:
        ParseError: If the text is not valid JSON or its root is not an
            object or array.
    """
    try:
        document = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        msg = f"invalid JSON: {e.msg} at line {e.lineno} column {e.colno}"
        raise ParseError(msg) from e
    if not isinstance(document, (dict, list)):
        msg = f"document root must be an object or array, got {type(document).__name__}"
        raise ParseError(msg)
    return document
