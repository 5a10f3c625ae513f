"""A named document mirrored to a JSON file."""

import logging
from typing import TYPE_CHECKING, ClassVar

from ._json import parse_document, serialize_document

if TYPE_CHECKING:
    from pathlib import Path

    from ._filesystem import FileSystem
    from ._types import Document

logger = logging.getLogger(__name__)

__all__ = ["Table"]


class Table:
    """A table's name, backing file and live in-memory document.

    The document is shared, never copied: ``document`` returns the object
    that every operation mutates.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_document", "_fs", "_loaded", "name", "path")

    name: str
    path: "Path"
    _document: "Document"
    _fs: "FileSystem"
    _loaded: bool

    def __init__(self, name: str, path: "Path", fs: "FileSystem") -> None:
        self.name = name
        self.path = path
        self._fs = fs
        self._document = {}
        self._loaded = False

    def __repr__(self) -> str:
        return f"Table(name={self.name!r}, path={str(self.path)!r}, loaded={self._loaded})"

    @property
    def document(self) -> "Document":
        return self._document

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Load the document from the backing file.

        A missing file is created with an empty object first.

        Raises:
            FileError: If the file cannot be read or created.
            ParseError: If the file does not hold a JSON object or array.
        """
        if not self._fs.exists(self.path):
            logger.debug("creating %s for table %r", self.path, self.name)
            self._fs.atomic_replace(self.path, serialize_document({}))
        self._document = parse_document(self._fs.read_text(self.path))
        self._loaded = True
        logger.debug("loaded table %r from %s", self.name, self.path)

    def snapshot(self) -> str:
        """Serialize the current document."""
        return serialize_document(self._document)
