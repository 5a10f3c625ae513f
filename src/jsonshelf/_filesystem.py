"""Filesystem abstraction for table backing files.

Tables never touch the disk directly; they go through a FileSystem so tests
can inject an in-memory implementation.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from ._exceptions import FileError

logger = logging.getLogger(__name__)

__all__ = ["FileSystem", "LocalFileSystem"]


@runtime_checkable
class FileSystem(Protocol):
    """Operations a table needs from its storage."""

    def exists(self, path: Path) -> bool:
        """Return True if a file exists at path."""
        ...

    def read_text(self, path: Path) -> str:
        """Read a whole file as UTF-8 text.

        Raises:
            FileError: If the file cannot be read.
        """
        ...

    def ensure_dir(self, path: Path) -> None:
        """Create a directory and its parents if missing.

        Raises:
            FileError: If the directory cannot be created.
        """
        ...

    def atomic_replace(self, path: Path, text: str) -> None:
        """Replace the file content in full.

        Readers observe either the old or the new content, never a mix.

        Raises:
            FileError: If the file cannot be written.
        """
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    __slots__ = ()

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"cannot read file {path}: {e}"
            raise FileError(msg) from e

    def ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"cannot create directory {path}: {e}"
            raise FileError(msg) from e

    def atomic_replace(self, path: Path, text: str) -> None:
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                temp_path = Path(f.name)
                _ = f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
            temp_path = None
        except OSError as e:
            msg = f"cannot write file {path}: {e}"
            raise FileError(msg) from e
        finally:
            if temp_path is not None:
                try:
                    temp_path.unlink()
                except OSError:
                    logger.debug("could not remove temporary file %s", temp_path)
