"""Writing table documents to their backing files.

Every write carries a sequence number taken when the document was
snapshotted. A table's writes are serialized and a snapshot older than the
last one written is dropped, so the file always converges to the newest
submitted state even when a synchronous save and a background save overlap.

Background saves go through one worker thread per table, started on first
use. The worker holds at most one pending snapshot: submitting while a write
is in flight replaces the pending snapshot with the newer one.
"""

import itertools
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from ._exceptions import FileError

if TYPE_CHECKING:
    from ._filesystem import FileSystem
    from ._table import Table

logger = logging.getLogger(__name__)

__all__ = ["PersistenceCoordinator"]

ErrorHandler = Callable[[str, FileError], None]


class _SaveWorker:
    __slots__: ClassVar[tuple[str, ...]] = (
        "_busy",
        "_closed",
        "_condition",
        "_fs",
        "_on_error",
        "_pending",
        "_thread",
        "_write_lock",
        "_written",
        "table",
    )

    table: "Table"
    _fs: "FileSystem"
    _on_error: ErrorHandler
    _condition: threading.Condition
    _write_lock: threading.Lock
    _pending: tuple[int, str] | None
    _busy: bool
    _closed: bool
    _written: int
    _thread: threading.Thread | None

    def __init__(self, table: "Table", fs: "FileSystem", on_error: ErrorHandler) -> None:
        self.table = table
        self._fs = fs
        self._on_error = on_error
        self._condition = threading.Condition()
        self._write_lock = threading.Lock()
        self._pending = None
        self._busy = False
        self._closed = False
        self._written = 0
        self._thread = None

    def write(self, sequence: int, text: str) -> bool:
        with self._write_lock:
            if sequence <= self._written:
                logger.debug(
                    "skipping stale snapshot %d of table %r", sequence, self.table.name
                )
                return False
            self._fs.atomic_replace(self.table.path, text)
            self._written = sequence
            logger.debug("saved table %r (snapshot %d)", self.table.name, sequence)
            return True

    def submit(self, sequence: int, text: str) -> None:
        with self._condition:
            self._pending = (sequence, text)
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"jsonshelf-save-{self.table.name}",
                    daemon=True,
                )
                self._thread.start()
            self._condition.notify_all()

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._pending is None and not self._closed:
                    _ = self._condition.wait()
                if self._pending is None:
                    return
                sequence, text = self._pending
                self._pending = None
                self._busy = True
            try:
                _ = self.write(sequence, text)
            except FileError as e:
                logger.exception("background save of table %r failed", self.table.name)
                self._report(e)
            finally:
                with self._condition:
                    self._busy = False
                    self._condition.notify_all()

    def _report(self, error: FileError) -> None:
        try:
            self._on_error(self.table.name, error)
        except Exception:
            # keep the worker alive for later snapshots
            logger.exception("save error handler for table %r failed", self.table.name)

    def flush(self, timeout: float | None) -> bool:
        with self._condition:
            return self._condition.wait_for(
                lambda: self._pending is None and not self._busy, timeout
            )

    def close(self, timeout: float | None) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)


class PersistenceCoordinator:
    """Saves table documents, synchronously or through background workers.

    Callers must hold the database lock while calling ``snapshot`` or ``submit``
    so the snapshot reflects a consistent document.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_fs", "_on_error", "_sequence", "_workers")

    _fs: "FileSystem"
    _on_error: ErrorHandler
    _sequence: "itertools.count[int]"
    _workers: dict[str, _SaveWorker]

    def __init__(self, fs: "FileSystem", on_error: ErrorHandler) -> None:
        self._fs = fs
        self._on_error = on_error
        self._sequence = itertools.count(1)
        self._workers = {}

    def register(self, table: "Table") -> None:
        if table.name not in self._workers:
            self._workers[table.name] = _SaveWorker(table, self._fs, self._on_error)

    def snapshot(self, name: str) -> tuple[int, str]:
        """Number and serialize the current document of a table."""
        worker = self._workers[name]
        return next(self._sequence), worker.table.snapshot()

    def write(self, name: str, sequence: int, text: str) -> bool:
        """Write a snapshot now, unless a newer one was already written.

        Raises:
            FileError: If the backing file cannot be written.
        """
        return self._workers[name].write(sequence, text)

    def submit(self, name: str) -> None:
        """Snapshot a table and hand it to its background worker."""
        sequence, text = self.snapshot(name)
        self._workers[name].submit(sequence, text)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every submitted snapshot has been written.

        Returns:
            False if the timeout elapsed first.
        """
        return all(worker.flush(timeout) for worker in self._workers.values())

    def close(self, timeout: float | None = None) -> None:
        """Write pending snapshots and stop the workers."""
        for worker in self._workers.values():
            worker.close(timeout)
