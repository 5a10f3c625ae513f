"""The Database: named tables, path operations, timeouts and events."""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Literal, TypeVar

from ._config import DatabaseOptions, TableOptions
from ._events import Event, EventBus
from ._exceptions import AlreadyInitializedError, NotReadyError, UnknownTableError
from ._filesystem import LocalFileSystem
from ._json import validate_json_value
from ._paths import (
    containers_along,
    get_path,
    has_path,
    parse_path,
    set_path,
    unset_path,
)
from ._persistence import PersistenceCoordinator
from ._table import Table
from ._timeouts import TimeoutScheduler, generate_token, make_timeout_entry

if TYPE_CHECKING:
    from types import TracebackType

    from ._events import Listener
    from ._exceptions import FileError
    from ._filesystem import FileSystem
    from ._paths import Segment
    from ._timeouts import TimerHandle
    from ._types import Document, JSONValue, PathLike, TimeoutEntry

logger = logging.getLogger(__name__)

__all__ = ["Database"]

_V = TypeVar("_V")


class Database:
    """An embedded store of named tables, each mirrored to a JSON file.

    A Database is created from options, then initialized with ``init()``,
    which loads every table, expires overdue timeouts and emits ``ready``.
    Every table operation before that raises NotReadyError.

    Values are addressed by a path: a dotted string (``"a.b[0]"``) or a
    sequence of segments (``["a", "b", 0]``). Operations default to the
    first configured table; timeout operations default to the timeouts
    table.

    All operations on one Database are serialized by a re-entrant lock.
    Events are delivered synchronously while the lock is held, so a
    subscriber may call back into the database.

    The backing files are not locked against other processes. Two processes
    writing the same files will overwrite each other.

    Example:
        >>> db = Database({"mod": "./data/"})
        >>> _ = db.init()
        >>> db.set("user.name", "alice")
        'alice'
        >>> db.get("user")
        {'name': 'alice'}
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_events",
        "_fs",
        "_initialized",
        "_lock",
        "_persistence",
        "_ready",
        "_scheduler",
        "_tables",
        "options",
    )

    options: DatabaseOptions
    _fs: "FileSystem"
    _events: EventBus
    _lock: threading.RLock
    _tables: dict[str, Table]
    _persistence: PersistenceCoordinator
    _scheduler: TimeoutScheduler
    _initialized: bool
    _ready: bool

    def __init__(
        self,
        options: "DatabaseOptions | Mapping[str, Any] | None" = None,
        /,
        *,
        _fs: "FileSystem | None" = None,
        **overrides: Any,
    ) -> None:
        """Create a database. No file is touched until ``init()``.

        Args:
            options: A DatabaseOptions, or a mapping of option names to
                values. Missing options take their defaults.
            **overrides: Individual options applied over ``options``.

        Raises:
            ConfigError: If the options are invalid.
        """
        if options is None:
            resolved = DatabaseOptions()
        elif isinstance(options, DatabaseOptions):
            resolved = options
        else:
            resolved = DatabaseOptions.from_mapping(options)
        if overrides:
            resolved = resolved.merged(overrides)

        self.options = resolved
        self._fs = _fs if _fs is not None else LocalFileSystem()
        self._events = EventBus()
        self._lock = threading.RLock()
        self._persistence = PersistenceCoordinator(self._fs, self._on_save_error)
        self._scheduler = TimeoutScheduler(self._on_timer)
        self._tables = {}
        self._initialized = False
        self._ready = False
        for table_options in resolved.resolved_tables():
            self.register_table(table_options.name, table_options.file)

    def __repr__(self) -> str:
        return (
            f"Database(directory={str(self.options.directory)!r}, "
            f"tables={list(self._tables)!r}, ready={self._ready})"
        )

    def __enter__(self) -> "Database":
        if not self._initialized:
            self.init()
        return self

    def __exit__(
        self,
        exc_type: "type[BaseException] | None",
        exc_val: "BaseException | None",
        exc_tb: "TracebackType | None",
    ) -> None:
        self.close()

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def tables(self) -> list[str]:
        """Registered table names, in configuration order."""
        return list(self._tables)

    @property
    def events(self) -> EventBus:
        return self._events

    # Lifecycle

    def register_table(self, name: str, file: str) -> Table:
        """Associate a table name with a backing file.

        Registering a name that already exists returns the existing table.
        Tables registered after ``init()`` are loaded immediately.

        Raises:
            ConfigError: If the name or the file is empty.
        """
        with self._lock:
            existing = self._tables.get(name)
            if existing is not None:
                return existing
            path = self.options.table_path(TableOptions(name, file))
            table = Table(name, path, self._fs)
            self._tables[name] = table
            self._persistence.register(table)
            if self._initialized:
                self._load(table)
            return table

    def _load(self, table: Table) -> None:
        self._fs.ensure_dir(table.path.parent)
        table.load()

    def init(self) -> "Database":
        """Load every table, process stored timeouts, then emit ``ready``.

        Overdue timeouts are expired synchronously, in the timeouts table's
        order, before ``ready`` is emitted. The others are scheduled.

        If a subscriber raises while overdue timeouts are expired, the error
        propagates, ``ready`` is not emitted and ``init()`` may be called
        again.

        Raises:
            AlreadyInitializedError: If called more than once successfully.
            FileError: If a backing file cannot be read or created.
            ParseError: If a backing file is not a JSON object or array.
        """
        with self._lock:
            if self._initialized:
                msg = "the database has already been initialized"
                raise AlreadyInitializedError(msg)
            self._fs.ensure_dir(self.options.directory)
            for table in self._tables.values():
                self._load(table)
            self._initialized = True
            self._ready = True
            try:
                self._recover_timeouts()
            except Exception:
                # leave the database uninitialized so init() can be retried
                self._initialized = False
                self._ready = False
                self._scheduler.cancel_all()
                _ = self._persistence.flush()
                raise
            logger.debug("database ready with tables %s", list(self._tables))
            _ = self._events.emit(Event.READY, self)
        return self

    def close(self, timeout: float | None = None) -> None:
        """Cancel pending timers, write queued saves and stop the workers.

        The database is not usable afterwards. Closing twice is a no-op.
        """
        with self._lock:
            if not self._ready:
                return
            self._ready = False
            self._scheduler.cancel_all()
        self._persistence.close(timeout)
        logger.debug("database closed")

    def _check_table(self, name: str) -> Table:
        if not self._ready:
            msg = "the database has not been initialized yet"
            raise NotReadyError(msg)
        table = self._tables.get(name)
        if table is None:
            raise UnknownTableError(name)
        return table

    def check_table(self, table: str | None = None) -> None:
        """Raise if the table cannot be used right now.

        Raises:
            NotReadyError: If the database is not initialized.
            UnknownTableError: If the table was never registered.
        """
        with self._lock:
            _ = self._check_table(self._name(table))

    def _name(self, table: str | None) -> str:
        return self.options.default_table if table is None else table

    def _timeouts_name(self, table: str | None) -> str:
        return self.options.timeouts_table if table is None else table

    # Reads

    def data(self, table: str | None = None) -> "Document":
        """Return the live document of a table. It is not a copy."""
        with self._lock:
            return self._check_table(self._name(table)).document

    def get(
        self,
        path: "PathLike",
        default: "JSONValue" = None,
        *,
        table: str | None = None,
    ) -> "JSONValue":
        """Get the value at a path, or ``default`` if nothing is stored there.

        A stored null is returned as None rather than the default. The value
        is a live reference into the document.
        """
        with self._lock:
            document = self._check_table(self._name(table)).document
            return get_path(document, path, default)

    def has(self, path: "PathLike", *, table: str | None = None) -> bool:
        """Return True if a value, including null, is stored at the path."""
        with self._lock:
            document = self._check_table(self._name(table)).document
            return has_path(document, path)

    def keys(self, *, table: str | None = None) -> list[str]:
        """Return the top-level keys of a table's document."""
        with self._lock:
            document = self._check_table(self._name(table)).document
            if isinstance(document, list):
                return [str(i) for i in range(len(document))]
            return list(document)

    # Writes

    def set(
        self,
        path: "PathLike",
        value: _V,
        *,
        table: str | None = None,
        emit: bool = True,
    ) -> _V:
        """Store a value at a path and return it.

        Emits ``update(path, value, table)`` when ``emit`` is true, then
        queues a save if autosave is on.

        Raises:
            InvalidValueError: If the value is not JSON-representable, or
                contains a container it would be stored inside. The document
                is left unchanged.
            InvalidPathError: If the path is empty or malformed.
        """
        name = self._name(table)
        with self._lock:
            document = self._check_table(name).document
            _ = validate_json_value(value, ancestors=containers_along(document, path))
            set_path(document, path, value)  # pyright: ignore[reportArgumentType]
            if emit:
                _ = self._events.emit(Event.UPDATE, path, value, name)
            self._autosave(name)
        return value

    def delete(self, key: "PathLike", *, table: str | None = None) -> Literal[True]:
        """Remove the entry at a key or path.

        Emits ``delete(key, table)`` before the entry is removed. Deleting a
        missing key still emits and succeeds. Deleting a timeout id cancels
        its pending timer.
        """
        name = self._name(table)
        with self._lock:
            table_obj = self._check_table(name)
            self._delete(table_obj, key, parse_path(key))
        return True

    def _delete(self, table: Table, key: object, segments: "tuple[Segment, ...]") -> None:
        _ = self._events.emit(Event.DELETE, key, table.name)
        _ = unset_path(table.document, segments)
        if len(segments) == 1:
            _ = self._scheduler.cancel(table.name, segments[0].as_key())
        self._autosave(table.name)

    def edit(
        self,
        path: "PathLike",
        transform: "Callable[[Any, PathLike], JSONValue]",
        *,
        table: str | None = None,
        force: bool = False,
        emit: bool = True,
    ) -> bool:
        """Replace the value at a path with ``transform(current, path)``.

        If nothing is stored at the path and ``force`` is false, nothing
        happens and False is returned. With ``force``, ``current`` is None
        for a missing path.

        Returns:
            True if the value was written.
        """
        name = self._name(table)
        with self._lock:
            document = self._check_table(name).document
            if not (force or has_path(document, path)):
                return False
            current = get_path(document, path)
            _ = self.set(path, transform(current, path), table=name, emit=emit)
        return True

    # Persistence

    def _autosave(self, name: str) -> None:
        if self.options.auto_save:
            self._persistence.submit(name)

    def save(self, table: str | None = None) -> Literal[True]:
        """Write a table's document to its backing file and wait for it.

        Raises:
            FileError: If the file cannot be written.
        """
        name = self._name(table)
        with self._lock:
            _ = self._check_table(name)
            sequence, text = self._persistence.snapshot(name)
        _ = self._persistence.write(name, sequence, text)
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for all queued background saves to be written.

        Do not call this from inside an event subscriber.

        Returns:
            False if the timeout elapsed before every save finished.
        """
        return self._persistence.flush(timeout)

    def _on_save_error(self, name: str, error: "FileError") -> None:
        _ = self._events.emit(Event.SAVE_ERROR, name, error)

    # Timeouts

    def timeout(
        self,
        value: "JSONValue",
        duration_ms: int,
        *,
        timeout_id: str | None = None,
        table: str | None = None,
    ) -> "TimeoutEntry":
        """Store a value that expires after ``duration_ms`` milliseconds.

        The entry is stored under its id without an ``update`` event, its
        timer is started, and ``createTimeout(entry)`` is emitted. Reusing
        an id replaces both the entry and its timer.

        Args:
            value: Any JSON value.
            duration_ms: Lifetime in milliseconds. Zero expires on the next
                timer tick.
            timeout_id: Id of the entry. Generated when omitted.
            table: Table holding the entry. Defaults to the timeouts table.

        Returns:
            The stored entry.

        Raises:
            TypeError: If ``duration_ms`` is not an integer.
            ValueError: If ``duration_ms`` is negative.
        """
        if isinstance(duration_ms, bool) or not isinstance(duration_ms, int):
            msg = f"timeout duration must be an integer, got {type(duration_ms).__name__}"
            raise TypeError(msg)
        if duration_ms < 0:
            msg = f"timeout duration must be non-negative, got {duration_ms}"
            raise ValueError(msg)
        name = self._timeouts_name(table)
        entry_id = timeout_id if timeout_id is not None else generate_token()
        with self._lock:
            _ = self._check_table(name)
            entry = make_timeout_entry(value, duration_ms, entry_id)
            _ = self.set([entry_id], entry, table=name, emit=False)
            _ = self._scheduler.schedule(name, entry_id, duration_ms)
            _ = self._events.emit(Event.CREATE_TIMEOUT, entry)
        return entry

    def expire(self, timeout_id: str, *, table: str | None = None) -> bool:
        """Expire a timeout entry now.

        Emits ``expires(entry)`` with the stored entry, then deletes it,
        which emits ``delete`` and cancels its timer.

        Returns:
            False if no entry with that id exists; nothing is emitted then.
        """
        name = self._timeouts_name(table)
        with self._lock:
            table_obj = self._check_table(name)
            segments = parse_path([timeout_id])
            if not has_path(table_obj.document, segments):
                _ = self._scheduler.cancel(name, timeout_id)
                logger.debug("timeout %r in table %r is already gone", timeout_id, name)
                return False
            entry = get_path(table_obj.document, segments)
            logger.debug("expiring timeout %r in table %r", timeout_id, name)
            _ = self._events.emit(Event.EXPIRES, entry)
            self._delete(table_obj, timeout_id, segments)
        return True

    def pending_timeouts(self, table: str | None = None) -> list[str]:
        """Ids that currently have a scheduled expiration."""
        name = self._timeouts_name(table)
        with self._lock:
            _ = self._check_table(name)
            return self._scheduler.pending(name)

    def _recover_timeouts(self) -> None:
        name = self.options.timeouts_table
        document = self._tables[name].document
        if not isinstance(document, dict):
            logger.warning("timeouts table %r is not an object; skipping recovery", name)
            return
        overdue = self._scheduler.recover(name, document)
        for entry_id in overdue:
            _ = self.expire(entry_id, table=name)

    def _on_timer(self, handle: "TimerHandle") -> None:
        with self._lock:
            if not self._ready or not self._scheduler.is_current(handle):
                return
            _ = self.expire(handle.entry_id, table=handle.table)

    # Events

    def on(self, event: "Event | str", callback: "Listener") -> "Listener":
        """Subscribe to an event. Usable as ``db.on(Event.UPDATE, fn)``."""
        return self._events.on(event, callback)

    def once(self, event: "Event | str", callback: "Listener") -> "Listener":
        """Subscribe to the next occurrence of an event only."""
        return self._events.once(event, callback)

    def off(self, event: "Event | str", callback: "Listener") -> bool:
        """Unsubscribe a callback. Returns False if it was not subscribed."""
        return self._events.off(event, callback)
