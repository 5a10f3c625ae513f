"""Shared fixtures for unit tests."""

from typing import TYPE_CHECKING, Any

import pytest

from jsonshelf import Database, Event

from tests.fakes.fake_filesystem import FakeFileSystem

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    """Provide a fresh FakeFileSystem instance for each test.

    The FakeFileSystem keeps files in memory and can be injected into a
    Database through its private ``_fs`` argument.

    Example:
        def test_with_fake_fs(fake_fs: FakeFileSystem, tmp_path: Path) -> None:
            db = Database({"mod": tmp_path}, _fs=fake_fs).init()
            db.save()
            assert tmp_path / "main.json" in fake_fs.files
    """
    return FakeFileSystem()


@pytest.fixture
def make_db(tmp_path: "Path") -> "Iterator[Callable[..., Database]]":
    """Factory fixture for creating Database instances.

    Databases are created in a per-test directory with the default tables
    unless overridden, and are closed when the test finishes.

    Example:
        def test_operations(make_db) -> None:
            db = make_db()
            db.set("a.b", 1)
            assert db.get("a") == {"b": 1}
    """
    created: list[Database] = []

    def create_db(
        *,
        init: bool = True,
        tables: "list[dict[str, str]] | None" = None,
        timeouts_table: str | None = None,
        auto_save: bool = True,
        directory: "Path | None" = None,
        _fs: FakeFileSystem | None = None,
    ) -> Database:
        options: dict[str, Any] = {
            "mod": directory if directory is not None else tmp_path / "database",
            "autoSave": auto_save,
        }
        if tables is not None:
            options["tables"] = tables
        if timeouts_table is not None:
            options["timeoutsTable"] = timeouts_table
        db = Database(options, _fs=_fs)
        created.append(db)
        if init:
            _ = db.init()
        return db

    yield create_db

    for db in created:
        db.close(timeout=5.0)


@pytest.fixture
def db(make_db: "Callable[..., Database]") -> Database:
    """An initialized database with the default tables."""
    return make_db()


class EventRecorder:
    """Collects every event published by a database, in delivery order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[object, ...]]] = []

    def attach(self, database: Database) -> "EventRecorder":
        for event in Event:
            _ = database.on(event, self._recorder(event))
        return self

    def _recorder(self, event: Event) -> "Callable[..., None]":
        def record(*args: object) -> None:
            self.events.append((event.value, args))

        return record

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> list[tuple[object, ...]]:
        return [args for event, args in self.events if event == name]


@pytest.fixture
def recorder() -> EventRecorder:
    """An EventRecorder to attach to a database before exercising it."""
    return EventRecorder()
