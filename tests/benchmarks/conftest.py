from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from jsonshelf import Database

from ._generators import EntrySize, create_test_database


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    bench_dir = Path(__file__).parent
    for item in items:
        if Path(item.fspath).is_relative_to(bench_dir):
            item.add_marker(pytest.mark.benchmark)


@pytest.fixture
def bench_db(tmp_path: Path) -> Iterator[Callable[..., Database]]:
    """Build databases over generated main tables and close them afterwards.

    Each call uses its own directory under ``tmp_path``, so a single test may
    build several databases.
    """
    created: list[Database] = []

    def build(size: EntrySize, count: int, *, auto_save: bool = False) -> Database:
        directory = tmp_path / f"bench{len(created)}"
        db = create_test_database(directory, size, count, auto_save=auto_save)
        created.append(db)
        return db

    yield build
    for db in created:
        db.close()
