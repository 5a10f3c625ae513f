"""Property-based tests for document serialization and persistence."""

from pathlib import Path
from typing import TYPE_CHECKING

from hypothesis import given

from jsonshelf import Table
from jsonshelf._json import parse_document, serialize_document, validate_json_value
from jsonshelf._persistence import PersistenceCoordinator

from tests.fakes.fake_filesystem import FakeFileSystem

from .strategies import json_object_strategy, json_value_strategy

if TYPE_CHECKING:
    from jsonshelf._types import JSONObject, JSONValue

_PATH = Path("/fake/database/main.json")


class TestSerializationRoundtrip:
    """Serialize then parse produces equivalent data."""

    @given(json_object_strategy)
    def test_roundtrip_preserves_data(self, obj: "JSONObject") -> None:
        assert parse_document(serialize_document(obj)) == obj

    @given(json_object_strategy)
    def test_serialize_is_deterministic(self, obj: "JSONObject") -> None:
        assert serialize_document(obj) == serialize_document(obj)

    @given(json_value_strategy)
    def test_generated_values_validate(self, value: "JSONValue") -> None:
        assert validate_json_value(value) is value


class TestSaveReload:
    """A saved table reloads to an equal document."""

    @given(json_object_strategy)
    def test_save_then_load(self, obj: "JSONObject") -> None:
        fs = FakeFileSystem()
        table = Table("main", _PATH, fs)
        table.load()
        document = table.document
        assert isinstance(document, dict)
        document.update(obj)
        coordinator = PersistenceCoordinator(fs, lambda *_: None)
        coordinator.register(table)

        _ = coordinator.write("main", *coordinator.snapshot("main"))
        reloaded = Table("main", _PATH, fs)
        reloaded.load()

        assert reloaded.document == obj
