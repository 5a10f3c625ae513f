from pathlib import Path

import pytest

from jsonshelf import ConfigError, DatabaseOptions, TableOptions


class TestDefaults:
    def test_default_values(self) -> None:
        options = DatabaseOptions()

        assert options.directory == Path("./database/")
        assert options.tables == (TableOptions("main", "main.json"),)
        assert options.timeouts_table == "timeouts"
        assert options.auto_save is True
        assert options.default_table == "main"

    def test_timeouts_table_registered_when_missing(self) -> None:
        options = DatabaseOptions()

        assert options.resolved_tables() == (
            TableOptions("main", "main.json"),
            TableOptions("timeouts", "timeouts.json"),
        )

    def test_configured_timeouts_table_not_duplicated(self) -> None:
        options = DatabaseOptions.from_mapping(
            {"tables": [{"name": "main", "mod": "m.json"}, {"name": "timeouts", "mod": "t.json"}]}
        )

        assert [t.file for t in options.resolved_tables()] == ["m.json", "t.json"]


class TestFromMapping:
    def test_camel_case_keys(self) -> None:
        options = DatabaseOptions.from_mapping(
            {
                "mod": "/tmp/db",
                "tables": [{"name": "users", "mod": "users.json"}],
                "timeoutsTable": "ttl",
                "autoSave": False,
            }
        )

        assert options.directory == Path("/tmp/db")
        assert options.tables == (TableOptions("users", "users.json"),)
        assert options.timeouts_table == "ttl"
        assert options.auto_save is False

    def test_snake_case_keys(self) -> None:
        options = DatabaseOptions.from_mapping(
            {"directory": "data", "timeouts_table": "ttl", "auto_save": False}
        )

        assert options.directory == Path("data")
        assert options.timeouts_table == "ttl"
        assert options.auto_save is False

    def test_user_values_override_defaults_key_by_key(self) -> None:
        options = DatabaseOptions.from_mapping({"autoSave": False})

        assert options.auto_save is False
        assert options.directory == Path("./database/")
        assert options.default_table == "main"

    def test_user_tables_replace_default_list(self) -> None:
        options = DatabaseOptions.from_mapping({"tables": [{"name": "only", "mod": "only.json"}]})

        assert [t.name for t in options.tables] == ["only"]
        assert options.default_table == "only"

    def test_table_file_defaults_to_name(self) -> None:
        options = DatabaseOptions.from_mapping({"tables": [{"name": "users"}]})

        assert options.tables[0].file == "users.json"

    def test_unknown_option(self) -> None:
        with pytest.raises(ConfigError, match="unknown database option 'colour'"):
            _ = DatabaseOptions.from_mapping({"colour": "blue"})

    def test_unknown_table_option(self) -> None:
        with pytest.raises(ConfigError, match="unknown table option 'size'"):
            _ = DatabaseOptions.from_mapping({"tables": [{"name": "a", "size": 1}]})

    def test_table_without_name(self) -> None:
        with pytest.raises(ConfigError, match="missing 'name'"):
            _ = DatabaseOptions.from_mapping({"tables": [{"mod": "a.json"}]})

    def test_duplicate_table_names(self) -> None:
        with pytest.raises(ConfigError, match="duplicate table names: a"):
            _ = DatabaseOptions.from_mapping(
                {"tables": [{"name": "a", "mod": "1.json"}, {"name": "a", "mod": "2.json"}]}
            )

    def test_empty_table_list(self) -> None:
        with pytest.raises(ConfigError, match="at least one table"):
            _ = DatabaseOptions.from_mapping({"tables": []})

    def test_invalid_table_descriptor(self) -> None:
        with pytest.raises(ConfigError, match="invalid table descriptor"):
            _ = DatabaseOptions.from_mapping({"tables": ["main"]})


class TestMerged:
    def test_merged_returns_new_options(self) -> None:
        base = DatabaseOptions()
        merged = base.merged({"timeoutsTable": "ttl"})

        assert merged.timeouts_table == "ttl"
        assert base.timeouts_table == "timeouts"

    def test_table_path(self) -> None:
        options = DatabaseOptions.from_mapping({"mod": "root"})

        assert options.table_path(options.tables[0]) == Path("root") / "main.json"


class TestFromToml:
    def test_reads_section(self, tmp_path: Path) -> None:
        config = tmp_path / "app.toml"
        _ = config.write_text(
            "[jsonshelf]\n"
            'mod = "data"\n'
            'timeoutsTable = "ttl"\n'
            "autoSave = false\n"
            "\n"
            "[[jsonshelf.tables]]\n"
            'name = "users"\n'
            'mod = "users.json"\n'
        )

        options = DatabaseOptions.from_toml(config)

        assert options.directory == Path("data")
        assert options.timeouts_table == "ttl"
        assert options.auto_save is False
        assert options.tables == (TableOptions("users", "users.json"),)

    def test_missing_section_yields_defaults(self, tmp_path: Path) -> None:
        config = tmp_path / "app.toml"
        _ = config.write_text('[other]\nkey = "value"\n')

        assert DatabaseOptions.from_toml(config) == DatabaseOptions()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="cannot load configuration"):
            _ = DatabaseOptions.from_toml(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        config = tmp_path / "app.toml"
        _ = config.write_text("[jsonshelf\n")

        with pytest.raises(ConfigError, match="cannot load configuration"):
            _ = DatabaseOptions.from_toml(config)
