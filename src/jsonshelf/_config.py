"""Database configuration.

Options can be given as a DatabaseOptions instance, as a mapping, or read
from the ``[jsonshelf]`` table of a TOML file:

    [jsonshelf]
    mod = "./database/"        # root directory for backing files
    timeoutsTable = "timeouts"
    autoSave = true

    [[jsonshelf.tables]]
    name = "main"
    mod = "main.json"

Mapping keys may use either the names above or the snake_case attribute
names (``directory``, ``timeouts_table``, ``auto_save``, ``file``). Values
supplied by the caller always override the defaults, key by key; a caller
supplied ``tables`` list replaces the default list as a whole.
"""

import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ._constants import (
    CONFIG_SECTION,
    DEFAULT_AUTO_SAVE,
    DEFAULT_DIRECTORY,
    DEFAULT_TABLE_FILE,
    DEFAULT_TABLE_NAME,
    DEFAULT_TIMEOUTS_TABLE,
    TABLE_FILE_SUFFIX,
)
from ._exceptions import ConfigError

__all__ = ["DatabaseOptions", "TableOptions"]

_OPTION_ALIASES = {
    "mod": "directory",
    "directory": "directory",
    "tables": "tables",
    "timeoutsTable": "timeouts_table",
    "timeouts_table": "timeouts_table",
    "autoSave": "auto_save",
    "auto_save": "auto_save",
}

_TABLE_ALIASES = {
    "name": "name",
    "mod": "file",
    "file": "file",
}


@dataclass(frozen=True, slots=True)
class TableOptions:
    """A table descriptor: its name and its file relative to the directory."""

    name: str
    file: str

    def __post_init__(self) -> None:
        if not self.name:
            msg = "table name must be a non-empty string"
            raise ConfigError(msg)
        if not self.file:
            msg = f"table {self.name!r} has no backing file"
            raise ConfigError(msg)

    @classmethod
    def from_mapping(cls, mapping: "Mapping[str, Any]") -> "TableOptions":
        values: dict[str, Any] = {}
        for key, value in mapping.items():
            if key not in _TABLE_ALIASES:
                msg = f"unknown table option {key!r}"
                raise ConfigError(msg)
            values[_TABLE_ALIASES[key]] = value
        if "name" not in values:
            msg = "table descriptor is missing 'name'"
            raise ConfigError(msg)
        values.setdefault("file", f"{values['name']}{TABLE_FILE_SUFFIX}")
        return cls(**values)


def _default_tables() -> tuple[TableOptions, ...]:
    return (TableOptions(DEFAULT_TABLE_NAME, DEFAULT_TABLE_FILE),)


def _coerce_tables(tables: "Iterable[TableOptions | Mapping[str, Any]]") -> tuple[TableOptions, ...]:
    result: list[TableOptions] = []
    for table in tables:
        if isinstance(table, TableOptions):
            result.append(table)
        elif isinstance(table, Mapping):
            result.append(TableOptions.from_mapping(table))
        else:
            msg = f"invalid table descriptor {table!r}"
            raise ConfigError(msg)
    return tuple(result)


@dataclass(frozen=True, slots=True)
class DatabaseOptions:
    """Resolved configuration for a Database."""

    directory: Path = field(default_factory=lambda: Path(DEFAULT_DIRECTORY))
    tables: tuple[TableOptions, ...] = field(default_factory=_default_tables)
    timeouts_table: str = DEFAULT_TIMEOUTS_TABLE
    auto_save: bool = DEFAULT_AUTO_SAVE

    def __post_init__(self) -> None:
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "directory", Path(self.directory))
        object.__setattr__(self, "tables", _coerce_tables(self.tables))
        if not self.tables:
            msg = "at least one table must be configured"
            raise ConfigError(msg)
        names = [t.name for t in self.tables]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"duplicate table names: {', '.join(duplicates)}"
            raise ConfigError(msg)
        if not self.timeouts_table:
            msg = "timeouts table name must be a non-empty string"
            raise ConfigError(msg)

    @property
    def default_table(self) -> str:
        """Name of the first configured table."""
        return self.tables[0].name

    def resolved_tables(self) -> tuple[TableOptions, ...]:
        """Configured tables, plus the timeouts table if it was not listed."""
        if any(t.name == self.timeouts_table for t in self.tables):
            return self.tables
        extra = TableOptions(self.timeouts_table, f"{self.timeouts_table}{TABLE_FILE_SUFFIX}")
        return (*self.tables, extra)

    def table_path(self, table: TableOptions) -> Path:
        return self.directory / table.file

    def merged(self, overrides: "Mapping[str, Any]") -> "DatabaseOptions":
        """Return a copy with caller values applied over this one."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if key not in _OPTION_ALIASES:
                msg = f"unknown database option {key!r}"
                raise ConfigError(msg)
            values[_OPTION_ALIASES[key]] = value
        return DatabaseOptions(**values)

    @classmethod
    def from_mapping(cls, mapping: "Mapping[str, Any]") -> "DatabaseOptions":
        """Build options from a mapping, with defaults for missing keys."""
        return cls().merged(mapping)

    @classmethod
    def from_toml(cls, path: "str | Path") -> "DatabaseOptions":
        """Read options from the ``[jsonshelf]`` table of a TOML file.

        A file without that table yields the defaults.

        Raises:
            ConfigError: If the file cannot be read or parsed, or contains
                unknown options.
        """
        try:
            with Path(path).open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            msg = f"cannot load configuration from {path}: {e}"
            raise ConfigError(msg) from e
        section = data.get(CONFIG_SECTION, {})
        if not isinstance(section, Mapping):
            msg = f"[{CONFIG_SECTION}] must be a table"
            raise ConfigError(msg)
        return cls.from_mapping(section)
