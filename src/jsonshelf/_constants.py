"""Default values for database configuration and timeout tokens."""

from typing import Final

DEFAULT_DIRECTORY: Final[str] = "./database/"
"""Root directory for table backing files."""

DEFAULT_TABLE_NAME: Final[str] = "main"
DEFAULT_TABLE_FILE: Final[str] = "main.json"

DEFAULT_TIMEOUTS_TABLE: Final[str] = "timeouts"
"""Name of the table that holds ephemeral entries."""

DEFAULT_AUTO_SAVE: Final[bool] = True

TABLE_FILE_SUFFIX: Final[str] = ".json"
"""Suffix used when a table is registered without an explicit file name."""

TOKEN_LENGTH: Final[int] = 5
"""Default length passed to generate_token."""

MIN_TIMER_DELAY_MS: Final[int] = 1
"""Lower bound for any scheduled expiration delay."""

INDENT: Final[str] = "\t"
"""Indentation used when serializing documents."""

CONFIG_SECTION: Final[str] = "jsonshelf"
"""Table name read from TOML configuration files."""
