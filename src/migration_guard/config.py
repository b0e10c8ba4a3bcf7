"""Loading and validation of ``migration-guard.toml``."""

from __future__ import annotations

import dataclasses
import logging
import re
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from migration_guard.checks import ALL_CHECK_NAMES
from migration_guard.errors import ConfigError, InvalidCheckNameError, InvalidTimestampError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "migration-guard.toml"

# YYYY_MM_DD_HHMMSS, YYYY-MM-DD-HHMMSS or YYYYMMDDHHMMSS; separators may not be mixed.
_TIMESTAMP_RE = re.compile(r"^(\d{4}_\d{2}_\d{2}_\d{6}|\d{4}-\d{2}-\d{2}-\d{6}|\d{14})$")
_TIMESTAMP_DIGITS = 14

DEFAULT_CONFIG_TEMPLATE = """\
# migration-guard configuration

# Skip migrations whose directory timestamp is at or before this one.
# Accepted formats: YYYYMMDDHHMMSS, YYYY_MM_DD_HHMMSS, YYYY-MM-DD-HHMMSS
# start_after = "2024_01_01_000000"

# Also check down.sql files.
check_down = false

# Checks to turn off, by name, e.g. ["AddColumnCheck", "DropPrimaryKeyCheck"].
disable_checks = []
"""


def normalize_timestamp(timestamp: str) -> str:
    """Strip every non-digit, turning any accepted layout into ``YYYYMMDDHHMMSS``."""
    return "".join(c for c in timestamp if c.isdigit())


def validate_timestamp(timestamp: str) -> None:
    """Raise :class:`InvalidTimestampError` unless *timestamp* uses one of the accepted layouts."""
    if _TIMESTAMP_RE.match(timestamp) is None:
        raise InvalidTimestampError(timestamp)


@dataclasses.dataclass(frozen=True)
class Config:
    """Settings that shape one run of the checker.

    Attributes:
        disable_checks: Names of checks to skip. Every name must appear in
            :data:`~migration_guard.checks.ALL_CHECK_NAMES`.
        start_after: Only migrations whose directory timestamp sorts strictly after this one are checked.
        check_down: Whether ``down.sql`` files are checked alongside ``up.sql``.
    """

    disable_checks: frozenset[str] = frozenset()
    start_after: str | None = None
    check_down: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check every value, raising a :class:`ConfigError` subclass on the first bad one."""
        if self.start_after is not None:
            validate_timestamp(self.start_after)
        for name in sorted(self.disable_checks):
            if name not in ALL_CHECK_NAMES:
                raise InvalidCheckNameError(name, ALL_CHECK_NAMES)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """Build a config from decoded TOML. Unknown keys are ignored.

        Raises:
            ConfigError: A value has the wrong type, or fails validation.
        """
        start_after = data.get("start_after")
        if start_after is not None and not isinstance(start_after, str):
            raise ConfigError(f"'start_after' must be a string, got {type(start_after).__name__}")
        check_down = data.get("check_down", False)
        if not isinstance(check_down, bool):
            raise ConfigError(f"'check_down' must be a boolean, got {type(check_down).__name__}")
        disable_checks = data.get("disable_checks", [])
        if not isinstance(disable_checks, list) or not all(isinstance(n, str) for n in disable_checks):
            raise ConfigError("'disable_checks' must be a list of strings")
        return cls(disable_checks=frozenset(disable_checks), start_after=start_after, check_down=check_down)

    @classmethod
    def load_from_path(cls, path: str | Path) -> Config:
        """Read and validate a TOML config file.

        Raises:
            ConfigError: The file cannot be read, is not valid TOML, or holds invalid values. ``path`` is set on
                the error.
        """
        path = Path(path)
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"Failed to read config file: {e.strerror or e}", path=str(path)) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse config file: {e}", path=str(path)) from e
        try:
            config = cls.from_dict(data)
        except ConfigError as e:
            raise e.with_path(str(path)) from None
        logger.debug("Loaded config from %s: %s", path, config)
        return config

    @classmethod
    def load(cls, directory: str | Path | None = None) -> Config:
        """Load ``migration-guard.toml`` from *directory* (default: the working directory).

        Returns the default config when the file does not exist.
        """
        path = Path(directory or ".") / CONFIG_FILE_NAME
        if not path.exists():
            return cls()
        return cls.load_from_path(path)

    def is_check_enabled(self, name: str) -> bool:
        return name not in self.disable_checks

    def should_check_migration(self, migration_dir_name: str) -> bool:
        """Return ``True`` if the migration directory named *migration_dir_name* is due for checking.

        The first 14 digits of the name are compared with ``start_after``; only strictly later migrations are
        checked. Names with fewer than 14 digits are always checked, as is everything when no filter is set.

        Example:
            >>> Config(start_after="2024_01_01_000000").should_check_migration("2023_12_31_235959_old")
            False
        """
        if self.start_after is None:
            return True
        digits = normalize_timestamp(migration_dir_name)
        if len(digits) < _TIMESTAMP_DIGITS:
            return True
        return digits[:_TIMESTAMP_DIGITS] > normalize_timestamp(self.start_after)

    def with_disabled(self, names: Iterable[str]) -> Config:
        """Return a copy with *names* added to ``disable_checks``."""
        return dataclasses.replace(self, disable_checks=self.disable_checks | frozenset(names))
