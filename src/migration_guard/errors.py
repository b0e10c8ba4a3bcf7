"""Error handling for migration_guard.

Provides the exception hierarchy raised while checking migrations, plus an internal helper that converts a
:class:`postgast.PgQueryError` into a located :class:`SqlParseError`.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from postgast import PgQueryError

_LOCATION_RE = re.compile(r"at Line: (\d+), Column: (\d+)")

TIMESTAMP_FORMATS_HELP = (
    "Expected format: YYYYMMDDHHMMSS, YYYY_MM_DD_HHMMSS, or YYYY-MM-DD-HHMMSS "
    "(e.g., 20240101000000, 2024_01_01_000000, or 2024-01-01-000000)"
)


class MigrationGuardError(Exception):
    """Base class for every error raised by migration_guard.

    Attributes:
        message: Human-readable error description.
        path: The migration file the error belongs to, or ``None`` when the error was raised for in-memory SQL.
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def with_path(self, path: str) -> MigrationGuardError:
        """Attach file context to the error and return it, so it can be re-raised in one expression."""
        self.path = path
        return self

    def __str__(self) -> str:
        return self.message


class SqlParseError(MigrationGuardError):
    """Structured error raised when the SQL parser rejects a migration.

    ``line`` and ``column`` are 1-based and point at the token where the parser gave up. Either may be ``None``
    when the parser did not report a position.

    Attributes:
        message: The parser's error description.
        line: 1-based line number in the migration, or ``None``.
        column: 1-based column number in the migration, or ``None``.
        cursorpos: 1-based byte offset reported by libpg_query (``0`` when unavailable).

    Examples:
        >>> err = SqlParseError('syntax error at or near "FORM"', line=3, column=10)
        >>> str(err)
        'Failed to parse SQL: syntax error at or near "FORM" (line 3, column 10)'
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        cursorpos: int = 0,
        path: str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.line = line
        self.column = column
        self.cursorpos = cursorpos

    def __str__(self) -> str:
        text = f"Failed to parse SQL: {self.message}"
        if self.line is not None and self.column is not None:
            text += f" (line {self.line}, column {self.column})"
        if self.path is not None:
            text = f"{self.path}: {text}"
        return text


class DirectiveError(MigrationGuardError):
    """A ``safety-assured`` block is malformed.

    Attributes:
        line: 1-based line of the offending directive.
    """

    def __init__(self, message: str, *, line: int, path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.line = line

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path is not None else self.message


class NestedDirectiveError(DirectiveError):
    """A ``safety-assured:start`` was found while another block was still open."""

    def __init__(self, line: int) -> None:
        super().__init__(
            f"Nested 'safety-assured:start' at line {line}. Nested blocks are not supported. "
            "Close the previous block before starting a new one.",
            line=line,
        )


class UnmatchedEndError(DirectiveError):
    """A ``safety-assured:end`` was found with no open block."""

    def __init__(self, line: int) -> None:
        super().__init__(
            f"Unmatched 'safety-assured:end' at line {line}. "
            "Each 'safety-assured:end' must have a matching 'safety-assured:start' before it.",
            line=line,
        )


class UnclosedBlockError(DirectiveError):
    """The file ended while a ``safety-assured`` block was still open."""

    def __init__(self, line: int) -> None:
        super().__init__(
            f"Unclosed 'safety-assured:start' at line {line}. Did you forget to add 'safety-assured:end'?",
            line=line,
        )


class ConfigError(MigrationGuardError):
    """The configuration file could not be read or holds invalid values.

    Attributes:
        help: Optional hint on how to fix the problem.
    """

    def __init__(self, message: str, *, help: str | None = None, path: str | None = None) -> None:  # noqa: A002
        super().__init__(message, path=path)
        self.help = help

    def __str__(self) -> str:
        text = f"Configuration error: {self.message}"
        if self.path is not None:
            text = f"{self.path}: {text}"
        if self.help:
            text += f"\n  help: {self.help}"
        return text


class InvalidCheckNameError(ConfigError):
    """``disable_checks`` names a check that does not exist."""

    def __init__(self, invalid_name: str, valid_names: tuple[str, ...]) -> None:
        super().__init__(
            f"Invalid check name: {invalid_name}",
            help=f"Valid check names: {', '.join(valid_names)}",
        )
        self.invalid_name = invalid_name


class InvalidTimestampError(ConfigError):
    """``start_after`` is not one of the accepted timestamp layouts."""

    def __init__(self, timestamp: str) -> None:
        super().__init__(f"Invalid timestamp format: {timestamp}", help=TIMESTAMP_FORMATS_HELP)
        self.timestamp = timestamp


def location_from_cursorpos(sql: str, cursorpos: int) -> tuple[int, int] | None:
    """Convert libpg_query's 1-based byte offset into a 1-based ``(line, column)`` pair.

    Returns ``None`` when *cursorpos* is ``0`` (position unknown) or lies outside *sql*.
    """
    data = sql.encode("utf-8")
    if cursorpos <= 0 or cursorpos > len(data) + 1:
        return None
    before = data[: cursorpos - 1].decode("utf-8", errors="replace")
    line = before.count("\n") + 1
    column = len(before) - (before.rfind("\n") + 1) + 1
    return line, column


def location_from_message(message: str) -> tuple[int, int] | None:
    """Extract ``(line, column)`` from an ``"... at Line: L, Column: C"`` style message."""
    match = _LOCATION_RE.search(message)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_error_from(exc: PgQueryError, sql: str) -> SqlParseError:
    """Build a :class:`SqlParseError` from a parser exception, locating it in *sql* where possible."""
    message = getattr(exc, "message", None) or str(exc)
    cursorpos = getattr(exc, "cursorpos", 0) or 0
    location = location_from_cursorpos(sql, cursorpos) or location_from_message(message)
    line, column = location if location is not None else (None, None)
    return SqlParseError(message, line=line, column=column, cursorpos=cursorpos)
