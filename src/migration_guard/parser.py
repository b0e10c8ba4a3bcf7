"""Parsing migration SQL into statements plus the metadata needed to check them."""

from __future__ import annotations

import logging
import typing
from collections.abc import Callable

import postgast
from postgast import PgQueryError

from migration_guard.correlate import correlate_statements
from migration_guard.directives import IgnoreRange, parse_ignore_ranges
from migration_guard.errors import SqlParseError, location_from_cursorpos, parse_error_from
from migration_guard.fallback import detect_unsupported_syntax

if typing.TYPE_CHECKING:
    from postgast import pg_query_pb2

logger = logging.getLogger(__name__)

ParseFn = Callable[[str], "pg_query_pb2.ParseResult"]


class ParsedSql(typing.NamedTuple):
    """Everything derived from one migration's text.

    ``statement_lines`` is parallel to ``statements``.
    """

    statements: list[pg_query_pb2.Node]
    sql: str
    ignore_ranges: list[IgnoreRange]
    statement_lines: list[int]


def _reject_nul(sql: str) -> None:
    # The parser reads a C string and would silently stop at the first NUL.
    index = sql.find("\x00")
    if index < 0:
        return
    cursorpos = len(sql[:index].encode("utf-8")) + 1
    line, column = location_from_cursorpos(sql, cursorpos) or (None, None)
    raise SqlParseError("invalid NUL character in SQL text", line=line, column=column, cursorpos=cursorpos)


def parse_statements(sql: str, *, parse: ParseFn = postgast.parse) -> list[pg_query_pb2.Node]:
    """Parse *sql* into its top-level statement nodes.

    If the parser rejects the text but it contains a construct that is known to be valid and safe (see
    :mod:`migration_guard.fallback`), an empty list is returned so the migration passes instead of failing. Every
    other statement in that text goes unchecked.

    Args:
        sql: Migration text.
        parse: The parser to use. Defaults to :func:`postgast.parse`.

    Raises:
        SqlParseError: The text does not parse and no fallback applies, or it contains a NUL character.
    """
    _reject_nul(sql)
    try:
        result = parse(sql)
    except PgQueryError as e:
        detected = detect_unsupported_syntax(sql)
        if detected is None:
            raise parse_error_from(e, sql) from e
        logger.warning(
            "Parser rejected SQL containing %s; skipping every statement in it (%s)", detected, e.message
        )
        return []
    return [raw.stmt for raw in result.stmts]


def parse_with_metadata(sql: str, *, parse: ParseFn = postgast.parse) -> ParsedSql:
    """Parse *sql* and gather its ``safety-assured`` blocks and statement start lines.

    Raises:
        SqlParseError: The text does not parse and no fallback applies.
        DirectiveError: A ``safety-assured`` block is malformed.
    """
    statements = parse_statements(sql, parse=parse)
    ignore_ranges = parse_ignore_ranges(sql)
    statement_lines = correlate_statements(statements, sql)
    return ParsedSql(statements, sql, ignore_ranges, statement_lines)
