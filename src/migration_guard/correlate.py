"""Mapping parsed statements back to the source lines they start on.

The parse tree does not carry line numbers, so each statement is located by the leading keyword of its canonical
rendering: the first not-yet-claimed, non-comment source line that starts with that keyword is taken to be where the
statement begins. Statements are matched in parse order and each line is claimed at most once, so several statements
sharing a keyword are assigned strictly increasing lines.

This is a heuristic. Two statements on the same physical line, or a rendering whose first word differs from what the
author wrote, can be attributed to the wrong line. Nothing here raises; a statement that cannot be located is
reported at line 1 and a warning is logged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from postgast import PgQueryError

from migration_guard.helpers import render_statement, source_lines

if TYPE_CHECKING:
    from postgast import pg_query_pb2

logger = logging.getLogger(__name__)

FALLBACK_LINE = 1


def statement_keyword(
    stmt: pg_query_pb2.Node,
    render: Callable[[pg_query_pb2.Node], str] = render_statement,
) -> str | None:
    """Return the upper-cased first word of a statement's canonical SQL, or ``None`` if it cannot be rendered."""
    try:
        text = render(stmt)
    except PgQueryError as e:
        logger.warning("Could not render statement to locate it: %s", e)
        return None
    words = text.split(maxsplit=1)
    return words[0].upper() if words else None


def find_statement_line(keyword: str, lines: Sequence[str], matched: set[int]) -> int | None:
    """Return the first unclaimed, non-comment 1-based line starting with *keyword*, claiming it in *matched*."""
    for line_num, line in enumerate(lines, start=1):
        if line_num in matched:
            continue
        stripped = line.strip()
        if stripped.startswith("--"):
            continue
        if stripped.upper().startswith(keyword):
            matched.add(line_num)
            return line_num
    return None


def correlate_statements(
    statements: Sequence[pg_query_pb2.Node],
    sql: str,
    *,
    render: Callable[[pg_query_pb2.Node], str] = render_statement,
) -> list[int]:
    """Return the 1-based starting line of each statement in *sql*, parallel to *statements*."""
    lines = source_lines(sql)
    matched: set[int] = set()
    result: list[int] = []
    for index, stmt in enumerate(statements):
        keyword = statement_keyword(stmt, render)
        line = find_statement_line(keyword, lines, matched) if keyword else None
        if line is None:
            logger.warning(
                "Could not locate statement %d (keyword %r) in source; reporting it at line %d",
                index + 1,
                keyword,
                FALLBACK_LINE,
            )
            line = FALLBACK_LINE
        result.append(line)
    return result
