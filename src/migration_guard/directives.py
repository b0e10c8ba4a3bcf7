"""Parsing of ``safety-assured`` directives embedded in SQL comments.

A migration author can wrap statements they have verified by hand in a block::

    -- safety-assured:start
    ALTER TABLE users DROP COLUMN email;
    -- safety-assured:end

Every line strictly between the two directive comments is exempt from checks.
"""

from __future__ import annotations

import re
import typing
from collections.abc import Iterable

from migration_guard.errors import NestedDirectiveError, UnclosedBlockError, UnmatchedEndError
from migration_guard.helpers import source_lines

_START_DIRECTIVE = re.compile(r"^\s*--\s*safety-assured:start\s*$", re.IGNORECASE)
_END_DIRECTIVE = re.compile(r"^\s*--\s*safety-assured:end\s*$", re.IGNORECASE)


class IgnoreRange(typing.NamedTuple):
    """Lines covered by one ``safety-assured`` block.

    Both boundaries are the 1-based line numbers of the directive comments themselves and are *not* part of the
    suppressed region.
    """

    start_line: int
    end_line: int

    def __str__(self) -> str:
        return f"lines {self.start_line}-{self.end_line}"

    def __contains__(self, line: object) -> bool:
        return isinstance(line, int) and self.start_line < line < self.end_line


def is_start_directive(line: str) -> bool:
    return _START_DIRECTIVE.match(line.strip()) is not None


def is_end_directive(line: str) -> bool:
    return _END_DIRECTIVE.match(line.strip()) is not None


def parse_ignore_ranges(sql: str) -> list[IgnoreRange]:
    """Return the ``safety-assured`` blocks found in *sql*, in source order.

    Args:
        sql: Raw migration text.

    Returns:
        One :class:`IgnoreRange` per matched start/end pair.

    Raises:
        NestedDirectiveError: A start directive appears while a block is already open.
        UnmatchedEndError: An end directive appears with no open block.
        UnclosedBlockError: The text ends with a block still open.

    Example:
        >>> parse_ignore_ranges("-- safety-assured:start\\nDROP TABLE t;\\n-- safety-assured:end")
        [IgnoreRange(start_line=1, end_line=3)]
    """
    ranges: list[IgnoreRange] = []
    current_start: int | None = None

    for line_num, line in enumerate(source_lines(sql), start=1):
        if is_start_directive(line):
            if current_start is not None:
                raise NestedDirectiveError(line_num)
            current_start = line_num
        elif is_end_directive(line):
            if current_start is None:
                raise UnmatchedEndError(line_num)
            ranges.append(IgnoreRange(current_start, line_num))
            current_start = None

    if current_start is not None:
        raise UnclosedBlockError(current_start)

    return ranges


def ignored_lines(ranges: Iterable[IgnoreRange]) -> frozenset[int]:
    """Return every line number that falls strictly inside one of *ranges*."""
    return frozenset(line for r in ranges for line in range(r.start_line + 1, r.end_line))
