"""Text-pattern detectors for valid PostgreSQL the parser may reject.

Each detector recognises one known-safe construct by regular expression, without parsing. They are consulted only
after the parser has failed: if any of them matches, the whole file is treated as containing no statements. That
trades completeness for availability, since a single recognised construct also hides every other statement in the
same file from the checks.
"""

from __future__ import annotations

import re
import typing
from collections.abc import Callable


class SyntaxDetector(typing.NamedTuple):
    """A named text matcher for one construct."""

    name: str
    matches: Callable[[str], bool]


_PRIMARY_KEY_USING_INDEX = re.compile(
    r"ALTER\s+TABLE\s+\S+\s+ADD\s+CONSTRAINT\s+\S+\s+PRIMARY\s+KEY\s+USING\s+INDEX\s+\S+",
    re.IGNORECASE,
)
_UNIQUE_USING_INDEX = re.compile(
    r"ALTER\s+TABLE\s+\S+\s+ADD\s+CONSTRAINT\s+\S+\s+UNIQUE\s+USING\s+INDEX\s+\S+",
    re.IGNORECASE,
)
_DROP_INDEX_CONCURRENTLY = re.compile(
    r"DROP\s+INDEX\s+CONCURRENTLY\s+(IF\s+EXISTS\s+)?\S+",
    re.IGNORECASE,
)


def contains_primary_key_using_index(sql: str) -> bool:
    """Return ``True`` if *sql* adds a primary key from a pre-built index."""
    return _PRIMARY_KEY_USING_INDEX.search(sql) is not None


def contains_unique_using_index(sql: str) -> bool:
    """Return ``True`` if *sql* adds a unique constraint from a pre-built index."""
    return _UNIQUE_USING_INDEX.search(sql) is not None


def contains_drop_index_concurrently(sql: str) -> bool:
    """Return ``True`` if *sql* drops an index without blocking writes."""
    return _DROP_INDEX_CONCURRENTLY.search(sql) is not None


UNSUPPORTED_SYNTAX_DETECTORS: tuple[SyntaxDetector, ...] = (
    SyntaxDetector("PRIMARY KEY USING INDEX", contains_primary_key_using_index),
    SyntaxDetector("UNIQUE USING INDEX", contains_unique_using_index),
    SyntaxDetector("DROP INDEX CONCURRENTLY", contains_drop_index_concurrently),
)


def detect_unsupported_syntax(sql: str) -> str | None:
    """Return the name of the first detector that matches *sql*, or ``None``."""
    for detector in UNSUPPORTED_SYNTAX_DETECTORS:
        if detector.matches(sql):
            return detector.name
    return None
