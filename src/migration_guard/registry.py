"""The set of active checks and their dispatch over parsed statements."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from migration_guard.checks import ALL_CHECK_NAMES, ALL_CHECKS
from migration_guard.config import Config
from migration_guard.directives import ignored_lines

if TYPE_CHECKING:
    from postgast import pg_query_pb2

    from migration_guard.checks import Check
    from migration_guard.directives import IgnoreRange
    from migration_guard.violation import Violation

logger = logging.getLogger(__name__)


def all_check_names() -> list[str]:
    """Return the name of every built-in check, enabled or not."""
    return list(ALL_CHECK_NAMES)


class Registry:
    """Runs every enabled check against statements, in a fixed order.

    A registry is read-only once built and can be shared between threads.

    Example:
        >>> from postgast import parse
        >>> registry = Registry(Config(disable_checks=frozenset({"AddIndexCheck"})))
        >>> registry.check_statement(parse("CREATE INDEX i ON t (a)").stmts[0].stmt)
        []
    """

    def __init__(self, config: Config | None = None) -> None:
        config = config or Config()
        self._checks: tuple[Check, ...] = tuple(cls() for cls in ALL_CHECKS if config.is_check_enabled(cls.name))
        logger.debug("Registered %d of %d checks: %s", len(self._checks), len(ALL_CHECKS), ", ".join(self.names))

    @property
    def checks(self) -> tuple[Check, ...]:
        return self._checks

    @property
    def names(self) -> list[str]:
        """Names of the enabled checks, in registration order."""
        return [check.name for check in self._checks]

    def __len__(self) -> int:
        return len(self._checks)

    def check_statement(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        """Run every enabled check against one statement and concatenate the results."""
        violations: list[Violation] = []
        for check in self._checks:
            violations.extend(check.check(stmt))
        return violations

    def check_statements(self, statements: Sequence[pg_query_pb2.Node]) -> list[Violation]:
        """Run every enabled check against each statement, without line information or suppression."""
        violations: list[Violation] = []
        for stmt in statements:
            violations.extend(self.check_statement(stmt))
        return violations

    def check_statements_with_context(
        self,
        statements: Sequence[pg_query_pb2.Node],
        statement_lines: Sequence[int],
        ignore_ranges: Sequence[IgnoreRange],
    ) -> list[Violation]:
        """Check statements, skipping those inside ``safety-assured`` blocks and stamping the rest with their line.

        Args:
            statements: Parsed statements in source order.
            statement_lines: The 1-based starting line of each statement, parallel to *statements*.
            ignore_ranges: Suppression blocks found in the same source.

        Returns:
            Violations from unsuppressed statements, each with ``line_number`` set.
        """
        if len(statements) != len(statement_lines):
            msg = f"Got {len(statements)} statements but {len(statement_lines)} line numbers"
            raise ValueError(msg)
        suppressed = ignored_lines(ignore_ranges)
        violations: list[Violation] = []
        for stmt, line in zip(statements, statement_lines, strict=True):
            if line in suppressed:
                logger.debug("Skipping statement at line %d inside a safety-assured block", line)
                continue
            violations.extend(v.at_line(line) for v in self.check_statement(stmt))
        return violations
