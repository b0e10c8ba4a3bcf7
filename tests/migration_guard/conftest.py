from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from postgast import parse

from migration_guard import Config, SafetyChecker

if TYPE_CHECKING:
    from pathlib import Path

    from postgast import pg_query_pb2

    from migration_guard.checks import Check
    from migration_guard.violation import Violation

# -- Checker fixtures ----------------------------------------------------------


@pytest.fixture
def checker() -> SafetyChecker:
    return SafetyChecker()


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """A migrations directory in the layout the checker walks: one subdirectory per migration."""
    root = tmp_path / "migrations"
    root.mkdir()
    return root


def write_migration(root: Path, name: str, up: str, down: str | None = None) -> Path:
    migration = root / name
    migration.mkdir()
    (migration / "up.sql").write_text(up)
    if down is not None:
        (migration / "down.sql").write_text(down)
    return migration


def checker_with(**kwargs: object) -> SafetyChecker:
    return SafetyChecker(Config(**kwargs))  # type: ignore[arg-type]


# -- Assertion helpers ---------------------------------------------------------


def first_statement(sql: str) -> pg_query_pb2.Node:
    """Parse *sql* and return its first statement node."""
    return parse(sql).stmts[0].stmt


def run_check(check: Check, sql: str) -> list[Violation]:
    """Run one check over every statement in *sql*."""
    violations: list[Violation] = []
    for raw in parse(sql).stmts:
        violations.extend(check.check(raw.stmt))
    return violations


def assert_detects(check: Check, sql: str, operation: str, *, count: int = 1) -> list[Violation]:
    """Assert that *check* reports exactly *count* violations named *operation* for *sql*."""
    violations = run_check(check, sql)
    assert len(violations) == count, f"expected {count} violation(s) for {sql!r}, got {violations}"
    assert all(v.operation == operation for v in violations)
    assert all(v.severity == check.severity for v in violations)
    return violations


def assert_allows(check: Check, sql: str) -> None:
    """Assert that *check* reports nothing for *sql*."""
    violations = run_check(check, sql)
    assert violations == [], f"expected no violations for {sql!r}, got {violations}"


def operations(violations: list[Violation]) -> list[str]:
    return [v.operation for v in violations]
