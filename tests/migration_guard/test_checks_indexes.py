from __future__ import annotations

import pytest

from migration_guard.checks import AddIndexCheck, DropIndexCheck, WideIndexCheck
from migration_guard.violation import Severity

from .conftest import assert_allows, assert_detects


class TestAddIndexCheck:
    check = AddIndexCheck()

    def test_plain_index(self):
        (v,) = assert_detects(self.check, "CREATE INDEX idx_users_email ON users(email);", "ADD INDEX without CONCURRENTLY")
        assert "index 'idx_users_email' on table 'users'" in v.problem
        assert "CREATE INDEX CONCURRENTLY idx_users_email ON users (email);" in v.safe_alternative

    def test_unique_index(self):
        sql = "CREATE UNIQUE INDEX idx_users_email ON users(email);"
        (v,) = assert_detects(self.check, sql, "ADD INDEX without CONCURRENTLY")
        assert "Creating UNIQUE index" in v.problem
        assert "CREATE UNIQUE INDEX CONCURRENTLY" in v.safe_alternative

    def test_unnamed_index(self):
        (v,) = assert_detects(self.check, "CREATE INDEX ON users (lower(email));", "ADD INDEX without CONCURRENTLY")
        assert "'<unnamed>'" in v.problem
        assert "(<expression>)" in v.safe_alternative

    @pytest.mark.parametrize(
        "sql",
        [
            "CREATE INDEX CONCURRENTLY idx_users_email ON users(email);",
            "CREATE UNIQUE INDEX CONCURRENTLY IF NOT EXISTS idx_users_email ON users(email);",
            "CREATE TABLE users (email text);",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)


class TestDropIndexCheck:
    check = DropIndexCheck()

    def test_plain_drop(self):
        (v,) = assert_detects(self.check, "DROP INDEX idx_users_email;", "DROP INDEX without CONCURRENTLY")
        assert "'idx_users_email'" in v.problem
        assert "DROP INDEX CONCURRENTLY idx_users_email;" in v.safe_alternative

    def test_one_per_index(self):
        violations = assert_detects(
            self.check, "DROP INDEX IF EXISTS app.idx_a, idx_b;", "DROP INDEX without CONCURRENTLY", count=2
        )
        assert "'app.idx_a'" in violations[0].problem
        assert "DROP INDEX CONCURRENTLY IF EXISTS idx_b;" in violations[1].safe_alternative

    @pytest.mark.parametrize(
        "sql",
        [
            "DROP INDEX CONCURRENTLY idx_users_email;",
            "DROP INDEX CONCURRENTLY IF EXISTS idx_users_email;",
            "DROP TABLE users;",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)


class TestWideIndexCheck:
    check = WideIndexCheck()

    def test_is_warning(self):
        assert self.check.severity is Severity.warning

    def test_four_columns(self):
        sql = "CREATE INDEX CONCURRENTLY idx_wide ON orders (a, b, c, d);"
        (v,) = assert_detects(self.check, sql, "Wide index")
        assert "has 4 columns (a, b, c, d)" in v.problem
        assert "INCLUDE (b, c, d)" in v.safe_alternative

    def test_expression_columns_count(self):
        assert_detects(self.check, "CREATE INDEX idx ON t (a, lower(b), c, d, e);", "Wide index")

    @pytest.mark.parametrize(
        "sql",
        [
            "CREATE INDEX idx ON t (a, b, c);",
            "CREATE INDEX idx ON t (a) INCLUDE (b, c, d, e);",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)
