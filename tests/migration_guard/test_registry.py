from __future__ import annotations

import pytest

from postgast import parse

from migration_guard import ALL_CHECK_NAMES, ALL_CHECKS, Check, Config, Registry, all_check_names
from migration_guard.directives import IgnoreRange

from .conftest import first_statement, operations


class TestCheckEnumeration:
    def test_names_are_unique(self):
        assert len(set(ALL_CHECK_NAMES)) == len(ALL_CHECK_NAMES)

    def test_names_follow_classes(self):
        assert ALL_CHECK_NAMES == tuple(cls.__name__ for cls in ALL_CHECKS)

    @pytest.mark.parametrize("cls", ALL_CHECKS, ids=lambda c: c.__name__)
    def test_every_check_satisfies_protocol(self, cls):
        instance = cls()
        assert isinstance(instance, Check)
        assert instance.description
        assert instance.check(first_statement("SELECT 1")) == []

    def test_all_check_names(self):
        assert all_check_names() == list(ALL_CHECK_NAMES)


class TestRegistry:
    def test_registers_everything_by_default(self):
        registry = Registry()
        assert registry.names == list(ALL_CHECK_NAMES)
        assert len(registry) == len(ALL_CHECKS)

    def test_disabled_checks_are_skipped(self):
        registry = Registry(Config(disable_checks=frozenset({"AddColumnCheck", "WideIndexCheck"})))
        assert "AddColumnCheck" not in registry.names
        assert "WideIndexCheck" not in registry.names
        assert len(registry) == len(ALL_CHECKS) - 2

    def test_disabled_check_produces_nothing(self):
        registry = Registry(Config(disable_checks=frozenset({"AddColumnCheck"})))
        assert registry.check_statement(first_statement("ALTER TABLE users ADD COLUMN a int DEFAULT 0;")) == []

    def test_results_follow_registration_order(self):
        # AddIndexCheck is registered before WideIndexCheck.
        stmt = first_statement("CREATE INDEX idx ON t (a, b, c, d);")
        assert operations(Registry().check_statement(stmt)) == ["ADD INDEX without CONCURRENTLY", "Wide index"]

    def test_multiple_checks_on_one_statement(self):
        stmt = first_statement("ALTER TABLE users ADD UNIQUE (email);")
        assert operations(Registry().check_statement(stmt)) == ["ADD UNIQUE constraint", "Unnamed constraint"]

    def test_check_statements_without_context(self):
        stmts = [raw.stmt for raw in parse("DROP INDEX a; TRUNCATE b;").stmts]
        violations = Registry().check_statements(stmts)
        assert operations(violations) == ["DROP INDEX without CONCURRENTLY", "TRUNCATE TABLE"]
        assert all(v.line_number is None for v in violations)


class TestCheckStatementsWithContext:
    def setup_method(self):
        self.registry = Registry()
        self.stmts = [raw.stmt for raw in parse("TRUNCATE a; TRUNCATE b; TRUNCATE c;").stmts]

    def test_lines_are_stamped(self):
        violations = self.registry.check_statements_with_context(self.stmts, [2, 5, 9], [])
        assert [v.line_number for v in violations] == [2, 5, 9]

    def test_statement_inside_range_is_skipped(self):
        violations = self.registry.check_statements_with_context(self.stmts, [2, 5, 9], [IgnoreRange(4, 6)])
        assert [v.line_number for v in violations] == [2, 9]

    def test_range_boundaries_are_not_ignored(self):
        violations = self.registry.check_statements_with_context(self.stmts, [2, 5, 9], [IgnoreRange(5, 9)])
        assert [v.line_number for v in violations] == [2, 5, 9]

    def test_empty_range_ignores_nothing(self):
        violations = self.registry.check_statements_with_context(self.stmts, [1, 2, 3], [IgnoreRange(1, 2)])
        assert len(violations) == 3

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError, match="3 statements but 2 line numbers"):
            self.registry.check_statements_with_context(self.stmts, [1, 2], [])
