from __future__ import annotations

import pytest

from migration_guard.checks import (
    AddColumnCheck,
    AddJsonColumnCheck,
    AddNotNullCheck,
    AddSerialColumnCheck,
    AlterColumnTypeCheck,
    DropColumnCheck,
    RenameColumnCheck,
)

from .conftest import assert_allows, assert_detects


class TestAddColumnCheck:
    check = AddColumnCheck()

    def test_default_detected(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users ADD COLUMN admin BOOLEAN DEFAULT FALSE;", "ADD COLUMN with DEFAULT")
        assert "'admin'" in v.problem
        assert "'users'" in v.problem
        assert "ALTER TABLE users ADD COLUMN admin boolean;" in v.safe_alternative

    def test_default_with_not_null(self):
        assert_detects(self.check, "ALTER TABLE users ADD COLUMN n integer NOT NULL DEFAULT 0;", "ADD COLUMN with DEFAULT")

    def test_one_per_column(self):
        sql = "ALTER TABLE users ADD COLUMN a int DEFAULT 1, ADD COLUMN b int, ADD COLUMN c int DEFAULT 2;"
        assert_detects(self.check, sql, "ADD COLUMN with DEFAULT", count=2)

    @pytest.mark.parametrize(
        "sql",
        [
            "ALTER TABLE users ADD COLUMN email VARCHAR(255);",
            "ALTER TABLE users ALTER COLUMN admin SET DEFAULT FALSE;",
            "CREATE TABLE users (admin BOOLEAN DEFAULT FALSE);",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)

    def test_varchar_rendered_with_length(self):
        (v,) = assert_detects(self.check, "ALTER TABLE t ADD COLUMN s varchar(40) DEFAULT 'x';", "ADD COLUMN with DEFAULT")
        assert "ADD COLUMN s varchar(40);" in v.safe_alternative


class TestAddJsonColumnCheck:
    check = AddJsonColumnCheck()

    def test_json_detected(self):
        (v,) = assert_detects(self.check, "ALTER TABLE events ADD COLUMN payload JSON;", "ADD COLUMN with JSON type")
        assert "ADD COLUMN payload JSONB;" in v.safe_alternative

    @pytest.mark.parametrize(
        "sql",
        [
            "ALTER TABLE events ADD COLUMN payload JSONB;",
            "CREATE TABLE events (payload json);",
            "ALTER TABLE events ADD COLUMN payload text;",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)


class TestAddSerialColumnCheck:
    check = AddSerialColumnCheck()

    @pytest.mark.parametrize("type_name", ["SERIAL", "BIGSERIAL", "SMALLSERIAL"])
    def test_serial_types(self, type_name: str):
        (v,) = assert_detects(self.check, f"ALTER TABLE users ADD COLUMN seq {type_name};", "ADD COLUMN with SERIAL")
        assert "CREATE SEQUENCE users_seq_seq;" in v.safe_alternative

    def test_create_table_serial_allowed(self):
        assert_allows(self.check, "CREATE TABLE users (id SERIAL PRIMARY KEY);")


class TestAddNotNullCheck:
    check = AddNotNullCheck()

    def test_set_not_null(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users ALTER COLUMN email SET NOT NULL;", "ADD NOT NULL constraint")
        assert "'email'" in v.problem
        assert "CHECK (email IS NOT NULL) NOT VALID" in v.safe_alternative

    @pytest.mark.parametrize(
        "sql",
        [
            "ALTER TABLE users ALTER COLUMN email DROP NOT NULL;",
            "ALTER TABLE users ADD COLUMN email text NOT NULL;",
        ],
    )
    def test_allowed(self, sql: str):
        assert_allows(self.check, sql)


class TestAlterColumnTypeCheck:
    check = AlterColumnTypeCheck()

    def test_type_change(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users ALTER COLUMN age TYPE BIGINT;", "ALTER COLUMN TYPE")
        assert "'bigint'" in v.problem
        assert "USING clause" not in v.problem

    def test_using_clause_noted(self):
        sql = "ALTER TABLE users ALTER COLUMN age TYPE bigint USING age::bigint;"
        (v,) = assert_detects(self.check, sql, "ALTER COLUMN TYPE")
        assert "USING clause" in v.problem

    def test_set_data_type_spelling(self):
        assert_detects(self.check, "ALTER TABLE users ALTER COLUMN name SET DATA TYPE text;", "ALTER COLUMN TYPE")

    def test_other_alter_column_allowed(self):
        assert_allows(self.check, "ALTER TABLE users ALTER COLUMN age SET DEFAULT 0;")


class TestDropColumnCheck:
    check = DropColumnCheck()

    def test_drop_column(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users DROP COLUMN email;", "DROP COLUMN")
        assert "'email'" in v.problem
        assert "'users'" in v.problem

    def test_one_per_dropped_column(self):
        assert_detects(self.check, "ALTER TABLE users DROP COLUMN a, DROP COLUMN b;", "DROP COLUMN", count=2)

    def test_if_exists_kept_in_alternative(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users DROP COLUMN IF EXISTS email;", "DROP COLUMN")
        assert "DROP COLUMN IF EXISTS email;" in v.safe_alternative

    def test_schema_qualified_table(self):
        (v,) = assert_detects(self.check, "ALTER TABLE app.users DROP COLUMN email;", "DROP COLUMN")
        assert "'app.users'" in v.problem

    def test_drop_table_allowed(self):
        assert_allows(self.check, "DROP TABLE users;")


class TestRenameColumnCheck:
    check = RenameColumnCheck()

    def test_rename_column(self):
        (v,) = assert_detects(self.check, "ALTER TABLE users RENAME COLUMN email TO email_address;", "RENAME COLUMN")
        assert "'email' to 'email_address'" in v.problem

    def test_rename_without_column_keyword(self):
        assert_detects(self.check, "ALTER TABLE users RENAME email TO email_address;", "RENAME COLUMN")

    def test_rename_table_allowed(self):
        assert_allows(self.check, "ALTER TABLE users RENAME TO accounts;")
