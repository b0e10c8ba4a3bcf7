"""Checks for column-level ``ALTER TABLE`` operations."""

from __future__ import annotations

from textwrap import dedent

from postgast import pg_query_pb2

from migration_guard.helpers import (
    alter_table_commands,
    base_type_name,
    command_definition,
    format_type_name,
    has_default,
    relation_name,
    statement_kind,
)
from migration_guard.violation import Severity, Violation

_SERIAL_TYPES = frozenset({"serial", "smallserial", "bigserial", "serial2", "serial4", "serial8"})


def _added_columns(stmt: pg_query_pb2.Node):
    """Yield ``(table_name, ColumnDef)`` for every ``ADD COLUMN`` in an ``ALTER TABLE``."""
    for table_name, cmd in alter_table_commands(stmt):
        if cmd.subtype != pg_query_pb2.AT_AddColumn:
            continue
        col_def = command_definition(cmd)
        if isinstance(col_def, pg_query_pb2.ColumnDef):
            yield table_name, col_def


class AddColumnCheck:
    """Detects ``ADD COLUMN ... DEFAULT``.

    Before PostgreSQL 11 a default forces every existing row to be rewritten while an ACCESS EXCLUSIVE lock is held.
    """

    name = "AddColumnCheck"
    description = "ADD COLUMN with DEFAULT rewrites the table on PostgreSQL < 11"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, col_def in _added_columns(stmt):
            if not has_default(col_def):
                continue
            column = col_def.colname
            data_type = format_type_name(col_def.type_name)
            violations.append(
                Violation(
                    "ADD COLUMN with DEFAULT",
                    f"Adding column '{column}' with DEFAULT on table '{table}' requires a full table rewrite on "
                    "PostgreSQL < 11, which acquires an ACCESS EXCLUSIVE lock and blocks all operations. "
                    "Duration depends on table size.",
                    dedent(f"""\
                        1. Add the column without a default:
                           ALTER TABLE {table} ADD COLUMN {column} {data_type};

                        2. Backfill data in batches (outside migration):
                           UPDATE {table} SET {column} = <value> WHERE {column} IS NULL;

                        3. Add default for new rows only:
                           ALTER TABLE {table} ALTER COLUMN {column} SET DEFAULT <value>;

                        Note: For PostgreSQL 11+, this is safe if the default is a constant value."""),
                    self.severity,
                )
            )
        return violations


class AddJsonColumnCheck:
    """Detects ``ADD COLUMN`` with the ``json`` type, which has no equality operator."""

    name = "AddJsonColumnCheck"
    description = "json columns break DISTINCT, GROUP BY and UNION; use jsonb"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, col_def in _added_columns(stmt):
            if base_type_name(col_def.type_name) != "json":
                continue
            column = col_def.colname
            violations.append(
                Violation(
                    "ADD COLUMN with JSON type",
                    f"Adding column '{column}' with JSON type on table '{table}' can break existing SELECT DISTINCT "
                    "queries. The JSON type has no equality operator, causing runtime errors for DISTINCT, GROUP BY, "
                    "and UNION operations.",
                    dedent(f"""\
                        Use JSONB instead of JSON:

                           ALTER TABLE {table} ADD COLUMN {column} JSONB;

                        Benefits of JSONB over JSON:
                        - Has proper equality and comparison operators (supports DISTINCT, GROUP BY, UNION)
                        - Supports indexing (GIN indexes for efficient queries)
                        - Faster to process (binary format, no reparsing)

                        Note: The only advantage of JSON over JSONB is that it preserves exact formatting and key
                        order, which is rarely needed in practice."""),
                    self.severity,
                )
            )
        return violations


class AddSerialColumnCheck:
    """Detects ``ADD COLUMN`` with a ``SERIAL`` type, which rewrites the table to fill in sequence values."""

    name = "AddSerialColumnCheck"
    description = "ADD COLUMN with SERIAL rewrites the whole table"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, col_def in _added_columns(stmt):
            if base_type_name(col_def.type_name) not in _SERIAL_TYPES:
                continue
            column = col_def.colname
            seq = f"{table}_{column}_seq"
            violations.append(
                Violation(
                    "ADD COLUMN with SERIAL",
                    f"Adding column '{column}' with SERIAL type on table '{table}' requires a full table rewrite to "
                    "populate sequence values for existing rows, which acquires an ACCESS EXCLUSIVE lock and blocks "
                    "all operations. Duration depends on table size and number of indexes.",
                    dedent(f"""\
                        1. Create a sequence:
                           CREATE SEQUENCE {seq};

                        2. Add the column WITHOUT default (fast, no rewrite):
                           ALTER TABLE {table} ADD COLUMN {column} INTEGER;

                        3. Backfill existing rows in batches (outside migration):
                           UPDATE {table} SET {column} = nextval('{seq}') WHERE {column} IS NULL;

                        4. Set default for future inserts only:
                           ALTER TABLE {table} ALTER COLUMN {column} SET DEFAULT nextval('{seq}');

                        5. Set NOT NULL if needed (PostgreSQL 11+: safe if all values present):
                           ALTER TABLE {table} ALTER COLUMN {column} SET NOT NULL;

                        6. Set sequence ownership:
                           ALTER SEQUENCE {seq} OWNED BY {table}.{column};"""),
                    self.severity,
                )
            )
        return violations


class AddNotNullCheck:
    """Detects ``ALTER COLUMN ... SET NOT NULL``, which scans the table under an ACCESS EXCLUSIVE lock."""

    name = "AddNotNullCheck"
    description = "SET NOT NULL scans the whole table under ACCESS EXCLUSIVE lock"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, cmd in alter_table_commands(stmt):
            if cmd.subtype != pg_query_pb2.AT_SetNotNull:
                continue
            column = cmd.name
            check_name = f"{column}_not_null"
            violations.append(
                Violation(
                    "ADD NOT NULL constraint",
                    f"Adding NOT NULL constraint to column '{column}' on table '{table}' requires a full table scan "
                    "to verify all values are non-null, acquiring an ACCESS EXCLUSIVE lock and blocking all "
                    "operations. Duration depends on table size.",
                    dedent(f"""\
                        For safer constraint addition on large tables:

                        1. Add a CHECK constraint without validating existing rows:
                           ALTER TABLE {table} ADD CONSTRAINT {check_name} CHECK ({column} IS NOT NULL) NOT VALID;

                        2. Validate the constraint separately (uses SHARE UPDATE EXCLUSIVE lock):
                           ALTER TABLE {table} VALIDATE CONSTRAINT {check_name};

                        3. Add the NOT NULL constraint (instant if CHECK constraint exists):
                           ALTER TABLE {table} ALTER COLUMN {column} SET NOT NULL;

                        4. Optionally drop the redundant CHECK constraint:
                           ALTER TABLE {table} DROP CONSTRAINT {check_name};

                        Note: The VALIDATE step allows concurrent reads and writes, only blocking other schema
                        changes."""),
                    self.severity,
                )
            )
        return violations


class AlterColumnTypeCheck:
    """Detects ``ALTER COLUMN ... TYPE``; most type changes rewrite the table."""

    name = "AlterColumnTypeCheck"
    description = "Changing a column type usually rewrites the table under ACCESS EXCLUSIVE lock"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, cmd in alter_table_commands(stmt):
            if cmd.subtype != pg_query_pb2.AT_AlterColumnType:
                continue
            column = cmd.name
            col_def = command_definition(cmd)
            new_type = "<type>"
            has_using = False
            if isinstance(col_def, pg_query_pb2.ColumnDef):
                new_type = format_type_name(col_def.type_name)
                # The USING expression is carried in raw_default.
                has_using = col_def.HasField("raw_default")
            problem = (
                f"Changing column '{column}' type to '{new_type}' on table '{table}' typically requires an ACCESS "
                "EXCLUSIVE lock and may trigger a full table rewrite, blocking all operations. Duration depends on "
                "table size and the specific type change."
            )
            if has_using:
                problem += "\n\nNote: This migration includes a USING clause, which always triggers a full table rewrite."
            violations.append(
                Violation(
                    "ALTER COLUMN TYPE",
                    problem,
                    dedent(f"""\
                        For safer type changes, consider a multi-step approach:

                        1. Add a new column with the desired type:
                           ALTER TABLE {table} ADD COLUMN {column}_new {new_type};

                        2. Backfill data in batches (outside migration):
                           UPDATE {table} SET {column}_new = {column}::{new_type};

                        3. Deploy application code to use the new column.

                        4. Drop the old column in a later migration:
                           ALTER TABLE {table} DROP COLUMN {column};

                        5. Rename the new column:
                           ALTER TABLE {table} RENAME COLUMN {column}_new TO {column};

                        Note: Some type changes are safe:
                        - VARCHAR(n) to VARCHAR(m) where m > n
                        - VARCHAR to TEXT
                        - Numeric precision increases"""),
                    self.severity,
                )
            )
        return violations


class DropColumnCheck:
    """Detects ``DROP COLUMN``, reporting one violation per dropped column."""

    name = "DropColumnCheck"
    description = "DROP COLUMN takes an ACCESS EXCLUSIVE lock and breaks running code"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, cmd in alter_table_commands(stmt):
            if cmd.subtype != pg_query_pb2.AT_DropColumn:
                continue
            column = cmd.name
            if_exists = " IF EXISTS" if cmd.missing_ok else ""
            violations.append(
                Violation(
                    "DROP COLUMN",
                    f"Dropping column '{column}' from table '{table}' requires an ACCESS EXCLUSIVE lock, blocking "
                    "all operations. This typically triggers a table rewrite with duration depending on table size.",
                    dedent(f"""\
                        1. Mark the column as unused in your application code first.

                        2. Deploy the application without the column references.

                        3. (Optional) Set column to NULL to reclaim space:
                           ALTER TABLE {table} ALTER COLUMN {column} DROP NOT NULL;
                           UPDATE {table} SET {column} = NULL;

                        4. Drop the column in a later migration after confirming it's unused:
                           ALTER TABLE {table} DROP COLUMN{if_exists} {column};

                        Note: PostgreSQL doesn't support DROP COLUMN CONCURRENTLY. The rewrite is unavoidable but
                        staging the removal reduces risk."""),
                    self.severity,
                )
            )
        return violations


class RenameColumnCheck:
    """Detects ``RENAME COLUMN``, which breaks running application instances immediately."""

    name = "RenameColumnCheck"
    description = "RENAME COLUMN breaks code still using the old name"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "rename_stmt":
            return []
        rename = stmt.rename_stmt
        if rename.rename_type != pg_query_pb2.OBJECT_COLUMN:
            return []
        table = relation_name(rename.relation)
        old, new = rename.subname, rename.newname
        return [
            Violation(
                "RENAME COLUMN",
                f"Renaming column '{old}' to '{new}' in table '{table}' will cause immediate errors in running "
                "application instances. Any code referencing the old column name will fail after the rename is "
                "applied, causing downtime.",
                dedent(f"""\
                    1. Add a new column with the desired name (allows NULL initially):
                       ALTER TABLE {table} ADD COLUMN {new} <data_type>;

                    2. Backfill the new column with data from the old column:
                       UPDATE {table} SET {new} = {old};

                    3. Add NOT NULL constraint if needed (after backfill):
                       ALTER TABLE {table} ALTER COLUMN {new} SET NOT NULL;

                    4. Update your application code to reference the new column name.

                    5. Deploy the updated application code.

                    6. Drop the old column in a subsequent migration:
                       ALTER TABLE {table} DROP COLUMN {old};

                    This approach maintains compatibility with running instances during the transition."""),
                self.severity,
            )
        ]
