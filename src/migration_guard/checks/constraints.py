"""Checks for constraints added or dropped by migrations."""

from __future__ import annotations

import re
from textwrap import dedent

from postgast import pg_query_pb2

from migration_guard.helpers import (
    alter_table_commands,
    base_type_name,
    command_definition,
    is_primary_key_column,
    relation_name,
    statement_kind,
    string_values,
    unwrap_node,
)
from migration_guard.violation import Severity, Violation

# Common spellings of primary key constraint names: *_pkey, *_pk, pk_*, *_primary_key.
_PRIMARY_KEY_NAME = re.compile(r"((_pkey|_pk)$|^pk_|_primary_key|primarykey)", re.IGNORECASE)

# Catalog type name -> (display name, exhaustion limit).
_SHORT_INTEGER_TYPES = {
    "int2": ("SMALLINT", "~32,767"),
    "int4": ("INTEGER", "~2.1 billion"),
}


def _added_constraints(stmt: pg_query_pb2.Node):
    """Yield ``(table_name, Constraint)`` for every ``ADD CONSTRAINT`` in an ``ALTER TABLE``."""
    for table_name, cmd in alter_table_commands(stmt):
        if cmd.subtype != pg_query_pb2.AT_AddConstraint:
            continue
        constraint = command_definition(cmd)
        if isinstance(constraint, pg_query_pb2.Constraint):
            yield table_name, constraint


class AddPrimaryKeyCheck:
    """Detects ``ADD PRIMARY KEY (cols)`` on an existing table.

    The constraint builds its index under an ACCESS EXCLUSIVE lock. The ``PRIMARY KEY USING INDEX`` form, which
    adopts an index built concurrently beforehand, is not reported.
    """

    name = "AddPrimaryKeyCheck"
    description = "ADD PRIMARY KEY builds an index while blocking reads and writes"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, constraint in _added_constraints(stmt):
            if constraint.contype != pg_query_pb2.CONSTR_PRIMARY or constraint.indexname:
                continue
            constraint_name = constraint.conname or f"{table}_pkey"
            index_name = f"{table}_pkey"
            columns = ", ".join(string_values(constraint.keys))
            violations.append(
                Violation(
                    "ADD PRIMARY KEY",
                    f"Adding PRIMARY KEY constraint '{constraint_name}' on table '{table}' ({columns}) via ALTER "
                    "TABLE acquires an ACCESS EXCLUSIVE lock, blocking all reads and writes. This also implicitly "
                    "creates a unique index (blocking operation) and validates all rows for uniqueness.",
                    dedent(f"""\
                        Use CREATE UNIQUE INDEX CONCURRENTLY first, then add the constraint:

                        1. Create the unique index concurrently (no blocking):
                           CREATE UNIQUE INDEX CONCURRENTLY {index_name} ON {table} ({columns});

                        2. Add PRIMARY KEY constraint using the existing index (fast, minimal blocking):
                           ALTER TABLE {table} ADD CONSTRAINT {constraint_name} PRIMARY KEY USING INDEX {index_name};

                        Considerations:
                        - Requires PostgreSQL 11+ for PRIMARY KEY USING INDEX
                        - CONCURRENTLY cannot run inside a transaction block
                        - May fail if duplicate or NULL values exist (leaves behind an invalid index to drop)

                        Note: Ensure all primary key columns are NOT NULL before creating the index."""),
                    self.severity,
                )
            )
        return violations


class AddUniqueConstraintCheck:
    """Detects ``ADD UNIQUE (cols)``; ``UNIQUE USING INDEX`` is allowed."""

    name = "AddUniqueConstraintCheck"
    description = "ADD UNIQUE builds an index while blocking reads and writes"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, constraint in _added_constraints(stmt):
            if constraint.contype != pg_query_pb2.CONSTR_UNIQUE or constraint.indexname:
                continue
            columns = ", ".join(string_values(constraint.keys))
            index_name = constraint.conname or f"{table}_unique_idx"
            constraint_name = constraint.conname or f"{table}_unique_constraint"
            violations.append(
                Violation(
                    "ADD UNIQUE constraint",
                    f"Adding UNIQUE constraint '{constraint.conname or '<unnamed>'}' on table '{table}' ({columns}) "
                    "via ALTER TABLE acquires an ACCESS EXCLUSIVE lock, blocking all reads and writes during index "
                    "creation. Duration depends on table size.",
                    dedent(f"""\
                        Use CREATE UNIQUE INDEX CONCURRENTLY instead:

                        1. Create the unique index concurrently:
                           CREATE UNIQUE INDEX CONCURRENTLY {index_name} ON {table} ({columns});

                        2. (Optional) Add constraint using the existing index:
                           ALTER TABLE {table} ADD CONSTRAINT {constraint_name} UNIQUE USING INDEX {index_name};

                        Considerations:
                        - CONCURRENTLY cannot run inside a transaction block
                        - Takes longer than non-concurrent creation
                        - May fail if duplicate values exist (leaves behind an invalid index to drop)"""),
                    self.severity,
                )
            )
        return violations


def is_likely_primary_key(constraint_name: str) -> bool:
    """Return ``True`` if *constraint_name* follows a common primary key naming convention."""
    return _PRIMARY_KEY_NAME.search(constraint_name) is not None


class DropPrimaryKeyCheck:
    """Detects ``DROP CONSTRAINT`` on what looks like a primary key.

    Only the constraint name is available without a database connection, so detection is a naming heuristic: a
    primary key with an unconventional name is missed, and a non-key constraint named like one is reported.
    """

    name = "DropPrimaryKeyCheck"
    description = "Dropping a primary key breaks foreign keys and uniqueness guarantees"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, cmd in alter_table_commands(stmt):
            if cmd.subtype != pg_query_pb2.AT_DropConstraint or not is_likely_primary_key(cmd.name):
                continue
            constraint = cmd.name
            violations.append(
                Violation(
                    "DROP PRIMARY KEY",
                    f"Dropping primary key constraint '{constraint}' from table '{table}' requires an ACCESS "
                    "EXCLUSIVE lock, blocking all operations. More critically, this breaks foreign key relationships "
                    "in other tables and removes the uniqueness constraint.",
                    dedent(f"""\
                        Consider the following before dropping a primary key:

                        1. Identify all foreign key dependencies:
                           SELECT tc.table_name, kcu.column_name, rc.constraint_name
                           FROM information_schema.table_constraints tc
                           JOIN information_schema.key_column_usage kcu ON tc.constraint_name = kcu.constraint_name
                           JOIN information_schema.referential_constraints rc
                             ON tc.constraint_name = rc.unique_constraint_name
                           WHERE tc.table_name = '{table}' AND tc.constraint_type = 'PRIMARY KEY';

                        2. If you must change the primary key:
                           - Create the new primary key constraint FIRST
                           - Update all foreign keys to reference the new key
                           - Then drop the old primary key

                        3. If migrating to a different key strategy:
                           - Consider a transition period with both keys
                           - Update application code gradually
                           - Drop the old key only after full migration

                        Note: This check matches constraint names (e.g. '{constraint}' looks like a primary key) and
                        may not catch all cases. If this is a false positive, use a safety-assured block or disable
                        DropPrimaryKeyCheck in migration-guard.toml."""),
                    self.severity,
                )
            )
        return violations


def _describe_unnamed(constraint: pg_query_pb2.Constraint) -> tuple[str, str, str] | None:
    """Return ``(constraint_type, definition, suggested_suffix)`` for a constraint kind that should be named."""
    if constraint.contype == pg_query_pb2.CONSTR_UNIQUE:
        if constraint.indexname:
            return None
        return "UNIQUE", f"({', '.join(string_values(constraint.keys))})", "column_key"
    if constraint.contype == pg_query_pb2.CONSTR_FOREIGN:
        columns = ", ".join(string_values(constraint.fk_attrs))
        referenced = ", ".join(string_values(constraint.pk_attrs))
        target = relation_name(constraint.pktable)
        definition = f"({columns}) REFERENCES {target}({referenced})" if referenced else f"({columns}) REFERENCES {target}"
        return "FOREIGN KEY", definition, "column_fkey"
    if constraint.contype == pg_query_pb2.CONSTR_CHECK:
        return "CHECK", "(<expression>)", "column_check"
    return None


class UnnamedConstraintCheck:
    """Detects ``UNIQUE``, ``CHECK`` and ``FOREIGN KEY`` constraints added without ``CONSTRAINT name``."""

    name = "UnnamedConstraintCheck"
    description = "Unnamed constraints get database-generated names that later migrations must guess"
    severity = Severity.warning

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        violations: list[Violation] = []
        for table, constraint in _added_constraints(stmt):
            if constraint.conname:
                continue
            described = _describe_unnamed(constraint)
            if described is None:
                continue
            constraint_type, definition, suffix = described
            violations.append(
                Violation(
                    "Unnamed constraint",
                    f"Adding unnamed {constraint_type} constraint on table '{table}' will receive an auto-generated "
                    "name from PostgreSQL. This makes future migrations difficult, as the generated name varies "
                    "between databases and requires querying the database to find the constraint name before "
                    "modifying or dropping it.",
                    dedent(f"""\
                        Always name constraints explicitly using the CONSTRAINT keyword:

                        Instead of:
                           ALTER TABLE {table} ADD {constraint_type} {definition};

                        Use:
                           ALTER TABLE {table} ADD CONSTRAINT {table}_{suffix} {constraint_type} {definition};

                        Named constraints make future migrations predictable:
                           ALTER TABLE {table} DROP CONSTRAINT {table}_{suffix};

                        Common patterns:
                          - UNIQUE: {table}_<column>_key
                          - FOREIGN KEY: {table}_<column>_fkey
                          - CHECK: {table}_<column>_check"""),
                    self.severity,
                )
            )
        return violations


class ShortIntegerPrimaryKeyCheck:
    """Detects ``SMALLINT`` and ``INTEGER`` primary key columns, which risk ID exhaustion.

    Covered forms are inline ``PRIMARY KEY`` on a column (in ``CREATE TABLE`` or ``ADD COLUMN``), a table-level
    ``PRIMARY KEY (...)`` in ``CREATE TABLE``, and ``ADD CONSTRAINT ... PRIMARY KEY (...)`` over a column added by
    the same ``ALTER TABLE``. Columns of tables that already exist are not known and are never reported.
    """

    name = "ShortIntegerPrimaryKeyCheck"
    description = "SMALLINT/INTEGER primary keys run out of IDs"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        kind = statement_kind(stmt)
        if kind == "create_stmt":
            create = stmt.create_stmt
            table = relation_name(create.relation)
            columns: list[pg_query_pb2.ColumnDef] = []
            table_constraints: list[pg_query_pb2.Constraint] = []
            for elt in create.table_elts:
                inner = unwrap_node(elt)
                if isinstance(inner, pg_query_pb2.ColumnDef):
                    columns.append(inner)
                elif isinstance(inner, pg_query_pb2.Constraint):
                    table_constraints.append(inner)
            return self._check_columns(table, columns, table_constraints)
        if kind == "alter_table_stmt":
            table = relation_name(stmt.alter_table_stmt.relation)
            columns = []
            table_constraints = []
            for _, cmd in alter_table_commands(stmt):
                definition = command_definition(cmd)
                if cmd.subtype == pg_query_pb2.AT_AddColumn and isinstance(definition, pg_query_pb2.ColumnDef):
                    columns.append(definition)
                elif cmd.subtype == pg_query_pb2.AT_AddConstraint and isinstance(
                    definition, pg_query_pb2.Constraint
                ):
                    table_constraints.append(definition)
            return self._check_columns(table, columns, table_constraints)
        return []

    def _check_columns(
        self,
        table: str,
        columns: list[pg_query_pb2.ColumnDef],
        table_constraints: list[pg_query_pb2.Constraint],
    ) -> list[Violation]:
        by_name = {col.colname: col for col in columns}
        key_columns: list[str] = [col.colname for col in columns if is_primary_key_column(col)]
        for constraint in table_constraints:
            if constraint.contype == pg_query_pb2.CONSTR_PRIMARY:
                key_columns.extend(string_values(constraint.keys))

        violations: list[Violation] = []
        seen: set[str] = set()
        for column in key_columns:
            col_def = by_name.get(column)
            if col_def is None or column in seen:
                continue
            seen.add(column)
            short = _SHORT_INTEGER_TYPES.get(base_type_name(col_def.type_name))
            if short is not None:
                violations.append(self._violation(table, column, *short))
        return violations

    def _violation(self, table: str, column: str, type_name: str, limit: str) -> Violation:
        return Violation(
            "Short integer primary key",
            f"Using {type_name} for primary key column '{column}' on table '{table}' risks ID exhaustion at {limit} "
            f"records. {type_name} can be quickly exhausted in production applications. Changing the type later "
            "requires an ALTER COLUMN TYPE operation that triggers a full table rewrite with an ACCESS EXCLUSIVE "
            "lock, blocking all operations. Duration depends on table size.",
            dedent(f"""\
                Use BIGINT for primary keys to avoid ID exhaustion:

                Instead of:
                   CREATE TABLE {table} ({column} {type_name} PRIMARY KEY);

                Use:
                   CREATE TABLE {table} ({column} BIGINT PRIMARY KEY);

                BIGINT provides 8 bytes (up to ~9.2 quintillion), which is effectively unlimited for
                auto-incrementing IDs. The storage overhead of 4 extra bytes per row is negligible.

                If using SERIAL/SMALLSERIAL, use BIGSERIAL instead:
                   {column} BIGSERIAL PRIMARY KEY

                Note: If this is an intentionally small table (e.g. a lookup table with <100 entries), use a
                safety-assured block to bypass this check."""),
            self.severity,
        )
