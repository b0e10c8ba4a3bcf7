"""Checks for table-wide and database-wide operations."""

from __future__ import annotations

from textwrap import dedent

from postgast import pg_query_pb2

from migration_guard.helpers import relation_name, statement_kind, unwrap_node
from migration_guard.violation import Severity, Violation


class CreateExtensionCheck:
    """Detects ``CREATE EXTENSION``, which needs superuser rights that application roles rarely have."""

    name = "CreateExtensionCheck"
    description = "CREATE EXTENSION requires superuser privileges"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "create_extension_stmt":
            return []
        ext = stmt.create_extension_stmt
        if_not_exists = "IF NOT EXISTS " if ext.if_not_exists else ""
        return [
            Violation(
                "CREATE EXTENSION",
                f"Creating extension '{ext.extname}' in a migration requires superuser privileges, which "
                "application database users typically lack in production. Extensions are infrastructure concerns "
                "that should be managed outside application migrations.",
                dedent(f"""\
                    Install the extension outside of migrations:

                    1. For local development, add to your database setup scripts:
                       CREATE EXTENSION {if_not_exists}{ext.extname};

                    2. For production, use infrastructure automation (Ansible, Terraform, etc.):
                       - Include extension installation in database provisioning
                       - Grant appropriate privileges to the admin role
                       - Run before deploying application migrations

                    3. Document required extensions in your project README.

                    Note: Common extensions like pg_trgm, uuid-ossp, hstore, and postgis should be installed by
                    your DBA or infrastructure team before application deployment."""),
                self.severity,
            )
        ]


class RenameTableCheck:
    """Detects ``ALTER TABLE ... RENAME TO``."""

    name = "RenameTableCheck"
    description = "RENAME TABLE breaks code still using the old name"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "rename_stmt":
            return []
        rename = stmt.rename_stmt
        if rename.rename_type != pg_query_pb2.OBJECT_TABLE:
            return []
        old = relation_name(rename.relation)
        new = rename.newname
        return [
            Violation(
                "RENAME TABLE",
                f"Renaming table '{old}' to '{new}' will cause immediate errors in running application instances. "
                "Any code referencing the old table name will fail after the rename is applied. Additionally, this "
                "operation requires an ACCESS EXCLUSIVE lock which can block on busy tables.",
                dedent(f"""\
                    Use a multi-step migration to safely rename the table:

                    1. Create the new table with the same structure:
                       CREATE TABLE {new} (LIKE {old} INCLUDING ALL);

                    2. Update your application code to write to both tables.

                    3. Backfill data from the old table to the new table in batches:
                       INSERT INTO {new} SELECT * FROM {old} WHERE id > <last_id> LIMIT 10000;

                    4. Update your application code to read from the new table.

                    5. Deploy the updated application code.

                    6. Update your application code to stop writing to the old table.

                    7. Drop the old table in a later migration:
                       DROP TABLE {old};

                    This keeps running instances working throughout the migration."""),
                self.severity,
            )
        ]


class TruncateTableCheck:
    """Detects ``TRUNCATE``, reporting each truncated table separately."""

    name = "TruncateTableCheck"
    description = "TRUNCATE takes an ACCESS EXCLUSIVE lock and cannot be batched"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "truncate_stmt":
            return []
        violations: list[Violation] = []
        for node in stmt.truncate_stmt.relations:
            relation = unwrap_node(node)
            if not isinstance(relation, pg_query_pb2.RangeVar):
                continue
            table = relation_name(relation)
            violations.append(
                Violation(
                    "TRUNCATE TABLE",
                    f"TRUNCATE TABLE on '{table}' acquires an ACCESS EXCLUSIVE lock, blocking all operations (reads "
                    "and writes). Unlike DELETE, TRUNCATE cannot be batched or throttled, making it unsafe for large "
                    "tables in production.",
                    dedent(f"""\
                        Use DELETE with batching instead:

                        1. Delete rows in small batches to allow concurrent access:
                           DELETE FROM {table} WHERE id IN (
                             SELECT id FROM {table} LIMIT 1000
                           );

                        2. Repeat the batched DELETE until all rows are removed.

                        3. (Optional) If you need to reset sequences:
                           ALTER SEQUENCE {table}_id_seq RESTART WITH 1;

                        4. (Optional) Run VACUUM to reclaim space:
                           VACUUM {table};

                        Note: If you absolutely must use TRUNCATE (e.g. in a test environment), use a safety-assured
                        block."""),
                    self.severity,
                )
            )
        return violations
