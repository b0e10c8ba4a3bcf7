"""Checks for index creation and removal."""

from __future__ import annotations

from textwrap import dedent

from postgast import pg_query_pb2

from migration_guard.helpers import index_column_names, relation_name, statement_kind, string_values, unwrap_node
from migration_guard.violation import Severity, Violation

# Indexes with more key columns than this are reported as wide.
MAX_INDEX_COLUMNS = 3


class AddIndexCheck:
    """Detects ``CREATE [UNIQUE] INDEX`` without ``CONCURRENTLY``."""

    name = "AddIndexCheck"
    description = "CREATE INDEX without CONCURRENTLY blocks writes for the whole build"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "index_stmt":
            return []
        index = stmt.index_stmt
        if index.concurrent:
            return []
        table = relation_name(index.relation)
        index_name = index.idxname or "<unnamed>"
        unique = "UNIQUE " if index.unique else ""
        columns = ", ".join(index_column_names(index))
        return [
            Violation(
                "ADD INDEX without CONCURRENTLY",
                f"Creating {unique}index '{index_name}' on table '{table}' without CONCURRENTLY acquires a SHARE "
                "lock, blocking writes (INSERT, UPDATE, DELETE) for the duration of the index build. Reads are "
                "still allowed.",
                dedent(f"""\
                    Use CONCURRENTLY to build the index without blocking writes:
                       CREATE {unique}INDEX CONCURRENTLY {index_name} ON {table} ({columns});

                    Note: CONCURRENTLY takes longer and uses more resources, but allows concurrent INSERT, UPDATE,
                    and DELETE operations. The build may fail on deadlocks or unique constraint violations.

                    Considerations:
                    - Cannot be run inside a transaction block
                    - Requires more total work and takes longer to complete
                    - If it fails, it leaves behind an "invalid" index that should be dropped"""),
                self.severity,
            )
        ]


def _object_name(node: pg_query_pb2.Node) -> str:
    """Join the name parts of a dropped object (``List`` of ``String``) into ``schema.name``."""
    inner = unwrap_node(node)
    if isinstance(inner, pg_query_pb2.List):
        return ".".join(string_values(inner.items))
    if isinstance(inner, pg_query_pb2.String):
        return inner.sval
    return "<unknown>"


class DropIndexCheck:
    """Detects ``DROP INDEX`` without ``CONCURRENTLY``, one violation per index."""

    name = "DropIndexCheck"
    description = "DROP INDEX without CONCURRENTLY blocks reads and writes on the table"
    severity = Severity.error

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "drop_stmt":
            return []
        drop = stmt.drop_stmt
        if drop.remove_type != pg_query_pb2.OBJECT_INDEX or drop.concurrent:
            return []
        if_exists = "IF EXISTS " if drop.missing_ok else ""
        violations: list[Violation] = []
        for obj in drop.objects:
            index_name = _object_name(obj)
            violations.append(
                Violation(
                    "DROP INDEX without CONCURRENTLY",
                    f"Dropping index '{index_name}' without CONCURRENTLY acquires an ACCESS EXCLUSIVE lock on its "
                    "table, blocking all reads and writes until the drop completes.",
                    dedent(f"""\
                        Use CONCURRENTLY to drop the index without blocking queries:
                           DROP INDEX CONCURRENTLY {if_exists}{index_name};

                        Considerations:
                        - Cannot be run inside a transaction block
                        - Only one index can be dropped per statement
                        - CASCADE is not supported with CONCURRENTLY"""),
                    self.severity,
                )
            )
        return violations


class WideIndexCheck:
    """Detects indexes with more than three key columns."""

    name = "WideIndexCheck"
    description = "Indexes on 4+ columns are rarely used effectively"
    severity = Severity.warning

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]:
        if statement_kind(stmt) != "index_stmt":
            return []
        index = stmt.index_stmt
        columns = index_column_names(index)
        if len(columns) <= MAX_INDEX_COLUMNS:
            return []
        table = relation_name(index.relation)
        index_name = index.idxname or "<unnamed>"
        count = len(columns)
        first, second = columns[0], columns[1]
        return [
            Violation(
                "Wide index",
                f"Index '{index_name}' on table '{table}' has {count} columns ({', '.join(columns)}). Wide indexes "
                "(4+ columns) are rarely effective because PostgreSQL can only use them efficiently when filtering "
                "on leftmost columns in order. They also increase storage costs and slow down writes.",
                dedent(f"""\
                    Consider these alternatives:

                    1. Use a partial index for specific query patterns:
                       CREATE INDEX {index_name} ON {table}({first}) WHERE <condition>;

                    2. Create separate narrower indexes for different queries:
                       CREATE INDEX idx_{table}_{first} ON {table}({first});
                       CREATE INDEX idx_{table}_{second} ON {table}({second});

                    3. Rethink your query patterns. Do you really need to filter on all {count} columns?

                    4. Use a covering index (INCLUDE clause) if you need extra columns for data:
                       CREATE INDEX {index_name} ON {table}({first}) INCLUDE ({', '.join(columns[1:])});

                    Note: If you've verified this index is necessary, use a safety-assured block."""),
                self.severity,
            )
        ]
