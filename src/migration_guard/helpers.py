"""Convenience functions for reading parsed migration statements.

libpg_query's protobuf schema wraps every child reference in a generic ``Node`` message; the helpers here peel those
wrappers and turn the common shapes (relations, type names, column constraints, index columns) into plain Python
values the checks can reason about. :func:`source_lines` splits raw migration text the way line numbers are reported.
"""

from __future__ import annotations

from collections.abc import Generator, Iterable
from typing import TYPE_CHECKING

from postgast import deparse, pg_query_pb2

if TYPE_CHECKING:
    from google.protobuf.message import Message

_NODE_ONEOF = "node"

# Internal catalog names mapped back to the spelling people write in migrations.
_TYPE_DISPLAY_NAMES = {
    "bool": "boolean",
    "bpchar": "char",
    "float4": "real",
    "float8": "double precision",
    "int2": "smallint",
    "int4": "integer",
    "int8": "bigint",
    "timestamptz": "timestamp with time zone",
    "timetz": "time with time zone",
}


def unwrap_node(node: Message) -> Message:
    """If *node* is a ``Node`` oneof wrapper, return the inner concrete message; otherwise return *node* unchanged."""
    oneofs = type(node).DESCRIPTOR.oneofs
    if len(oneofs) == 1 and oneofs[0].name == _NODE_ONEOF:
        which = node.WhichOneof(_NODE_ONEOF)
        if which is not None:
            return getattr(node, which)
    return node


def statement_kind(stmt: pg_query_pb2.Node) -> str | None:
    """Return the oneof field name of a statement node, e.g. ``"alter_table_stmt"``."""
    return stmt.WhichOneof(_NODE_ONEOF)


def render_statement(stmt: pg_query_pb2.Node) -> str:
    """Return the canonical SQL text of a single statement node.

    Raises:
        PgQueryError: If libpg_query cannot deparse the statement.
    """
    result = pg_query_pb2.ParseResult()
    result.stmts.add().stmt.CopyFrom(stmt)
    return deparse(result)


def relation_name(relation: pg_query_pb2.RangeVar) -> str:
    """Return ``"schema.table"`` when schema-qualified, ``"table"`` otherwise."""
    return f"{relation.schemaname}.{relation.relname}" if relation.schemaname else relation.relname


def string_values(nodes: Iterable[pg_query_pb2.Node]) -> list[str]:
    """Return the ``sval`` of every ``String`` in *nodes*, skipping anything else."""
    values: list[str] = []
    for node in nodes:
        inner = unwrap_node(node)
        if isinstance(inner, pg_query_pb2.String):
            values.append(inner.sval)
    return values


def base_type_name(type_name: pg_query_pb2.TypeName) -> str:
    """Return the unqualified, lower-cased name of a type (``pg_catalog.int4`` gives ``"int4"``)."""
    names = string_values(type_name.names)
    return names[-1].lower() if names else ""


def format_type_name(type_name: pg_query_pb2.TypeName) -> str:
    """Render a ``TypeName`` roughly as it would be written in a migration, e.g. ``varchar(255)``."""
    names = [n for n in string_values(type_name.names) if n != "pg_catalog"]
    if not names:
        return "<unknown>"
    names[-1] = _TYPE_DISPLAY_NAMES.get(names[-1], names[-1])
    text = ".".join(names)
    mods: list[str] = []
    for mod in type_name.typmods:
        const = unwrap_node(mod)
        if isinstance(const, pg_query_pb2.A_Const) and const.HasField("ival"):
            mods.append(str(const.ival.ival))
    if mods:
        text += f"({', '.join(mods)})"
    return text + "[]" * len(type_name.array_bounds)


def column_constraints(col_def: pg_query_pb2.ColumnDef) -> Generator[pg_query_pb2.Constraint, None, None]:
    """Yield the inline constraints attached to a column definition."""
    for node in col_def.constraints:
        constraint = unwrap_node(node)
        if isinstance(constraint, pg_query_pb2.Constraint):
            yield constraint


def has_column_constraint(col_def: pg_query_pb2.ColumnDef, contype: int) -> bool:
    return any(c.contype == contype for c in column_constraints(col_def))


def has_default(col_def: pg_query_pb2.ColumnDef) -> bool:
    """Return ``True`` if the column definition carries a ``DEFAULT`` expression."""
    return col_def.HasField("raw_default") or has_column_constraint(col_def, pg_query_pb2.CONSTR_DEFAULT)


def is_primary_key_column(col_def: pg_query_pb2.ColumnDef) -> bool:
    return has_column_constraint(col_def, pg_query_pb2.CONSTR_PRIMARY)


def alter_table_commands(
    stmt: pg_query_pb2.Node,
) -> Generator[tuple[str, pg_query_pb2.AlterTableCmd], None, None]:
    """Yield ``(table_name, command)`` for every sub-command of an ``ALTER TABLE`` statement.

    Yields nothing for any other statement type.
    """
    if statement_kind(stmt) != "alter_table_stmt":
        return
    alter = stmt.alter_table_stmt
    table_name = relation_name(alter.relation)
    for cmd_node in alter.cmds:
        cmd = unwrap_node(cmd_node)
        if isinstance(cmd, pg_query_pb2.AlterTableCmd):
            yield table_name, cmd


def command_definition(cmd: pg_query_pb2.AlterTableCmd) -> Message | None:
    """Return the unwrapped ``def`` payload of an ``ALTER TABLE`` sub-command (a ``ColumnDef`` or ``Constraint``)."""
    # "def" is a Python keyword, so the field has to be read with getattr.
    if not cmd.HasField("def"):
        return None
    return unwrap_node(getattr(cmd, "def"))


def index_column_names(index: pg_query_pb2.IndexStmt) -> list[str]:
    """Return the key columns of an index, with ``"<expression>"`` standing in for expression columns."""
    columns: list[str] = []
    for param in index.index_params:
        elem = unwrap_node(param)
        if isinstance(elem, pg_query_pb2.IndexElem):
            columns.append(elem.name or "<expression>")
    return columns


def source_lines(sql: str) -> list[str]:
    """Split migration text into physical lines.

    Only ``"\\n"`` ends a line (a trailing ``"\\r"`` is dropped), matching how the parser and
    :func:`~migration_guard.errors.location_from_cursorpos` count lines. :meth:`str.splitlines` would also break on
    form feeds, ``U+2028`` and other characters that PostgreSQL treats as part of the line.

    Example:
        >>> source_lines("SELECT 1;\\r\\n-- a\\x0cb\\n")
        ['SELECT 1;', '-- a\\x0cb']
    """
    if not sql:
        return []
    lines = sql.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]
