"""The protocol every check implements."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from postgast import pg_query_pb2

    from migration_guard.violation import Severity, Violation


@runtime_checkable
class Check(Protocol):
    """A stateless detector for one unsafe migration pattern.

    ``check`` inspects a single parsed statement and returns the violations it finds, or an empty list. It must not
    raise and must not keep state between calls: the registry shares one instance across every statement and file.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    severity: ClassVar[Severity]

    def check(self, stmt: pg_query_pb2.Node) -> list[Violation]: ...
