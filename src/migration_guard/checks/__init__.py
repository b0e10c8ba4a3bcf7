"""The built-in checks, one class per unsafe migration pattern."""

from migration_guard.checks.base import Check
from migration_guard.checks.columns import (
    AddColumnCheck,
    AddJsonColumnCheck,
    AddNotNullCheck,
    AddSerialColumnCheck,
    AlterColumnTypeCheck,
    DropColumnCheck,
    RenameColumnCheck,
)
from migration_guard.checks.constraints import (
    AddPrimaryKeyCheck,
    AddUniqueConstraintCheck,
    DropPrimaryKeyCheck,
    ShortIntegerPrimaryKeyCheck,
    UnnamedConstraintCheck,
)
from migration_guard.checks.indexes import AddIndexCheck, DropIndexCheck, WideIndexCheck
from migration_guard.checks.tables import CreateExtensionCheck, RenameTableCheck, TruncateTableCheck

# Registration order; violations for one statement are reported in this order.
ALL_CHECKS: tuple[type[Check], ...] = (
    AddColumnCheck,
    AddIndexCheck,
    AddJsonColumnCheck,
    AddNotNullCheck,
    AddPrimaryKeyCheck,
    AddSerialColumnCheck,
    AddUniqueConstraintCheck,
    AlterColumnTypeCheck,
    CreateExtensionCheck,
    DropColumnCheck,
    DropIndexCheck,
    DropPrimaryKeyCheck,
    RenameColumnCheck,
    RenameTableCheck,
    ShortIntegerPrimaryKeyCheck,
    TruncateTableCheck,
    UnnamedConstraintCheck,
    WideIndexCheck,
)

ALL_CHECK_NAMES: tuple[str, ...] = tuple(check.name for check in ALL_CHECKS)

__all__ = [
    "ALL_CHECK_NAMES",
    "ALL_CHECKS",
    "AddColumnCheck",
    "AddIndexCheck",
    "AddJsonColumnCheck",
    "AddNotNullCheck",
    "AddPrimaryKeyCheck",
    "AddSerialColumnCheck",
    "AddUniqueConstraintCheck",
    "AlterColumnTypeCheck",
    "Check",
    "CreateExtensionCheck",
    "DropColumnCheck",
    "DropIndexCheck",
    "DropPrimaryKeyCheck",
    "RenameColumnCheck",
    "RenameTableCheck",
    "ShortIntegerPrimaryKeyCheck",
    "TruncateTableCheck",
    "UnnamedConstraintCheck",
    "WideIndexCheck",
]
