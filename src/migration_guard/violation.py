"""Violation records produced by checks."""

from __future__ import annotations

import dataclasses
import enum
from typing import Any


class Severity(enum.Enum):
    error = "error"
    warning = "warning"


@dataclasses.dataclass(frozen=True, slots=True)
class Violation:
    """A single unsafe pattern found in a migration.

    ``operation`` is a stable identifier (e.g. ``"ADD COLUMN with DEFAULT"``) suitable for filtering. ``problem`` and
    ``safe_alternative`` are prose meant for people. ``line_number`` is filled in by the registry once the statement
    has been located in the source.
    """

    operation: str
    problem: str
    safe_alternative: str
    severity: Severity = Severity.error
    line_number: int | None = None

    def __str__(self) -> str:
        return f"{self.operation}: {self.problem}"

    def at_line(self, line_number: int) -> Violation:
        return dataclasses.replace(self, line_number=line_number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "problem": self.problem,
            "safe_alternative": self.safe_alternative,
            "severity": self.severity.value,
            "line_number": self.line_number,
        }
