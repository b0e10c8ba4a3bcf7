"""Rendering check results for people (text) and tools (JSON)."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from migration_guard.checker import FileResult
    from migration_guard.violation import Violation

_INDENT = "  "


def format_violation(violation: Violation) -> str:
    """Render one violation as a block of text ending in a blank line."""
    heading = violation.operation
    if violation.line_number is not None:
        heading += f" (line {violation.line_number})"
    lines = [
        f"[{violation.severity.value}] {heading}",
        "",
        "Problem:",
        f"{_INDENT}{violation.problem}",
        "",
        "Safe alternative:",
    ]
    lines.extend(f"{_INDENT}{line}".rstrip() for line in violation.safe_alternative.splitlines())
    lines.append("")
    return "\n".join(lines) + "\n"


def format_text(path: str, violations: Sequence[Violation]) -> str:
    """Render every violation found in one file under a header naming it."""
    parts = [f"Unsafe migration detected in {path}\n\n"]
    parts.extend(format_violation(v) for v in violations)
    return "".join(parts)


def format_error(result: FileResult) -> str:
    return f"Error checking {result.path}:\n{_INDENT}{result.error}\n\n"


def format_summary(total_violations: int, total_errors: int = 0) -> str:
    """Return the one-line summary printed after text output."""
    if total_violations == 0 and total_errors == 0:
        return "No unsafe migrations detected!"
    parts = []
    if total_violations:
        parts.append(f"{total_violations} unsafe migration(s) detected")
    if total_errors:
        parts.append(f"{total_errors} file(s) could not be checked")
    return ", ".join(parts)


def format_results_text(results: Sequence[FileResult]) -> str:
    """Render a whole run as text, summary included."""
    chunks: list[str] = []
    for result in results:
        if result.error is not None:
            chunks.append(format_error(result))
        elif result.violations:
            chunks.append(format_text(result.path, result.violations))
    total_violations = sum(len(r.violations) for r in results)
    total_errors = sum(1 for r in results if r.error is not None)
    chunks.append(format_summary(total_violations, total_errors) + "\n")
    return "".join(chunks)


def format_json(results: Sequence[FileResult]) -> str:
    """Render a whole run as a JSON array with one object per file.

    Each object has ``file`` and ``violations``; files that failed to check also carry ``error``.
    """
    payload = []
    for result in results:
        entry: dict[str, object] = {
            "file": result.path,
            "violations": [v.to_dict() for v in result.violations],
        }
        if result.error is not None:
            entry["error"] = str(result.error)
        payload.append(entry)
    return json.dumps(payload, indent=2)
