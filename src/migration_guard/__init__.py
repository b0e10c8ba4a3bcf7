"""Static safety checks for PostgreSQL migrations."""

from migration_guard.checker import FileResult, SafetyChecker
from migration_guard.checks import ALL_CHECK_NAMES, ALL_CHECKS, Check
from migration_guard.config import Config
from migration_guard.correlate import correlate_statements
from migration_guard.directives import IgnoreRange, parse_ignore_ranges
from migration_guard.errors import (
    ConfigError,
    DirectiveError,
    InvalidCheckNameError,
    InvalidTimestampError,
    MigrationGuardError,
    NestedDirectiveError,
    SqlParseError,
    UnclosedBlockError,
    UnmatchedEndError,
)
from migration_guard.fallback import detect_unsupported_syntax
from migration_guard.parser import ParsedSql, parse_statements, parse_with_metadata
from migration_guard.registry import Registry, all_check_names
from migration_guard.violation import Severity, Violation

__all__ = [
    "ALL_CHECK_NAMES",
    "ALL_CHECKS",
    "all_check_names",
    "Check",
    "Config",
    "ConfigError",
    "correlate_statements",
    "detect_unsupported_syntax",
    "DirectiveError",
    "FileResult",
    "IgnoreRange",
    "InvalidCheckNameError",
    "InvalidTimestampError",
    "MigrationGuardError",
    "NestedDirectiveError",
    "parse_ignore_ranges",
    "parse_statements",
    "parse_with_metadata",
    "ParsedSql",
    "Registry",
    "SafetyChecker",
    "Severity",
    "SqlParseError",
    "UnclosedBlockError",
    "UnmatchedEndError",
    "Violation",
]
