"""Top-level entry points: check SQL text, files, and migration directories."""

from __future__ import annotations

import logging
import typing
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import postgast

from migration_guard.config import Config
from migration_guard.errors import MigrationGuardError
from migration_guard.parser import parse_with_metadata
from migration_guard.registry import Registry

if typing.TYPE_CHECKING:
    from migration_guard.parser import ParseFn
    from migration_guard.violation import Violation

logger = logging.getLogger(__name__)

UP_FILE = "up.sql"
DOWN_FILE = "down.sql"


class FileResult(typing.NamedTuple):
    """The outcome of checking one file: its violations, or the error that stopped the check."""

    path: str
    violations: list[Violation]
    error: MigrationGuardError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.violations


class SafetyChecker:
    """Checks migrations against every enabled check.

    Args:
        config: Settings for this checker. Defaults to :class:`Config` with everything enabled.
        parse: The SQL parser. Defaults to :func:`postgast.parse`.

    Example:
        >>> checker = SafetyChecker()
        >>> [v.operation for v in checker.check_sql("ALTER TABLE users DROP COLUMN email;")]
        ['DROP COLUMN']
    """

    def __init__(self, config: Config | None = None, *, parse: ParseFn | None = None) -> None:
        self.config = config or Config()
        self.registry = Registry(self.config)
        self._parse = parse or postgast.parse

    def check_sql(self, sql: str) -> list[Violation]:
        """Check migration text and return its violations, each stamped with the line its statement starts on.

        Raises:
            SqlParseError: The text does not parse and no fallback applies.
            DirectiveError: A ``safety-assured`` block is malformed.
        """
        parsed = parse_with_metadata(sql, parse=self._parse)
        return self.registry.check_statements_with_context(
            parsed.statements, parsed.statement_lines, parsed.ignore_ranges
        )

    def check_file(self, path: str | Path) -> list[Violation]:
        """Check one SQL file.

        Raises:
            MigrationGuardError: The file could not be read or checked; ``path`` is set on the error.
        """
        path = Path(path)
        try:
            sql = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MigrationGuardError(f"Failed to read file: {e}", path=str(path)) from e
        try:
            return self.check_sql(sql)
        except MigrationGuardError as e:
            raise e.with_path(str(path)) from None

    def migration_files(self, directory: str | Path) -> list[Path]:
        """List the files to check under a migrations directory, in name order.

        Each immediate subdirectory is one migration: its ``up.sql`` is included (and ``down.sql`` when
        ``check_down`` is set) unless ``start_after`` filters the migration out. Loose ``*.sql`` files directly in
        *directory* are always included. Nothing deeper is searched.
        """
        files: list[Path] = []
        for entry in sorted(Path(directory).iterdir()):
            if entry.is_dir():
                if not self.config.should_check_migration(entry.name):
                    logger.debug("Skipping migration %s (at or before start_after)", entry.name)
                    continue
                names = (UP_FILE, DOWN_FILE) if self.config.check_down else (UP_FILE,)
                files.extend(entry / name for name in names if (entry / name).is_file())
            elif entry.suffix == ".sql":
                files.append(entry)
        logger.debug("Found %d migration file(s) in %s", len(files), directory)
        return files

    def _check_one(self, path: Path) -> FileResult:
        try:
            return FileResult(str(path), self.check_file(path))
        except MigrationGuardError as e:
            return FileResult(str(path), [], e)

    def check_directory(self, directory: str | Path, *, jobs: int = 1) -> list[FileResult]:
        """Check every migration file under *directory*.

        A file that fails to read, parse, or has a malformed directive block is reported through
        :attr:`FileResult.error` and does not stop the others. Only files with violations or an error are returned,
        in :meth:`migration_files` order.

        Args:
            directory: The migrations directory.
            jobs: Number of files to check in parallel.
        """
        files = self.migration_files(directory)
        if jobs > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                results = list(executor.map(self._check_one, files))
        else:
            results = [self._check_one(path) for path in files]
        return [result for result in results if not result.ok]

    def check_path(self, path: str | Path, *, jobs: int = 1) -> list[FileResult]:
        """Check a single file or a migrations directory.

        Raises:
            MigrationGuardError: *path* is a file that could not be checked. Errors for files found in a directory are
                reported in the results instead.
        """
        path = Path(path)
        if path.is_dir():
            return self.check_directory(path, jobs=jobs)
        violations = self.check_file(path)
        return [FileResult(str(path), violations)] if violations else []
