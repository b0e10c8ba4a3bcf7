"""The ``migration-guard`` command line."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from migration_guard.checker import SafetyChecker
from migration_guard.checks import ALL_CHECKS
from migration_guard.config import CONFIG_FILE_NAME, DEFAULT_CONFIG_TEMPLATE, Config
from migration_guard.errors import ConfigError, MigrationGuardError
from migration_guard.output import format_json, format_results_text

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def _load_config(args: argparse.Namespace) -> Config:
    if args.config is not None:
        config = Config.load_from_path(args.config)
    else:
        try:
            config = Config.load()
        except ConfigError as e:
            logger.warning("Failed to load %s: %s. Using defaults.", CONFIG_FILE_NAME, e)
            config = Config()
    if args.disable:
        config = config.with_disabled(args.disable)
    return config


def cmd_check(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        checker = SafetyChecker(config)
        results = checker.check_path(args.path, jobs=args.jobs)
    except MigrationGuardError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.format == "json":
        print(format_json(results))
    else:
        sys.stdout.write(format_results_text(results))

    if any(result.error is not None for result in results):
        return EXIT_ERROR
    if any(result.violations for result in results) and not args.allow_unsafe:
        return EXIT_VIOLATIONS
    return EXIT_OK


def cmd_init(args: argparse.Namespace) -> int:
    path = Path(args.directory) / CONFIG_FILE_NAME
    if path.exists() and not args.force:
        print(f"Error: {path} already exists. Use --force to overwrite it.", file=sys.stderr)
        return EXIT_ERROR
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    print(f"Created {path}")
    print()
    print("Next steps:")
    print(f"  1. Edit {CONFIG_FILE_NAME} to suit your project")
    print("  2. Run: migration-guard check <migrations-dir>")
    return EXIT_OK


def cmd_list_checks(args: argparse.Namespace) -> int:
    width = max(len(check.name) for check in ALL_CHECKS)
    for check in ALL_CHECKS:
        print(f"{check.name:<{width}}  {check.severity.value:<7}  {check.description}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migration-guard",
        description="Catch unsafe PostgreSQL migrations before they take down production",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check", help="Check migrations for unsafe operations")
    p_check.add_argument("path", type=Path, help="Migration file or directory")
    p_check.add_argument("--format", choices=("text", "json"), default="text", help="Output format")
    p_check.add_argument(
        "--allow-unsafe",
        action="store_true",
        help="Exit with 0 even if violations are found",
    )
    p_check.add_argument("--config", type=Path, default=None, help=f"Config file (default: ./{CONFIG_FILE_NAME})")
    p_check.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="CHECK",
        help="Disable a check by name; may be repeated",
    )
    p_check.add_argument("-j", "--jobs", type=int, default=1, help="Number of files to check in parallel")
    p_check.set_defaults(func=cmd_check)

    p_init = sub.add_parser("init", help=f"Create a default {CONFIG_FILE_NAME}")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing config file")
    p_init.add_argument("--directory", default=".", help="Where to write the config file")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list-checks", help="List every available check")
    p_list.set_defaults(func=cmd_list_checks)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)
