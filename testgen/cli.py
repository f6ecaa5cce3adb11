# File: testgen/cli.py
"""
testgen - Command-Line Interface
=================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Basic generation
    python -m testgen --routes routes.yaml --output ./tests/Feature

    # Verbose output, replacing previously generated tests
    python -m testgen -s routes.json -o ./tests/Feature -v --clean

    # Treat extra guards as authentication and grant a super admin role
    python -m testgen -s routes.yaml -o ./out \\
        --auth-middleware auth auth:sanctum auth:admin --super-admin

    # Validate only (no file output)
    python -m testgen -s routes.yaml --validate-only

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — export error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``testgen`` logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("testgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from testgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="testgen",
        description=(
            "testgen — Laravel feature-test generator.\n\n"
            "Turns route and controller descriptions (JSON/YAML) into PHPUnit "
            "feature tests that authenticate the way each route expects."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s routes.yaml -o ./tests/Feature\n"
            "  %(prog)s -s routes.json -o ./out -v --clean\n"
            "  %(prog)s -s routes.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"testgen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-s", "--routes",
        dest="routes",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the route definition file (JSON or YAML).",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Output directory for generated tests. "
            "Defaults to the file's output_dir setting."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the definition without generating tests.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--auth-middleware",
        nargs="+",
        default=None,
        metavar="NAME",
        help="Middleware names treated as authentication (replaces the list).",
    )
    config_group.add_argument(
        "--super-admin",
        action="store_true",
        default=False,
        help="Assign the super admin role to the acting user.",
    )
    config_group.add_argument(
        "--super-admin-role",
        type=str,
        default=None,
        metavar="ROLE",
        help="Role name assigned with --super-admin.",
    )
    config_group.add_argument(
        "--resolve-parent-params",
        action="store_true",
        default=False,
        help="Bind route parameters naming the parent model to the parent.",
    )
    config_group.add_argument(
        "--no-guest-tests",
        action="store_true",
        default=False,
        help="Skip guest tests for protected routes.",
    )
    config_group.add_argument(
        "--namespace",
        type=str,
        default=None,
        metavar="NS",
        help="Override the test namespace (e.g. 'Tests\\Feature\\Api').",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Clean output directory before generation.",
    )
    behaviour_group.add_argument(
        "--overwrite",
        action="store_true",
        default=False,
        help="Overwrite test files that already exist.",
    )
    behaviour_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Continue even if validation has errors.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}

    if args.auth_middleware is not None:
        overrides["auth_middleware"] = list(args.auth_middleware)

    if args.super_admin:
        overrides["has_super_admin_role"] = True

    if args.super_admin_role is not None:
        overrides["super_admin_role"] = args.super_admin_role

    if args.resolve_parent_params:
        overrides["resolve_parent_parameters"] = True

    if args.no_guest_tests:
        overrides["generate_guest_tests"] = False

    if args.namespace is not None:
        overrides["test_namespace"] = args.namespace

    if args.overwrite:
        overrides["overwrite_existing"] = True

    return overrides


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(
    routes_path: Path,
    overrides: Dict[str, object],
    *,
    quiet: bool = False,
) -> int:
    """
    Run validation only (no test generation).

    Returns the appropriate exit code.
    """
    from testgen.generator import (
        apply_config_overrides,
        load_definition_file,
        parse_raw_definition,
    )
    from testgen.utils import Timer
    from testgen.validators import validate_full

    logger.info("Running validation-only mode for: %s", routes_path)

    try:
        raw_data = load_definition_file(routes_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load definition: %s", exc)
        return EXIT_INPUT_ERROR

    try:
        suite, config = parse_raw_definition(
            apply_config_overrides(raw_data, overrides)
        )
    except ValueError as exc:
        logger.error("Failed to parse definition: %s", exc)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = validate_full(suite, config)

    if not quiet:
        print(f"\n{'='*50}")
        print("  Route Definition Validation Report")
        print(f"{'='*50}")
        print(f"  File:         {routes_path.name}")
        print(f"  Controllers:  {len(suite.controllers)}")
        print(f"  Routes:       {suite.route_count}")
        print(f"  Time:         {t.elapsed:.3f}s")
        print(f"  Valid:        {'Yes' if result.is_valid else 'No'}")

        if result.errors:
            print(f"\n  Errors ({len(result.errors)}):")
            for err in result.errors:
                print(f"    ✗ {err}")

        if result.warnings:
            print(f"\n  Warnings ({len(result.warnings)}):")
            for warn in result.warnings:
                print(f"    ⚠ {warn}")

        if result.is_valid and not result.warnings:
            print("\n  ✅ All validations passed!")

        print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(
    routes_path: Path,
    output_dir: Optional[Path],
    args: argparse.Namespace,
) -> int:
    """
    Run the full generation pipeline.

    Returns the appropriate exit code.
    """
    from testgen.generator import GenerationReport, TestSuiteGenerator

    config_overrides = _build_config_overrides(args)

    generator: TestSuiteGenerator = TestSuiteGenerator(
        strict_validation=not args.no_strict,
        fail_on_warnings=args.fail_on_warnings,
        clean_output=args.clean,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate_from_file(
        definition_path=routes_path,
        output_dir=output_dir,
        config_overrides=config_overrides if config_overrides else None,
    )

    if not args.quiet:
        print(report.summary())

    if not report.success:
        if report.input_errors:
            return EXIT_INPUT_ERROR
        elif report.validation_errors:
            return EXIT_VALIDATION_ERROR
        elif report.generation_errors:
            return EXIT_GENERATION_ERROR
        elif report.export_errors:
            return EXIT_EXPORT_ERROR
        return EXIT_GENERATION_ERROR

    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    routes_path: Path = Path(args.routes).resolve()

    if not routes_path.exists():
        logger.error("Definition file not found: %s", routes_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not routes_path.is_file():
        logger.error("Definition path is not a file: %s", routes_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        exit_code: int = _run_validate_only(
            routes_path, _build_config_overrides(args), quiet=args.quiet
        )
        sys.exit(exit_code)

    output_dir: Optional[Path] = Path(args.output).resolve() if args.output else None

    logger.info("Routes:  %s", routes_path)
    logger.info("Output:  %s", output_dir or "(from definition)")
    logger.info("Clean:   %s", args.clean)
    logger.info("Strict:  %s", not args.no_strict)

    exit_code = _run_generation(routes_path, output_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)
