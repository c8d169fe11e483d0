# File: modelschema/cli.py
"""
ModelSchema - Command-Line Interface
======================================

Compiles a schema definition file with the standard-library ``argparse``
front end.

Usage examples::

    # Compile and print the artifacts as JSON
    python -m modelschema --schema schema.yaml

    # Write the artifacts to a file, PostgreSQL JSON storage
    modelschema -s schema.yaml -o artifacts.json --dialect postgresql

    # Only run the document self-consistency checks
    modelschema -s schema.yaml --validate-only -v

Exit codes:
    0 - success
    1 - validation error
    2 - compile error
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from modelschema.compiler import CompileReport, SchemaCompiler
from modelschema.errors import CompileError
from modelschema.loader import load_schema_file, parse_schema_nodes
from modelschema.models import CompilerConfig, DatabaseDialect
from modelschema.utils import Timer
from modelschema.validators import ValidationResult, validate_artifact

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_COMPILE_ERROR: int = 2
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root modelschema logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%H:%M:%S")
    )

    root_logger: logging.Logger = logging.getLogger("modelschema")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from modelschema import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="modelschema",
        description=(
            "ModelSchema - compile entity schemas into a JSON-Schema "
            "validation document and SQLAlchemy column specs."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml\n"
            "  %(prog)s -s schema.json -o artifacts.json --dialect postgresql\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"ModelSchema v{__version__}")
    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema definition file (JSON or YAML).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="FILE",
        help="Write the compiled artifacts as JSON to FILE (default: stdout).",
    )

    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only run the document self-consistency checks.",
    )

    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--dialect",
        type=str,
        default=None,
        choices=[d.value for d in DatabaseDialect],
        help="Target dialect; selects the default JSON storage type.",
    )

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


def _build_config(args: argparse.Namespace) -> CompilerConfig:
    overrides: Dict[str, Any] = {}
    if args.dialect is not None:
        overrides["dialect"] = DatabaseDialect(args.dialect)
    if args.validate_only:
        # Findings are collected and reported instead of raised.
        overrides["check_document"] = False
    return CompilerConfig(**overrides)


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema_path: Path, config: CompilerConfig) -> int:
    """Compile every entity and report the self-consistency findings."""
    logger.info("Running validation-only mode for: %s", schema_path)
    try:
        raw: Dict[str, Any] = load_schema_file(schema_path)
        nodes = parse_schema_nodes(raw, config.extra_schemas)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR
    except CompileError as exc:
        logger.error("Failed to parse schema: %s", exc)
        return EXIT_COMPILE_ERROR

    compiler: SchemaCompiler = SchemaCompiler(config)
    result: ValidationResult = ValidationResult()
    failed: bool = False
    with Timer("validation") as t:
        for node in nodes:
            try:
                artifact = compiler.compile(node)
            except CompileError as exc:
                logger.error("Entity '%s' failed to compile: %s", node.title, exc)
                result.add_error("COMPILE_ERROR", f"{node.title}: {exc}")
                failed = True
                continue
            result.merge(validate_artifact(artifact.columns, artifact.schema))

    print(f"\n{'=' * 50}")
    print("  Schema Validation Report")
    print(f"{'=' * 50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Entities: {len(nodes)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")
    if len(result):
        print(result.format_report())
    print(f"{'=' * 50}\n")

    if result.is_valid:
        return EXIT_SUCCESS
    return EXIT_COMPILE_ERROR if failed else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Compile mode
# ---------------------------------------------------------------------------


def _run_compile(schema_path: Path, output: Optional[Path], config: CompilerConfig) -> int:
    compiler: SchemaCompiler = SchemaCompiler(config)
    try:
        report: CompileReport = compiler.compile_file(schema_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR
    except CompileError as exc:
        logger.error("Failed to parse schema: %s", exc)
        return EXIT_COMPILE_ERROR

    payload: str = json.dumps([a.to_dict() for a in report.artifacts], indent=2, sort_keys=True)
    if output is None:
        print(payload)
    else:
        output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %d artifact(s) to %s", len(report.artifacts), output)
    print(report.summary(), file=sys.stderr)

    if report.success:
        return EXIT_SUCCESS
    if len(report.invalid_documents) == len(report.failures):
        return EXIT_VALIDATION_ERROR
    return EXIT_COMPILE_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()
    if not schema_path.is_file():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    config: CompilerConfig = _build_config(args)
    if args.validate_only:
        sys.exit(_run_validate_only(schema_path, config))

    output: Optional[Path] = Path(args.output).resolve() if args.output else None
    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output or "<stdout>")

    exit_code: int = _run_compile(schema_path, output, config)
    if exit_code == EXIT_SUCCESS:
        logger.info("Compilation completed successfully.")
    else:
        logger.error("Compilation failed with exit code %d.", exit_code)
    sys.exit(exit_code)


def main() -> None:
    cli_main()


__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_COMPILE_ERROR",
    "EXIT_INPUT_ERROR",
]
