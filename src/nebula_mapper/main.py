#!/usr/bin/env python3
"""
nebula-mapper command line entry point.

  nebula-mapper mapping.yaml input.json [--schema-only] [--cleanup]
                [--batch-size N] [--out FILE] [--report FILE]

Validates the mapping, then writes schema statements followed by data
statements, one per line. Exits with status 1 on the first error.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from .core.config import compiler_config
from .core.errors import NebulaMapperError
from .core.logging import setup_logging
from .services.domain.graph import get_graph_schema_manager
from .services.domain.json_to_graph import StatementCompiler
from .services.domain.mapping import MappingError, MappingValidator, load_mapping_file
from .services.domain.transform import default_registry

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="nebula-mapper",
        description="Compile a JSON document into Nebula Graph statements using a YAML mapping"
    )
    ap.add_argument("mapping", help="Mapping YAML file")
    ap.add_argument("input", nargs="?", help="Input JSON document (not needed with --schema-only or --cleanup)")
    ap.add_argument("--schema-only", action="store_true", help="Only emit CREATE TAG/EDGE/INDEX statements")
    ap.add_argument("--cleanup", action="store_true", help="Only emit DROP statements for the mapped schema")
    ap.add_argument("--batch-size", type=int, default=None,
                    help=f"Max tuples per INSERT statement (default {compiler_config.BATCH_SIZE})")
    ap.add_argument("--out", help="Write statements to this path instead of stdout")
    ap.add_argument("--report", help="Write the mapping validation report JSON to this path")
    ap.add_argument("--log-level", default=compiler_config.LOG_LEVEL, help="Log level (default %(default)s)")
    return ap


def load_document(path: str):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise NebulaMapperError(f"Failed to read input file: {e}", path) from e
    except json.JSONDecodeError as e:
        raise NebulaMapperError(f"Failed to parse JSON: {e}", path) from e


def write_report(path: str, result):
    report = {
        "valid": result.valid,
        "errors": [vars(m) for m in result.errors],
        "warnings": [vars(m) for m in result.warnings],
        "summary": vars(result.summary) if result.summary else None,
    }
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(report, indent=2, default=str))


def run(args: argparse.Namespace) -> list[str]:
    """Produce the statements requested by ``args``.

    Raises:
        NebulaMapperError: Mapping, validation, schema or compile failure
    """
    mapping = load_mapping_file(args.mapping)
    schema_manager = get_graph_schema_manager()

    if args.cleanup:
        return schema_manager.generate_cleanup_statements(mapping)

    document = None
    if not args.schema_only:
        if not args.input:
            raise NebulaMapperError("An input JSON document is required unless --schema-only or --cleanup is given")
        document = load_document(args.input)

    registry = default_registry()
    result = MappingValidator().validate(mapping, registry=registry, document=document)
    if args.report:
        write_report(args.report, result)
    for warning in result.warnings:
        logger.warning(f"{warning.element}: {warning.message}")
    if not result.can_proceed:
        first = result.errors[0]
        raise MappingError(
            f"Mapping validation failed with {len(result.errors)} errors; first: {first.message}",
            first.element
        )

    statements = schema_manager.generate_schema_statements(mapping)
    if not args.schema_only:
        statements.extend(StatementCompiler(registry=registry).compile(mapping, document, args.batch_size))
    return statements


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())

    try:
        statements = run(args)
    except NebulaMapperError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    output = "\n".join(statements)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        logger.info(f"Wrote {len(statements)} statements to {args.out}")
    elif statements:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
