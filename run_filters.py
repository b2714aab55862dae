#!/usr/bin/env python3
"""
CLI entry point for compiling dashboard filters and checking flow exports.

Compiles a JSON filter state into a SQL WHERE clause, or resolves the
header row of a CSV export against the canonical flow schema.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

from flow_query import FilterState, compile_where_clause, validate_custom_filter
from flow_query.config import configure_logging, load_settings
from flow_query.errors import ConfigError, UnsafeFilterError
from flow_query.ingest import resolve_file


def load_filters(input_file: str) -> FilterState:
    """Load a filter state from a JSON file.

    Args:
        input_file: Path to a JSON object in camelCase or snake_case

    Returns:
        The parsed FilterState

    Raises:
        ValueError: If the file is missing or not a JSON object
    """
    path = Path(input_file)
    if not path.exists():
        raise ValueError(f"Filter file not found: {input_file}")

    with open(path, 'r') as f:
        try:
            content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in filter file: {e}")

    if not isinstance(content, dict):
        raise ValueError("Filter file must contain a JSON object")

    try:
        return FilterState.from_dict(content)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Invalid filter state: {e}")


def compile_command(args: argparse.Namespace, validate_custom: bool) -> int:
    """Print the WHERE clause for a filter file."""
    try:
        filters = load_filters(args.filters)
        if validate_custom and filters.custom_filter:
            validate_custom_filter(filters.custom_filter)
    except (ValueError, UnsafeFilterError) as e:
        print(json.dumps({"error": str(e)}, indent=2), file=sys.stderr)
        return 1

    print(compile_where_clause(filters))
    return 0


def resolve_command(args: argparse.Namespace) -> int:
    """Print the column mapping for a CSV export."""
    mapping = None
    try:
        if args.mapping:
            mapping = json.loads(Path(args.mapping).read_text())
            if not isinstance(mapping, dict):
                raise ValueError("Mapping file must contain a JSON object")
        resolution = resolve_file(args.csv, mapping)
    except (OSError, ValueError) as e:
        print(json.dumps({"error": str(e)}, indent=2), file=sys.stderr)
        return 1

    output: Dict[str, Any] = resolution.to_dict()
    if not resolution.success:
        print(json.dumps(output, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Flow Query - compile dashboard filters and map flow exports"
    )

    parser.add_argument(
        "-c", "--config",
        help="Path to YAML configuration file",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command")

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a JSON filter state into a WHERE clause",
    )
    compile_parser.add_argument("filters", help="Path to filter state JSON file")

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve a CSV header row to canonical columns",
    )
    resolve_parser.add_argument("csv", help="Path to CSV export")
    resolve_parser.add_argument(
        "-m", "--mapping",
        help="Path to a manual canonical -> header mapping (JSON)",
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    configure_logging('DEBUG' if args.verbose else settings.log_level, sys.stderr)

    if args.command == "compile":
        return compile_command(args, settings.validate_custom)
    if args.command == "resolve":
        return resolve_command(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
