# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Command line entry point.

Usage:
    ddl-import validate schema.sql --dialect postgresql [--json] [--apply-fix] [--output fixed.sql]
    ddl-import import schema.sql --dialect mysql [--json] [--config import.yml] [--debug]

Exit codes: 0 on success, 1 when validation reports errors, 2 on usage or
infrastructure errors.
"""

import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ddl_import.configuration import ImportConfig, load_import_config
from ddl_import.models import ImportResult, ValidationResult
from ddl_import.utils.exceptions import DDLImportException
from ddl_import.utils.loggings import configure_logging, get_logger
from ddl_import.utils.sql_import import import_sql_sync, validate_sql

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_VALIDATION_FAILED = 1
EXIT_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ddl-import", description="Validate and import SQL DDL schemas.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="Path to the SQL file, or '-' for stdin")
    common.add_argument("--dialect", default="postgresql", help="Source dialect (default: postgresql)")
    common.add_argument("--json", action="store_true", help="Print the result as JSON")
    common.add_argument("--config", default=None, help="Path to an import configuration YAML file")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")
    common.add_argument("--log-dir", default=None, help="Also write logs to this directory")

    validate_parser = subparsers.add_parser("validate", parents=[common], help="Validate SQL before import")
    validate_parser.add_argument("--apply-fix", action="store_true", help="Emit the auto-fixed SQL when available")
    validate_parser.add_argument("--output", default=None, help="Write the fixed SQL to this file instead of stdout")

    subparsers.add_parser("import", parents=[common], help="Import SQL into the schema model")
    return parser


def _read_sql(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _print_validation(result: ValidationResult, console: Console) -> None:
    status = "[green]✓ Valid[/]" if result.is_valid else "[red]✗ Invalid[/]"
    console.print(f"{status}  tables: {result.table_count}")

    if result.errors:
        table = Table(show_header=True, header_style="bold red", title="Errors")
        table.add_column("Line", style="dim", width=6)
        table.add_column("Kind", style="magenta")
        table.add_column("Message")
        table.add_column("Suggestion", style="yellow")
        table.add_column("Fixable", style="green")
        for error in result.errors:
            table.add_row(
                str(error.line), error.kind.value, error.message, error.suggestion or "", "yes" if error.auto_fixable else ""
            )
        console.print(table)

    if result.warnings:
        table = Table(show_header=True, header_style="bold yellow", title="Warnings")
        table.add_column("Line", style="dim", width=6)
        table.add_column("Kind", style="magenta")
        table.add_column("Message")
        for warning in result.warnings:
            table.add_row(str(warning.line or ""), warning.kind.value, warning.message)
        console.print(table)


def _print_import(result: ImportResult, console: Console) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="Tables")
    table.add_column("Schema", style="blue")
    table.add_column("Table", style="green")
    table.add_column("Columns", justify="right")
    table.add_column("Indexes", justify="right")
    for item in result.tables:
        name = f"{item.name} (view)" if item.is_view else item.name
        table.add_row(item.schema_name, name, str(len(item.columns)), str(len(item.indexes)))
    console.print(table)

    if result.relationships:
        relations = Table(show_header=True, header_style="bold cyan", title="Relationships")
        relations.add_column("Name", style="dim")
        relations.add_column("From")
        relations.add_column("To")
        relations.add_column("Cardinality", style="magenta")
        for fk in result.relationships:
            relations.add_row(
                fk.name,
                f"{fk.source_table}.{fk.source_column}",
                f"{fk.target_table}.{fk.target_column}",
                f"{fk.source_cardinality.value}:{fk.target_cardinality.value}",
            )
        console.print(relations)

    for enum in result.enums:
        console.print(f"[bold]enum[/] {enum.name}: {', '.join(enum.values)}")
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/]")


def _run_validate(args: argparse.Namespace, sql: str, config: ImportConfig, console: Console) -> int:
    result = validate_sql(sql, args.dialect, config)

    if args.apply_fix and result.fixed_sql is not None:
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(result.fixed_sql)
            console.print(f"[green]✓ Fixed SQL written to {args.output}[/]")
        else:
            sys.stdout.write(result.fixed_sql)
            return EXIT_OK
    elif args.apply_fix:
        console.print("[yellow]No auto-fix available[/]")

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_validation(result, console)
    return EXIT_OK if result.is_valid else EXIT_VALIDATION_FAILED


def _run_import(args: argparse.Namespace, sql: str, config: ImportConfig, console: Console) -> int:
    result = import_sql_sync(sql, args.dialect, config)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_import(result, console)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(debug=args.debug, log_dir=args.log_dir)
    console = Console(stderr=args.json)

    try:
        config = load_import_config(args.config)
        sql = _read_sql(args.file)
        if args.command == "validate":
            return _run_validate(args, sql, config, console)
        return _run_import(args, sql, config, console)
    except DDLImportException as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[red]✗ {e.message}[/]")
        return EXIT_ERROR
    except OSError as e:
        logger.error(f"Could not read {args.file}: {e}")
        console.print(f"[red]✗ {e}[/]")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
