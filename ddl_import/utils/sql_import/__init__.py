# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
SQL DDL import pipeline.

The statement dispatcher and the sqlglot adapter are not imported here; they
are loaded on first import through ``load_sql_parser``.
"""

from ddl_import.utils.sql_import.dialect_support import detect_database_type, parse_read_dialect
from ddl_import.utils.sql_import.enum_utils import extract_enum_from_sql, parse_enum_values
from ddl_import.utils.sql_import.importer import import_sql, import_sql_sync, load_sql_parser, resolve_dialect
from ddl_import.utils.sql_import.linker import determine_cardinality, link_relationships
from ddl_import.utils.sql_import.regex_fallback import extract_columns_fallback, extract_foreign_keys_fallback
from ddl_import.utils.sql_import.registry import TableRegistry
from ddl_import.utils.sql_import.sql_scanner import (
    StatementCategory,
    classify_statement,
    split_statements,
    strip_sql_comments,
)
from ddl_import.utils.sql_import.type_resolver import normalize_column_type, parse_type_args, resolve_type
from ddl_import.utils.sql_import.validator import apply_auto_fixes, validate_sql

__all__ = [
    # Entry points
    "import_sql",
    "import_sql_sync",
    "validate_sql",
    "apply_auto_fixes",
    "load_sql_parser",
    "resolve_dialect",
    # Dialects
    "detect_database_type",
    "parse_read_dialect",
    # Statements
    "StatementCategory",
    "classify_statement",
    "split_statements",
    "strip_sql_comments",
    # Types and enums
    "normalize_column_type",
    "parse_type_args",
    "resolve_type",
    "extract_enum_from_sql",
    "parse_enum_values",
    # Relationships
    "TableRegistry",
    "determine_cardinality",
    "link_relationships",
    "extract_foreign_keys_fallback",
    "extract_columns_fallback",
]
