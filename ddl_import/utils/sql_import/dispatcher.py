# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Dialect statement dispatcher.

Each dialect first tries to parse the whole document with sqlglot. If that
fails, the document is segmented into statements and every statement is
parsed on its own, so one malformed statement costs only itself. Structural
statements that still fail produce exactly one warning and go through the
regex fallback, which recovers table and view names, table columns and
foreign keys.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Dict, List, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from ddl_import.configuration import ImportConfig
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.exceptions import DDLImportException, ErrorCode
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.ast_adapter import (
    ParseState,
    apply_alter_table,
    apply_comment_statement,
    apply_create_index,
    apply_create_table,
    apply_create_view,
    apply_enum_statement,
    apply_table_fallback,
    apply_view_fallback,
)
from ddl_import.utils.sql_import.regex_fallback import extract_foreign_keys_fallback
from ddl_import.utils.sql_import.registry import TableRegistry
from ddl_import.utils.sql_import.sql_scanner import (
    StatementCategory,
    classify_statement,
    prepare_document,
    split_statements,
    statement_excerpt,
)

logger = get_logger(__name__)

_SKIPPED_CATEGORY_WARNINGS: Dict[StatementCategory, str] = {
    StatementCategory.FUNCTION: "Function definitions are not supported and will be skipped",
    StatementCategory.PROCEDURE: "Stored procedure definitions are not supported and will be skipped",
    StatementCategory.TRIGGER: "Trigger definitions are not supported and will be skipped",
    StatementCategory.POLICY: "Policy definitions are not supported and will be skipped",
    StatementCategory.RLS: "Row level security statements are not supported and will be skipped",
    StatementCategory.EXTENSION: "Extension statements are not supported and will be skipped",
    StatementCategory.TYPE: "Non-enum type definitions are not supported and will be skipped",
}

_STRUCTURAL_CATEGORIES = (
    StatementCategory.TABLE, StatementCategory.ALTER, StatementCategory.INDEX, StatementCategory.VIEW,
)
_FALLBACK_CATEGORIES = (StatementCategory.TABLE, StatementCategory.ALTER, StatementCategory.VIEW)


@dataclass
class _Statement:
    """A statement awaiting dispatch: raw text, a parsed expression, or both."""

    raw: Optional[str] = None
    expression: Optional[exp.Expression] = None
    read_dialect: Optional[str] = None

    @cached_property
    def text(self) -> str:
        if self.raw is not None:
            return self.raw
        if isinstance(self.expression, exp.Command):
            return f"{self.expression.name} {_literal(self.expression.expression)}".strip()
        try:
            return self.expression.sql(dialect=self.read_dialect)
        except Exception:
            return self.expression.sql()

    @property
    def category(self) -> StatementCategory:
        category = classify_statement(self.text)
        if category != StatementCategory.OTHER:
            return category
        expression = self.expression
        if isinstance(expression, exp.Create):
            kind = (expression.args.get("kind") or "").upper()
            if kind == "TABLE":
                return StatementCategory.TABLE
            if kind == "INDEX":
                return StatementCategory.INDEX
            if kind == "VIEW":
                return StatementCategory.VIEW
        elif isinstance(expression, exp.Alter) and (expression.args.get("kind") or "TABLE").upper() == "TABLE":
            return StatementCategory.ALTER
        return category


def _literal(node) -> str:
    if node is None:
        return ""
    if isinstance(node, exp.Literal):
        return node.name
    return node if isinstance(node, str) else node.sql()


# =============================================================================
# PARSING
# =============================================================================

def _parse_whole_document(document: str, state: ParseState) -> Optional[List[_Statement]]:
    """Parse the full document in one pass; None means segmentation is needed."""
    try:
        expressions = sqlglot.parse(document, read=state.read_dialect)
    except (ParseError, TokenError) as e:
        logger.debug(f"Whole-document parse failed for {state.dialect.value}, segmenting: {e}")
        return None
    except Exception as e:
        logger.debug(f"Unexpected sqlglot failure for {state.dialect.value}, segmenting: {e}")
        return None

    if not isinstance(expressions, list):
        raise DDLImportException(
            ErrorCode.PARSER_INVALID_RESULT,
            message_args={"error_message": f"expected a statement list, got {type(expressions).__name__}"},
        )
    return [
        _Statement(expression=expression, read_dialect=state.read_dialect)
        for expression in expressions
        if expression is not None
    ]


def _parse_statement(sql: str, state: ParseState) -> Optional[exp.Expression]:
    try:
        expressions = sqlglot.parse(sql, read=state.read_dialect)
    except (ParseError, TokenError) as e:
        logger.debug(f"Statement parse failed: {statement_excerpt(sql)} ({e})")
        return None
    except Exception as e:
        logger.debug(f"Unexpected sqlglot failure on statement: {statement_excerpt(sql)} ({e})")
        return None
    parsed = [expression for expression in expressions or [] if expression is not None]
    return parsed[0] if parsed else None


def _apply_structural(category: StatementCategory, expression: exp.Expression, state: ParseState) -> bool:
    """Hand a parsed structural statement to its adapter; False when the shape does not match."""
    try:
        if category == StatementCategory.TABLE and isinstance(expression, exp.Create):
            return apply_create_table(expression, state) is not None
        if category == StatementCategory.INDEX and isinstance(expression, exp.Create):
            apply_create_index(expression, state)
            return True
        if category == StatementCategory.VIEW and isinstance(expression, exp.Create):
            apply_create_view(expression, state)
            return True
        if category == StatementCategory.ALTER and isinstance(expression, exp.Alter):
            apply_alter_table(expression, state)
            return True
    except Exception as e:
        logger.debug(f"Could not convert {category.value} statement: {e}")
    return False


def _handle_failure(sql: str, category: StatementCategory, state: ParseState) -> None:
    """Warn once for a failed statement and recover what the regex fallback can read."""
    state.warn(f"Failed to parse {category.value} statement: {statement_excerpt(sql, state.config.excerpt_length)}")
    if category not in _FALLBACK_CATEGORIES or not state.config.enable_fallback_extraction:
        return
    if category == StatementCategory.VIEW:
        apply_view_fallback(sql, state)
        return
    # A table that cannot be registered keeps none of its foreign keys
    if category == StatementCategory.TABLE and apply_table_fallback(sql, state) is None:
        return
    state.pending.extend(extract_foreign_keys_fallback(sql, category))


def _dispatch(statement: _Statement, state: ParseState) -> None:
    category = statement.category

    if category in _SKIPPED_CATEGORY_WARNINGS:
        state.warn_once(category.value, _SKIPPED_CATEGORY_WARNINGS[category])
        return
    if category == StatementCategory.ENUM_TYPE:
        if apply_enum_statement(statement.text, state) is None:
            _handle_failure(statement.text, category, state)
        return
    if category == StatementCategory.COMMENT:
        apply_comment_statement(statement.text, state)
        return
    if category not in _STRUCTURAL_CATEGORIES:
        logger.debug(f"Ignoring {category.value} statement: {statement_excerpt(statement.text)}")
        return

    expression = statement.expression
    if expression is None:
        expression = _parse_statement(statement.text, state)
    if expression is None or isinstance(expression, exp.Command) or not _apply_structural(category, expression, state):
        _handle_failure(statement.text, category, state)


def _parse_document(
    sql: str, dialect: DatabaseType, config: ImportConfig, whole_document: bool = True
) -> ParseState:
    """
    Parse a document into a fresh ParseState.

    Args:
        sql: Raw SQL document
        dialect: Resolved dialect
        config: Import configuration
        whole_document: Try a single sqlglot pass before segmenting

    Returns:
        ParseState with registered tables, pending foreign keys, enums and warnings
    """
    state = ParseState(
        dialect=dialect,
        registry=TableRegistry(default_schema=config.default_schema(dialect)),
        config=config,
    )
    document = prepare_document(sql, dialect)
    if not document.strip():
        return state

    sources = split_statements(sql, dialect)
    statements = _parse_whole_document(document, state) if whole_document else None
    if statements is None:
        statements = [_Statement(raw=text) for text in sources]
    elif len(statements) == len(sources):
        # Warnings and fallback input quote the statement as written
        statements = [
            _Statement(raw=source, expression=statement.expression, read_dialect=statement.read_dialect)
            for statement, source in zip(statements, sources)
        ]
    else:
        logger.debug(
            f"sqlglot returned {len(statements)} statements for {len(sources)} source segments; "
            f"quoting regenerated SQL"
        )

    for statement in statements:
        _dispatch(statement, state)

    logger.debug(
        f"Parsed {dialect.value} document: {len(state.registry)} tables, "
        f"{len(state.pending)} pending foreign keys, {len(state.warnings)} warnings"
    )
    return state


# =============================================================================
# DIALECT ENTRY POINTS
# =============================================================================

def parse_postgresql(sql: str, config: ImportConfig) -> ParseState:
    return _parse_document(sql, DatabaseType.POSTGRESQL, config)


def parse_mysql(sql: str, config: ImportConfig) -> ParseState:
    # Routine bodies under a custom DELIMITER cannot be parsed as one document
    whole_document = "DELIMITER" not in sql.upper()
    return _parse_document(sql, DatabaseType.MYSQL, config, whole_document=whole_document)


def parse_mariadb(sql: str, config: ImportConfig) -> ParseState:
    whole_document = "DELIMITER" not in sql.upper()
    return _parse_document(sql, DatabaseType.MARIADB, config, whole_document=whole_document)


def parse_sqlserver(sql: str, config: ImportConfig) -> ParseState:
    return _parse_document(sql, DatabaseType.SQL_SERVER, config)


def parse_sqlite(sql: str, config: ImportConfig) -> ParseState:
    return _parse_document(sql, DatabaseType.SQLITE, config)


def parse_oracle(sql: str, config: ImportConfig) -> ParseState:
    return _parse_document(sql, DatabaseType.ORACLE, config)


def parse_generic(sql: str, config: ImportConfig) -> ParseState:
    return _parse_document(sql, DatabaseType.GENERIC, config)


DIALECT_PARSERS: Dict[DatabaseType, Callable[[str, ImportConfig], ParseState]] = {
    DatabaseType.POSTGRESQL: parse_postgresql,
    DatabaseType.MYSQL: parse_mysql,
    DatabaseType.MARIADB: parse_mariadb,
    DatabaseType.SQL_SERVER: parse_sqlserver,
    DatabaseType.SQLITE: parse_sqlite,
    DatabaseType.ORACLE: parse_oracle,
    DatabaseType.GENERIC: parse_generic,
}


def parse_dialect_sql(
    sql: str, dialect: Union[str, DatabaseType], config: Optional[ImportConfig] = None
) -> ParseState:
    """Run the dialect parser for ``dialect`` over ``sql``."""
    db = DatabaseType.from_value(dialect)
    return DIALECT_PARSERS[db](sql, config or ImportConfig())
