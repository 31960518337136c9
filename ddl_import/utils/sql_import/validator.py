# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Pre-parse SQL validation and auto-fix.

``validate_sql`` is a pure function: it never raises and never touches the
caller's text. When every error it finds has a deterministic rewrite, the
corrected document is returned as ``fixed_sql`` for the caller to accept or
reject.
"""

import re
from typing import Any, List, Optional, Tuple, Union

from ddl_import.configuration import ImportConfig
from ddl_import.models import (
    ValidationError,
    ValidationErrorKind,
    ValidationResult,
    ValidationWarning,
    ValidationWarningKind,
)
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.exceptions import DDLImportException
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.dialect_checks import (
    CAST_OPERATOR_RE,
    DIALECT_CHECKS,
    SPLIT_NUMERIC_RE,
    Findings,
)
from ddl_import.utils.sql_import.sql_scanner import (
    StatementCategory,
    classify_statement,
    split_statements,
    strip_sql_comments,
)

logger = get_logger(__name__)

# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

_DDL_KEYWORD_RE = re.compile(
    r'\b(CREATE|ALTER|DROP|INSERT|UPDATE|DELETE|SELECT|TABLE|INDEX|VIEW|TRIGGER|FUNCTION|PROCEDURE|GRANT|REVOKE)\b',
    re.IGNORECASE,
)

# Warning kinds that are never folded into the consolidated summary
_UNCONSOLIDATED_KINDS = (ValidationWarningKind.DATA_LOSS, ValidationWarningKind.PERFORMANCE)


# =============================================================================
# AUTO-FIX
# =============================================================================

def apply_auto_fixes(sql: str, dialect: Union[str, DatabaseType]) -> Tuple[str, List[str]]:
    """
    Rewrite the auto-fixable error classes.

    Args:
        sql: Original SQL text
        dialect: Source dialect

    Returns:
        Tuple of (fixed_sql, descriptions of the fixes applied)
    """
    db = DatabaseType.from_value(dialect)
    applied: List[str] = []
    fixed = sql

    if db == DatabaseType.POSTGRESQL:
        fixed, count = CAST_OPERATOR_RE.subn("::", fixed)
        if count:
            applied.append('Auto-fixed cast operator syntax errors (": :" → "::").')

    fixed, count = SPLIT_NUMERIC_RE.subn(lambda m: f"{m.group(1)}({m.group(2)},{m.group(3)})", fixed)
    if count:
        applied.append("Auto-fixed split DECIMAL/NUMERIC type declarations.")

    return fixed, applied


# =============================================================================
# VALIDATION
# =============================================================================

def validate_sql(
    sql: Any,
    dialect: Union[str, DatabaseType] = DatabaseType.POSTGRESQL,
    config: Optional[ImportConfig] = None,
) -> ValidationResult:
    """
    Validate a DDL document before import.

    Args:
        sql: SQL document
        dialect: Source dialect
        config: Optional thresholds; defaults apply when None

    Returns:
        ValidationResult with errors, warnings, optional fixed_sql and table count
    """
    try:
        db = DatabaseType.from_value(dialect)
    except DDLImportException as e:
        return _error_result(e.message, ValidationErrorKind.UNSUPPORTED, "Choose a supported database type")

    if sql is not None and not isinstance(sql, str):
        return _error_result(f"SQL must be a string, got {type(sql).__name__}", ValidationErrorKind.PARSER)

    try:
        return _validate(sql or "", db, config or ImportConfig())
    except Exception as e:
        logger.error(f"Unexpected validator failure for dialect {db.value}: {e}")
        return _error_result(f"Validation failed: {e}", ValidationErrorKind.PARSER)


def _error_result(
    message: str, kind: ValidationErrorKind, suggestion: Optional[str] = None
) -> ValidationResult:
    return ValidationResult(
        is_valid=False,
        errors=[ValidationError(line=0, message=message, kind=kind, suggestion=suggestion)],
    )


def _validate(sql: str, dialect: DatabaseType, config: ImportConfig) -> ValidationResult:
    if not sql.strip():
        return _error_result(
            "SQL script is empty", ValidationErrorKind.SYNTAX, "Add CREATE TABLE statements to import"
        )

    stripped = strip_sql_comments(sql, dialect)
    if not _DDL_KEYWORD_RE.search(stripped):
        return _error_result(
            "No valid SQL statements found",
            ValidationErrorKind.SYNTAX,
            "Ensure your SQL contains valid statements like CREATE TABLE, ALTER TABLE, etc.",
        )

    statements = [(classify_statement(statement), statement) for statement in split_statements(sql, dialect)]
    findings = Findings(sql=stripped, lines=stripped.splitlines(), dialect=dialect, statements=statements)

    for check in DIALECT_CHECKS[dialect]:
        check(findings)
    findings.flush_category_warnings()

    if len(statements) > config.max_statements_warning:
        findings.add_warning(
            f"Large SQL file detected ({len(statements)} statements). Import may take some time.",
            ValidationWarningKind.PERFORMANCE,
        )

    fixed_sql = None
    if findings.errors and all(error.auto_fixable for error in findings.errors):
        fixed_sql, applied = apply_auto_fixes(sql, dialect)
        for description in applied:
            findings.add_warning(description)
        logger.debug(f"Auto-fixed {len(findings.errors)} error(s) for dialect {dialect.value}")

    warnings = _consolidate_warnings(findings.warnings, config.warning_consolidation_threshold)
    table_count = sum(1 for category, _ in statements if category == StatementCategory.TABLE)

    return ValidationResult(
        is_valid=not findings.errors,
        errors=findings.errors,
        warnings=warnings,
        fixed_sql=fixed_sql,
        table_count=table_count,
    )


def _consolidate_warnings(warnings: List[ValidationWarning], threshold: int) -> List[ValidationWarning]:
    """Collapse compatibility warnings into one summary when there are too many to read."""
    compatibility = [w for w in warnings if w.kind not in _UNCONSOLIDATED_KINDS]
    if len(compatibility) <= threshold:
        return warnings

    preview = "; ".join(w.message for w in compatibility[:3])
    summary = ValidationWarning(
        message=f"{len(compatibility)} compatibility warnings found. First issues: {preview}",
        kind=ValidationWarningKind.COMPATIBILITY,
    )
    return [summary] + [w for w in warnings if w.kind in _UNCONSOLIDATED_KINDS]
