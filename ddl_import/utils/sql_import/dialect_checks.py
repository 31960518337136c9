# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Dialect-specific pre-parse checks.

Each check scans comment-stripped SQL text and records its findings on a
``Findings`` accumulator. Checks are plain functions grouped per dialect in
``DIALECT_CHECKS``; shared checks appear in several groups.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ddl_import.models import (
    ValidationError,
    ValidationErrorKind,
    ValidationWarning,
    ValidationWarningKind,
)
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.sql_import.sql_scanner import StatementCategory

# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

# ": :" instead of "::"
CAST_OPERATOR_RE = re.compile(r':[ \t]+:')
# DECIMAL(10,<newline>2)
SPLIT_NUMERIC_RE = re.compile(
    r'\b(DECIMAL|NUMERIC|DEC|NUMBER)\s*\(\s*(\d+)\s*,[ \t]*\r?\n[ \t]*(\d+)[ \t]*\)',
    re.IGNORECASE,
)

_ORACLE_VARCHAR2_RE = re.compile(r'\bN?VARCHAR2\b', re.IGNORECASE)
_ORACLE_NUMBER_RE = re.compile(r'\bNUMBER\s*\(', re.IGNORECASE)
_CREATE_SCHEMA_RE = re.compile(r'\bCREATE\s+SCHEMA\b', re.IGNORECASE)
_ALTER_COLUMN_FORM_RE = re.compile(r'\bALTER\s+TABLE\b[^;]*?\b(ALTER|MODIFY)\s+COLUMN\b', re.IGNORECASE)
_MODIFY_COLUMN_RE = re.compile(r'\bALTER\s+TABLE\b[^;]*?\bMODIFY\s+(?:COLUMN\s+)?', re.IGNORECASE)
_SPATIAL_TYPE_RE = re.compile(r'\b(GEOMETRY|GEOGRAPHY)\b', re.IGNORECASE)
_SERIAL_RE = re.compile(r'\b(?:BIG|SMALL)?SERIAL\b', re.IGNORECASE)
_AUTO_INCREMENT_RE = re.compile(r'\bAUTO_INCREMENT\b', re.IGNORECASE)
_BRACKET_IDENTIFIER_RE = re.compile(r'\[[A-Za-z_][\w ]*\]')
_ENUM_INLINE_RE = re.compile(r'\bENUM\s*\(', re.IGNORECASE)
_IDENTITY_SEED_RE = re.compile(r'\bIDENTITY\s*\(\s*\d+\s*,\s*\d+\s*\)', re.IGNORECASE)
_DOUBLE_COLON_RE = re.compile(r'::')

_MAX_LISTED_LINES = 5


# =============================================================================
# FINDINGS ACCUMULATOR
# =============================================================================

@dataclass
class _CategoryWarning:
    message: str
    kind: ValidationWarningKind
    lines: List[int] = field(default_factory=list)


@dataclass
class Findings:
    """Errors and warnings collected while validating one document."""

    sql: str
    lines: List[str]
    dialect: DatabaseType
    statements: List[Tuple[StatementCategory, str]] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    _categories: Dict[str, _CategoryWarning] = field(default_factory=dict)

    def add_error(
        self,
        message: str,
        kind: ValidationErrorKind = ValidationErrorKind.SYNTAX,
        line: int = 0,
        column: Optional[int] = None,
        suggestion: Optional[str] = None,
        auto_fixable: bool = False,
    ) -> None:
        self.errors.append(
            ValidationError(
                line=line,
                column=column,
                message=message,
                kind=kind,
                suggestion=suggestion,
                auto_fixable=auto_fixable,
            )
        )

    def add_warning(
        self,
        message: str,
        kind: ValidationWarningKind = ValidationWarningKind.COMPATIBILITY,
        line: Optional[int] = None,
    ) -> None:
        self.warnings.append(ValidationWarning(line=line, message=message, kind=kind))

    def add_category_warning(
        self,
        category: str,
        message: str,
        line: int,
        kind: ValidationWarningKind = ValidationWarningKind.COMPATIBILITY,
    ) -> None:
        """Record one occurrence of a warning that is reported once per category."""
        entry = self._categories.setdefault(category, _CategoryWarning(message=message, kind=kind))
        entry.lines.append(line)

    def flush_category_warnings(self) -> None:
        """Turn per-category occurrences into one warning each."""
        for entry in self._categories.values():
            first = entry.lines[0]
            if len(entry.lines) == 1:
                self.add_warning(f"Line {first}: {entry.message}", entry.kind, line=first)
            else:
                self.add_warning(
                    f"{entry.message} (found on lines {format_line_list(entry.lines)})",
                    entry.kind,
                    line=first,
                )
        self._categories.clear()


def format_line_list(lines: List[int]) -> str:
    """Format line numbers as ``1, 2, 3 and N more``."""
    shown = ", ".join(str(line) for line in lines[:_MAX_LISTED_LINES])
    if len(lines) > _MAX_LISTED_LINES:
        return f"{shown} and {len(lines) - _MAX_LISTED_LINES} more"
    return shown


def line_of(text: str, offset: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of ``offset`` in ``text``."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _scan_lines(
    findings: Findings,
    pattern: "re.Pattern[str]",
    category: str,
    message: str,
    kind: ValidationWarningKind = ValidationWarningKind.COMPATIBILITY,
) -> None:
    for index, line in enumerate(findings.lines):
        if pattern.search(line):
            findings.add_category_warning(category, message, index + 1, kind=kind)


# =============================================================================
# AUTO-FIXABLE SYNTAX CHECKS
# =============================================================================

def check_cast_operator(findings: Findings) -> None:
    """Flag ``: :`` written where the ``::`` cast operator was meant."""
    for match in CAST_OPERATOR_RE.finditer(findings.sql):
        line, column = line_of(findings.sql, match.start())
        findings.add_error(
            'Invalid cast operator ": :" found. PostgreSQL uses "::" for type casting.',
            line=line,
            column=column,
            suggestion='Replace ": :" with "::"',
            auto_fixable=True,
        )


def check_split_numeric(findings: Findings) -> None:
    """Flag DECIMAL/NUMERIC argument lists broken across two lines."""
    for match in SPLIT_NUMERIC_RE.finditer(findings.sql):
        line, column = line_of(findings.sql, match.start())
        type_name = match.group(1).upper()
        findings.add_error(
            f"{type_name} type declaration is split across lines. This may cause parsing errors.",
            line=line,
            column=column,
            suggestion=f"Keep {type_name}({match.group(2)},{match.group(3)}) on a single line",
            auto_fixable=True,
        )


# =============================================================================
# UNSUPPORTED CONSTRUCT CHECKS
# =============================================================================

_ORACLE_CONVERSIONS = {
    DatabaseType.MYSQL: "VARCHAR2 → VARCHAR, NUMBER → INT/DECIMAL/NUMERIC",
    DatabaseType.MARIADB: "VARCHAR2 → VARCHAR, NUMBER → INT/DECIMAL/NUMERIC",
    DatabaseType.POSTGRESQL: "VARCHAR2 → VARCHAR, NUMBER → NUMERIC/INTEGER",
    DatabaseType.SQL_SERVER: "VARCHAR2 → VARCHAR, NUMBER → INT/DECIMAL/NUMERIC",
    DatabaseType.SQLITE: "VARCHAR2 → TEXT, NUMBER → INTEGER/REAL",
}

_DIALECT_LABELS = {
    DatabaseType.POSTGRESQL: "PostgreSQL",
    DatabaseType.MYSQL: "MySQL",
    DatabaseType.MARIADB: "MariaDB",
    DatabaseType.SQLITE: "SQLite",
    DatabaseType.SQL_SERVER: "SQL Server",
    DatabaseType.ORACLE: "Oracle",
    DatabaseType.GENERIC: "generic SQL",
}


def check_foreign_dialect(findings: Findings) -> None:
    """Reject Oracle-only types in a document declared as another dialect."""
    oracle_lines: List[int] = []
    features: List[str] = []
    for index, line in enumerate(findings.lines):
        hit = False
        if _ORACLE_VARCHAR2_RE.search(line):
            hit = True
            if "VARCHAR2" not in features:
                features.append("VARCHAR2")
        if _ORACLE_NUMBER_RE.search(line):
            hit = True
            if "NUMBER" not in features:
                features.append("NUMBER")
        if hit:
            oracle_lines.append(index + 1)

    if not oracle_lines:
        return

    target = _DIALECT_LABELS[findings.dialect]
    findings.add_error(
        f"Oracle SQL syntax detected ({', '.join(features)} types found on lines: "
        f"{format_line_list(oracle_lines)})",
        line=oracle_lines[0],
        suggestion=(
            f"This appears to be Oracle SQL. Please convert to {target} syntax: "
            f"{_ORACLE_CONVERSIONS.get(findings.dialect, '')}"
        ),
    )


def check_sqlite_unsupported(findings: Findings) -> None:
    """SQLite has no schema objects and cannot change a column definition in place."""
    for match in _CREATE_SCHEMA_RE.finditer(findings.sql):
        line, column = line_of(findings.sql, match.start())
        findings.add_error(
            "CREATE SCHEMA is not supported in SQLite",
            kind=ValidationErrorKind.UNSUPPORTED,
            line=line,
            column=column,
            suggestion="Remove schema creation statements for SQLite",
        )
    for match in _ALTER_COLUMN_FORM_RE.finditer(findings.sql):
        line, _ = line_of(findings.sql, match.start())
        findings.add_error(
            f"ALTER TABLE ... {match.group(1).upper()} COLUMN is not supported in SQLite",
            kind=ValidationErrorKind.UNSUPPORTED,
            line=line,
            suggestion="Recreate the table with the new column definition instead",
        )


def check_sqlserver_unsupported(findings: Findings) -> None:
    """SQL Server changes columns with ALTER COLUMN, not MySQL's MODIFY."""
    for match in _MODIFY_COLUMN_RE.finditer(findings.sql):
        line, _ = line_of(findings.sql, match.start())
        findings.add_error(
            "ALTER TABLE ... MODIFY COLUMN is MySQL syntax and is not supported in SQL Server",
            kind=ValidationErrorKind.UNSUPPORTED,
            line=line,
            suggestion="Use ALTER TABLE ... ALTER COLUMN instead",
        )


# =============================================================================
# COMPATIBILITY WARNINGS
# =============================================================================

_SKIPPED_OBJECT_MESSAGES: Dict[StatementCategory, str] = {
    StatementCategory.EXTENSION: "CREATE EXTENSION statements found. These will be skipped during import.",
    StatementCategory.FUNCTION: "Function definitions found. These will not be imported.",
    StatementCategory.PROCEDURE: "Stored procedure definitions found. These will not be imported.",
    StatementCategory.TRIGGER: "Trigger definitions found. These will not be imported.",
    StatementCategory.POLICY: "Row level security policies found. These will not be imported.",
    StatementCategory.RLS: "Row level security statements found. These will not be imported.",
    StatementCategory.VIEW: "View definitions found. These will be imported as views with untyped columns.",
}


def check_skipped_objects(findings: Findings) -> None:
    """One warning per category of object the importer skips or imports only partially."""
    counts: Dict[StatementCategory, int] = {}
    for category, _ in findings.statements:
        if category in _SKIPPED_OBJECT_MESSAGES:
            counts[category] = counts.get(category, 0) + 1
    for category, message in _SKIPPED_OBJECT_MESSAGES.items():
        if category in counts:
            suffix = f" ({counts[category]} found)" if counts[category] > 1 else ""
            findings.add_warning(message + suffix)


def check_missing_terminator(findings: Findings) -> None:
    """Warn when the last statement is not terminated."""
    tail = findings.sql.rstrip()
    if not tail or tail.endswith(";"):
        return
    if findings.dialect == DatabaseType.SQL_SERVER and re.search(r'\bGO$', tail, re.IGNORECASE):
        return
    if findings.dialect in (DatabaseType.MYSQL, DatabaseType.MARIADB) and re.search(
        r'^\s*DELIMITER\b', findings.sql, re.IGNORECASE | re.MULTILINE
    ):
        return
    findings.add_warning(
        "SQL statements should end with semicolons (;)",
        line=len(findings.lines),
    )


def check_postgres_extensions(findings: Findings) -> None:
    """PostGIS columns import without their spatial semantics."""
    _scan_lines(
        findings,
        _SPATIAL_TYPE_RE,
        "spatial",
        "Spatial (PostGIS) types found. Spatial data will be treated as a generic type.",
        kind=ValidationWarningKind.DATA_LOSS,
    )


def check_mysql_foreign_syntax(findings: Findings) -> None:
    _scan_lines(findings, _SERIAL_RE, "serial", "SERIAL is PostgreSQL syntax. Use AUTO_INCREMENT in MySQL.")
    _scan_lines(
        findings,
        _BRACKET_IDENTIFIER_RE,
        "brackets",
        "Square brackets are SQL Server syntax. Use backticks (`) in MySQL.",
    )


def check_sqlserver_foreign_syntax(findings: Findings) -> None:
    _scan_lines(
        findings, _AUTO_INCREMENT_RE, "auto_increment", "AUTO_INCREMENT is MySQL syntax. Use IDENTITY in SQL Server."
    )
    _scan_lines(findings, _SERIAL_RE, "serial", "SERIAL is PostgreSQL syntax. Use IDENTITY in SQL Server.")


def check_sqlite_foreign_syntax(findings: Findings) -> None:
    _scan_lines(
        findings,
        _ENUM_INLINE_RE,
        "enum",
        "ENUM type is not supported in SQLite. Use CHECK constraints instead.",
    )


_ORACLE_FOREIGN_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]", str], ...] = (
    ("auto_increment", _AUTO_INCREMENT_RE, "AUTO_INCREMENT is MySQL syntax. Use GENERATED AS IDENTITY in Oracle."),
    ("serial", _SERIAL_RE, "SERIAL is PostgreSQL syntax. Use GENERATED AS IDENTITY in Oracle."),
    (
        "identity",
        _IDENTITY_SEED_RE,
        "IDENTITY(seed, increment) is SQL Server syntax. Use GENERATED AS IDENTITY in Oracle.",
    ),
    (
        "tinyint",
        re.compile(r'\bTINYINT\b', re.IGNORECASE),
        "TINYINT is not an Oracle type. Consider using NUMBER(3) instead.",
    ),
    (
        "mediumint",
        re.compile(r'\bMEDIUMINT\b', re.IGNORECASE),
        "MEDIUMINT is not an Oracle type. Consider using NUMBER(7) instead.",
    ),
    (
        "nvarchar_max",
        re.compile(r'\bNVARCHAR\s*\(\s*MAX\s*\)', re.IGNORECASE),
        "NVARCHAR(max) is SQL Server syntax. Use NCLOB in Oracle.",
    ),
    (
        "varchar_max",
        re.compile(r'\bVARCHAR\s*\(\s*MAX\s*\)', re.IGNORECASE),
        "VARCHAR(max) is SQL Server syntax. Use CLOB in Oracle.",
    ),
    (
        "uniqueidentifier",
        re.compile(r'\bUNIQUEIDENTIFIER\b', re.IGNORECASE),
        "UNIQUEIDENTIFIER is SQL Server syntax. Use RAW(16) or SYS_GUID() in Oracle.",
    ),
    (
        "datetime2",
        re.compile(r'\bDATETIME2\b', re.IGNORECASE),
        "DATETIME2 is SQL Server syntax. Use TIMESTAMP in Oracle.",
    ),
    (
        "jsonb",
        re.compile(r'\bJSONB\b', re.IGNORECASE),
        "JSONB is PostgreSQL syntax. Use JSON in Oracle 21c+ or CLOB for older versions.",
    ),
    ("cast", _DOUBLE_COLON_RE, ":: cast syntax is PostgreSQL specific. Use CAST() in Oracle."),
)


def check_oracle_foreign_syntax(findings: Findings) -> None:
    for category, pattern, message in _ORACLE_FOREIGN_PATTERNS:
        _scan_lines(findings, pattern, category, message)


def check_generic(findings: Findings) -> None:
    findings.add_warning(
        "Using generic SQL validation. Select a specific database type for more accurate checks."
    )


# =============================================================================
# DIALECT DISPATCH
# =============================================================================

Check = Callable[[Findings], None]

_COMMON_CHECKS: Tuple[Check, ...] = (check_split_numeric, check_skipped_objects, check_missing_terminator)

DIALECT_CHECKS: Dict[DatabaseType, Tuple[Check, ...]] = {
    DatabaseType.POSTGRESQL: (check_foreign_dialect, check_cast_operator, check_postgres_extensions)
    + _COMMON_CHECKS,
    DatabaseType.MYSQL: (check_foreign_dialect, check_mysql_foreign_syntax) + _COMMON_CHECKS,
    DatabaseType.MARIADB: (check_foreign_dialect, check_mysql_foreign_syntax) + _COMMON_CHECKS,
    DatabaseType.SQL_SERVER: (check_foreign_dialect, check_sqlserver_unsupported, check_sqlserver_foreign_syntax)
    + _COMMON_CHECKS,
    DatabaseType.SQLITE: (check_foreign_dialect, check_sqlite_unsupported, check_sqlite_foreign_syntax)
    + _COMMON_CHECKS,
    DatabaseType.ORACLE: (check_oracle_foreign_syntax,) + _COMMON_CHECKS,
    DatabaseType.GENERIC: (check_generic,) + _COMMON_CHECKS,
}
