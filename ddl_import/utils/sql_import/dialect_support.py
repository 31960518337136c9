# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Database dialect-specific support utilities.

This module maps source dialects onto sqlglot read dialects, resolves the
default schema for unqualified names and detects the dialect of a document
from the markers its dump tool leaves behind.
"""

import re
from typing import Optional, Tuple, Union

from ddl_import.utils.constants import DEFAULT_SCHEMAS, DatabaseType

# =============================================================================
# PRE-COMPILED REGEX PATTERNS FOR DIALECT DETECTION
# =============================================================================

_PG_DUMP_HEADER_RE = re.compile(r'--\s+Name:.*Type:', re.IGNORECASE)
_BRACKET_QUALIFIED_RE = re.compile(r'\[[^\]]+\]\.\[[^\]]+\]')
_MYSQL_TYPES_RE = re.compile(r'\b(?:TINYINT|MEDIUMINT)\b|\bENUM\s*\(', re.IGNORECASE)

_PG_DUMP_MARKERS: Tuple[str, ...] = (
    "SET statement_timeout",
    "SET lock_timeout",
    "SET client_encoding",
    "SET standard_conforming_strings",
    "SELECT pg_catalog.set_config",
    "ALTER TABLE ONLY",
    "COMMENT ON EXTENSION",
)

_SQL_SERVER_MARKERS: Tuple[str, ...] = (
    "SET ANSI_NULLS ON",
    "SET QUOTED_IDENTIFIER ON",
    "SET ANSI_PADDING ON",
    "EXEC sys.sp_",
    "EXECUTE sys.sp_",
    "[dbo].",
    "IDENTITY(",
    "NVARCHAR",
    "UNIQUEIDENTIFIER",
    "ALTER TABLE [",
    "datetime2",
)

_MYSQL_MARKERS: Tuple[str, ...] = (
    "ENGINE=InnoDB",
    "ENGINE=MyISAM",
    "ENGINE=Aria",
    "AUTO_INCREMENT",
    "DEFAULT CHARSET=",
    "/*!40101",
    "/*!40000",
    "SET NAMES utf8",
    "LOCK TABLES",
    "MariaDB dump",
)

_SQLITE_MARKERS: Tuple[str, ...] = (
    "PRAGMA",
    "INTEGER PRIMARY KEY AUTOINCREMENT",
    "DEFAULT (datetime(",
    "sqlite_sequence",
)

_ORACLE_MARKERS: Tuple[str, ...] = (
    "VARCHAR2",
    "NUMBER(",
    "SYSDATE",
    "SYSTIMESTAMP",
    "SYS_GUID",
    ".NEXTVAL",
    "TABLESPACE",
    "BINARY_FLOAT",
    "BINARY_DOUBLE",
    "XMLTYPE",
)

_POSTGRES_HINTS: Tuple[str, ...] = (
    "SERIAL PRIMARY KEY",
    "CREATE EXTENSION",
    "WITH (OIDS",
    "RETURNS SETOF",
    "::",
)


# =============================================================================
# DIALECT PARSING FUNCTIONS
# =============================================================================

def parse_read_dialect(dialect: Union[str, DatabaseType]) -> Optional[str]:
    """Map a source dialect to the sqlglot read dialect (None for sqlglot's default)."""
    db = DatabaseType.from_value(dialect)
    if db == DatabaseType.POSTGRESQL:
        return "postgres"
    if db in (DatabaseType.MYSQL, DatabaseType.MARIADB):
        return "mysql"
    if db == DatabaseType.SQL_SERVER:
        return "tsql"
    if db == DatabaseType.SQLITE:
        return "sqlite"
    if db == DatabaseType.ORACLE:
        return "oracle"
    return None


def default_schema_for(dialect: Union[str, DatabaseType]) -> str:
    """Return the schema assumed for unqualified table names."""
    return DEFAULT_SCHEMAS.get(DatabaseType.from_value(dialect), "")


# =============================================================================
# DIALECT DETECTION
# =============================================================================

def _contains_any(sql: str, markers: Tuple[str, ...]) -> bool:
    return any(marker in sql for marker in markers)


def is_pg_dump_format(sql: str) -> bool:
    """Check for pg_dump output markers."""
    if _contains_any(sql, _PG_DUMP_MARKERS):
        return True
    return ("COPY" in sql and "FROM stdin" in sql) or bool(_PG_DUMP_HEADER_RE.search(sql))


def is_sql_server_format(sql: str) -> bool:
    """Check for SQL Server script markers such as [dbo].[Table]."""
    return _contains_any(sql, _SQL_SERVER_MARKERS) or bool(_BRACKET_QUALIFIED_RE.search(sql))


def is_mysql_format(sql: str) -> bool:
    """Check for mysqldump / MariaDB dump markers."""
    return _contains_any(sql, _MYSQL_MARKERS) or bool(_MYSQL_TYPES_RE.search(sql))


def is_sqlite_format(sql: str) -> bool:
    """Check for SQLite-specific statements and type spellings."""
    return _contains_any(sql, _SQLITE_MARKERS)


def is_oracle_format(sql: str) -> bool:
    """Check for Oracle-only types and functions."""
    return _contains_any(sql.upper(), _ORACLE_MARKERS)


def detect_database_type(sql: str) -> Optional[DatabaseType]:
    """
    Guess the source dialect of a DDL document.

    Checks run from the most to the least distinctive dump format, so a
    pg_dump file that also mentions AUTO_INCREMENT in a comment is still
    detected as PostgreSQL.

    Args:
        sql: SQL document

    Returns:
        Detected DatabaseType, or None when no marker matched
    """
    if not sql:
        return None
    if is_pg_dump_format(sql):
        return DatabaseType.POSTGRESQL
    if is_sql_server_format(sql):
        return DatabaseType.SQL_SERVER
    if is_mysql_format(sql):
        return DatabaseType.MYSQL
    if is_sqlite_format(sql):
        return DatabaseType.SQLITE
    if is_oracle_format(sql):
        return DatabaseType.ORACLE
    if _contains_any(sql, _POSTGRES_HINTS):
        return DatabaseType.POSTGRESQL
    return None
