# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Shared constants for the DDL import pipeline.
"""

from enum import Enum
from typing import Dict, Union

from ddl_import.utils.exceptions import DDLImportException, ErrorCode


class DatabaseType(str, Enum):
    """Source database dialects understood by the importer."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    SQLITE = "sqlite"
    SQL_SERVER = "sqlserver"
    ORACLE = "oracle"
    GENERIC = "generic"

    @classmethod
    def from_value(cls, value: Union[str, "DatabaseType", None]) -> "DatabaseType":
        """
        Resolve a dialect name (or alias) to a DatabaseType.

        Args:
            value: Dialect name such as "postgres", "mssql", "sqlite" or a DatabaseType

        Returns:
            Matching DatabaseType

        Raises:
            DDLImportException: If the name is not a supported dialect
        """
        if isinstance(value, DatabaseType):
            return value
        name = (value or "").strip().lower()
        if not name:
            return cls.GENERIC
        resolved = _DIALECT_ALIASES.get(name)
        if resolved is None:
            raise DDLImportException(
                ErrorCode.COMMON_VALIDATION_FAILED,
                message=f"Unsupported database dialect: {value}",
                message_args={"dialect": str(value)},
            )
        return resolved


_DIALECT_ALIASES: Dict[str, DatabaseType] = {
    "postgresql": DatabaseType.POSTGRESQL,
    "postgres": DatabaseType.POSTGRESQL,
    "pg": DatabaseType.POSTGRESQL,
    "mysql": DatabaseType.MYSQL,
    "mariadb": DatabaseType.MARIADB,
    "sqlite": DatabaseType.SQLITE,
    "sqlite3": DatabaseType.SQLITE,
    "sqlserver": DatabaseType.SQL_SERVER,
    "sql_server": DatabaseType.SQL_SERVER,
    "mssql": DatabaseType.SQL_SERVER,
    "tsql": DatabaseType.SQL_SERVER,
    "oracle": DatabaseType.ORACLE,
    "generic": DatabaseType.GENERIC,
}

# Schema assumed when a DDL statement names a table without a schema
DEFAULT_SCHEMAS: Dict[DatabaseType, str] = {
    DatabaseType.POSTGRESQL: "public",
    DatabaseType.SQL_SERVER: "dbo",
    DatabaseType.SQLITE: "main",
    DatabaseType.MYSQL: "",
    DatabaseType.MARIADB: "",
    DatabaseType.ORACLE: "",
    DatabaseType.GENERIC: "",
}

# Length of the statement excerpt quoted in parse-failure warnings
DEFAULT_EXCERPT_LENGTH = 50
# Statement count above which the validator emits a performance warning
DEFAULT_MAX_STATEMENTS_WARNING = 100
# Warning count above which validator warnings are collapsed into one summary
DEFAULT_WARNING_CONSOLIDATION_THRESHOLD = 10
