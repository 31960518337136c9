# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Import entry points.

``import_sql`` runs the full pipeline: dialect resolution, statement dispatch,
relationship linking and result aggregation. The SQL grammar library is
loaded once per process on first use; everything else is per call.
"""

import asyncio
import threading
from types import ModuleType
from typing import Optional, Union

from ddl_import.configuration import ImportConfig
from ddl_import.models import ImportResult
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.exceptions import DDLImportException, ErrorCode
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.dialect_support import detect_database_type
from ddl_import.utils.sql_import.linker import link_relationships
from ddl_import.utils.sql_import.type_resolver import normalize_column_type

logger = get_logger(__name__)

_parser_module: Optional[ModuleType] = None
_parser_lock = threading.Lock()


def load_sql_parser() -> ModuleType:
    """
    Load the statement dispatcher, importing sqlglot on first use.

    Safe to call from several threads; the import happens once.

    Returns:
        The dispatcher module

    Raises:
        DDLImportException: PARSER_LOAD_FAILED if sqlglot cannot be imported
    """
    global _parser_module
    if _parser_module is not None:
        return _parser_module

    with _parser_lock:
        if _parser_module is None:
            try:
                from ddl_import.utils.sql_import import dispatcher
            except ImportError as e:
                logger.error(f"Failed to load sqlglot: {e}")
                raise DDLImportException(
                    ErrorCode.PARSER_LOAD_FAILED, message_args={"error_message": str(e)}
                ) from e
            _parser_module = dispatcher
            logger.debug("SQL parser loaded")
    return _parser_module


def resolve_dialect(sql: str, dialect: Union[str, DatabaseType], config: ImportConfig) -> DatabaseType:
    """Resolve ``generic`` to a detected dialect when auto-detection is enabled."""
    db = DatabaseType.from_value(dialect)
    if db != DatabaseType.GENERIC or not config.auto_detect_dialect:
        return db
    detected = detect_database_type(sql) or DatabaseType.POSTGRESQL
    logger.info(f"Detected {detected.value} dialect for generic import")
    return detected


def _run_pipeline(sql: str, dialect: Union[str, DatabaseType], config: Optional[ImportConfig]) -> ImportResult:
    config = config or ImportConfig()
    db = resolve_dialect(sql or "", dialect, config)
    parser = load_sql_parser()

    state = parser.parse_dialect_sql(sql or "", db, config)
    relationships, _ = link_relationships(state.pending, state.registry)

    # Columns typed with an enum declared later in the document
    enum_names = state.enum_names
    if enum_names:
        for table in state.registry:
            for column in table.columns:
                if column.type.rstrip("[]").lower().rsplit(".", 1)[-1] in enum_names:
                    column.type = normalize_column_type(column.type, db, enum_names).type

    result = ImportResult(
        tables=list(state.registry),
        relationships=relationships,
        enums=state.enums,
        warnings=state.warnings,
    )
    logger.info(
        f"Imported {len(result.tables)} tables, {len(result.relationships)} relationships, "
        f"{len(result.enums)} enums from {db.value} SQL"
    )
    return result


def import_sql_sync(
    sql: str, dialect: Union[str, DatabaseType] = DatabaseType.POSTGRESQL, config: Optional[ImportConfig] = None
) -> ImportResult:
    """
    Import a DDL document, blocking.

    Args:
        sql: SQL document
        dialect: Source dialect; ``generic`` triggers detection
        config: Optional import configuration

    Returns:
        ImportResult with tables, relationships, enums and warnings

    Raises:
        DDLImportException: On an unsupported dialect name or a parser infrastructure failure
    """
    return _run_pipeline(sql, dialect, config)


async def import_sql(
    sql: str, dialect: Union[str, DatabaseType] = DatabaseType.POSTGRESQL, config: Optional[ImportConfig] = None
) -> ImportResult:
    """Import a DDL document; the first call loads sqlglot off the event loop."""
    if _parser_module is None:
        await asyncio.to_thread(load_sql_parser)
    return _run_pipeline(sql, dialect, config)
