# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Relationship resolution.

Foreign keys are collected by name while statements are processed, because a
table may be referenced before it is declared. Once the whole document has
been read, ``link_relationships`` resolves both endpoints against the
registry. Pairs with an unknown endpoint are dropped; a partial schema dump is
expected to reference tables it does not contain.
"""

from typing import List, Optional, Tuple

from ddl_import.models import Cardinality, Column, ForeignKey, PendingForeignKey, Table
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.registry import TableRegistry

logger = get_logger(__name__)


def determine_cardinality(source_unique: bool, target_unique: bool) -> Tuple[Cardinality, Cardinality]:
    """Map endpoint uniqueness to (source, target) cardinality."""
    source = Cardinality.ONE if source_unique else Cardinality.MANY
    target = Cardinality.ONE if target_unique else Cardinality.MANY
    return source, target


def _is_unique_column(table: Table, column: Optional[Column]) -> bool:
    if column is None:
        return False
    if column.unique:
        return True
    return column.primary_key and len(table.primary_key_columns) == 1


def _resolve_target_column(pending: PendingForeignKey, target: Table) -> Optional[str]:
    """Explicit target column, else the target's single-column primary key."""
    if pending.target_column:
        return pending.target_column
    primary_key = target.primary_key_columns
    if len(primary_key) == 1:
        return primary_key[0].name
    return None


def link_relationships(
    pending: List[PendingForeignKey], registry: TableRegistry
) -> Tuple[List[ForeignKey], int]:
    """
    Resolve pending foreign keys into relationships.

    Duplicates are kept: a key declared inline and again through ALTER TABLE
    yields two relationships.

    Args:
        pending: Foreign keys in declaration order
        registry: Tables of the current import

    Returns:
        Tuple of (resolved relationships, number of dropped candidates)
    """
    relationships: List[ForeignKey] = []
    dropped = 0

    for candidate in pending:
        source = registry.lookup(candidate.source_table, candidate.source_schema)
        target = registry.lookup(candidate.target_table, candidate.target_schema)
        if source is None or target is None:
            dropped += 1
            logger.debug(
                f"Dropping foreign key {candidate.name}: "
                f"{'source ' + candidate.source_table if source is None else 'target ' + candidate.target_table}"
                f" not declared"
            )
            continue

        target_column = _resolve_target_column(candidate, target)
        if target_column is None:
            dropped += 1
            logger.debug(f"Dropping foreign key {candidate.name}: no referenced column on {target.name}")
            continue

        source_cardinality, target_cardinality = determine_cardinality(
            _is_unique_column(source, source.find_column(candidate.source_column)),
            _is_unique_column(target, target.find_column(target_column)),
        )
        relationships.append(
            ForeignKey(
                name=candidate.name,
                source_table=source.name,
                source_schema=source.schema_name,
                source_column=candidate.source_column,
                target_table=target.name,
                target_schema=target.schema_name,
                target_column=target_column,
                source_table_id=source.id,
                target_table_id=target.id,
                update_action=candidate.update_action,
                delete_action=candidate.delete_action,
                source_cardinality=source_cardinality,
                target_cardinality=target_cardinality,
            )
        )

    if dropped:
        logger.info(f"Dropped {dropped} foreign key(s) referencing undeclared tables or columns")
    return relationships, dropped
