# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Per-import table registry.

Tables live in an ordered list; a ``schema.name`` index maps lookup keys to
positions in that list. A registry is created for each import call and is
never shared between calls.
"""

import uuid
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ddl_import.models import Table
from ddl_import.utils.loggings import get_logger

logger = get_logger(__name__)


def table_key(schema: Optional[str], name: str) -> str:
    """Case-insensitive lookup key for a table."""
    return f"{schema or ''}.{name}".lower()


class TableRegistry:
    """Ordered table list with a schema-qualified name index."""

    def __init__(self, default_schema: str = "", id_factory: Optional[Callable[[], str]] = None):
        self.default_schema = default_schema
        self.tables: List[Table] = []
        self._index: Dict[str, int] = {}
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[Table]:
        return iter(self.tables)

    def resolve_schema(self, schema: Optional[str]) -> str:
        """Apply the dialect default to a missing schema."""
        return schema if schema else self.default_schema

    def register(self, name: str, schema: Optional[str] = None, comment: Optional[str] = None) -> Tuple[Table, bool]:
        """
        Declare a table.

        The first declaration of a qualified name wins; later declarations
        return the existing table.

        Args:
            name: Table name
            schema: Explicit schema, or None for the dialect default
            comment: Table comment

        Returns:
            Tuple of (table, created)
        """
        resolved_schema = self.resolve_schema(schema)
        key = table_key(resolved_schema, name)
        if key in self._index:
            return self.tables[self._index[key]], False

        table = Table(
            id=self._id_factory(),
            name=name,
            schema_name=resolved_schema,
            order=len(self.tables),
            comment=comment,
        )
        self._index[key] = len(self.tables)
        self.tables.append(table)
        logger.debug(f"Registered table {resolved_schema}.{name} as {table.id}")
        return table, True

    def lookup(self, name: str, schema: Optional[str] = None) -> Optional[Table]:
        """Find a table by name, defaulting an empty schema."""
        position = self._index.get(table_key(self.resolve_schema(schema), name))
        return self.tables[position] if position is not None else None
