# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Normalized schema model produced by the DDL importer.

Attributes are snake_case in Python; ``to_dict`` emits the camelCase shape
consumed by diagram tooling.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Cardinality(str, Enum):
    """Relationship endpoint cardinality."""

    ONE = "one"
    MANY = "many"


class ForeignKeyOrigin(str, Enum):
    """Where in the DDL a foreign key was declared."""

    INLINE = "inline"
    TABLE_CONSTRAINT = "table_constraint"
    ALTER = "alter"
    FALLBACK = "fallback"


class TypeArgs(_CamelModel):
    """Type arguments such as VARCHAR(255) or NUMERIC(10, 2)."""

    length: Optional[int] = Field(None, description="Character or binary length")
    precision: Optional[int] = Field(None, description="Numeric precision")
    scale: Optional[int] = Field(None, description="Numeric scale")


class Column(_CamelModel):
    """Column definition."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Canonical type identifier")
    type_args: Optional[TypeArgs] = Field(None, description="Length/precision/scale arguments")
    nullable: bool = Field(True, description="Whether NULL values are allowed")
    primary_key: bool = Field(False, description="Part of the primary key")
    unique: bool = Field(False, description="Has a single-column unique constraint")
    default: Optional[str] = Field(None, description="Serialized default expression")
    increment: bool = Field(False, description="Identity / auto-increment column")
    comment: Optional[str] = Field(None, description="Column comment")


class Index(_CamelModel):
    """Index attached to a table."""

    name: str = Field(..., description="Index name")
    columns: List[str] = Field(default_factory=list, description="Indexed columns in order")
    unique: bool = Field(False, description="Unique index")


class Table(_CamelModel):
    """Table declaration."""

    id: str = Field(..., description="Identifier assigned at first declaration")
    name: str = Field(..., description="Table name")
    schema_name: str = Field("", alias="schema", description="Resolved schema name")
    columns: List[Column] = Field(default_factory=list, description="Columns in declaration order")
    indexes: List[Index] = Field(default_factory=list, description="Indexes on the table")
    order: int = Field(0, description="Declaration order within the document")
    comment: Optional[str] = Field(None, description="Table comment")
    is_view: bool = Field(False, description="Declared with CREATE VIEW")

    def find_column(self, name: str) -> Optional[Column]:
        """Case-insensitive column lookup."""
        lowered = name.lower()
        for column in self.columns:
            if column.name.lower() == lowered:
                return column
        return None

    @property
    def primary_key_columns(self) -> List[Column]:
        return [column for column in self.columns if column.primary_key]


class PendingForeignKey(_CamelModel):
    """Foreign key recorded by name, before its endpoints are resolved to table ids."""

    name: str = Field(..., description="Constraint name")
    source_table: str = Field(..., description="Referencing table")
    source_schema: Optional[str] = Field(None, description="Referencing table schema, None for dialect default")
    source_column: str = Field(..., description="Referencing column")
    target_table: str = Field(..., description="Referenced table")
    target_schema: Optional[str] = Field(None, description="Referenced table schema, None for dialect default")
    target_column: Optional[str] = Field(None, description="Referenced column, None for the target primary key")
    update_action: Optional[str] = Field(None, description="ON UPDATE action")
    delete_action: Optional[str] = Field(None, description="ON DELETE action")
    origin: ForeignKeyOrigin = Field(ForeignKeyOrigin.INLINE, description="Declaration site")


class ForeignKey(_CamelModel):
    """Foreign key whose endpoints both resolved to registered tables."""

    name: str
    source_table: str
    source_schema: str
    source_column: str
    target_table: str
    target_schema: str
    target_column: str
    source_table_id: str
    target_table_id: str
    update_action: Optional[str] = None
    delete_action: Optional[str] = None
    source_cardinality: Cardinality = Cardinality.MANY
    target_cardinality: Cardinality = Cardinality.ONE


class EnumType(_CamelModel):
    """Enumerated type declared with CREATE TYPE ... AS ENUM."""

    name: str = Field(..., description="Enum type name")
    schema_name: Optional[str] = Field(None, alias="schema", description="Schema qualifier, if given")
    values: List[str] = Field(default_factory=list, description="Enum labels in declaration order")


class ImportResult(_CamelModel):
    """Aggregated import output."""

    tables: List[Table] = Field(default_factory=list)
    relationships: List[ForeignKey] = Field(default_factory=list)
    enums: List[EnumType] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as ``{tables, relationships, enums?, warnings?}``."""
        result = super().to_dict()
        if not self.enums:
            result.pop("enums", None)
        if not self.warnings:
            result.pop("warnings", None)
        return result
