# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Column type normalization.

Every dialect spells the same storage type several ways (``int4``,
``INTEGER``, ``int``). This module collapses those spellings onto one
lowercase canonical vocabulary, separates type arguments from the type name
and turns serial shorthand into a base integer type plus an increment flag.
"""

import re
from typing import Dict, Mapping, NamedTuple, Optional, Union

from ddl_import.models import TypeArgs
from ddl_import.utils.constants import DatabaseType

# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

_TYPE_ARGS_RE = re.compile(r'\(([^()]*)\)')
_TYPE_ARGS_STRIP_RE = re.compile(r'\s*\([^()]*\)')
_TYPE_MODIFIERS_RE = re.compile(r'\b(?:UNSIGNED|SIGNED|ZEROFILL)\b', re.IGNORECASE)
_ARRAY_SUFFIX_RE = re.compile(r'(?:\s*\[\s*\d*\s*\])+$|\s+ARRAY$', re.IGNORECASE)
_IDENTIFIER_QUOTES_RE = re.compile(r'["`\[\]]')
_WHITESPACE_RE = re.compile(r'\s+')


# =============================================================================
# TYPE SYNONYM TABLES
# =============================================================================

# Serial shorthand: base integer type; the column also auto-increments
SERIAL_TYPES: Dict[str, str] = {
    "serial": "integer",
    "serial4": "integer",
    "smallserial": "smallint",
    "serial2": "smallint",
    "bigserial": "bigint",
    "serial8": "bigint",
}

# Types whose single argument is a precision rather than a length
_PRECISION_TYPES = frozenset({"decimal", "numeric", "number", "dec", "fixed", "float", "double", "real"})

_GENERIC_TYPES: Dict[str, str] = {
    "int": "integer",
    "integer": "integer",
    "int4": "integer",
    "smallint": "smallint",
    "int2": "smallint",
    "bigint": "bigint",
    "int8": "bigint",
    "tinyint": "tinyint",
    "mediumint": "mediumint",
    "decimal": "decimal",
    "dec": "decimal",
    "numeric": "decimal",
    "real": "real",
    "float4": "real",
    "float": "float",
    "float8": "double",
    "double": "double",
    "double precision": "double",
    "boolean": "boolean",
    "bool": "boolean",
    "bit": "bit",
    "varchar": "varchar",
    "character varying": "varchar",
    "char varying": "varchar",
    "char": "char",
    "character": "char",
    "bpchar": "char",
    "nvarchar": "nvarchar",
    "nchar": "nchar",
    "text": "text",
    "tinytext": "text",
    "mediumtext": "text",
    "longtext": "text",
    "ntext": "ntext",
    "clob": "text",
    "date": "date",
    "time": "time",
    "timetz": "time",
    "time with time zone": "time",
    "time without time zone": "time",
    "timestamp": "timestamp",
    "timestamp without time zone": "timestamp",
    "timestamptz": "timestamptz",
    "timestamp with time zone": "timestamptz",
    "datetime": "datetime",
    "interval": "interval",
    "uuid": "uuid",
    "json": "json",
    "jsonb": "jsonb",
    "blob": "blob",
    "tinyblob": "blob",
    "mediumblob": "blob",
    "longblob": "blob",
    "bytea": "bytea",
    "binary": "binary",
    "varbinary": "varbinary",
    "xml": "xml",
    "money": "money",
}

_DIALECT_OVERRIDES: Dict[DatabaseType, Dict[str, str]] = {
    DatabaseType.POSTGRESQL: {
        "inet": "inet",
        "cidr": "cidr",
        "macaddr": "macaddr",
        "tsvector": "tsvector",
        "citext": "text",
    },
    DatabaseType.MYSQL: {
        "boolean": "tinyint",
        "bool": "tinyint",
        "year": "year",
        "enum": "enum",
        "set": "set",
    },
    DatabaseType.MARIADB: {
        "boolean": "tinyint",
        "bool": "tinyint",
        "year": "year",
        "enum": "enum",
        "set": "set",
    },
    DatabaseType.SQL_SERVER: {
        "boolean": "bit",
        "bool": "bit",
        "datetime2": "datetime2",
        "datetimeoffset": "datetimeoffset",
        "smalldatetime": "datetime",
        "uniqueidentifier": "uniqueidentifier",
        "image": "varbinary",
        "smallmoney": "money",
    },
    DatabaseType.SQLITE: {
        "datetime": "timestamp",
    },
    DatabaseType.ORACLE: {
        "varchar2": "varchar",
        "nvarchar2": "nvarchar",
        "number": "decimal",
        "binary_float": "float",
        "binary_double": "double",
        "raw": "varbinary",
        "nclob": "text",
    },
}

_DIALECT_TYPES: Dict[DatabaseType, Dict[str, str]] = {
    db: {**_GENERIC_TYPES, **_DIALECT_OVERRIDES.get(db, {})} for db in DatabaseType
}


class ResolvedType(NamedTuple):
    """Normalized column type."""

    type: str
    type_args: Optional[TypeArgs]
    increment: bool


# =============================================================================
# TYPE RESOLUTION
# =============================================================================

def base_type_name(raw_type: str) -> str:
    """
    Reduce a raw type to its lowercase name.

    Drops arguments, array suffixes, sign modifiers and identifier quotes:
    ``"VARCHAR(255)"`` -> ``"varchar"``, ``"int(11) unsigned"`` -> ``"int"``.
    """
    name = _TYPE_ARGS_STRIP_RE.sub("", raw_type or "")
    name = _TYPE_MODIFIERS_RE.sub("", name)
    name = _ARRAY_SUFFIX_RE.sub("", name.strip())
    name = _IDENTIFIER_QUOTES_RE.sub("", name)
    return _WHITESPACE_RE.sub(" ", name).strip().lower()


def resolve_type(raw_type: str, dialect: Union[str, DatabaseType]) -> Optional[str]:
    """
    Map a raw type token to its canonical identifier.

    Args:
        raw_type: Type as written in DDL, with or without arguments
        dialect: Source dialect

    Returns:
        Canonical lowercase type, or None when no mapping exists
    """
    name = base_type_name(raw_type)
    if not name:
        return None
    if name in SERIAL_TYPES:
        return SERIAL_TYPES[name]
    return _DIALECT_TYPES[DatabaseType.from_value(dialect)].get(name)


def is_serial_type(raw_type: str) -> bool:
    """Whether the type is serial shorthand (implies auto-increment)."""
    return base_type_name(raw_type) in SERIAL_TYPES


def parse_type_args(raw_type: str) -> Optional[TypeArgs]:
    """
    Extract length or precision/scale from a type's argument list.

    Non-numeric arguments such as ``MAX`` are ignored.

    Args:
        raw_type: Type as written, e.g. ``NUMERIC(10, 2)``

    Returns:
        TypeArgs, or None when the type carries no numeric arguments
    """
    match = _TYPE_ARGS_RE.search(raw_type or "")
    if not match:
        return None
    parts = [part.strip() for part in match.group(1).split(",")]
    if not parts or not all(part.isdigit() for part in parts):
        return None

    numbers = [int(part) for part in parts]
    if len(numbers) >= 2:
        return TypeArgs(precision=numbers[0], scale=numbers[1])
    if base_type_name(raw_type) in _PRECISION_TYPES:
        return TypeArgs(precision=numbers[0])
    return TypeArgs(length=numbers[0])


def normalize_column_type(
    raw_type: str,
    dialect: Union[str, DatabaseType],
    enum_names: Optional[Mapping[str, str]] = None,
) -> ResolvedType:
    """
    Normalize a column type for the schema model.

    Resolution order: serial shorthand, declared enum types, dialect synonyms.
    Types with no mapping pass through as their uppercased base name.

    Args:
        raw_type: Type as written in DDL
        dialect: Source dialect
        enum_names: Declared enum names keyed by lowercase name

    Returns:
        ResolvedType(type, type_args, increment)
    """
    name = base_type_name(raw_type)
    is_array = bool(_ARRAY_SUFFIX_RE.search(_TYPE_ARGS_STRIP_RE.sub("", raw_type or "").strip()))
    type_args = parse_type_args(raw_type)

    if name in SERIAL_TYPES:
        return ResolvedType(SERIAL_TYPES[name], None, True)

    enum_key = name.rsplit(".", 1)[-1]
    if enum_names and enum_key in enum_names:
        canonical = enum_names[enum_key]
    else:
        canonical = resolve_type(raw_type, dialect)
        if canonical is None:
            canonical = name.upper() if name else (raw_type or "").strip().upper()

    if is_array:
        canonical = f"{canonical}[]"
    return ResolvedType(canonical, type_args, False)
