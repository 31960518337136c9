# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Fallback regex-based recovery from statements sqlglot could not parse.

Foreign keys are recovered from ALTER TABLE and CREATE TABLE statements only
when matched with high confidence: a constraint whose column lists do not
line up, or whose referenced table cannot be read, is skipped rather than
guessed. For CREATE TABLE and CREATE VIEW the declared name is recovered so
the object still takes part in linking; table columns are recovered from
``name TYPE ...`` items with their common flags, everything else is dropped.
"""

import re
from typing import List, Mapping, Optional, Tuple, Union

from ddl_import.models import Column, ForeignKeyOrigin, PendingForeignKey
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.sql_scanner import StatementCategory
from ddl_import.utils.sql_import.type_resolver import normalize_column_type

logger = get_logger(__name__)

# =============================================================================
# PRE-COMPILED REGEX PATTERNS FOR FALLBACK EXTRACTION
# =============================================================================

_IDENT = r'(?:"(?:[^"]|"")+"|`[^`]+`|\[[^\]]+\]|[A-Za-z_][\w$#]*)'
QUALIFIED_NAME_PATTERN = rf'{_IDENT}(?:\s*\.\s*{_IDENT}){{0,2}}'

_IDENT_RE = re.compile(_IDENT)

_ALTER_TABLE_RE = re.compile(
    rf'^\s*ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?(?P<table>{QUALIFIED_NAME_PATTERN})',
    re.IGNORECASE,
)

_CREATE_TABLE_RE = re.compile(
    r'^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:GLOBAL|LOCAL)\s+)?(?:(?:TEMP|TEMPORARY|UNLOGGED)\s+)?TABLE\s+'
    rf'(?:IF\s+NOT\s+EXISTS\s+)?(?P<table>{QUALIFIED_NAME_PATTERN})\s*\(',
    re.IGNORECASE,
)

_FOREIGN_KEY_RE = re.compile(
    rf'(?:CONSTRAINT\s+(?P<name>{_IDENT})\s+)?'
    r'FOREIGN\s+KEY\s*\((?P<source_cols>[^)]*)\)\s*'
    rf'REFERENCES\s+(?P<target>{QUALIFIED_NAME_PATTERN})\s*'
    r'(?:\((?P<target_cols>[^)]*)\))?',
    re.IGNORECASE,
)

_INLINE_REFERENCE_RE = re.compile(
    rf'\bREFERENCES\s+(?P<target>{QUALIFIED_NAME_PATTERN})\s*(?:\((?P<target_col>[^),]*)\))?',
    re.IGNORECASE,
)

_ON_DELETE_RE = re.compile(
    r'\bON\s+DELETE\s+(CASCADE|RESTRICT|NO\s+ACTION|SET\s+NULL|SET\s+DEFAULT)\b',
    re.IGNORECASE,
)
_ON_UPDATE_RE = re.compile(
    r'\bON\s+UPDATE\s+(CASCADE|RESTRICT|NO\s+ACTION|SET\s+NULL|SET\s+DEFAULT)\b',
    re.IGNORECASE,
)

_TABLE_ITEM_KEYWORDS = (
    "CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK", "INDEX", "KEY", "EXCLUDE", "LIKE", "FULLTEXT", "SPATIAL",
)

_CREATE_VIEW_RE = re.compile(
    r'^\s*CREATE\s+(?:OR\s+(?:REPLACE|ALTER)\s+)?(?:ALGORITHM\s*=\s*\w+\s+)?(?:DEFINER\s*=\s*\S+\s+)?'
    r'(?:SQL\s+SECURITY\s+\w+\s+)?(?:(?:TEMP|TEMPORARY)\s+)?(?:MATERIALIZED\s+)?(?:RECURSIVE\s+)?VIEW\s+'
    rf'(?:IF\s+NOT\s+EXISTS\s+)?(?P<view>{QUALIFIED_NAME_PATTERN})\s*(?:\((?P<columns>[^)]*)\)\s*)?(?=AS\b|WITH\b|$)',
    re.IGNORECASE,
)

# Column item: name followed by a type, optionally with arguments and array suffixes
_COLUMN_TYPE_RE = re.compile(
    r'^(?P<type>(?:CHARACTER\s+VARYING|DOUBLE\s+PRECISION|TIMESTAMP\s+WITH(?:OUT)?\s+TIME\s+ZONE|'
    r'[A-Za-z_][\w.]*)(?:\s*\([^)]*\))?(?:\s*\[\s*\d*\s*\])*)',
    re.IGNORECASE,
)
_TABLE_PRIMARY_KEY_RE = re.compile(
    rf'^(?:CONSTRAINT\s+{_IDENT}\s+)?PRIMARY\s+KEY\s*(?:CLUSTERED\s+|NONCLUSTERED\s+)?\((?P<columns>[^)]*)\)',
    re.IGNORECASE,
)
_NOT_NULL_RE = re.compile(r'\bNOT\s+NULL\b', re.IGNORECASE)
_PRIMARY_KEY_RE = re.compile(r'\bPRIMARY\s+KEY\b', re.IGNORECASE)
_UNIQUE_RE = re.compile(r'\bUNIQUE\b', re.IGNORECASE)
_DEFAULT_RE = re.compile(r"\bDEFAULT\s+((?:'(?:[^']|'')*'|[^\s,]+)(?:::\w+)?)", re.IGNORECASE)
_INCREMENT_RE = re.compile(
    r'\b(?:AUTO_INCREMENT|AUTOINCREMENT|IDENTITY|GENERATED\s+(?:ALWAYS|BY\s+DEFAULT)\s+AS\s+IDENTITY)\b',
    re.IGNORECASE,
)


# =============================================================================
# IDENTIFIER HELPERS
# =============================================================================

def unquote_identifier(identifier: str) -> str:
    """Strip one level of ``"``, backtick or bracket quoting."""
    identifier = identifier.strip()
    if len(identifier) >= 2:
        if identifier[0] == '"' and identifier[-1] == '"':
            return identifier[1:-1].replace('""', '"')
        if identifier[0] == "`" and identifier[-1] == "`":
            return identifier[1:-1]
        if identifier[0] == "[" and identifier[-1] == "]":
            return identifier[1:-1]
    return identifier


def split_name_parts(qualified: str) -> List[str]:
    """Split a dotted, possibly quoted, name into unquoted parts."""
    return [unquote_identifier(part) for part in _IDENT_RE.findall(qualified)]


def split_qualified_name(qualified: str) -> Tuple[Optional[str], str]:
    """Split ``[catalog.][schema.]table`` into (schema, table)."""
    parts = split_name_parts(qualified)
    if not parts:
        return None, ""
    if len(parts) == 1:
        return None, parts[0]
    return parts[-2], parts[-1]


def _split_columns(column_list: str) -> List[str]:
    return [unquote_identifier(part) for part in _IDENT_RE.findall(column_list or "")]


def _split_top_level(body: str) -> List[str]:
    """Split a table body on commas outside parentheses and quotes."""
    items: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    for ch in body:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "'\"`":
            quote = ch
        elif ch == "[":
            quote = "]"
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if "".join(current).strip():
        items.append("".join(current).strip())
    return items


def _extract_body(sql: str, open_paren: int) -> Optional[str]:
    """Return the text between the parenthesis at ``open_paren`` and its match."""
    depth = 0
    quote: Optional[str] = None
    for i in range(open_paren, len(sql)):
        ch = sql[i]
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in "'\"`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return sql[open_paren + 1:i]
    return None


def _referential_actions(tail: str) -> Tuple[Optional[str], Optional[str]]:
    """Read ON UPDATE / ON DELETE actions from the text following a REFERENCES clause."""
    delete = _ON_DELETE_RE.search(tail)
    update = _ON_UPDATE_RE.search(tail)
    return (
        " ".join(update.group(1).upper().split()) if update else None,
        " ".join(delete.group(1).upper().split()) if delete else None,
    )


# =============================================================================
# EXTRACTION
# =============================================================================

def _constraint_foreign_keys(
    text: str, source_schema: Optional[str], source_table: str
) -> List[PendingForeignKey]:
    """Match FOREIGN KEY ... REFERENCES clauses in ``text``."""
    results: List[PendingForeignKey] = []
    matches = list(_FOREIGN_KEY_RE.finditer(text))
    for index, match in enumerate(matches):
        source_cols = _split_columns(match.group("source_cols"))
        target_cols = _split_columns(match.group("target_cols")) if match.group("target_cols") else []
        if not source_cols or (target_cols and len(target_cols) != len(source_cols)):
            logger.debug(f"Skipping foreign key with mismatched column lists: {match.group(0)[:80]}")
            continue

        target_schema, target_table = split_qualified_name(match.group("target"))
        tail_end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        tail = text[match.end():tail_end]
        comma = tail.find(",")
        if comma != -1:
            tail = tail[:comma]
        update_action, delete_action = _referential_actions(tail)
        name = unquote_identifier(match.group("name")) if match.group("name") else None

        for position, source_col in enumerate(source_cols):
            results.append(
                PendingForeignKey(
                    name=name or f"{source_table}_{source_col}_fkey",
                    source_table=source_table,
                    source_schema=source_schema,
                    source_column=source_col,
                    target_table=target_table,
                    target_schema=target_schema,
                    target_column=target_cols[position] if target_cols else None,
                    update_action=update_action,
                    delete_action=delete_action,
                    origin=ForeignKeyOrigin.FALLBACK,
                )
            )
    return results


def _inline_foreign_keys(body: str, source_schema: Optional[str], source_table: str) -> List[PendingForeignKey]:
    """Match column-level ``col TYPE ... REFERENCES t(c)`` definitions."""
    results: List[PendingForeignKey] = []
    for item in _split_top_level(body):
        head = _IDENT_RE.match(item)
        if not head or head.group(0).upper() in _TABLE_ITEM_KEYWORDS:
            continue
        reference = _INLINE_REFERENCE_RE.search(item)
        if not reference:
            continue
        source_col = unquote_identifier(head.group(0))
        target_schema, target_table = split_qualified_name(reference.group("target"))
        target_col = reference.group("target_col")
        update_action, delete_action = _referential_actions(item[reference.end():])
        results.append(
            PendingForeignKey(
                name=f"{source_table}_{source_col}_fkey",
                source_table=source_table,
                source_schema=source_schema,
                source_column=source_col,
                target_table=target_table,
                target_schema=target_schema,
                target_column=unquote_identifier(target_col) if target_col and target_col.strip() else None,
                update_action=update_action,
                delete_action=delete_action,
                origin=ForeignKeyOrigin.FALLBACK,
            )
        )
    return results


def extract_foreign_keys_fallback(
    sql: str, kind: Union[str, StatementCategory]
) -> List[PendingForeignKey]:
    """
    Recover foreign keys from a statement sqlglot rejected.

    Args:
        sql: Raw text of one ALTER TABLE or CREATE TABLE statement
        kind: StatementCategory.ALTER or StatementCategory.TABLE

    Returns:
        Pending foreign keys (possibly empty); ids are resolved later
    """
    if not sql:
        return []
    category = StatementCategory(kind)

    if category == StatementCategory.ALTER:
        header = _ALTER_TABLE_RE.match(sql)
        if not header:
            return []
        source_schema, source_table = split_qualified_name(header.group("table"))
        results = _constraint_foreign_keys(sql[header.end():], source_schema, source_table)
    elif category == StatementCategory.TABLE:
        header = _CREATE_TABLE_RE.match(sql)
        if not header:
            return []
        source_schema, source_table = split_qualified_name(header.group("table"))
        body = _table_body(sql, header)
        results = _constraint_foreign_keys(body, source_schema, source_table)
        results.extend(_inline_foreign_keys(body, source_schema, source_table))
    else:
        return []

    if results:
        logger.info(f"Recovered {len(results)} foreign key(s) from unparsable {category.value} statement")
    return results


def _table_body(sql: str, header: "re.Match") -> str:
    body = _extract_body(sql, header.end() - 1)
    if body is None:
        # Truncated statement: scan what is there
        body = sql[header.end():]
    return body


def extract_table_header(sql: str) -> Optional[Tuple[Optional[str], str]]:
    """(schema, table) declared by a CREATE TABLE statement, or None when the header is unreadable."""
    header = _CREATE_TABLE_RE.match(sql or "")
    if not header:
        return None
    schema, table = split_qualified_name(header.group("table"))
    return (schema, table) if table else None


def extract_view_header(sql: str) -> Optional[Tuple[Optional[str], str, List[str]]]:
    """(schema, view, explicit column names) declared by a CREATE VIEW statement."""
    header = _CREATE_VIEW_RE.match(sql or "")
    if not header:
        return None
    schema, view = split_qualified_name(header.group("view"))
    if not view:
        return None
    return schema, view, _split_columns(header.group("columns") or "")


def extract_columns_fallback(
    sql: str,
    dialect: Union[str, DatabaseType],
    enum_names: Optional[Mapping[str, str]] = None,
) -> List[Column]:
    """
    Recover column definitions from a CREATE TABLE statement sqlglot rejected.

    Items that do not start with ``name TYPE`` are skipped. Nullability,
    primary key, unique, default and increment are read from keywords in the
    item; a table-level ``PRIMARY KEY (...)`` marks its columns.

    Args:
        sql: Raw text of one CREATE TABLE statement
        dialect: Source dialect, for type normalization
        enum_names: Declared enum names keyed by lowercase name

    Returns:
        Columns in declaration order (possibly empty)
    """
    header = _CREATE_TABLE_RE.match(sql or "")
    if not header:
        return []

    columns: List[Column] = []
    primary_key_columns: List[str] = []
    for item in _split_top_level(_table_body(sql, header)):
        table_primary_key = _TABLE_PRIMARY_KEY_RE.match(item)
        if table_primary_key:
            primary_key_columns.extend(_split_columns(table_primary_key.group("columns")))
            continue
        head = _IDENT_RE.match(item)
        if not head or head.group(0).upper() in _TABLE_ITEM_KEYWORDS:
            continue
        type_match = _COLUMN_TYPE_RE.match(item[head.end():].lstrip())
        if not type_match:
            continue
        name = unquote_identifier(head.group(0))
        if any(column.name.lower() == name.lower() for column in columns):
            continue

        resolved = normalize_column_type(type_match.group("type"), dialect, enum_names)
        primary_key = bool(_PRIMARY_KEY_RE.search(item))
        default = _DEFAULT_RE.search(item)
        columns.append(
            Column(
                name=name,
                type=resolved.type,
                type_args=resolved.type_args,
                nullable=not (primary_key or resolved.increment or _NOT_NULL_RE.search(item)),
                primary_key=primary_key,
                unique=primary_key or bool(_UNIQUE_RE.search(item)),
                default=default.group(1) if default else None,
                increment=resolved.increment or bool(_INCREMENT_RE.search(item)),
            )
        )

    for name in primary_key_columns:
        for column in columns:
            if column.name.lower() == name.lower():
                column.primary_key = True
                column.nullable = False
                column.unique = column.unique or len(primary_key_columns) == 1

    logger.debug(f"Recovered {len(columns)} column(s) from unparsable CREATE TABLE")
    return columns
