# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Quote-aware SQL text scanning.

This module provides comment stripping, top-level statement splitting and
statement classification. All scanners track quoting so that semicolons,
comment markers and keywords inside string literals, quoted identifiers and
dollar-quoted bodies are never mistaken for structure.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple, Union

from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.loggings import get_logger

logger = get_logger(__name__)


# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

_DOLLAR_TAG_RE = re.compile(r'\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$')
_WORD_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
_GO_LINE_RE = re.compile(r'^[ \t]*GO[ \t]*(?:\d+[ \t]*)?$', re.IGNORECASE | re.MULTILINE)
_DELIMITER_RE = re.compile(r'DELIMITER[ \t]+(\S+)[ \t]*(?:\r?\n|$)', re.IGNORECASE)
_TRIGGER_HEAD_RE = re.compile(
    r'^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:DEFINER\s*=\s*\S+\s+)?(?:TEMP(?:ORARY)?\s+)?TRIGGER\b',
    re.IGNORECASE,
)

# Words after END that close a construct which never opened a BEGIN block
_END_SUFFIX_WORDS = frozenset({"IF", "LOOP", "WHILE", "REPEAT"})


class StatementCategory(str, Enum):
    """Statement kinds recognized by their leading keywords."""

    TABLE = "table"
    ENUM_TYPE = "enum_type"
    TYPE = "type"
    INDEX = "index"
    ALTER = "alter"
    RLS = "row_level_security"
    VIEW = "view"
    FUNCTION = "function"
    PROCEDURE = "procedure"
    TRIGGER = "trigger"
    POLICY = "policy"
    EXTENSION = "extension"
    COMMENT = "comment"
    SCHEMA = "schema"
    SEQUENCE = "sequence"
    OTHER = "other"


_CREATE_PREFIX = r'^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:OR\s+ALTER\s+)?'
_MYSQL_DEFINER = r'(?:ALGORITHM\s*=\s*\w+\s+)?(?:DEFINER\s*=\s*\S+\s+)?(?:SQL\s+SECURITY\s+\w+\s+)?'

_CATEGORY_PATTERNS: Tuple[Tuple[StatementCategory, "re.Pattern[str]"], ...] = (
    (
        StatementCategory.TABLE,
        re.compile(
            _CREATE_PREFIX + r'(?:(?:GLOBAL|LOCAL)\s+)?(?:(?:TEMP|TEMPORARY|UNLOGGED|VIRTUAL)\s+)?TABLE\b',
            re.IGNORECASE,
        ),
    ),
    (StatementCategory.ENUM_TYPE, re.compile(_CREATE_PREFIX + r'TYPE\b[\s\S]*?\bAS\s+ENUM\b', re.IGNORECASE)),
    (StatementCategory.TYPE, re.compile(_CREATE_PREFIX + r'TYPE\b', re.IGNORECASE)),
    (
        StatementCategory.INDEX,
        re.compile(
            _CREATE_PREFIX + r'(?:UNIQUE\s+)?(?:(?:CLUSTERED|NONCLUSTERED|FULLTEXT|SPATIAL)\s+)?INDEX\b',
            re.IGNORECASE,
        ),
    ),
    (
        StatementCategory.RLS,
        re.compile(
            r'^\s*ALTER\s+TABLE\b[\s\S]*\b(?:ENABLE|DISABLE|FORCE|NO\s+FORCE)\s+ROW\s+LEVEL\s+SECURITY\b',
            re.IGNORECASE,
        ),
    ),
    (StatementCategory.ALTER, re.compile(r'^\s*ALTER\s+TABLE\b', re.IGNORECASE)),
    (
        StatementCategory.VIEW,
        re.compile(_CREATE_PREFIX + _MYSQL_DEFINER + r'(?:MATERIALIZED\s+)?(?:RECURSIVE\s+)?VIEW\b', re.IGNORECASE),
    ),
    (StatementCategory.FUNCTION, re.compile(_CREATE_PREFIX + _MYSQL_DEFINER + r'FUNCTION\b', re.IGNORECASE)),
    (
        StatementCategory.PROCEDURE,
        re.compile(_CREATE_PREFIX + _MYSQL_DEFINER + r'(?:PROCEDURE|PROC)\b', re.IGNORECASE),
    ),
    (
        StatementCategory.TRIGGER,
        re.compile(
            _CREATE_PREFIX + _MYSQL_DEFINER + r'(?:CONSTRAINT\s+)?(?:(?:TEMP|TEMPORARY)\s+)?TRIGGER\b',
            re.IGNORECASE,
        ),
    ),
    (StatementCategory.POLICY, re.compile(_CREATE_PREFIX + r'POLICY\b', re.IGNORECASE)),
    (StatementCategory.EXTENSION, re.compile(_CREATE_PREFIX + r'EXTENSION\b', re.IGNORECASE)),
    (StatementCategory.COMMENT, re.compile(r'^\s*COMMENT\s+ON\b', re.IGNORECASE)),
    (StatementCategory.SCHEMA, re.compile(_CREATE_PREFIX + r'SCHEMA\b', re.IGNORECASE)),
    (StatementCategory.SEQUENCE, re.compile(_CREATE_PREFIX + r'(?:TEMP(?:ORARY)?\s+)?SEQUENCE\b', re.IGNORECASE)),
)


# =============================================================================
# QUOTE STATE TRACKING
# =============================================================================

class QuoteState:
    """Track quote state during SQL scanning."""
    __slots__ = ('in_single', 'in_double', 'in_backtick', 'in_bracket', 'dollar_tag')

    def __init__(self):
        self.in_single: bool = False
        self.in_double: bool = False
        self.in_backtick: bool = False
        self.in_bracket: bool = False
        self.dollar_tag: Optional[str] = None

    def reset(self):
        """Leave every quoting context."""
        self.in_single = False
        self.in_double = False
        self.in_backtick = False
        self.in_bracket = False
        self.dollar_tag = None

    @property
    def quoted(self) -> bool:
        return (
            self.in_single
            or self.in_double
            or self.in_backtick
            or self.in_bracket
            or self.dollar_tag is not None
        )


def _consume_quoted(text: str, i: int, state: QuoteState, backslash_escapes: bool) -> int:
    """
    Advance over one character while inside a quoted context.

    Returns the index of the next unconsumed character. Doubled quote
    characters are treated as escapes and stay inside the quote.
    """
    if state.dollar_tag is not None:
        if text.startswith(state.dollar_tag, i):
            end = i + len(state.dollar_tag)
            state.dollar_tag = None
            return end
        return i + 1

    ch = text[i]
    if backslash_escapes and ch == "\\" and (state.in_single or state.in_double):
        return min(i + 2, len(text))

    closing = None
    if state.in_single:
        closing = "'"
    elif state.in_double:
        closing = '"'
    elif state.in_backtick:
        closing = "`"
    elif state.in_bracket:
        closing = "]"

    if ch == closing:
        if i + 1 < len(text) and text[i + 1] == closing:
            return i + 2
        state.reset()
    return i + 1


def _open_quote(text: str, i: int, state: QuoteState, dialect: DatabaseType) -> int:
    """Enter a quoted context starting at ``i``; returns 0 when no quote opens here."""
    ch = text[i]
    if ch == "'":
        state.in_single = True
        return i + 1
    if ch == '"':
        state.in_double = True
        return i + 1
    if ch == "`":
        state.in_backtick = True
        return i + 1
    if ch == "[" and dialect == DatabaseType.SQL_SERVER:
        state.in_bracket = True
        return i + 1
    if ch == "$" and dialect in (DatabaseType.POSTGRESQL, DatabaseType.GENERIC):
        # $1 placeholders are not tags; a tag must follow a non-word character
        if i > 0 and (text[i - 1].isalnum() or text[i - 1] == "_"):
            return 0
        match = _DOLLAR_TAG_RE.match(text, i)
        if match:
            state.dollar_tag = match.group(0)
            return match.end()
    return 0


def _uses_backslash_escapes(dialect: DatabaseType) -> bool:
    return dialect in (DatabaseType.MYSQL, DatabaseType.MARIADB)


# =============================================================================
# COMMENT STRIPPING
# =============================================================================

def strip_sql_comments(sql: str, dialect: Union[str, DatabaseType] = DatabaseType.GENERIC) -> str:
    """
    Remove ``--`` line comments and ``/* */`` block comments outside quotes.

    Newlines inside removed comments are kept so that line numbers of the
    remaining text still match the input. MySQL ``#`` comments are removed
    for MySQL-family dialects.

    Args:
        sql: SQL text
        dialect: Source dialect

    Returns:
        SQL text without comments
    """
    if not sql:
        return ""
    db = DatabaseType.from_value(dialect)
    hash_comments = db in (DatabaseType.MYSQL, DatabaseType.MARIADB)
    backslash_escapes = _uses_backslash_escapes(db)

    out: List[str] = []
    state = QuoteState()
    i = 0
    n = len(sql)
    while i < n:
        if state.quoted:
            nxt = _consume_quoted(sql, i, state, backslash_escapes)
            out.append(sql[i:nxt])
            i = nxt
            continue

        if sql.startswith("--", i) or (hash_comments and sql[i] == "#"):
            end = sql.find("\n", i)
            if end == -1:
                break
            i = end
            continue

        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            body = sql[i:] if end == -1 else sql[i:end + 2]
            out.append("\n" * body.count("\n"))
            if end == -1:
                break
            i = end + 2
            continue

        nxt = _open_quote(sql, i, state, db)
        if nxt:
            out.append(sql[i:nxt])
            i = nxt
            continue

        out.append(sql[i])
        i += 1

    return "".join(out)


def prepare_document(sql: str, dialect: Union[str, DatabaseType] = DatabaseType.GENERIC) -> str:
    """Strip comments and turn SQL Server ``GO`` batch separators into terminators."""
    db = DatabaseType.from_value(dialect)
    cleaned = strip_sql_comments(sql, db)
    if db == DatabaseType.SQL_SERVER:
        cleaned = _GO_LINE_RE.sub(";", cleaned)
    return cleaned


# =============================================================================
# STATEMENT SPLITTING
# =============================================================================

def split_statements(sql: str, dialect: Union[str, DatabaseType] = DatabaseType.GENERIC) -> List[str]:
    """
    Split a document into top-level statements.

    Statements end at the current delimiter (``;`` unless a MySQL
    ``DELIMITER`` directive changed it) when it appears outside quotes,
    comments, dollar-quoted bodies and ``BEGIN ... END`` trigger bodies.

    Args:
        sql: SQL document
        dialect: Source dialect

    Returns:
        Non-empty statements, stripped, without their terminators
    """
    db = DatabaseType.from_value(dialect)
    text = prepare_document(sql, db)
    backslash_escapes = _uses_backslash_escapes(db)
    mysql_family = db in (DatabaseType.MYSQL, DatabaseType.MARIADB)

    statements: List[str] = []
    current: List[str] = []
    state = QuoteState()
    delimiter = ";"
    block_depth = 0
    i = 0
    n = len(text)

    def flush():
        statement = "".join(current).strip()
        if statement:
            statements.append(statement)
        current.clear()

    while i < n:
        if state.quoted:
            nxt = _consume_quoted(text, i, state, backslash_escapes)
            current.append(text[i:nxt])
            i = nxt
            continue

        ch = text[i]

        if mysql_family and ch in "Dd" and (i == 0 or text[i - 1] == "\n"):
            match = _DELIMITER_RE.match(text, i)
            if match and not "".join(current).strip():
                delimiter = match.group(1)
                logger.debug(f"Statement delimiter changed to {delimiter!r}")
                current.clear()
                i = match.end()
                continue

        if block_depth == 0 and text.startswith(delimiter, i):
            flush()
            i += len(delimiter)
            continue

        nxt = _open_quote(text, i, state, db)
        if nxt:
            current.append(text[i:nxt])
            i = nxt
            continue

        if ch.isalpha() or ch == "_":
            if i > 0 and (text[i - 1].isalnum() or text[i - 1] in "_$"):
                current.append(ch)
                i += 1
                continue
            word_match = _WORD_RE.match(text, i)
            word = word_match.group(0)
            block_depth = _track_block_depth(word.upper(), text, word_match.end(), current, block_depth)
            current.append(word)
            i = word_match.end()
            continue

        current.append(ch)
        i += 1

    flush()
    return statements


def _track_block_depth(word: str, text: str, end: int, current: List[str], depth: int) -> int:
    """Update BEGIN/END nesting for trigger bodies."""
    if word in ("BEGIN", "CASE"):
        if depth > 0 or _TRIGGER_HEAD_RE.match("".join(current)):
            return depth + 1
        return depth
    if word == "END" and depth > 0:
        following = _WORD_RE.match(text[end:].lstrip())
        if following and following.group(0).upper() in _END_SUFFIX_WORDS:
            return depth
        return depth - 1
    return depth


# =============================================================================
# STATEMENT CLASSIFICATION
# =============================================================================

def classify_statement(sql: str) -> StatementCategory:
    """Classify a single statement by its leading keywords."""
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.match(sql):
            return category
    return StatementCategory.OTHER


def statement_excerpt(sql: str, length: int = 50) -> str:
    """Collapse whitespace and shorten a statement for warning messages."""
    flat = " ".join(sql.split())
    if len(flat) <= length:
        return flat
    return flat[:length] + "..."
