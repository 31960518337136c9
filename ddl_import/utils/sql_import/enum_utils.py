# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Enum type extraction utilities.

This module extracts ``CREATE TYPE ... AS ENUM (...)`` declarations. Dumps
produced by different tools quote labels inconsistently, so the value scanner
accepts single-quoted, double-quoted and bare labels in the same list.
"""

import re
from typing import List, Optional

from ddl_import.models import EnumType
from ddl_import.utils.loggings import get_logger

logger = get_logger(__name__)

# =============================================================================
# PRE-COMPILED REGEX PATTERNS FOR ENUM EXTRACTION
# =============================================================================

_CREATE_ENUM_RE = re.compile(
    r'CREATE\s+TYPE\s+'
    r'(?:(?P<schema>"[^"]+"|[^\s".(]+)\s*\.\s*)?'
    r'(?P<name>"[^"]+"|\'[^\']+\'|[^\s".(]+)'
    r'\s+AS\s+ENUM\s*\(',
    re.IGNORECASE,
)


# =============================================================================
# ENUM EXTRACTION FUNCTIONS
# =============================================================================

def _unquote(identifier: str) -> str:
    if len(identifier) >= 2 and identifier[0] == identifier[-1] and identifier[0] in "\"'`":
        return identifier[1:-1]
    return identifier


def _find_closing_paren(text: str, start: int) -> int:
    """Return the index of the parenthesis closing the list that starts at ``start``, or -1."""
    quote: Optional[str] = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == quote:
                if i + 1 < len(text) and text[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == ")":
            return i
        i += 1
    return -1


def parse_enum_values(values_text: str) -> List[str]:
    """
    Split an enum label list into its labels.

    Labels may be quoted with ``'`` or ``"``; a doubled quote character inside
    a label is an escaped quote. The other quote character is kept literally,
    so ``'mixed"quotes'`` yields ``mixed"quotes``.

    Args:
        values_text: Text between the ENUM parentheses

    Returns:
        Labels in declaration order
    """
    values: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    seen_token = False
    i = 0

    while i < len(values_text):
        ch = values_text[i]
        if quote:
            if ch == quote:
                if i + 1 < len(values_text) and values_text[i + 1] == quote:
                    current.append(ch)
                    i += 2
                    continue
                quote = None
            else:
                current.append(ch)
        elif ch in "'\"":
            quote = ch
            seen_token = True
        elif ch == ",":
            if seen_token:
                values.append("".join(current))
            current = []
            seen_token = False
        elif not ch.isspace():
            current.append(ch)
            seen_token = True
        i += 1

    if seen_token:
        values.append("".join(current))
    return values


def extract_enum_from_sql(sql: str) -> Optional[EnumType]:
    """
    Extract an enum type from a CREATE TYPE statement.

    Args:
        sql: A single CREATE TYPE ... AS ENUM statement

    Returns:
        EnumType, or None when the statement is not an enum declaration
    """
    match = _CREATE_ENUM_RE.search(sql or "")
    if not match:
        return None

    close = _find_closing_paren(sql, match.end())
    if close == -1:
        logger.debug(f"Unterminated enum value list in: {sql[:80]}")
        return None

    schema = match.group("schema")
    return EnumType(
        name=_unquote(match.group("name")),
        schema_name=_unquote(schema) if schema else None,
        values=parse_enum_values(sql[match.end():close]),
    )
