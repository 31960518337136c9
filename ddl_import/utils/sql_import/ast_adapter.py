# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
sqlglot AST adapter.

Walks the expression trees produced by sqlglot for CREATE TABLE, CREATE VIEW,
ALTER TABLE and CREATE INDEX statements and records what they declare in a ``ParseState``:
tables and columns go into the registry, foreign keys are queued by name for
the linker. ``COMMENT ON`` and ``CREATE TYPE ... AS ENUM`` are handled from
statement text because sqlglot keeps them as opaque commands.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlglot import exp

from ddl_import.configuration import ImportConfig
from ddl_import.models import Column, EnumType, ForeignKeyOrigin, Index, PendingForeignKey, Table
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.loggings import get_logger
from ddl_import.utils.sql_import.dialect_support import parse_read_dialect
from ddl_import.utils.sql_import.enum_utils import extract_enum_from_sql
from ddl_import.utils.sql_import.regex_fallback import (
    QUALIFIED_NAME_PATTERN,
    extract_columns_fallback,
    extract_table_header,
    extract_view_header,
    split_name_parts,
)
from ddl_import.utils.sql_import.registry import TableRegistry
from ddl_import.utils.sql_import.type_resolver import normalize_column_type

logger = get_logger(__name__)

# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

_COMMENT_ON_RE = re.compile(
    rf"^\s*COMMENT\s+ON\s+(?P<kind>TABLE|COLUMN)\s+(?P<target>{QUALIFIED_NAME_PATTERN})\s+IS\s+"
    r"(?:'(?P<text>(?:[^']|'')*)'|NULL)",
    re.IGNORECASE | re.DOTALL,
)
_REFERENTIAL_OPTION_RE = re.compile(r"^\s*ON\s+(DELETE|UPDATE)\s+(.+?)\s*$", re.IGNORECASE)

_SERIAL_TYPE_NAMES = frozenset({"SERIAL", "SMALLSERIAL", "BIGSERIAL"})
_NATIONAL_TYPE_NAMES = frozenset({"NVARCHAR", "NCHAR"})
_NATIONAL_PREFIX_RE = re.compile(r"^(?:VAR)?CHAR", re.IGNORECASE)


# =============================================================================
# PARSE STATE
# =============================================================================

@dataclass
class ParseState:
    """Mutable state accumulated while one document is processed."""

    dialect: DatabaseType
    registry: TableRegistry
    config: ImportConfig = field(default_factory=ImportConfig)
    pending: List[PendingForeignKey] = field(default_factory=list)
    enums: List[EnumType] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    _warned: Set[str] = field(default_factory=set)

    @property
    def read_dialect(self) -> Optional[str]:
        return parse_read_dialect(self.dialect)

    @property
    def enum_names(self) -> Dict[str, str]:
        """Declared enum names keyed by lowercase name."""
        return {enum.name.lower(): enum.name for enum in self.enums}

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def warn_once(self, key: str, message: str) -> None:
        """Record ``message`` only the first time ``key`` is seen."""
        if key in self._warned:
            return
        self._warned.add(key)
        self.warnings.append(message)


# =============================================================================
# NODE HELPERS
# =============================================================================

def _identifier_name(node) -> str:
    """Plain name of an identifier-like node (Identifier, Column, Ordered)."""
    if isinstance(node, exp.Ordered):
        node = node.this
    if isinstance(node, str):
        return node
    return node.name or node.sql()


def _column_names(nodes: Optional[Iterable]) -> List[str]:
    return [_identifier_name(node) for node in nodes or []]


def _literal_text(node) -> Optional[str]:
    if node is None or isinstance(node, str):
        return node
    if isinstance(node, exp.Literal):
        return node.name
    return node.sql()


def _table_name(table: exp.Table) -> Tuple[Optional[str], str]:
    """(schema, name) of a table reference; a dotted quoted name is split on its last dot."""
    name = table.name
    schema = table.db or None
    if not schema and "." in name:
        schema, name = name.rsplit(".", 1)
    return schema, name


def _display_name(schema: Optional[str], name: str) -> str:
    return f"{schema}.{name}" if schema else name


def _raw_type(kind: Optional[exp.Expression]) -> str:
    """
    Render a column type for the type resolver.

    The generic generator is used so that dialect generators do not rewrite
    the declared type (the SQLite generator maps VARCHAR to TEXT). Serial and
    national character types are restored because sqlglot parses them into
    their base types; arrays are written with the ``[]`` suffix.
    """
    if kind is None:
        return ""
    if not isinstance(kind, exp.DataType):
        return kind.sql()

    if kind.this == exp.DataType.Type.ARRAY and kind.expressions:
        return f"{_raw_type(kind.expressions[0])}[]"

    type_name = kind.this.name if isinstance(kind.this, exp.DataType.Type) else ""
    if type_name in _SERIAL_TYPE_NAMES:
        return type_name.lower()
    raw = kind.sql()
    if type_name in _NATIONAL_TYPE_NAMES:
        raw = _NATIONAL_PREFIX_RE.sub(type_name, raw)
    return raw


def _normalize_action(action: Optional[str]) -> Optional[str]:
    return " ".join(action.upper().split()) if action else None


def _referential_actions(
    reference: exp.Reference, foreign_key: Optional[exp.ForeignKey] = None
) -> Tuple[Optional[str], Optional[str]]:
    """Read (update_action, delete_action) from a foreign key and its REFERENCES clause."""
    update = delete = None
    if foreign_key is not None:
        update = _literal_text(foreign_key.args.get("update"))
        delete = _literal_text(foreign_key.args.get("delete"))

    options = list(reference.args.get("options") or [])
    if foreign_key is not None:
        options.extend(foreign_key.args.get("options") or [])
    for option in options:
        text = option if isinstance(option, str) else option.sql()
        match = _REFERENTIAL_OPTION_RE.match(text)
        if not match:
            continue
        if match.group(1).upper() == "DELETE" and not delete:
            delete = match.group(2)
        elif match.group(1).upper() == "UPDATE" and not update:
            update = match.group(2)

    return _normalize_action(update), _normalize_action(delete)


def _pending_from_reference(
    reference: exp.Reference,
    source_table: str,
    source_schema: Optional[str],
    source_columns: List[str],
    origin: ForeignKeyOrigin,
    name: Optional[str] = None,
    foreign_key: Optional[exp.ForeignKey] = None,
) -> List[PendingForeignKey]:
    """Queue one pending foreign key per source column of a REFERENCES clause."""
    target = reference.this
    target_columns: List[str] = []
    if isinstance(target, exp.Schema):
        target_columns = _column_names(target.expressions)
        target = target.this
    if not target_columns:
        target_columns = _column_names(reference.expressions)
    if not isinstance(target, exp.Table) or not source_columns:
        return []
    if target_columns and len(target_columns) != len(source_columns):
        logger.debug(f"Skipping foreign key on {source_table} with mismatched column lists")
        return []

    target_schema, target_table = _table_name(target)
    update_action, delete_action = _referential_actions(reference, foreign_key)
    return [
        PendingForeignKey(
            name=name or f"{source_table}_{column}_fkey",
            source_table=source_table,
            source_schema=source_schema,
            source_column=column,
            target_table=target_table,
            target_schema=target_schema,
            target_column=target_columns[position] if target_columns else None,
            update_action=update_action,
            delete_action=delete_action,
            origin=origin,
        )
        for position, column in enumerate(source_columns)
    ]


def _add_index(table: Table, name: Optional[str], columns: List[str], unique: bool) -> Index:
    index = Index(name=name or f"idx_{table.name}_{'_'.join(columns)}", columns=columns, unique=unique)
    table.indexes.append(index)
    return index


# =============================================================================
# COLUMNS AND CONSTRAINTS
# =============================================================================

def _build_column(col_def: exp.ColumnDef, state: ParseState) -> Tuple[Column, List[exp.Reference]]:
    """Convert a column definition; inline REFERENCES clauses are returned separately."""
    resolved = normalize_column_type(_raw_type(col_def.args.get("kind")), state.dialect, state.enum_names)
    column = Column(
        name=col_def.name,
        type=resolved.type,
        type_args=resolved.type_args,
        increment=resolved.increment,
        nullable=not resolved.increment,
    )

    references: List[exp.Reference] = []
    for constraint in col_def.args.get("constraints") or []:
        kind = constraint.args.get("kind") if isinstance(constraint, exp.ColumnConstraint) else constraint
        if isinstance(kind, exp.NotNullColumnConstraint):
            column.nullable = bool(kind.args.get("allow_null"))
        elif isinstance(kind, exp.PrimaryKeyColumnConstraint):
            column.primary_key = True
            column.nullable = False
        elif isinstance(kind, exp.UniqueColumnConstraint):
            column.unique = True
        elif isinstance(kind, exp.DefaultColumnConstraint):
            column.default = kind.this.sql(dialect=state.read_dialect) if kind.this is not None else None
        elif isinstance(kind, exp.AutoIncrementColumnConstraint):
            column.increment = True
        elif isinstance(kind, exp.GeneratedAsIdentityColumnConstraint):
            # GENERATED ALWAYS AS (expr) is a computed column, not an identity
            if not kind.args.get("expression"):
                column.increment = True
        elif isinstance(kind, exp.CommentColumnConstraint):
            column.comment = _literal_text(kind.this)
        elif isinstance(kind, exp.Reference):
            references.append(kind)

    if column.primary_key:
        column.unique = True
    return column, references


def _unique_constraint_columns(node: exp.UniqueColumnConstraint) -> Tuple[List[str], Optional[str]]:
    target = node.this
    if isinstance(target, exp.Schema):
        name = target.this.name if target.this is not None else None
        return _column_names(target.expressions), name or None
    if target is not None:
        return [_identifier_name(target)], None
    return [], None


def _apply_table_constraint(
    node: exp.Expression,
    table_name: str,
    table_schema: Optional[str],
    table: Optional[Table],
    state: ParseState,
    origin: ForeignKeyOrigin,
    name: Optional[str] = None,
) -> bool:
    """
    Apply one table-level constraint.

    Args:
        node: Constraint node from a CREATE TABLE body or an ALTER TABLE action
        table_name: Name of the constrained table
        table_schema: Its schema; None resolves to the dialect default
        table: Registered table, or None when only foreign keys can be recorded
        state: Parse state
        origin: Origin tag for foreign keys
        name: Constraint name from an enclosing CONSTRAINT clause

    Returns:
        True when the node was a recognized constraint
    """
    if isinstance(node, exp.Constraint):
        constraint_name = node.name or name
        handled = False
        for inner in node.expressions:
            handled = _apply_table_constraint(
                inner, table_name, table_schema, table, state, origin, constraint_name
            ) or handled
        return handled

    if isinstance(node, exp.ForeignKey):
        reference = node.args.get("reference")
        if reference is not None:
            state.pending.extend(
                _pending_from_reference(
                    reference,
                    table_name,
                    table_schema,
                    _column_names(node.expressions),
                    origin,
                    name=name,
                    foreign_key=node,
                )
            )
        return True

    if isinstance(node, (exp.PrimaryKey, exp.PrimaryKeyColumnConstraint)):
        columns = _column_names(node.expressions)
        if table is not None:
            for column_name in columns:
                column = table.find_column(column_name)
                if column is None:
                    logger.debug(f"Primary key column {column_name} not found on {table.name}")
                    continue
                column.primary_key = True
                column.nullable = False
                column.unique = column.unique or len(columns) == 1
        return True

    if isinstance(node, exp.UniqueColumnConstraint):
        columns, index_name = _unique_constraint_columns(node)
        if table is not None and columns:
            if len(columns) == 1:
                column = table.find_column(columns[0])
                if column is not None:
                    column.unique = True
            _add_index(table, index_name or name or f"{table.name}_{'_'.join(columns)}_key", columns, True)
        return True

    if isinstance(node, exp.IndexColumnConstraint):
        columns = _column_names(node.expressions)
        if table is not None and columns:
            _add_index(table, node.name or None, columns, False)
        return True

    return False


def _table_comment(expression: exp.Create) -> Optional[str]:
    properties = expression.args.get("properties")
    if properties is None:
        return None
    for prop in properties.expressions:
        if isinstance(prop, exp.SchemaCommentProperty):
            return _literal_text(prop.this)
    return None


# =============================================================================
# STATEMENT ADAPTERS
# =============================================================================

def apply_create_table(expression: exp.Create, state: ParseState) -> Optional[Table]:
    """
    Register the table declared by a CREATE TABLE expression.

    A second declaration of the same qualified name is ignored with a
    warning; the first declaration wins.

    Returns:
        The registered table, or None when the expression has no table target
    """
    target = expression.this
    items: List[exp.Expression] = []
    if isinstance(target, exp.Schema):
        items = list(target.expressions)
        target = target.this
    if not isinstance(target, exp.Table):
        return None

    schema, name = _table_name(target)
    table, created = state.registry.register(name, schema, comment=_table_comment(expression))
    if not created:
        state.warn(
            f"Duplicate table definition for {_display_name(table.schema_name, table.name)}; "
            f"keeping the first declaration"
        )
        return table

    for item in items:
        if not isinstance(item, exp.ColumnDef):
            continue
        column, references = _build_column(item, state)
        if table.find_column(column.name) is not None:
            logger.debug(f"Duplicate column {column.name} on {table.name} ignored")
            continue
        table.columns.append(column)
        for reference in references:
            state.pending.extend(
                _pending_from_reference(
                    reference, table.name, table.schema_name, [column.name], ForeignKeyOrigin.INLINE
                )
            )

    # Table-level constraints may name columns declared after them
    for item in items:
        if isinstance(item, exp.ColumnDef):
            continue
        if not _apply_table_constraint(
            item, table.name, table.schema_name, table, state, ForeignKeyOrigin.TABLE_CONSTRAINT
        ):
            logger.debug(f"Ignoring {item.key} in CREATE TABLE {table.name}")

    logger.debug(f"Processed table {_display_name(table.schema_name, table.name)} ({len(table.columns)} columns)")
    return table


def apply_table_fallback(sql: str, state: ParseState) -> Optional[Table]:
    """
    Register a CREATE TABLE that sqlglot rejected.

    The name comes from the statement header and the columns from the regex
    fallback, so foreign keys declared on or against the table still link.

    Returns:
        The new table, or None when the header is unreadable or the name is
        already declared
    """
    header = extract_table_header(sql)
    if header is None:
        return None
    schema, name = header
    table, created = state.registry.register(name, schema)
    if not created:
        logger.debug(f"Unparsable duplicate of {_display_name(table.schema_name, table.name)} ignored")
        return None

    table.columns.extend(extract_columns_fallback(sql, state.dialect, state.enum_names))
    logger.info(
        f"Registered unparsable table {_display_name(table.schema_name, table.name)} "
        f"with {len(table.columns)} recovered column(s)"
    )
    return table


def _register_view(schema: Optional[str], name: str, column_names: List[str], state: ParseState) -> Optional[Table]:
    table, created = state.registry.register(name, schema)
    if not created:
        state.warn(
            f"Duplicate table definition for {_display_name(table.schema_name, table.name)}; "
            f"keeping the first declaration"
        )
        return None

    table.is_view = True
    for column_name in column_names:
        # View column types are not inferred from the query
        if table.find_column(column_name) is None:
            table.columns.append(Column(name=column_name, type="text"))
    logger.debug(f"Processed view {_display_name(table.schema_name, table.name)} ({len(table.columns)} columns)")
    return table


def apply_create_view(expression: exp.Create, state: ParseState) -> Optional[Table]:
    """
    Register the view declared by a CREATE VIEW expression.

    Column names come from an explicit column list, else from the named
    projections of the query; ``*`` projections contribute nothing.
    """
    target = expression.this
    column_names: List[str] = []
    if isinstance(target, exp.Schema):
        column_names = _column_names(target.expressions)
        target = target.this
    if not isinstance(target, exp.Table):
        return None

    if not column_names:
        query = expression.expression
        if isinstance(query, exp.Query):
            column_names = [name for name in query.named_selects if name and name != "*"]

    schema, name = _table_name(target)
    return _register_view(schema, name, column_names, state)


def apply_view_fallback(sql: str, state: ParseState) -> Optional[Table]:
    """Register a CREATE VIEW that sqlglot rejected, with its explicit column list if any."""
    header = extract_view_header(sql)
    if header is None:
        return None
    schema, name, column_names = header
    return _register_view(schema, name, column_names, state)


def _alter_add_column(
    col_def: exp.ColumnDef, table: Optional[Table], table_name: str, table_schema: Optional[str], state: ParseState
) -> None:
    column, references = _build_column(col_def, state)
    if table is not None:
        if table.find_column(column.name) is not None:
            logger.debug(f"ADD COLUMN {column.name} on {table.name} ignored: column exists")
            return
        table.columns.append(column)
    for reference in references:
        state.pending.extend(
            _pending_from_reference(reference, table_name, table_schema, [column.name], ForeignKeyOrigin.ALTER)
        )


def _alter_column(action: exp.AlterColumn, table: Optional[Table], state: ParseState) -> None:
    if table is None:
        return
    column = table.find_column(action.name)
    if column is None:
        logger.debug(f"ALTER COLUMN {action.name} on {table.name} ignored: column not declared")
        return

    dtype = action.args.get("dtype")
    if dtype is not None:
        resolved = normalize_column_type(_raw_type(dtype), state.dialect, state.enum_names)
        column.type = resolved.type
        column.type_args = resolved.type_args
    elif action.args.get("allow_null") is not None:
        column.nullable = bool(action.args.get("allow_null"))
    elif action.args.get("default") is not None:
        column.default = action.args["default"].sql(dialect=state.read_dialect)
    elif action.args.get("drop"):
        column.default = None


def apply_alter_table(expression: exp.Alter, state: ParseState) -> None:
    """
    Apply ALTER TABLE actions to a registered table.

    Foreign keys are queued even when the altered table is not declared; the
    linker drops them if it never appears. Unsupported actions produce one
    warning per action type.
    """
    target = expression.this
    if not isinstance(target, exp.Table):
        return
    schema, name = _table_name(target)
    table = state.registry.lookup(name, schema)
    table_schema = table.schema_name if table is not None else schema

    for action in expression.args.get("actions") or []:
        if isinstance(action, exp.ColumnDef):
            _alter_add_column(action, table, name, table_schema, state)
        elif isinstance(action, exp.AlterColumn):
            _alter_column(action, table, state)
        elif isinstance(action, exp.AddConstraint):
            for node in action.expressions:
                _apply_table_constraint(node, name, table_schema, table, state, ForeignKeyOrigin.ALTER)
        elif not _apply_table_constraint(action, name, table_schema, table, state, ForeignKeyOrigin.ALTER):
            action_name = action.key.upper()
            state.warn_once(
                f"alter:{action_name}",
                f"ALTER TABLE {action_name} actions are not supported and will be skipped",
            )


def _index_columns(index: exp.Index) -> List[str]:
    params = index.args.get("params")
    nodes = params.args.get("columns") if params is not None else None
    return _column_names(nodes or index.expressions)


def apply_create_index(expression: exp.Create, state: ParseState) -> Optional[Index]:
    """Attach a CREATE INDEX to its table; indexes on undeclared tables are dropped."""
    index = expression.this
    if not isinstance(index, exp.Index):
        return None
    table_expr = index.args.get("table")
    if not isinstance(table_expr, exp.Table):
        return None

    schema, table_name = _table_name(table_expr)
    table = state.registry.lookup(table_name, schema)
    if table is None:
        logger.debug(f"Index {index.name} on undeclared table {table_name} dropped")
        return None
    columns = _index_columns(index)
    if not columns:
        return None
    return _add_index(table, index.name or None, columns, bool(expression.args.get("unique")))


def apply_enum_statement(sql: str, state: ParseState) -> Optional[EnumType]:
    enum = extract_enum_from_sql(sql)
    if enum is None:
        return None
    state.enums.append(enum)
    return enum


def apply_comment_statement(sql: str, state: ParseState) -> bool:
    """
    Apply ``COMMENT ON TABLE`` / ``COMMENT ON COLUMN`` to a registered table.

    Returns:
        True when the comment was attached
    """
    match = _COMMENT_ON_RE.match(sql)
    if not match:
        return False
    parts = split_name_parts(match.group("target"))
    text = match.group("text")
    comment = text.replace("''", "'") if text is not None else None

    if match.group("kind").upper() == "TABLE":
        schema = parts[-2] if len(parts) >= 2 else None
        table = state.registry.lookup(parts[-1], schema)
        if table is None:
            return False
        table.comment = comment
        return True

    if len(parts) < 2:
        return False
    schema = parts[-3] if len(parts) >= 3 else None
    table = state.registry.lookup(parts[-2], schema)
    column = table.find_column(parts[-1]) if table is not None else None
    if column is None:
        return False
    column.comment = comment
    return True
