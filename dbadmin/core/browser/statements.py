"""
STATEMENTS - every SQL string the database browser sends is built here

Table and column names can only enter a statement through compose(),
which refuses any identifier that is not part of the TableMetadata the
statement is built for. Values never become SQL text, they are always
bound parameters (:p0, :p1, ...).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Union

from dbadmin.core.browser.errors import UnknownColumn
from dbadmin.core.browser.metadata import ColumnMetadata, QuerySpec, SortDirection, TableMetadata
from dbadmin.core.browser.types import is_character_column


@dataclass(frozen=True)
class Statement:
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    # Writes are committed by the executor
    mutates: bool = False


class Identifier(NamedTuple):
    name: str


class Value(NamedTuple):
    value: Any


Part = Union[str, Identifier, Value]

LIKE_ESCAPE = "!"

SORT_KEYWORDS = {SortDirection.ASC: "ASC", SortDirection.DESC: "DESC"}


def quote_identifier(name: str) -> str:
    # ANSI quoting; ":" is escaped so the bind-parameter parser leaves it alone
    escaped = name.replace('"', '""').replace(":", "\\:")
    return f'"{escaped}"'


def compose(table: TableMetadata, parts: Sequence[Part], mutates: bool = False) -> Statement:
    """
    Assemble one statement against `table`.

    Plain strings are SQL keywords written in this module, Identifier parts
    must name the table itself or one of its columns, Value parts become
    bound parameters.
    """
    allowed = {table.name, *table.column_names}
    sql: List[str] = []
    params: Dict[str, Any] = {}

    for part in parts:
        if isinstance(part, Identifier):
            if part.name not in allowed:
                raise UnknownColumn(table.name, part.name)
            sql.append(quote_identifier(part.name))
        elif isinstance(part, Value):
            key = f"p{len(params)}"
            params[key] = part.value
            sql.append(f":{key}")
        else:
            sql.append(part)

    return Statement(sql="".join(sql), params=params, mutates=mutates)


# ============================================================================
# FRAGMENTS
# ============================================================================


def escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def lowered_text(col: ColumnMetadata) -> List[Part]:
    # uuid/enum columns have no LIKE or LOWER of their own on Postgres
    if is_character_column(col.native_type):
        return ["LOWER(", Identifier(col.name), ")"]
    return ["LOWER(CAST(", Identifier(col.name), " AS TEXT))"]


def filter_parts(table: TableMetadata, filter_text: Optional[str]) -> List[Part]:
    """
    WHERE clause matching rows where any text column contains `filter_text`,
    ignoring case.

    Empty/blank filters and tables without text columns match everything.
    """
    text_columns = table.text_columns
    if not filter_text or not filter_text.strip() or not text_columns:
        return []

    pattern = f"%{escape_like(filter_text)}%"
    parts: List[Part] = [" WHERE ("]
    for index, col in enumerate(text_columns):
        if index:
            parts.append(" OR ")
        parts += lowered_text(col)
        parts += [" LIKE LOWER(", Value(pattern), f") ESCAPE '{LIKE_ESCAPE}'"]
    parts.append(")")
    return parts


def assignment_parts(values: Dict[str, Any]) -> List[Part]:
    parts: List[Part] = []
    for index, (name, value) in enumerate(values.items()):
        if index:
            parts.append(", ")
        parts.extend([Identifier(name), " = ", Value(value)])
    return parts


# ============================================================================
# STATEMENTS
# ============================================================================


def count_rows(table: TableMetadata, filter_text: Optional[str] = None) -> Statement:
    return compose(
        table,
        ["SELECT COUNT(*) AS count FROM ", Identifier(table.name)]
        + filter_parts(table, filter_text),
    )


def select_page(table: TableMetadata, spec: QuerySpec) -> Statement:
    parts: List[Part] = ["SELECT * FROM ", Identifier(table.name)]
    parts += filter_parts(table, spec.filter)

    if spec.sort is not None:
        direction = SORT_KEYWORDS[SortDirection(spec.sort.direction)]
        parts += [" ORDER BY ", Identifier(spec.sort.column), f" {direction}"]

    offset = (spec.page - 1) * spec.limit
    parts += [" LIMIT ", Value(spec.limit), " OFFSET ", Value(offset)]
    return compose(table, parts)


def insert_returning(table: TableMetadata, values: Dict[str, Any]) -> Statement:
    parts: List[Part] = ["INSERT INTO ", Identifier(table.name)]

    if not values:
        parts.append(" DEFAULT VALUES RETURNING *")
        return compose(table, parts, mutates=True)

    parts.append(" (")
    for index, name in enumerate(values):
        if index:
            parts.append(", ")
        parts.append(Identifier(name))
    parts.append(") VALUES (")
    for index, value in enumerate(values.values()):
        if index:
            parts.append(", ")
        parts.append(Value(value))
    parts.append(") RETURNING *")
    return compose(table, parts, mutates=True)


def update_returning(
    table: TableMetadata, key_column: str, row_id: Any, values: Dict[str, Any]
) -> Statement:
    parts: List[Part] = ["UPDATE ", Identifier(table.name), " SET "]
    parts += assignment_parts(values)
    parts += [" WHERE ", Identifier(key_column), " = ", Value(row_id), " RETURNING *"]
    return compose(table, parts, mutates=True)


def delete_row(table: TableMetadata, key_column: str, row_id: Any) -> Statement:
    return compose(
        table,
        [
            "DELETE FROM ",
            Identifier(table.name),
            " WHERE ",
            Identifier(key_column),
            " = ",
            Value(row_id),
        ],
        mutates=True,
    )
