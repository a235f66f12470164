"""CRUD call to parameterized SQL translator.

Identifiers (table names, column names and projections) are written into
the statement verbatim. They are neither quoted nor checked against a
schema, so they must come from trusted code and never from request
input. Only values travel as bound parameters.

An absent or empty condition map produces no WHERE clause at all: an
update or delete built that way touches every row in the table. Guard
against that at the call site.
"""

from enum import Enum
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from ..exceptions import ValidationError


class SqlKeyword(Enum):
    """SQL keywords written raw in place of a value.

    In conditions only members are raw; the ``"CURRENT_TIMESTAMP"``
    string is bound there like any other value.
    """
    CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"
    CURRENT_DATE = "CURRENT_DATE"
    CURRENT_TIME = "CURRENT_TIME"


CURRENT_TIMESTAMP = SqlKeyword.CURRENT_TIMESTAMP

# String sentinel accepted in entities in place of SqlKeyword.CURRENT_TIMESTAMP
TIMESTAMP_SENTINEL = "CURRENT_TIMESTAMP"

DEFAULT_SOFT_DELETE_COLUMN = "deletedAt"

ColumnMap = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


class Statement(NamedTuple):
    """A SQL string and its positional bind values."""
    sql: str
    params: List[Any]


def _pairs(columns: Optional[ColumnMap]) -> List[Tuple[str, Any]]:
    """Return (column, value) pairs in caller order."""
    if not columns:
        return []
    if isinstance(columns, Mapping):
        return list(columns.items())
    return [(column, value) for column, value in columns]


def _keyword(value: Any) -> Optional[SqlKeyword]:
    if isinstance(value, SqlKeyword):
        return value
    if isinstance(value, str) and value == TIMESTAMP_SENTINEL:
        return SqlKeyword.CURRENT_TIMESTAMP
    return None


class QueryTranslator:
    """Translates table/condition/entity maps into SQL statements."""

    def __init__(self, soft_delete_column: str = DEFAULT_SOFT_DELETE_COLUMN):
        self.soft_delete_column = soft_delete_column

    def build_select(
        self,
        table: str,
        conditions: Optional[ColumnMap] = None,
        fields: Union[str, Sequence[str]] = "*",
    ) -> Statement:
        """Build ``SELECT fields FROM table [WHERE ...]``."""
        params: List[Any] = []
        sql = f"SELECT {self._projection(fields)} FROM {table}"
        sql += self._where(conditions, params)
        return Statement(sql, params)

    def build_insert(self, table: str, entity: ColumnMap) -> Statement:
        """Build ``INSERT INTO table (cols) VALUES (...)``.

        Keyword values are emitted raw in the VALUES list; everything
        else is bound.
        """
        pairs = self._entity_pairs(table, entity, "create")

        params: List[Any] = []
        columns = []
        values = []
        for column, value in pairs:
            columns.append(column)
            values.append(self._value(value, params))

        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(values)})"
        return Statement(sql, params)

    def build_update(
        self,
        table: str,
        entity: ColumnMap,
        conditions: Optional[ColumnMap] = None,
    ) -> Statement:
        """Build ``UPDATE table SET col = ?, ... [WHERE ...]``.

        Params hold the entity values first, then the condition values.
        """
        pairs = self._entity_pairs(table, entity, "update")

        params: List[Any] = []
        assignments = [f"{column} = {self._value(value, params)}" for column, value in pairs]

        sql = f"UPDATE {table} SET {', '.join(assignments)}"
        sql += self._where(conditions, params)
        return Statement(sql, params)

    def build_delete(
        self,
        table: str,
        conditions: Optional[ColumnMap] = None,
        soft_remove: bool = False,
    ) -> Statement:
        """Build a physical ``DELETE`` or, with ``soft_remove``, an UPDATE
        stamping the soft-delete column with ``CURRENT_TIMESTAMP``."""
        params: List[Any] = []
        if soft_remove:
            sql = f"UPDATE {table} SET {self.soft_delete_column} = {SqlKeyword.CURRENT_TIMESTAMP.value}"
        else:
            sql = f"DELETE FROM {table}"
        sql += self._where(conditions, params)
        return Statement(sql, params)

    def _projection(self, fields: Union[str, Sequence[str], None]) -> str:
        if not fields:
            return "*"
        if isinstance(fields, str):
            return fields.strip() or "*"
        return ", ".join(fields)

    def _where(self, conditions: Optional[ColumnMap], params: List[Any]) -> str:
        """Render the WHERE clause, appending bound values to ``params``."""
        clauses = []
        for column, value in _pairs(conditions):
            if value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, SqlKeyword):
                clauses.append(f"{column} = {value.value}")
            else:
                clauses.append(f"{column} = ?")
                params.append(value)

        if not clauses:
            return ""
        return " WHERE " + " AND ".join(clauses)

    def _value(self, value: Any, params: List[Any]) -> str:
        keyword = _keyword(value)
        if keyword is not None:
            return keyword.value
        params.append(value)
        return "?"

    def _entity_pairs(self, table: str, entity: Optional[ColumnMap], operation: str) -> List[Tuple[str, Any]]:
        pairs = _pairs(entity)
        if not pairs:
            raise ValidationError(
                f"Cannot {operation} with an empty entity",
                table_name=table,
                operation=operation,
                suggestions=["Pass at least one column/value pair"]
            )
        return pairs
