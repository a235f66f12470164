"""Placeholder checks for generated statements using sqlglot."""

from typing import Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

from ..exceptions import QueryError
from ..execution.translator import Statement

DIALECT = "sqlite"


def count_placeholders(sql: str) -> int:
    """Parse ``sql`` and count its positional ``?`` placeholders."""
    try:
        tree = sqlglot.parse_one(sql, read=DIALECT)
    except ParseError as e:
        raise QueryError(
            "Generated SQL could not be parsed",
            query=sql,
            context={"original_error": str(e)},
            suggestions=["Check table and column names for characters that are not valid identifiers"]
        ) from e
    return sum(1 for _ in tree.find_all(exp.Placeholder))


def verify_statement(statement: Statement, operation: Optional[str] = None) -> Statement:
    """Raise QueryError unless every placeholder has exactly one bound value."""
    placeholders = count_placeholders(statement.sql)
    if placeholders != len(statement.params):
        raise QueryError(
            f"Statement has {placeholders} placeholders but {len(statement.params)} bound values",
            query=statement.sql,
            operation=operation,
        )
    return statement
