"""Statement translation and execution."""

from .translator import QueryTranslator, Statement, SqlKeyword, CURRENT_TIMESTAMP
from .result import D1Result
from .executor import StatementExecutor
from .local import LocalD1Database, LocalPreparedStatement

__all__ = [
    "QueryTranslator",
    "Statement",
    "SqlKeyword",
    "CURRENT_TIMESTAMP",
    "D1Result",
    "StatementExecutor",
    "LocalD1Database",
    "LocalPreparedStatement",
]
