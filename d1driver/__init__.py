"""d1driver - object-shaped CRUD helpers for D1-style SQLite databases."""

from .driver import D1Driver, get, create, update, remove
from .execution import (
    QueryTranslator, Statement, SqlKeyword, CURRENT_TIMESTAMP,
    D1Result, LocalD1Database
)

__version__ = "0.1.0"
__all__ = [
    "D1Driver",
    "get",
    "create",
    "update",
    "remove",
    "QueryTranslator",
    "Statement",
    "SqlKeyword",
    "CURRENT_TIMESTAMP",
    "D1Result",
    "LocalD1Database",
]
