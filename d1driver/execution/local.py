"""In-process D1-style database binding backed by DuckDB."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import logging
import threading
import time

import duckdb

from ..exceptions import ConnectionError
from .result import D1Result

logger = logging.getLogger(__name__)

WRITE_KEYWORDS = ("INSERT", "UPDATE", "DELETE")


def _convert(value: Any) -> Any:
    """Convert driver values to JSON-serializable ones."""
    if isinstance(value, memoryview):
        return value.tobytes().decode('utf-8', errors='replace')
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def _is_write(sql: str) -> bool:
    words = sql.lstrip().split(None, 1)
    return bool(words) and words[0].upper() in WRITE_KEYWORDS


class LocalPreparedStatement:
    """A statement prepared against a :class:`LocalD1Database`.

    ``bind`` returns a new statement, so a prepared statement can be
    reused with different values.
    """

    def __init__(self, database: "LocalD1Database", sql: str, params: Sequence[Any] = ()):
        self.database = database
        self.sql = sql
        self.params = list(params)

    def bind(self, *values: Any) -> "LocalPreparedStatement":
        return LocalPreparedStatement(self.database, self.sql, values)

    async def all(self) -> D1Result:
        """Run the statement and return every row as a dict."""
        columns, rows, meta = await self.database._execute(self.sql, self.params)
        results = [dict(zip(columns, row)) for row in rows]
        return D1Result(success=True, results=results, meta=meta)

    async def run(self) -> D1Result:
        return await self.all()

    async def first(self, column: Optional[str] = None) -> Any:
        """Return the first row, or one column of it; ``None`` when empty."""
        result = await self.all()
        if not result.results:
            return None
        row = result.results[0]
        if column is None:
            return row
        if column not in row:
            raise KeyError(f"Column '{column}' not in result")
        return row[column]

    async def raw(self) -> List[List[Any]]:
        _, rows, _ = await self.database._execute(self.sql, self.params)
        return [list(row) for row in rows]


class LocalD1Database:
    """Exposes a DuckDB connection through the D1 binding contract.

    Statements run in a thread pool so callers can await them without
    blocking the event loop. The connection is shared and guarded by a
    lock.
    """

    def __init__(self,
                 database: Union[str, Path, Any] = ":memory:",
                 max_workers: int = 4):
        """
        Args:
            database: ``":memory:"``, a database file path or an open
                DuckDB connection
            max_workers: Maximum number of worker threads
        """
        if isinstance(database, (str, Path)):
            self.database_path = str(database)
            try:
                self.connection = duckdb.connect(self.database_path)
            except duckdb.Error as e:
                raise ConnectionError(
                    f"Cannot open database: {e}",
                    database_path=self.database_path
                ) from e
            self._owns_connection = True
        else:
            self.database_path = None
            self.connection = database
            self._owns_connection = False

        self._lock = threading.Lock()
        self.executor = ThreadPoolExecutor(max_workers=max_workers)

    def prepare(self, sql: str) -> LocalPreparedStatement:
        return LocalPreparedStatement(self, sql)

    async def exec(self, sql: str) -> D1Result:
        """Run one or more raw statements without parameters."""
        _, _, meta = await self._execute(sql, [])
        return D1Result(success=True, results=[], meta=meta)

    async def _execute(self, sql: str, params: List[Any]) -> Tuple[List[str], List[tuple], Dict[str, Any]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self._execute_sync, sql, params)

    def _execute_sync(self, sql: str, params: List[Any]) -> Tuple[List[str], List[tuple], Dict[str, Any]]:
        start_time = time.time()

        with self._lock:
            if params:
                result = self.connection.execute(sql, params)
            else:
                result = self.connection.execute(sql)
            columns = [desc[0] for desc in result.description] if result.description else []
            rows = result.fetchall() if result.description else []

        changes = 0
        if _is_write(sql):
            # DuckDB reports affected rows as a single Count row
            changes = rows[0][0] if rows else 0
            columns, rows = [], []

        rows = [tuple(_convert(value) for value in row) for row in rows]

        meta = {
            "duration": (time.time() - start_time) * 1000,
            "rows_read": len(rows),
            "changes": changes,
        }
        return columns, rows, meta

    def close(self) -> None:
        """Shut down the worker pool and close an owned connection."""
        self.executor.shutdown(wait=True)
        if self._owns_connection:
            self.connection.close()
            logger.debug(f"Closed local database {self.database_path}")
