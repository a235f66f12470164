"""Object-shaped CRUD calls on top of a D1-style database binding."""

from typing import Any, Dict, Optional, Sequence, Union
import logging
import uuid

from .exceptions import ValidationError
from .execution import QueryTranslator, Statement, StatementExecutor, D1Result
from .execution.executor import READ_MODE, WRITE_MODE
from .execution.translator import ColumnMap, DEFAULT_SOFT_DELETE_COLUMN
from .metrics import MetricsCollector
from .validation import verify_statement

logger = logging.getLogger(__name__)


class D1Driver:
    """CRUD helper bound to one database handle.

    ``db`` is any object exposing ``prepare(sql).bind(*params)`` with
    ``all()`` and ``run()``, such as a Workers D1 binding or a
    :class:`~d1driver.execution.local.LocalD1Database`. The binding's
    result is returned unchanged and its errors propagate unchanged.

    Table and column names are interpolated into SQL as given. Only pass
    trusted identifiers.
    """

    def __init__(self,
                 db: Any,
                 log_queries: bool = False,
                 log_slow_queries: bool = True,
                 slow_query_ms: int = 1000,
                 strict: bool = False,
                 soft_delete_column: str = DEFAULT_SOFT_DELETE_COLUMN,
                 enable_metrics: bool = False,
                 metrics_history_size: int = 10000):
        """
        Initialize the driver.

        Args:
            db: Database binding to run statements on
            log_queries: Whether to log all SQL statements at DEBUG level
            log_slow_queries: Whether to log slow statements at WARNING level
            slow_query_ms: Threshold in milliseconds for slow statement logging
            strict: Parse each statement and check its placeholder count
                against the bound values before executing
            soft_delete_column: Column stamped by soft removes
            enable_metrics: Whether to enable metrics collection
            metrics_history_size: Maximum number of statements kept in metrics history
        """
        self.db = db
        self.strict = strict
        self.translator = QueryTranslator(soft_delete_column=soft_delete_column)

        self.metrics_collector = None
        if enable_metrics:
            self.metrics_collector = MetricsCollector(
                max_history=metrics_history_size,
                enable_detailed_logging=log_queries
            )

        self.executor = StatementExecutor(
            log_queries=log_queries,
            log_slow_queries=log_slow_queries,
            slow_query_ms=slow_query_ms,
            metrics_collector=self.metrics_collector
        )

    async def get(self,
                  table: str,
                  conditions: Optional[ColumnMap] = None,
                  fields: Union[str, Sequence[str]] = "*") -> Any:
        """Select ``fields`` from ``table`` where every condition matches.

        A ``None`` condition value matches NULL. Without conditions every
        row is returned.
        """
        statement = self.translator.build_select(table, conditions, fields)
        return await self._execute("get", table, statement, READ_MODE)

    async def create(self, table: str, entity: ColumnMap) -> Any:
        """Insert ``entity`` into ``table``."""
        try:
            statement = self.translator.build_insert(table, entity)
        except ValidationError as e:
            return self._reject("create", table, e)
        return await self._execute("create", table, statement, WRITE_MODE)

    async def update(self,
                     table: str,
                     entity: ColumnMap,
                     conditions: Optional[ColumnMap] = None) -> Any:
        """Apply ``entity`` to rows matching ``conditions``.

        Without conditions every row in the table is updated.
        """
        try:
            statement = self.translator.build_update(table, entity, conditions)
        except ValidationError as e:
            return self._reject("update", table, e)
        return await self._execute("update", table, statement, WRITE_MODE)

    async def remove(self,
                     table: str,
                     conditions: Optional[ColumnMap] = None,
                     soft_remove: bool = False) -> Any:
        """Delete rows matching ``conditions``.

        With ``soft_remove`` the rows are kept and their soft-delete
        column is set to ``CURRENT_TIMESTAMP``. Without conditions every
        row in the table is affected.
        """
        statement = self.translator.build_delete(table, conditions, soft_remove)
        return await self._execute("remove", table, statement, WRITE_MODE)

    async def _execute(self, operation: str, table: str, statement: Statement, mode: str) -> Any:
        correlation_id = str(uuid.uuid4())
        if self.strict:
            verify_statement(statement, operation=operation)

        return await self.executor.execute(
            self.db,
            statement,
            mode=mode,
            context={
                "correlation_id": correlation_id,
                "operation": operation,
                "table": table,
            }
        )

    def _reject(self, operation: str, table: str, error: ValidationError) -> D1Result:
        logger.warning(
            f"[{error.correlation_id}] Rejected {operation} on {table}: {error.message}",
            extra={"correlation_id": error.correlation_id, "operation": operation, "table": table}
        )
        return D1Result.failure(error)

    def get_stats(self) -> Dict[str, Any]:
        """Get statement execution statistics."""
        return self.executor.get_stats()

    def get_metrics(self) -> Optional[Dict[str, Any]]:
        """Get collected metrics, or ``None`` when metrics are disabled."""
        if self.metrics_collector is None:
            return None
        return self.metrics_collector.get_stats()


async def get(db: Any,
              table: str,
              conditions: Optional[ColumnMap] = None,
              fields: Union[str, Sequence[str]] = "*") -> Any:
    """Select rows from ``table`` on ``db``. See :meth:`D1Driver.get`."""
    return await D1Driver(db).get(table, conditions, fields)


async def create(db: Any, table: str, entity: ColumnMap) -> Any:
    """Insert ``entity`` into ``table`` on ``db``."""
    return await D1Driver(db).create(table, entity)


async def update(db: Any,
                 table: str,
                 entity: ColumnMap,
                 conditions: Optional[ColumnMap] = None) -> Any:
    """Update rows of ``table`` on ``db``. Omitting conditions updates every row."""
    return await D1Driver(db).update(table, entity, conditions)


async def remove(db: Any,
                 table: str,
                 conditions: Optional[ColumnMap] = None,
                 soft_remove: bool = False) -> Any:
    """Delete (or soft-delete) rows of ``table`` on ``db``. Omitting conditions affects every row."""
    return await D1Driver(db).remove(table, conditions, soft_remove)
