"""Runs translated statements against a D1-style database binding."""

import inspect
import logging
import threading
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from ..metrics import MetricsCollector
from .translator import Statement

logger = logging.getLogger(__name__)

READ_MODE = "all"
WRITE_MODE = "run"


async def _resolve(value: Any) -> Any:
    # Bindings may hand back plain values or awaitables
    if inspect.isawaitable(value):
        return await value
    return value


def _field(result: Any, key: str) -> Any:
    if isinstance(result, dict):
        return result.get(key)
    return getattr(result, key, None)


def _row_counts(result: Any, mode: str) -> Tuple[Optional[int], Optional[int]]:
    """Return ``(rows_read, rows_written)`` reported by a binding result.

    Reads count returned rows; writes take ``meta["changes"]``.
    """
    if mode == WRITE_MODE:
        meta = _field(result, "meta")
        changes = meta.get("changes") if isinstance(meta, dict) else None
        return None, changes if isinstance(changes, int) else None
    rows = _field(result, "results")
    return (len(rows) if isinstance(rows, list) else None), None


def _truncate(sql: str) -> str:
    return f"{sql[:200]}{'...' if len(sql) > 200 else ''}"


class StatementExecutor:
    """Executes statements through the injected ``prepare/bind/all/run``
    binding and returns its result unchanged.

    Errors raised by the binding are logged and re-raised as-is; this
    layer never retries.
    """

    def __init__(self,
                 log_queries: bool = False,
                 log_slow_queries: bool = True,
                 slow_query_ms: int = 1000,
                 metrics_collector: Optional[MetricsCollector] = None):
        """
        Initialize the statement executor.

        Args:
            log_queries: Whether to log all SQL statements at DEBUG level
            log_slow_queries: Whether to log slow statements at WARNING level
            slow_query_ms: Threshold in milliseconds for slow statement logging
            metrics_collector: Optional metrics collector instance
        """
        self.log_queries = log_queries
        self.log_slow_queries = log_slow_queries
        self.slow_query_ms = slow_query_ms
        self.metrics = metrics_collector

        self._query_count = 0
        self._error_count = 0
        self._total_query_time = 0.0
        self._lock = threading.Lock()

    async def execute(
        self,
        db: Any,
        statement: Statement,
        mode: str = READ_MODE,
        context: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Prepare, bind and run ``statement`` on ``db``.

        ``mode`` names the terminal call on the prepared statement,
        ``"all"`` for reads and ``"run"`` for writes.
        """
        context = context or {}
        correlation_id = context.get("correlation_id") or str(uuid.uuid4())
        sql, params = statement

        statement_metrics = None
        if self.metrics:
            statement_metrics = self.metrics.start_query(
                query_id=correlation_id,
                operation_type=context.get("operation", "custom"),
                table_name=context.get("table"),
                sql_query=sql,
                context=context
            )

        if self.log_queries:
            logger.debug(
                f"[{correlation_id}] Executing statement: {_truncate(sql)}",
                extra={"correlation_id": correlation_id, "sql": sql, "params": params}
            )

        start_time = time.time()

        try:
            prepared = db.prepare(sql)
            if params:
                prepared = prepared.bind(*params)
            result = await _resolve(getattr(prepared, mode)())
        except Exception as e:
            execution_time = (time.time() - start_time) * 1000

            with self._lock:
                self._error_count += 1

            if statement_metrics:
                self.metrics.complete_query(statement_metrics, error=str(e))

            logger.error(
                f"[{correlation_id}] Statement failed after {execution_time:.2f}ms: {e}",
                extra={
                    "correlation_id": correlation_id,
                    "execution_time_ms": execution_time,
                    "sql": sql,
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            raise

        execution_time = (time.time() - start_time) * 1000
        rows_read, rows_written = _row_counts(result, mode)

        with self._lock:
            self._query_count += 1
            self._total_query_time += execution_time

        if statement_metrics:
            self.metrics.complete_query(statement_metrics, rows_read=rows_read, rows_written=rows_written)

        if mode == WRITE_MODE:
            outcome = f"changed {rows_written} rows"
        else:
            outcome = f"returned {rows_read} rows"

        if self.log_slow_queries and execution_time > self.slow_query_ms:
            logger.warning(
                f"[{correlation_id}] Slow statement detected: {execution_time:.2f}ms - {_truncate(sql)}",
                extra={
                    "correlation_id": correlation_id,
                    "execution_time_ms": execution_time,
                    "sql": sql,
                    "rows_read": rows_read,
                    "rows_written": rows_written
                }
            )
        elif self.log_queries:
            logger.debug(
                f"[{correlation_id}] Statement completed in {execution_time:.2f}ms, {outcome}",
                extra={
                    "correlation_id": correlation_id,
                    "execution_time_ms": execution_time,
                    "rows_read": rows_read,
                    "rows_written": rows_written
                }
            )

        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get statement execution statistics."""
        with self._lock:
            avg_time = self._total_query_time / self._query_count if self._query_count > 0 else 0
            return {
                "query_count": self._query_count,
                "error_count": self._error_count,
                "total_query_time_ms": self._total_query_time,
                "average_query_time_ms": avg_time,
                "slow_query_threshold_ms": self.slow_query_ms
            }

    def reset_stats(self) -> None:
        """Reset statement execution statistics."""
        with self._lock:
            self._query_count = 0
            self._error_count = 0
            self._total_query_time = 0.0
