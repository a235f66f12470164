"""In-memory metrics for executed CRUD statements.

Reads (``get``) are measured in rows returned; writes (``create``,
``update``, ``remove``) in rows changed as reported by the binding's
``meta["changes"]``. The two are kept apart so a burst of writes does
not drag down read sizes.
"""

import statistics
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

READ_OPERATIONS = ('get',)
WRITE_OPERATIONS = ('create', 'update', 'remove')


@dataclass
class StatementMetrics:
    """One executed statement."""

    query_id: str
    operation_type: str
    table_name: Optional[str]
    start_time: float
    sql_query: Optional[str] = None
    duration_ms: Optional[float] = None
    rows_read: Optional[int] = None
    rows_written: Optional[int] = None
    error: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_write(self) -> bool:
        return self.operation_type in WRITE_OPERATIONS

    def complete(self,
                 rows_read: Optional[int] = None,
                 rows_written: Optional[int] = None,
                 error: Optional[str] = None):
        self.duration_ms = (time.time() - self.start_time) * 1000
        self.rows_read = rows_read
        self.rows_written = rows_written
        self.error = error

    def as_dict(self) -> Dict[str, Any]:
        return {
            'query_id': self.query_id,
            'operation': self.operation_type,
            'table': self.table_name,
            'duration_ms': self.duration_ms,
            'rows_read': self.rows_read,
            'rows_written': self.rows_written,
            'error': self.error,
            'timestamp': datetime.fromtimestamp(self.start_time).isoformat(),
            'sql': self.sql_query,
        }


def _durations(entries: List[StatementMetrics]) -> Dict[str, float]:
    durations = [entry.duration_ms for entry in entries]
    if not durations:
        return {}
    return {
        'min': min(durations),
        'max': max(durations),
        'mean': statistics.mean(durations),
        'median': statistics.median(durations),
    }


class MetricsCollector:
    """Keeps a bounded history of statements plus running totals."""

    def __init__(self,
                 max_history: int = 10000,
                 enable_detailed_logging: bool = False):
        """
        Args:
            max_history: Statements kept for history and duration stats
            enable_detailed_logging: Whether to keep each statement's SQL
        """
        self.max_history = max_history
        self.enable_detailed_logging = enable_detailed_logging
        self._lock = threading.Lock()
        self._reset()

    def _reset(self):
        self._history: Deque[StatementMetrics] = deque(maxlen=self.max_history)
        self._operations: Counter = Counter()
        self._table_statements: Counter = Counter()
        self._table_errors: Counter = Counter()
        self._total = 0
        self._errors = 0
        self._rows_read = 0
        self._rows_written = 0

    def start_query(self,
                    query_id: str,
                    operation_type: str,
                    table_name: Optional[str] = None,
                    sql_query: Optional[str] = None,
                    context: Optional[Dict[str, Any]] = None) -> StatementMetrics:
        """Begin tracking a statement about to run."""
        entry = StatementMetrics(
            query_id=query_id,
            operation_type=operation_type,
            table_name=table_name,
            start_time=time.time(),
            sql_query=sql_query if self.enable_detailed_logging else None,
            context=context or {}
        )

        with self._lock:
            self._history.append(entry)
            self._total += 1
            self._operations[operation_type] += 1
            if table_name:
                self._table_statements[table_name] += 1

        return entry

    def complete_query(self,
                       entry: StatementMetrics,
                       rows_read: Optional[int] = None,
                       rows_written: Optional[int] = None,
                       error: Optional[str] = None):
        """Record how a tracked statement finished."""
        entry.complete(rows_read=rows_read, rows_written=rows_written, error=error)

        with self._lock:
            if error:
                self._errors += 1
                if entry.table_name:
                    self._table_errors[entry.table_name] += 1
                return
            self._rows_read += rows_read or 0
            self._rows_written += rows_written or 0

    def get_stats(self) -> Dict[str, Any]:
        """Totals plus read/write breakdowns over the kept history."""
        with self._lock:
            done = [e for e in self._history if e.duration_ms is not None and e.error is None]
            reads = [e for e in done if not e.is_write]
            writes = [e for e in done if e.is_write]
            failed = [e for e in self._history if e.error is not None]

            return {
                'summary': {
                    'total_statements': self._total,
                    'total_errors': self._errors,
                    'error_rate': self._errors / self._total if self._total else 0,
                },
                'operations': {
                    **{op: 0 for op in READ_OPERATIONS + WRITE_OPERATIONS},
                    **self._operations,
                },
                'tables': {
                    'statements': dict(self._table_statements),
                    'errors': dict(self._table_errors),
                },
                'reads': {
                    'rows_read': self._rows_read,
                    'durations_ms': _durations(reads),
                },
                'writes': {
                    'rows_written': self._rows_written,
                    'durations_ms': _durations(writes),
                },
                'recent_errors': [e.as_dict() for e in failed[-10:]],
            }

    def get_query_history(self,
                          limit: int = 100,
                          table_name: Optional[str] = None,
                          operation_type: Optional[str] = None,
                          include_errors: bool = True) -> List[Dict[str, Any]]:
        """The last ``limit`` statements matching the filters, oldest first."""
        with self._lock:
            entries = [
                e for e in self._history
                if (table_name is None or e.table_name == table_name)
                and (operation_type is None or e.operation_type == operation_type)
                and (include_errors or e.error is None)
            ]
        return [e.as_dict() for e in entries[-limit:]]

    def reset_stats(self):
        with self._lock:
            self._reset()
