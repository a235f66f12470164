"""Errors raised by d1driver.

Errors coming from the database binding itself are never wrapped in
these classes; they reach the caller as the binding raised them.
"""

from typing import Optional, Dict, Any, List
import uuid


class D1DriverError(Exception):
    """Base class for errors raised by d1driver itself.

    Each error carries a code, the table/operation/column it concerns,
    hints for the caller and a correlation id matching the log lines
    written for it.
    """

    code = "D1DRIVER_ERROR"
    default_suggestions: List[str] = []

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        correlation_id: Optional[str] = None,
        **details: Any
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.code
        self.context = dict(context or {})
        self.context.update({key: value for key, value in details.items() if value is not None})
        self.suggestions = list(suggestions or self.default_suggestions)
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
            "suggestions": self.suggestions,
            "correlation_id": self.correlation_id
        }

    def __str__(self) -> str:
        headline = f"{self.error_code}: {self.message}"
        if self.context:
            where = " ".join(f"{key}={value}" for key, value in self.context.items())
            headline += f" [{where}]"

        lines = [headline]
        lines.extend(f"  hint: {suggestion}" for suggestion in self.suggestions)
        lines.append(f"  correlation_id: {self.correlation_id}")
        return "\n".join(lines)


class ValidationError(D1DriverError):
    """Caller input that cannot become a statement, such as an empty entity."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        operation: Optional[str] = None,
        field_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, table=table_name, operation=operation, field=field_name, **kwargs)


class QueryError(D1DriverError):
    """A generated statement failed verification before execution."""

    code = "QUERY_ERROR"

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        table_name: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs
    ):
        if query and len(query) > 200:
            query = query[:200] + "..."
        super().__init__(message, query=query, table=table_name, operation=operation, **kwargs)


class ConnectionError(D1DriverError):
    """The local DuckDB file backing LocalD1Database could not be opened.

    Remote D1 bindings are owned by the host; their failures surface as
    the binding's own exceptions.
    """

    code = "CONNECTION_ERROR"
    default_suggestions = [
        "Check that the directory holding the local database file exists",
        "Check that the path points at a DuckDB file and not another format",
        "Close other processes holding the local file open for writing",
    ]

    def __init__(
        self,
        message: str,
        database_path: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, database=database_path, **kwargs)
