"""Recording stand-in for a D1 database binding."""

from typing import Any, List, Optional, Tuple

from d1driver.execution.result import D1Result


class FakePreparedStatement:
    def __init__(self, db: "FakeD1", sql: str, params: Tuple[Any, ...] = ()):
        self.db = db
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> "FakePreparedStatement":
        self.db.bind_calls.append(params)
        return FakePreparedStatement(self.db, self.sql, params)

    def _finish(self, mode: str):
        self.db.calls.append((mode, self.sql, list(self.params)))
        if self.db.error is not None:
            raise self.db.error
        return self.db.result

    async def all(self):
        return self._finish("all")

    async def run(self):
        return self._finish("run")


class FakeD1:
    """Records prepared statements and returns a canned result."""

    def __init__(self, result: Any = None, error: Optional[Exception] = None):
        self.result = result if result is not None else D1Result(success=True, results=[])
        self.error = error
        self.calls: List[Tuple[str, str, List[Any]]] = []
        self.bind_calls: List[Tuple[Any, ...]] = []

    def prepare(self, sql: str) -> FakePreparedStatement:
        return FakePreparedStatement(self, sql)


class SyncFakeD1(FakeD1):
    """Binding whose terminal calls return plain values instead of awaitables."""

    def prepare(self, sql: str):
        statement = FakePreparedStatement(self, sql)
        return _SyncStatement(statement)


class _SyncStatement:
    def __init__(self, statement: FakePreparedStatement):
        self.statement = statement

    def bind(self, *params: Any) -> "_SyncStatement":
        return _SyncStatement(self.statement.bind(*params))

    def all(self):
        return self.statement._finish("all")

    def run(self):
        return self.statement._finish("run")
