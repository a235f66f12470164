"""Tests for statement execution against a database binding."""

import logging

import pytest

from d1driver.execution.executor import StatementExecutor
from d1driver.execution.translator import Statement
from d1driver.metrics import MetricsCollector

from .fake_d1 import FakeD1, SyncFakeD1


class TestStatementExecutor:
    """Test StatementExecutor behavior."""

    @pytest.fixture
    def executor(self):
        return StatementExecutor()

    @pytest.mark.asyncio
    async def test_binds_params_and_runs_all(self, executor):
        """Test params are bound positionally before all()."""
        db = FakeD1()
        await executor.execute(db, Statement("SELECT * FROM t WHERE id = ?", [3]))

        assert db.bind_calls == [(3,)]
        assert db.calls == [("all", "SELECT * FROM t WHERE id = ?", [3])]

    @pytest.mark.asyncio
    async def test_skips_bind_without_params(self, executor):
        """Test bind() is not called when nothing is bound."""
        db = FakeD1()
        await executor.execute(db, Statement("SELECT * FROM t", []))

        assert db.bind_calls == []
        assert db.calls == [("all", "SELECT * FROM t", [])]

    @pytest.mark.asyncio
    async def test_run_mode(self, executor):
        """Test writes use run()."""
        db = FakeD1()
        await executor.execute(db, Statement("DELETE FROM t", []), mode="run")

        assert db.calls[0][0] == "run"

    @pytest.mark.asyncio
    async def test_result_returned_unchanged(self, executor):
        """Test the binding result is passed through as-is."""
        raw = {"success": True, "results": [{"id": 1}], "meta": {"served_by": "test"}}
        db = FakeD1(result=raw)

        result = await executor.execute(db, Statement("SELECT * FROM t", []))

        assert result is raw

    @pytest.mark.asyncio
    async def test_sync_binding(self, executor):
        """Test bindings returning plain values are supported."""
        raw = {"success": True, "results": []}
        db = SyncFakeD1(result=raw)

        result = await executor.execute(db, Statement("SELECT * FROM t WHERE a = ?", ["x"]))

        assert result is raw
        assert db.calls == [("all", "SELECT * FROM t WHERE a = ?", ["x"])]

    @pytest.mark.asyncio
    async def test_errors_propagate_unchanged(self, executor):
        """Test binding errors are re-raised without wrapping."""
        error = RuntimeError("UNIQUE constraint failed: users.email")
        db = FakeD1(error=error)

        with pytest.raises(RuntimeError) as exc_info:
            await executor.execute(db, Statement("INSERT INTO users (email) VALUES (?)", ["a"]), mode="run")

        assert exc_info.value is error
        assert len(db.calls) == 1  # No retries
        assert executor.get_stats()["error_count"] == 1

    @pytest.mark.asyncio
    async def test_error_is_logged(self, executor, caplog):
        """Test failures are logged with the correlation id."""
        db = FakeD1(error=RuntimeError("boom"))

        with caplog.at_level(logging.ERROR, logger="d1driver.execution.executor"):
            with pytest.raises(RuntimeError):
                await executor.execute(
                    db, Statement("SELECT 1", []),
                    context={"correlation_id": "corr-1"}
                )

        assert any("corr-1" in r.getMessage() and "boom" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_query_logging(self, caplog):
        """Test statements are logged at DEBUG when enabled."""
        executor = StatementExecutor(log_queries=True)

        with caplog.at_level(logging.DEBUG, logger="d1driver.execution.executor"):
            await executor.execute(FakeD1(), Statement("SELECT * FROM t", []))

        assert any("Executing statement: SELECT * FROM t" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_slow_query_logging(self, caplog):
        """Test statements over the threshold are logged as slow."""
        executor = StatementExecutor(slow_query_ms=-1)

        with caplog.at_level(logging.WARNING, logger="d1driver.execution.executor"):
            await executor.execute(FakeD1(), Statement("SELECT * FROM t", []))

        assert any("Slow statement detected" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_stats(self, executor):
        """Test execution counters."""
        db = FakeD1()
        await executor.execute(db, Statement("SELECT * FROM t", []))
        await executor.execute(db, Statement("SELECT * FROM u", []))

        stats = executor.get_stats()
        assert stats["query_count"] == 2
        assert stats["error_count"] == 0
        assert stats["total_query_time_ms"] >= 0

        executor.reset_stats()
        assert executor.get_stats()["query_count"] == 0

    @pytest.mark.asyncio
    async def test_metrics_recorded(self):
        """Test metrics are collected with operation, table and row count."""
        collector = MetricsCollector()
        executor = StatementExecutor(metrics_collector=collector)
        db = FakeD1(result={"success": True, "results": [{"id": 1}, {"id": 2}]})

        await executor.execute(
            db, Statement("SELECT * FROM users", []),
            context={"operation": "get", "table": "users"}
        )

        stats = collector.get_stats()
        assert stats["summary"]["total_statements"] == 1
        assert stats["operations"]["get"] == 1
        assert stats["tables"]["statements"]["users"] == 1
        assert stats["reads"]["rows_read"] == 2
        assert stats["writes"]["rows_written"] == 0

    @pytest.mark.asyncio
    async def test_metrics_count_changes_for_writes(self):
        """Test writes record meta changes rather than returned rows."""
        collector = MetricsCollector()
        executor = StatementExecutor(metrics_collector=collector)
        db = FakeD1(result={"success": True, "results": [], "meta": {"changes": 4}})

        await executor.execute(
            db, Statement("UPDATE users SET active = ?", [False]), mode="run",
            context={"operation": "update", "table": "users"}
        )

        stats = collector.get_stats()
        assert stats["writes"]["rows_written"] == 4
        assert stats["reads"]["rows_read"] == 0
        history = collector.get_query_history()
        assert history[0]["rows_written"] == 4
        assert history[0]["rows_read"] is None

    @pytest.mark.asyncio
    async def test_metrics_record_errors(self):
        """Test failed statements are counted as errors."""
        collector = MetricsCollector()
        executor = StatementExecutor(metrics_collector=collector)

        with pytest.raises(RuntimeError):
            await executor.execute(
                FakeD1(error=RuntimeError("no such table: ghosts")),
                Statement("SELECT * FROM ghosts", []),
                context={"operation": "get", "table": "ghosts"}
            )

        stats = collector.get_stats()
        assert stats["summary"]["total_errors"] == 1
        assert stats["tables"]["errors"]["ghosts"] == 1
        assert stats["recent_errors"][0]["error"] == "no such table: ghosts"
