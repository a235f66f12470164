"""Metrics for executed statements."""

from .collector import MetricsCollector, StatementMetrics

__all__ = [
    'MetricsCollector',
    'StatementMetrics',
]
