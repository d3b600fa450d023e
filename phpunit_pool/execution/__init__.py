"""Parallel execution of test files."""

from phpunit_pool.execution.pool import WorkerPool
from phpunit_pool.execution.progress import LoggingProgressSink, ProgressSink
from phpunit_pool.execution.runner import Runner

__all__ = ["LoggingProgressSink", "ProgressSink", "Runner", "WorkerPool"]
