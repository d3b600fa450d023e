"""Progress reporting for the worker pool."""

import logging
from typing import Protocol

log = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Observer notified by the worker pool after every completed unit.

    Calls are serialized by the pool. ``completed`` never decreases within one
    run, and ``finish`` is called once after all workers have stopped.
    """

    def update(self, completed: int, passed: int, failed: int) -> None:
        """Record that ``completed`` units have finished so far."""

    def finish(self) -> None:
        """Record that the run is over."""


class LoggingProgressSink:
    """Progress sink that reports through the logging module."""

    def __init__(self, total_units: int, total_cases: int = 0) -> None:
        self.total_units = total_units
        self.total_cases = total_cases
        self.completed = 0
        self.passed = 0
        self.failed = 0

    @property
    def label(self) -> str:
        """Describe what is being run, preferring the test case count."""
        if self.total_cases > 0:
            return f"{self.total_cases} test cases"
        return f"{self.total_units} files"

    def update(self, completed: int, passed: int, failed: int) -> None:
        self.completed = completed
        self.passed = passed
        self.failed = failed
        log.info(
            "Running tests (%s): [success: %d | failed: %d] %d/%d",
            self.label,
            passed,
            failed,
            completed,
            self.total_units,
        )

    def finish(self) -> None:
        log.info(
            "Finished %d/%d files: %d passed, %d failed test cases",
            self.completed,
            self.total_units,
            self.passed,
            self.failed,
        )
