"""Models for units of work and their execution results."""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class Unit:
    """One schedulable test file, optionally narrowed to a single test case."""

    path: str
    case_filter: str | None = None


@dataclass(frozen=True, kw_only=True)
class UnitResult:
    """Result of running a single unit as an external process.

    ``success`` reflects the process exit status only. It does not promise that
    failure blocks can (or cannot) be found in ``output``.
    """

    unit: Unit
    success: bool
    output: str = ""
    error: str | None = None
    duration: float = 0.0
    worker_id: int = 0

    @property
    def path(self) -> str:
        """Path of the test file that was executed."""
        return self.unit.path
