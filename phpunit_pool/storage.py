"""JSON persistence of run results."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from pydantic import ValidationError

from phpunit_pool.config import PoolConfig
from phpunit_pool.errors import StorageError
from phpunit_pool.models.failure import Failure
from phpunit_pool.models.result import UnitResult
from phpunit_pool.models.summary import RunMeta, RunOutput

log = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    """Format a duration like ``1m2.5s`` or ``850ms``."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    minutes, secs = divmod(seconds, 60)
    if minutes < 1:
        return f"{secs:.3f}s"
    return f"{int(minutes)}m{secs:.3f}s"


def summarize(
    results: Sequence[UnitResult],
    failures: Sequence[Failure],
    duration: float,
    workers: int,
    now: datetime | None = None,
) -> RunMeta:
    """Build the aggregate summary of one run."""
    passed = sum(1 for result in results if result.success)
    timestamp = (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    return RunMeta(
        total_test_files=len(results),
        failed_test_files=len(results) - passed,
        passed_test_files=passed,
        failed_test_cases=len(failures),
        duration=format_duration(duration),
        duration_seconds=duration,
        workers=max(1, workers),
        timestamp=timestamp,
    )


class JSONStorage:
    """Stores the last run in the configured results file."""

    def __init__(self, config: PoolConfig) -> None:
        self.config = config

    def save(
        self,
        results: Sequence[UnitResult],
        failures: Sequence[Failure],
        duration: float,
        workers: int,
    ) -> RunOutput:
        """Summarize a run and write it to disk."""
        output = RunOutput(
            meta=summarize(results, failures, duration, workers),
            details=list(failures),
        )
        self.save_output(output)
        return output

    def save_output(self, output: RunOutput) -> None:
        """Write a complete output, replacing the stored one."""
        path = self.config.output_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(output.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write results to {path}: {e}") from e
        log.info("Results saved to %s", path)

    def load(self) -> RunOutput:
        """Read the stored output.

        Raises:
            StorageError: If there is no stored run or it cannot be parsed

        """
        path = self.config.output_path()
        try:
            data = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read results file {path}: {e}") from e

        try:
            return RunOutput.model_validate_json(data)
        except ValidationError as e:
            raise StorageError(f"Failed to parse results file {path}: {e}") from e
