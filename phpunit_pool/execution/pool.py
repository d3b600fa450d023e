"""Worker pool running units concurrently against a shared queue."""

import logging
import queue
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeAlias

from phpunit_pool.config import PoolConfig
from phpunit_pool.errors import ConfigError, PoolError
from phpunit_pool.execution.progress import ProgressSink
from phpunit_pool.execution.runner import Runner
from phpunit_pool.models.failure import CaseCounts
from phpunit_pool.models.result import Unit, UnitResult
from phpunit_pool.parser.phpunit import PHPUnitParser

log = logging.getLogger(__name__)

ExecutionOutcome: TypeAlias = tuple[list[UnitResult], float, PoolError | None]


@dataclass(kw_only=True)
class _RunState:
    """Counters and cancellation flag shared by the workers of one run."""

    completed: int = 0
    passed: int = 0
    failed: int = 0
    cancelled: bool = False


class WorkerPool:
    """Runs units on a fixed number of worker threads.

    Idle workers pull the next unit from one shared queue, so long and short
    test files balance across workers. Results come back in completion order.
    """

    def __init__(
        self,
        config: PoolConfig,
        runner: Runner,
        parser: PHPUnitParser | None = None,
    ) -> None:
        if config is None:
            raise ConfigError("WorkerPool requires a configuration")
        if runner is None:
            raise ConfigError("WorkerPool requires a runner")
        self.config = config
        self.runner = runner
        self.parser = parser
        self._progress: ProgressSink | None = None

    @property
    def worker_count(self) -> int:
        """Number of workers started for a run."""
        return max(1, self.config.processors)

    def attach_progress_sink(self, sink: ProgressSink | None) -> None:
        """Set or clear the observer notified after every completed unit."""
        self._progress = sink

    def execute(self, units: Sequence[Unit]) -> ExecutionOutcome:
        """Run every unit, without stopping on failures."""
        return self.execute_with_options(units, fail_fast=False)

    def execute_with_options(
        self, units: Sequence[Unit], fail_fast: bool
    ) -> ExecutionOutcome:
        """Run units and block until all workers have stopped.

        Args:
            units: Units to run; each is run at most once
            fail_fast: Stop handing out units once any result has failed.
                Units already running finish and are recorded; units never
                started are dropped from the results.

        Returns:
            Results in completion order, elapsed wall clock seconds, and an
            error slot that failed units never fill

        """
        if not units:
            log.info("No units to execute")
            return [], 0.0, None

        pending: queue.Queue[Unit] = queue.Queue()
        for unit in units:
            pending.put(unit)

        lock = threading.Lock()
        state = _RunState()
        results: list[UnitResult] = []
        crashes: list[Exception] = []

        def work(worker_id: int) -> None:
            while True:
                with lock:
                    if state.cancelled:
                        return
                    try:
                        unit = pending.get_nowait()
                    except queue.Empty:
                        return

                try:
                    result = self.runner.run(unit, worker_id)
                except Exception as e:
                    log.error("Worker %d crashed on %s", worker_id, unit.path)
                    with lock:
                        crashes.append(e)
                        state.cancelled = True
                    return

                with lock:
                    try:
                        self._record(result, results, state)
                    except Exception as e:
                        log.error(
                            "Worker %d crashed recording %s", worker_id, unit.path
                        )
                        crashes.append(e)
                        state.cancelled = True
                        return
                    if fail_fast and not result.success and not state.cancelled:
                        state.cancelled = True
                        log.info(
                            "Fail-fast: %s failed, no further units will start",
                            result.path,
                        )

        worker_count = self.worker_count
        log.info(
            "Running %d unit(s) on %d worker(s)%s",
            len(units),
            worker_count,
            " (fail-fast)" if fail_fast else "",
        )

        start = time.monotonic()
        workers = [
            threading.Thread(
                target=work, args=(worker_id,), name=f"phpunit-pool-{worker_id}"
            )
            for worker_id in range(1, worker_count + 1)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        elapsed = time.monotonic() - start

        self._finish()

        if crashes:
            raise crashes[0]

        log.info(
            "Completed %d of %d unit(s) in %.2fs", len(results), len(units), elapsed
        )
        return results, elapsed, None

    def case_counts(self, result: UnitResult) -> CaseCounts:
        """Count passed and failed test cases for one result."""
        if self.parser is not None:
            return self.parser.parse_case_counts(result)
        if result.success:
            return CaseCounts(passed=1, failed=0)
        return CaseCounts(passed=0, failed=1)

    def _record(
        self, result: UnitResult, results: list[UnitResult], state: _RunState
    ) -> None:
        # Caller holds the run lock.
        counts = self.case_counts(result)
        results.append(result)
        state.completed += 1
        state.passed += counts.passed
        state.failed += counts.failed

        if self._progress is None:
            return
        try:
            self._progress.update(state.completed, state.passed, state.failed)
        except Exception:
            log.exception("Progress sink update failed")

    def _finish(self) -> None:
        if self._progress is None:
            return
        try:
            self._progress.finish()
        except Exception:
            log.exception("Progress sink finish failed")
