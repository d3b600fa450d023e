"""Runs a single test file as an external PHPUnit process."""

import logging
import os
import subprocess
import time

from phpunit_pool.config import PoolConfig
from phpunit_pool.models.result import Unit, UnitResult

log = logging.getLogger(__name__)


class Runner:
    """Executes one unit per call with a worker-scoped database name.

    There is no timeout and no retry: a hung process blocks the calling worker
    until it exits.
    """

    def __init__(self, config: PoolConfig) -> None:
        self.config = config

    def command(self, unit: Unit) -> list[str]:
        """Build the command line for a unit."""
        cmd = [str(self.config.phpunit_path()), unit.path]
        if unit.case_filter:
            cmd.extend(["--filter", unit.case_filter])
        return cmd

    def environment(self, worker_id: int) -> dict[str, str]:
        """Build the process environment for a worker."""
        env = dict(os.environ)
        env[self.config.database_env_var] = self.config.database_name(worker_id)
        return env

    def run(self, unit: Unit, worker_id: int) -> UnitResult:
        """Run a unit and capture its combined stdout and stderr.

        A process that cannot be started is reported as a failed result with
        ``error`` set and empty output.
        """
        cmd = self.command(unit)
        log.debug("Worker %d running: %s", worker_id, " ".join(cmd))

        start = time.monotonic()
        try:
            completed = subprocess.run(
                cmd,
                cwd=self.config.project_path.absolute(),
                env=self.environment(worker_id),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            log.debug("Worker %d could not start %s: %s", worker_id, unit.path, e)
            return UnitResult(
                unit=unit,
                success=False,
                error=str(e),
                duration=time.monotonic() - start,
                worker_id=worker_id,
            )

        duration = time.monotonic() - start
        output = completed.stdout.decode("utf-8", errors="replace")
        error = None
        if completed.returncode != 0:
            error = f"exit status {completed.returncode}"

        log.debug(
            "Worker %d finished %s: returncode=%d duration=%.2fs",
            worker_id,
            unit.path,
            completed.returncode,
            duration,
        )
        return UnitResult(
            unit=unit,
            success=completed.returncode == 0,
            output=output,
            error=error,
            duration=duration,
            worker_id=worker_id,
        )

    def run_path(self, path: str, case_filter: str, worker_id: int) -> UnitResult:
        """Run a test file by path; an empty ``case_filter`` runs every case."""
        return self.run(Unit(path=path, case_filter=case_filter or None), worker_id)
