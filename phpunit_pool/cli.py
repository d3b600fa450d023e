"""CLI entry point for running PHPUnit test files in parallel."""

import argparse
import logging
import os
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from phpunit_pool.config import PoolConfig, load_config
from phpunit_pool.discovery import Scanner, count_test_cases, filter_by_name
from phpunit_pool.discovery.cases import find_test_cases
from phpunit_pool.errors import PoolError, StorageError
from phpunit_pool.execution.pool import WorkerPool
from phpunit_pool.execution.progress import LoggingProgressSink
from phpunit_pool.execution.runner import Runner
from phpunit_pool.models.failure import Failure
from phpunit_pool.models.result import Unit, UnitResult
from phpunit_pool.models.summary import RunOutput
from phpunit_pool.parser.phpunit import PHPUnitParser
from phpunit_pool.storage import JSONStorage

log = logging.getLogger("phpunit_pool")

STATUS_SYMBOLS = {
    True: "✓",
    False: "✗",
}


def path_key(project_path: Path, path: str) -> str:
    """Normalize a test path for matching files against reported failures.

    Paths are made relative to the project when possible, use forward
    slashes, lose their ``.php`` suffix and are lower-cased.
    """
    key = relative_to_project(project_path, path)
    return key.replace("\\", "/").removesuffix(".php").lower()


def relative_to_project(project_path: Path, path: str) -> str:
    """Return an absolute ``path`` relative to the project.

    Relative paths and paths outside the project are returned unchanged.
    """
    if not os.path.isabs(path):
        return path
    try:
        relative = os.path.relpath(path, os.path.abspath(project_path))
    except ValueError:
        return path
    if relative.startswith(".."):
        return path
    return relative


def filter_to_failed(
    project_path: Path, paths: Sequence[str], failed: Iterable[str]
) -> list[str]:
    """Keep the paths that match one of the failed file paths."""
    failed_keys = {path_key(project_path, path) for path in failed}
    return [path for path in paths if path_key(project_path, path) in failed_keys]


def discover(config: PoolConfig) -> list[str]:
    """Find test files and apply the configured name filter."""
    scanner = Scanner(config.paths_to_ignore)
    found = scanner.scan(config.resolved_test_path().absolute())
    return filter_by_name(found, config.name_filter)


def parse_failures(
    parser: PHPUnitParser, results: Sequence[UnitResult]
) -> list[Failure]:
    """Parse failures from every failed result."""
    failures: list[Failure] = []
    for result in results:
        if result.success:
            continue
        parsed = parser.parse_failures(result)
        if not parsed:
            log.warning(
                "%s failed but no failing test cases were found in its output%s",
                result.path,
                f" ({result.error})" if result.error else "",
            )
        failures.extend(parsed)
    return failures


def log_results_summary(
    log: logging.Logger, results: Sequence[UnitResult], output: RunOutput
) -> None:
    """Log a formatted summary of a run."""
    meta = output.meta
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for result in sorted(results, key=lambda r: r.path):
        if not result.success:
            log.info(
                "%s %s (%.2fs)",
                STATUS_SYMBOLS[result.success],
                result.path,
                result.duration,
            )

    for failure in output.details:
        location = f" at {failure.file}:{failure.line}" if failure.file else ""
        log.info("  %s::%s%s", failure.file_path, failure.test_name, location)
        if failure.message:
            log.info("    %s", failure.message.splitlines()[0])

    log.info(
        "Files: %d total, %d passed, %d failed | Failed test cases: %d | "
        "Duration: %s | Workers: %d",
        meta.total_test_files,
        meta.passed_test_files,
        meta.failed_test_files,
        meta.failed_test_cases,
        meta.duration,
        meta.workers,
    )
    symbol = STATUS_SYMBOLS[meta.failed_test_files == 0]
    if meta.failed_test_files:
        log.info(
            "%s %d test file(s) failed with %d test case failure(s)",
            symbol,
            meta.failed_test_files,
            meta.failed_test_cases,
        )
    else:
        log.info("%s All test files passed", symbol)


def execute(
    pool: WorkerPool,
    config: PoolConfig,
    paths: Sequence[str],
    *,
    count_cases: bool = True,
) -> tuple[list[UnitResult], float]:
    """Run test files on the pool with a logging progress sink attached."""
    units = [
        Unit(path=relative_to_project(config.project_path, path)) for path in paths
    ]
    total_cases = count_test_cases(list(paths)) if count_cases else 0
    pool.attach_progress_sink(LoggingProgressSink(len(units), total_cases))
    results, duration, error = pool.execute_with_options(units, config.fail_fast)
    if error is not None:
        raise error
    return results, duration


def select_previously_failed(
    config: PoolConfig, storage: JSONStorage
) -> list[str] | None:
    """Return the test files that failed in the stored run.

    ``None`` means there is no usable stored run and everything should run.
    """
    try:
        last = storage.load()
    except StorageError as e:
        log.warning("No previous run found (%s). Running all tests.", e)
        return None

    failed = [failure.file_path for failure in last.details]
    if not failed:
        log.info("No failed tests in last run. Nothing to run.")
        return []

    matched = filter_to_failed(config.project_path, discover(config), failed)
    if not matched:
        log.warning("No test files match the last run's failures. Skipping.")
    return matched


def run(
    config: PoolConfig,
    *,
    only_failed: bool = False,
    rerun_failures: bool = False,
) -> int:
    """Run the test suite and return the exit code."""
    storage = JSONStorage(config)
    parser = PHPUnitParser.from_config(config)
    pool = WorkerPool(config, Runner(config), parser)

    paths: list[str] | None = None
    if only_failed:
        paths = select_previously_failed(config, storage)
        if paths == []:
            return 0
    if paths is None:
        paths = discover(config)

    if not paths:
        log.info("No tests to execute")
        return 0

    results, duration = execute(pool, config, paths)
    failures = parse_failures(parser, results)

    failed_results = [result for result in results if not result.success]
    if rerun_failures and failed_results:
        rerun_paths = [
            str((config.project_path / result.path).absolute())
            for result in failed_results
        ]
        log.info("Re-running %d failed test file(s)", len(rerun_paths))
        results, duration = execute(pool, config, rerun_paths, count_cases=False)
        failures = parse_failures(parser, results)

    output = storage.save(results, failures, duration, pool.worker_count)
    log_results_summary(log, results, output)

    return 1 if output.meta.failed_test_files else 0


def list_tests(config: PoolConfig, *, test_cases: bool = False) -> int:
    """Log discovered test files, or the test cases inside them."""
    paths = discover(config)
    if not paths:
        log.info("No test files found")
        return 0

    total = 0
    for path in paths:
        log.info("%s", relative_to_project(config.project_path, path))
        if test_cases:
            cases = find_test_cases(Path(path))
            total += len(cases)
            for case in cases:
                log.info("  - %s", case)

    if test_cases:
        log.info("Found %d test case(s) in %d file(s)", total, len(paths))
    else:
        log.info("Found %d test file(s)", len(paths))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with configuration values",
    )
    common.add_argument(
        "--project-path",
        type=Path,
        default=None,
        help="Project root; test processes run from here",
    )
    common.add_argument(
        "--test-path",
        type=Path,
        default=None,
        help="Directory to scan for *Test.php files, relative to the project",
    )
    common.add_argument(
        "--filter",
        dest="name_filter",
        default=None,
        help="Only use test files whose name matches (wildcards or substring)",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser = argparse.ArgumentParser(
        prog="phpunit-pool",
        description="Run PHPUnit test files in parallel",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", parents=[common], help="Run test files in parallel"
    )
    run_parser.add_argument(
        "-p",
        "--processors",
        type=int,
        default=None,
        help="Number of parallel workers",
    )
    run_parser.add_argument(
        "--fail-fast",
        action="store_true",
        default=None,
        help="Stop starting new test files after the first failure",
    )
    run_parser.add_argument(
        "--only-failed",
        action="store_true",
        help="Only run test files that failed in the last run",
    )
    run_parser.add_argument(
        "--rerun-failures",
        action="store_true",
        help="Run failed test files once more and keep the second result",
    )

    list_parser = subparsers.add_parser(
        "list", parents=[common], help="List discovered test files"
    )
    list_parser.add_argument(
        "-c",
        "--test-cases",
        action="store_true",
        help="List test cases instead of test files",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(
            args.config,
            project_path=args.project_path,
            test_path=args.test_path,
            name_filter=args.name_filter,
            processors=getattr(args, "processors", None),
            fail_fast=getattr(args, "fail_fast", None),
        )
        if args.command == "list":
            exit_code = list_tests(config, test_cases=args.test_cases)
        else:
            exit_code = run(
                config,
                only_failed=args.only_failed,
                rerun_failures=args.rerun_failures,
            )
    except PoolError as e:
        log.error("%s", e)
        exit_code = 2

    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
