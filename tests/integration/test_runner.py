"""Integration tests running a real process through the runner and pool."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

import pytest

from phpunit_pool.cli import main
from phpunit_pool.config import PoolConfig
from phpunit_pool.execution import Runner, WorkerPool
from phpunit_pool.models.result import Unit
from phpunit_pool.parser import PHPUnitParser
from phpunit_pool.storage import JSONStorage

CreateTest: TypeAlias = Callable[[str], Path]


@pytest.fixture
def config(php_project: Path) -> PoolConfig:
    """Create a configuration for the fake project."""
    return PoolConfig(
        project_path=php_project,
        test_path=Path("tests"),
        processors=3,
        database_prefix="it",
    )


def test_runner_passes_worker_database(
    config: PoolConfig, create_test: CreateTest
) -> None:
    """The process sees the database reserved for its worker."""
    create_test("UserTest")

    result = Runner(config).run(Unit(path="tests/Unit/UserTest.php"), worker_id=2)

    assert result.success is True
    assert "database=it_2" in result.output
    assert "OK (2 tests, 2 assertions)" in result.output


def test_runner_passes_case_filter(
    config: PoolConfig, create_test: CreateTest
) -> None:
    """A case filter is forwarded as --filter."""
    create_test("UserTest")

    result = Runner(config).run(
        Unit(path="tests/Unit/UserTest.php", case_filter="testWorks"), worker_id=1
    )

    assert "filter=testWorks" in result.output


def test_runner_reports_missing_binary(tmp_path: Path) -> None:
    """A missing PHPUnit binary is a failed result, not an exception."""
    config = PoolConfig(project_path=tmp_path)

    result = Runner(config).run(Unit(path="tests/UserTest.php"), worker_id=1)

    assert result.success is False
    assert result.output == ""
    assert result.error


def test_failing_process_is_parsed(
    config: PoolConfig, create_test: CreateTest, php_project: Path
) -> None:
    """A failing file yields a structured failure."""
    create_test("UserFailingTest")

    result = Runner(config).run(
        Unit(path="tests/Unit/UserFailingTest.php"), worker_id=1
    )
    failures = PHPUnitParser().parse_failures(result)

    assert result.success is False
    assert result.error == "exit status 1"
    assert len(failures) == 1
    failure = failures[0]
    assert failure.test_name == "testBroken"
    assert failure.message == "Failed asserting that two values are equal."
    assert failure.error_details == '{\n    "expected": true\n}'
    assert failure.line == 12
    assert failure.file.endswith("tests/Unit/UserFailingTest.php")


def test_pool_runs_processes_in_parallel(
    config: PoolConfig, create_test: CreateTest
) -> None:
    """Each unit runs once with a database matching its worker."""
    units = []
    for i in range(9):
        create_test(f"Case{i}Test")
        units.append(Unit(path=f"tests/Unit/Case{i}Test.php"))

    results, _, error = WorkerPool(config, Runner(config)).execute(units)

    assert error is None
    assert sorted(r.path for r in results) == sorted(u.path for u in units)
    for result in results:
        assert f"database=it_{result.worker_id}" in result.output


def test_cli_run_stores_results(
    php_project: Path,
    create_test: CreateTest,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """The run command executes files and writes the results file."""
    create_test("UserTest")
    create_test("OrderFailingTest")

    with caplog.at_level(logging.INFO), pytest.raises(SystemExit) as exc_info:
        main(
            [
                "run",
                "--project-path",
                str(php_project),
                "--test-path",
                "tests",
                "-p",
                "2",
            ]
        )

    assert exc_info.value.code == 1
    stored = JSONStorage(PoolConfig(project_path=php_project)).load()
    assert stored.meta.total_test_files == 2
    assert stored.meta.failed_test_files == 1
    assert [f.test_name for f in stored.details] == ["testBroken"]
    assert "Test Results Summary:" in caplog.text


def test_relative_project_path(
    php_project: Path,
    create_test: CreateTest,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A project given relative to the working directory runs its tests."""
    create_test("UserTest")
    monkeypatch.chdir(php_project.parent)
    config = PoolConfig(project_path=Path(php_project.name), database_prefix="it")

    result = Runner(config).run(Unit(path="tests/Unit/UserTest.php"), worker_id=1)

    assert result.error is None
    assert result.success is True
    assert "database=it_1" in result.output


def test_cli_run_with_relative_project_path(
    php_project: Path,
    create_test: CreateTest,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The run command accepts a relative --project-path."""
    create_test("UserTest")
    create_test("OrderTest")
    monkeypatch.chdir(php_project.parent)

    with pytest.raises(SystemExit) as exc_info:
        main(["run", "--project-path", php_project.name, "--test-path", "tests"])

    assert exc_info.value.code == 0
    stored = JSONStorage(PoolConfig(project_path=php_project)).load()
    assert stored.meta.total_test_files == 2
    assert stored.meta.passed_test_files == 2
