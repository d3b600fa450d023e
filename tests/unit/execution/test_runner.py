"""Tests for the single-unit runner."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from phpunit_pool.config import PoolConfig
from phpunit_pool.execution.runner import Runner
from phpunit_pool.models.result import Unit


@pytest.fixture
def config(tmp_path: Path) -> PoolConfig:
    """Create a configuration rooted in a temporary project."""
    return PoolConfig(project_path=tmp_path, database_prefix="app_test")


@pytest.fixture
def runner(config: PoolConfig) -> Runner:
    """Create runner."""
    return Runner(config)


def completed(returncode: int, stdout: bytes) -> Mock:
    return Mock(returncode=returncode, stdout=stdout)


def test_command_without_filter(runner: Runner, config: PoolConfig) -> None:
    """Runs the test file with the project's PHPUnit binary."""
    cmd = runner.command(Unit(path="tests/Unit/UserTest.php"))

    assert cmd == [
        str(config.project_path / "vendor/bin/phpunit"),
        "tests/Unit/UserTest.php",
    ]


def test_command_with_filter(runner: Runner) -> None:
    """Adds --filter when a case filter is given."""
    cmd = runner.command(Unit(path="tests/Unit/UserTest.php", case_filter="testA"))

    assert cmd[-2:] == ["--filter", "testA"]


def test_environment_sets_worker_database(runner: Runner) -> None:
    """Injects the database reserved for the worker."""
    env = runner.environment(3)

    assert env["DB_DATABASE"] == "app_test_3"


def test_successful_run(runner: Runner, config: PoolConfig) -> None:
    """Exit code 0 is a success and output is captured verbatim."""
    unit = Unit(path="tests/Unit/UserTest.php")

    with patch(
        "phpunit_pool.execution.runner.subprocess.run",
        return_value=completed(0, b"OK (1 test, 1 assertion)\n"),
    ) as run_mock:
        result = runner.run(unit, worker_id=2)

    assert result.success is True
    assert result.unit == unit
    assert result.output == "OK (1 test, 1 assertion)\n"
    assert result.error is None
    assert result.worker_id == 2
    assert result.duration >= 0

    kwargs = run_mock.call_args.kwargs
    assert kwargs["cwd"] == config.project_path
    assert kwargs["env"]["DB_DATABASE"] == "app_test_2"
    assert kwargs["stdout"] == subprocess.PIPE
    assert kwargs["stderr"] == subprocess.STDOUT


def test_failed_run(runner: Runner) -> None:
    """A non-zero exit code is a failure with the output kept."""
    with patch(
        "phpunit_pool.execution.runner.subprocess.run",
        return_value=completed(1, b"FAILURES!\n"),
    ):
        result = runner.run(Unit(path="tests/Unit/UserTest.php"), worker_id=1)

    assert result.success is False
    assert result.output == "FAILURES!\n"
    assert result.error == "exit status 1"


def test_undecodable_output_is_replaced(runner: Runner) -> None:
    """Invalid UTF-8 does not break the run."""
    with patch(
        "phpunit_pool.execution.runner.subprocess.run",
        return_value=completed(0, b"caf\xe9\n"),
    ):
        result = runner.run(Unit(path="tests/Unit/UserTest.php"), worker_id=1)

    assert result.output == "caf�\n"


def test_spawn_failure_is_reported_not_raised(runner: Runner) -> None:
    """A binary that cannot start gives a failed result with empty output."""
    with patch(
        "phpunit_pool.execution.runner.subprocess.run",
        side_effect=FileNotFoundError("No such file or directory: 'phpunit'"),
    ):
        result = runner.run(Unit(path="tests/Unit/UserTest.php"), worker_id=1)

    assert result.success is False
    assert result.output == ""
    assert "No such file" in (result.error or "")


def test_run_path_treats_empty_filter_as_none(runner: Runner) -> None:
    """run_path builds the unit from plain arguments."""
    with patch(
        "phpunit_pool.execution.runner.subprocess.run",
        return_value=completed(0, b""),
    ) as run_mock:
        result = runner.run_path("tests/Unit/UserTest.php", "", 4)

    assert result.unit == Unit(path="tests/Unit/UserTest.php")
    assert "--filter" not in run_mock.call_args.args[0]
