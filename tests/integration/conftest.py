"""Fixtures for integration tests."""

import stat
import textwrap
from pathlib import Path
from typing import Protocol

import pytest

# Stands in for vendor/bin/phpunit. Files named *FailingTest.php fail with a
# PHPUnit style report; every run prints the database it was given.
FAKE_PHPUNIT = textwrap.dedent(
    """\
    #!/bin/sh
    file="$1"
    name=$(basename "$file" .php)
    echo "PHPUnit 10.5.0 by Sebastian Bergmann and contributors."
    echo "database=$DB_DATABASE"
    if [ -n "$SLEEP" ]; then sleep "$SLEEP"; fi
    case "$name" in
      *FailingTest)
        echo ""
        echo "There was 1 failure:"
        echo ""
        printf '%s\\n' "1) Tests\\\\Unit\\\\$name::testBroken"
        echo "Failed asserting that two values are equal."
        echo "{"
        echo "    \\"expected\\": true"
        echo "}"
        echo "$PWD/tests/Unit/$name.php:12"
        echo ""
        echo "FAILURES!"
        echo "Tests: 2, Assertions: 2, Failures: 1."
        exit 1
        ;;
    esac
    if [ "$2" = "--filter" ]; then
      echo "filter=$3"
    fi
    echo ""
    echo "OK (2 tests, 2 assertions)"
    """
)

TEST_CLASS = """<?php
class {name} extends TestCase
{{
    public function testWorks(): void {{}}
    public function testBroken(): void {{}}
}}
"""


class CreateTestFn(Protocol):
    """Protocol for test file creation function."""

    def __call__(self, name: str) -> Path:
        """Create a test file under tests/Unit and return its path."""


@pytest.fixture
def php_project(tmp_path: Path) -> Path:
    """Create a project with a fake PHPUnit binary."""
    binary = tmp_path / "vendor" / "bin" / "phpunit"
    binary.parent.mkdir(parents=True)
    binary.write_text(FAKE_PHPUNIT, encoding="utf-8")
    binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    (tmp_path / "tests" / "Unit").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def create_test(php_project: Path) -> CreateTestFn:
    """Return a function to create test files in the project."""

    def _create(name: str) -> Path:
        path = php_project / "tests" / "Unit" / f"{name}.php"
        path.write_text(TEST_CLASS.format(name=name), encoding="utf-8")
        return path

    return _create
