"""Finding test case methods inside a PHPUnit test file."""

import logging
import re
from pathlib import Path

from phpunit_pool.errors import DiscoveryError

log = logging.getLogger(__name__)

MODIFIERS = r"(?:(?:public|protected|private|static|final|abstract)\s+)*"

# public function testCreateUser(
TEST_METHOD_RE = re.compile(
    rf"^\s*{MODIFIERS}function\s+(test\w*)\s*\(", re.MULTILINE
)
# /** @test */ followed by a function declaration
ANNOTATED_METHOD_RE = re.compile(
    rf"@test\b(?:[^\n]*\n)*?[^\n]*?function\s+(\w+)\s*\(", re.MULTILINE
)
# #[Test] attribute (PHPUnit 10+)
ATTRIBUTE_METHOD_RE = re.compile(
    rf"#\[Test\]\s*{MODIFIERS}function\s+(\w+)\s*\(", re.MULTILINE
)


def find_test_cases(path: Path) -> list[str]:
    """Return the sorted, unique test method names declared in a file.

    Raises:
        DiscoveryError: If the file cannot be read

    """
    try:
        content = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise DiscoveryError(f"Error reading file {path}: {e}") from e

    names = set(TEST_METHOD_RE.findall(content))
    names.update(ANNOTATED_METHOD_RE.findall(content))
    names.update(ATTRIBUTE_METHOD_RE.findall(content))
    return sorted(names)


def count_test_cases(paths: list[str]) -> int:
    """Count test cases across files, skipping files that cannot be read."""
    total = 0
    for path in paths:
        try:
            total += len(find_test_cases(Path(path)))
        except DiscoveryError as e:
            log.debug("Not counting cases of %s: %s", path, e)
    return total
