"""Parses PHPUnit output into structured failures and test case counts.

PHPUnit prints every failing test case of a file into the same text stream.
The only delimiter between reports is a numbered line naming the test, e.g.::

    1) Tests\\Unit\\UserTest::testCreate
    Failed asserting that two arrays are equal.
    {
        "expected": [1],
        "actual": [2]
    }
    /app/tests/Unit/UserTest.php:42
    /app/vendor/phpunit/phpunit/src/Framework/Assert.php:120

Each block is read in three phases: the message, an optional brace-delimited
diagnostic block, and the stack trace.
"""

import logging
import re
from collections.abc import Sequence
from enum import Enum, auto

from phpunit_pool.config import PoolConfig
from phpunit_pool.models.failure import CaseCounts, Failure
from phpunit_pool.models.result import UnitResult
from phpunit_pool.parser.anchor import AnchorStrategy

log = logging.getLogger(__name__)

# OK (12 tests, 34 assertions)
ALL_PASSED_RE = re.compile(r"^OK \((\d+) tests?, \d+ assertions?\)", re.MULTILINE)
# Tests: 10, Assertions: 20, Failures: 3, Errors: 1.
SUMMARY_RE = re.compile(r"^Tests: (\d+), Assertions: \d+(?P<rest>.*)$", re.MULTILINE)
FAILURES_RE = re.compile(r"\bFailures: (\d+)")
ERRORS_RE = re.compile(r"\bErrors: (\d+)")
# Printed once after the last failure report
RESULT_BANNERS = frozenset({"FAILURES!", "ERRORS!"})

# /app/tests/Unit/UserTest.php:42
STACK_FRAME_RE = re.compile(r"^\s*(?P<path>\S.*?):(?P<line>\d+)\s*$")
WINDOWS_ABSOLUTE_RE = re.compile(r"^[A-Za-z]:[\\/]")

# ANSI X3.64 colour sequences, emitted with --colors
STRIP_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


class _Phase(Enum):
    MESSAGE = auto()
    DETAILS = auto()
    STACK_TRACE = auto()


def strip_ansi(text: str) -> str:
    """Remove terminal colour sequences."""
    return STRIP_ANSI_RE.sub("", text)


def is_absolute(path: str) -> bool:
    """Check for a POSIX or Windows absolute path."""
    return path.startswith("/") or bool(WINDOWS_ABSOLUTE_RE.match(path))


class PHPUnitParser:
    """Extracts failures and case counts from one result's combined output."""

    def __init__(
        self,
        anchor: AnchorStrategy | None = None,
        test_root_marker: str = "tests/",
    ) -> None:
        self.anchor = anchor or AnchorStrategy()
        self.test_root_marker = test_root_marker

    @classmethod
    def from_config(cls, config: PoolConfig) -> "PHPUnitParser":
        """Create a parser using the configured anchor convention."""
        return cls(
            anchor=AnchorStrategy(
                separator=config.anchor_separator,
                qualifier=config.anchor_qualifier,
            ),
            test_root_marker=config.test_root_marker,
        )

    def parse_failures(self, result: UnitResult) -> list[Failure]:
        """Extract one Failure per anchor line found in the output.

        Repeated runs of one method with different data sets are reported as
        separate anchors and stay separate failures.
        """
        lines = result.output.splitlines()
        match = self.anchor.pattern(result.unit.path)

        starts = [i for i, line in enumerate(lines) if match.search(line)]
        banner = next(
            (
                i
                for i, line in enumerate(lines)
                if strip_ansi(line).strip() in RESULT_BANNERS
            ),
            len(lines),
        )
        ends = [
            min(end, banner) if start < banner else end
            for start, end in zip(starts, [*starts[1:], len(lines)], strict=True)
        ]

        failures = [
            self._parse_block(lines[start], lines[start + 1 : end])
            for start, end in zip(starts, ends, strict=True)
        ]

        if not failures and not result.success:
            log.debug("No failure blocks found in output of %s", result.unit.path)
        return failures

    def _parse_block(self, anchor_line: str, body: Sequence[str]) -> Failure:
        file_path, test_name = self.anchor.split(anchor_line)

        phase = _Phase.MESSAGE
        message_lines: list[str] = []
        detail_lines: list[str] = []
        brace_depth = 0
        stack_trace: list[str] = []
        source_file = ""
        source_line = 0

        for line in body:
            if phase is _Phase.MESSAGE:
                if line.strip() == "{":
                    phase = _Phase.DETAILS
                    brace_depth = 1
                    detail_lines.append(line)
                elif message_lines or line.strip():
                    message_lines.append(line)
                continue

            if phase is _Phase.DETAILS:
                detail_lines.append(line)
                brace_depth += line.count("{") - line.count("}")
                if brace_depth <= 0:
                    phase = _Phase.STACK_TRACE
                continue

            frame = STACK_FRAME_RE.match(line)
            if frame is None:
                continue
            path = frame.group("path")
            in_tests = self.test_root_marker in path
            if not (in_tests or is_absolute(path)):
                continue
            stack_trace.append(line)
            if in_tests and not source_file:
                source_file = path
                source_line = int(frame.group("line"))

        while message_lines and not message_lines[-1].strip():
            message_lines.pop()

        return Failure(
            test_name=test_name,
            file_path=file_path,
            message="\n".join(message_lines),
            error_details="\n".join(detail_lines),
            stack_trace=stack_trace,
            file=source_file,
            line=source_line,
        )

    def parse_case_counts(self, result: UnitResult) -> CaseCounts:
        """Count passed and failed test cases from PHPUnit's summary line.

        Output without a recognisable summary, such as a fatal error before
        the run started, counts as a single passed or failed case so progress
        always advances.
        """
        output = strip_ansi(result.output)

        if passed := ALL_PASSED_RE.findall(output):
            return CaseCounts(passed=int(passed[-1]), failed=0)

        summaries = list(SUMMARY_RE.finditer(output))
        if summaries:
            summary = summaries[-1]
            total = int(summary.group(1))
            rest = summary.group("rest")
            failed = sum(
                int(m.group(1))
                for regex in (FAILURES_RE, ERRORS_RE)
                if (m := regex.search(rest))
            )
            return CaseCounts(passed=max(0, total - failed), failed=failed)

        if result.success:
            return CaseCounts(passed=1, failed=0)
        return CaseCounts(passed=0, failed=1)
