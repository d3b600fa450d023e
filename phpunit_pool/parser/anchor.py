"""Anchor lines marking the start of a failure block in PHPUnit output."""

import re
from dataclasses import dataclass

ORDINAL_RE = re.compile(r"^\s*\d+\)\s*")


@dataclass(frozen=True, kw_only=True)
class AnchorStrategy:
    """Maps a test file path to the qualified name PHPUnit reports it under.

    ``tests/Unit/UserTest.php`` becomes ``tests\\Unit\\UserTest::`` and matches
    lines such as ``1) Tests\\Unit\\UserTest::testCreate``.
    """

    separator: str = "\\"
    qualifier: str = "::"
    case_insensitive: bool = True
    extension: str = ".php"

    def qualified_name(self, path: str) -> str:
        """Return the class-qualified prefix expected for a test file."""
        name = path.removesuffix(self.extension)
        name = name.replace("\\", "/").replace("/", self.separator)
        return name + self.qualifier

    def pattern(self, path: str) -> re.Pattern[str]:
        """Compile the anchor pattern for a test file."""
        flags = re.IGNORECASE if self.case_insensitive else 0
        return re.compile(re.escape(self.qualified_name(path)), flags)

    def split(self, line: str) -> tuple[str, str]:
        """Split an anchor line into the reported file path and test name."""
        head, _, test_name = line.partition(self.qualifier)
        file_path = ORDINAL_RE.sub("", head).strip()
        file_path = file_path.replace(self.separator, "/")
        return file_path, test_name.strip()
