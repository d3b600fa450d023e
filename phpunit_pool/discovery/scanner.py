"""Discovery of PHPUnit test files on disk."""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from phpunit_pool.errors import DiscoveryError

log = logging.getLogger(__name__)

TEST_FILE_SUFFIX = "Test.php"


class Scanner:
    """Finds ``*Test.php`` files below a directory.

    Hidden directories and directories named in ``skip_dirs`` are not entered.
    """

    def __init__(self, skip_dirs: Iterable[str] = ()) -> None:
        self.skip_dirs = frozenset(skip_dirs)

    def scan(self, root: Path) -> list[str]:
        """Return the sorted paths of all test files below ``root``.

        Raises:
            DiscoveryError: If ``root`` does not exist or is not a directory

        """
        root = Path(os.path.normpath(root))
        if not root.exists():
            raise DiscoveryError(f"Test path does not exist: {root}")
        if not root.is_dir():
            raise DiscoveryError(f"Test path is not a directory: {root}")

        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=self._raise):
            dirnames[:] = [
                name
                for name in dirnames
                if not name.startswith(".") and name not in self.skip_dirs
            ]
            found.extend(
                str(Path(dirpath) / name)
                for name in filenames
                if name.endswith(TEST_FILE_SUFFIX)
            )

        log.debug("Found %d test file(s) in %s", len(found), root)
        return sorted(found)

    @staticmethod
    def _raise(error: OSError) -> None:
        raise DiscoveryError(f"Cannot scan {error.filename}: {error}") from error
