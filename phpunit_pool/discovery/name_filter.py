"""Filtering of test files by name."""

import fnmatch
from collections.abc import Sequence
from pathlib import PurePath

WILDCARDS = ("*", "?")


def matches_name(name: str, pattern: str) -> bool:
    """Check a file name against a wildcard pattern or plain substring.

    ``*Payment*`` matches any name containing ``Payment``; a pattern without
    wildcards matches names that contain it.
    """
    if fnmatch.fnmatchcase(name, pattern):
        return True

    if "*" in pattern:
        parts = [part for part in pattern.split("*") if part]
        return bool(parts) and all(part in name for part in parts)

    if not any(wildcard in pattern for wildcard in WILDCARDS):
        return pattern in name

    return False


def filter_by_name(paths: Sequence[str], pattern: str) -> list[str]:
    """Keep the paths whose base name matches ``pattern``.

    An empty pattern keeps every path.
    """
    if not pattern:
        return list(paths)
    return [path for path in paths if matches_name(PurePath(path).name, pattern)]
