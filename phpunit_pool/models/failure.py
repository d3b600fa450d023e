"""Models for structured test failures parsed from runner output."""

from collections.abc import Sequence
from typing import NamedTuple

from pydantic import BaseModel, Field


class Failure(BaseModel):
    """A single failed test case extracted from one result's output.

    Only ``resolved`` is expected to change after parsing; it is toggled by
    tools browsing stored results.
    """

    test_name: str = Field(..., description="Test method name, with data set suffix")
    file_path: str = Field(..., description="Reported test file path")
    message: str = Field(default="", description="Free text failure message")
    error_details: str = Field(
        default="", description="Verbatim brace-delimited diagnostic block"
    )
    stack_trace: Sequence[str] = Field(
        default_factory=list, description="Stack frames as <path>:<line>"
    )
    file: str = Field(default="", description="First project test source frame")
    line: int = Field(default=0, description="Line of the first test source frame")
    resolved: bool = Field(default=False, description="Marked resolved by the user")


class CaseCounts(NamedTuple):
    """Passed and failed test case counts for one result."""

    passed: int
    failed: int
