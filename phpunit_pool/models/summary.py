"""Models for persisted run summaries."""

from collections.abc import Sequence

from pydantic import Field

from phpunit_pool.models.base import Model
from phpunit_pool.models.failure import Failure


class RunMeta(Model):
    """Aggregate counts for one complete dispatch."""

    total_test_files: int = Field(..., ge=0)
    failed_test_files: int = Field(..., ge=0)
    passed_test_files: int = Field(..., ge=0)
    failed_test_cases: int = Field(..., ge=0)
    duration: str = Field(..., description="Human readable wall clock duration")
    duration_seconds: float = Field(..., ge=0)
    workers: int = Field(..., ge=1)
    timestamp: str = Field(..., description="RFC 3339 time the run was stored")


class RunOutput(Model):
    """Stored shape of a run: summary plus failure details."""

    meta: RunMeta
    details: Sequence[Failure] = Field(default_factory=list)
