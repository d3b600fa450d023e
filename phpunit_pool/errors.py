"""Exceptions raised by phpunit-pool collaborators.

Failing test processes are never reported through these; they are recorded
as data on ``UnitResult``.
"""


class PoolError(Exception):
    """Base class for all phpunit-pool errors."""


class ConfigError(PoolError):
    """Raised when the pool or its configuration is constructed incorrectly."""


class DiscoveryError(PoolError):
    """Raised when test files or test cases cannot be discovered."""


class StorageError(PoolError):
    """Raised when stored run results cannot be read or written."""
