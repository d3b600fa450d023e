"""Configuration for a phpunit-pool run."""

import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError

from phpunit_pool.errors import ConfigError
from phpunit_pool.models.base import Model

log = logging.getLogger(__name__)

DEFAULT_DATABASE_PREFIX = "testing"
DATABASE_PREFIX_ENV = "DB_DATABASE_PREFIX"

DEFAULT_PATHS_TO_IGNORE = (
    "vendor",
    "node_modules",
    "public",
    "storage",
    "bootstrap",
    "config",
    "database",
    "resources",
    "routes",
)


class PoolConfig(Model):
    """Configuration for discovering, running and storing PHPUnit test files.

    The object is immutable and passed explicitly to every component that
    needs it.
    """

    project_path: Path = Field(default=Path("."), description="Project root")
    test_path: Path = Field(
        default=Path("."), description="Directory scanned for test files"
    )
    processors: int = Field(
        default=4, description="Number of concurrent workers; values below 1 run one"
    )
    fail_fast: bool = Field(default=False, description="Stop after first failure")
    phpunit_binary: Path = Field(
        default=Path("vendor/bin/phpunit"), description="PHPUnit executable"
    )
    database_prefix: str | None = Field(
        default=None, description="Prefix of per-worker database names"
    )
    database_env_var: str = Field(
        default="DB_DATABASE", description="Variable receiving the database name"
    )
    output_json_dir: str = Field(default="storage")
    output_json_file: str = Field(default="test-results.json")
    paths_to_ignore: Sequence[str] = Field(default=DEFAULT_PATHS_TO_IGNORE)
    name_filter: str = Field(default="", description="Test file name filter")
    anchor_separator: str = Field(default="\\", min_length=1)
    anchor_qualifier: str = Field(default="::", min_length=1)
    test_root_marker: str = Field(default="tests/", min_length=1)

    def phpunit_path(self) -> Path:
        """Return the absolute PHPUnit binary, resolved against the project path.

        Processes run with the project as working directory, so the path
        must not depend on the caller's working directory.
        """
        if self.phpunit_binary.is_absolute():
            return self.phpunit_binary
        return self.project_path.absolute() / self.phpunit_binary

    def resolved_test_path(self) -> Path:
        """Return the directory to scan, resolved against the project path."""
        if self.test_path.is_absolute():
            return self.test_path
        return self.project_path / self.test_path

    def output_path(self) -> Path:
        """Return the absolute path of the results JSON file."""
        return (
            self.project_path / self.output_json_dir / self.output_json_file
        ).absolute()

    def database_name(self, worker_id: int) -> str:
        """Return the database name reserved for a worker.

        Each worker id maps to exactly one name, so two workers never share a
        database while running.
        """
        prefix = (
            self.database_prefix
            or os.environ.get(DATABASE_PREFIX_ENV)
            or DEFAULT_DATABASE_PREFIX
        )
        return f"{prefix}_{worker_id}"


def load_config(config_file: Path | None = None, **overrides: Any) -> PoolConfig:
    """Build a configuration from defaults, a YAML file and explicit overrides.

    Args:
        config_file: Optional YAML file holding ``PoolConfig`` fields
        **overrides: Field values taking precedence over the file; ``None``
            values are ignored so unset CLI options keep the file's value

    Returns:
        The validated configuration

    Raises:
        ConfigError: If the file cannot be read or any value is invalid

    """
    data: dict[str, Any] = {}

    if config_file is not None:
        log.debug("Loading configuration from %s", config_file)
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {config_file}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping")
        data.update(loaded)

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return PoolConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
