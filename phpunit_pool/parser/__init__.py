"""Parsing of PHPUnit output."""

from phpunit_pool.parser.anchor import AnchorStrategy
from phpunit_pool.parser.phpunit import PHPUnitParser

__all__ = ["AnchorStrategy", "PHPUnitParser"]
