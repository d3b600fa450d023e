"""Discovery of test files and test cases."""

from phpunit_pool.discovery.cases import count_test_cases, find_test_cases
from phpunit_pool.discovery.name_filter import filter_by_name
from phpunit_pool.discovery.scanner import Scanner

__all__ = ["Scanner", "count_test_cases", "filter_by_name", "find_test_cases"]
