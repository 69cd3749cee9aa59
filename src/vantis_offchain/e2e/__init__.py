"""
End-to-end verification suites run against a deployed contract set
"""

from vantis_offchain.e2e.context import SkipCheck, TestContext
from vantis_offchain.e2e.runner import RunCounts, SuiteRunner, TestOutcome
from vantis_offchain.e2e.suites import SUITE_ORDER, SUITES

__all__ = [
    "RunCounts",
    "SkipCheck",
    "SuiteRunner",
    "SUITE_ORDER",
    "SUITES",
    "TestContext",
    "TestOutcome",
]
