"""
Result comparison.

The check is asymmetric: generated output must be contained in
the expected set, and must not be smaller than it. Size is checked first so
duplicate or extra generated records cannot mask a missing one.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from streamcheck.core.domain.types import ComparisonResult, Verdict
from streamcheck.harness.sanitizer import sanitize

LOGGER = logging.getLogger(__name__)

Sanitizer = Callable[[Iterable[str]], set[str]]


def compare(
    expected: Iterable[str],
    actual: Iterable[str],
    *,
    test_case: str = "",
    sanitizer: Sanitizer = sanitize,
) -> ComparisonResult:
    """Compare expected fixture records with generated records."""
    expected_set = frozenset(sanitizer(expected))
    actual_set = frozenset(sanitizer(actual))

    LOGGER.debug(
        "Comparing output",
        extra={
            "test_case": test_case,
            "expected_count": len(expected_set),
            "generated_count": len(actual_set),
        },
    )

    def fail(reason: str) -> ComparisonResult:
        return ComparisonResult(
            verdict=Verdict.FAIL,
            test_case=test_case,
            expected=expected_set,
            actual=actual_set,
            reason=reason,
        )

    if expected_set and len(expected_set) > len(actual_set):
        return fail(
            f"generated {len(actual_set)} records, expected at least {len(expected_set)}"
        )

    unexpected = sorted(actual_set - expected_set)
    if unexpected:
        return fail(f"generated record not in expected output: {unexpected[0]}")

    return ComparisonResult(
        verdict=Verdict.PASS,
        test_case=test_case,
        expected=expected_set,
        actual=actual_set,
    )
