"""Mapping of host framework test outcomes to canonical statuses."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from browser_test_harness.errors import UnknownOutcomeError
from browser_test_harness.models.result import TestResultStatus

PYTEST_OUTCOMES: Mapping[str, TestResultStatus] = {
    "passed": TestResultStatus.PASS,
    "failed": TestResultStatus.FAIL,
    "skipped": TestResultStatus.NOT_EXECUTED,
    "warning": TestResultStatus.BLOCKED,
    "inconclusive": TestResultStatus.BLOCKED,
}


@dataclass(frozen=True, kw_only=True)
class OutcomeMapper:
    """Total mapping over a host framework's outcome domain."""

    outcomes: Mapping[str, TestResultStatus] = field(
        default_factory=lambda: PYTEST_OUTCOMES
    )

    def map(self, native_status: str) -> TestResultStatus:
        """Return the canonical status for a native outcome.

        Raises:
            UnknownOutcomeError: If the outcome is outside the known domain

        """
        try:
            return self.outcomes[native_status]
        except (KeyError, TypeError):
            raise UnknownOutcomeError(native_status) from None


pytest_outcome_mapper = OutcomeMapper()
