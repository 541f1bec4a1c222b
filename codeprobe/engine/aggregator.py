"""Report aggregation: a pure fold of outcomes into totals, coverage and summary."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import Iterable, Sequence

from codeprobe.engine.analyzer import count_non_blank_lines
from codeprobe.schemas import TestOutcome, TestReport, TestStatus


@dataclass(frozen=True)
class Tally:
    passed: int = 0
    failed: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.errors


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _step(tally: Tally, outcome: TestOutcome) -> Tally:
    if outcome.status == TestStatus.PASSED:
        return Tally(tally.passed + 1, tally.failed, tally.errors)
    if outcome.status in (TestStatus.FAILED, TestStatus.WARNING):
        return Tally(tally.passed, tally.failed + 1, tally.errors)
    if outcome.status == TestStatus.ERROR:
        return Tally(tally.passed, tally.failed, tally.errors + 1)
    # INFO outcomes are reported but not counted
    return tally


def tally_outcomes(outcomes: Iterable[TestOutcome]) -> Tally:
    return reduce(_step, outcomes, Tally())


def estimate_coverage(total: int, code: str) -> int:
    """Two covered lines per test, capped at the number of non-blank lines."""
    non_blank = count_non_blank_lines(code)
    if non_blank == 0:
        return 0
    return round_half_up(min(total * 2, non_blank) / non_blank * 100)


def pass_rate(tally: Tally) -> int:
    if tally.total == 0:
        return 0
    return round_half_up(tally.passed / tally.total * 100)


def build_summary(tally: Tally, coverage: int, execution_time_ms: int) -> str:
    return (
        f"Test execution completed: {tally.passed}/{tally.total} tests passed "
        f"({pass_rate(tally)}% pass rate). {tally.failed} failed, {tally.errors} errors. "
        f"Code coverage: {coverage}%. Execution time: {execution_time_ms}ms."
    )


def aggregate(
    outcomes: Sequence[TestOutcome],
    code: str,
    execution_time_ms: int,
    **report_fields,
) -> TestReport:
    """Fold outcomes into a TestReport; extra keyword fields pass through."""
    tally = tally_outcomes(outcomes)
    coverage = estimate_coverage(tally.total, code)
    return TestReport(
        total_tests=tally.total,
        passed=tally.passed,
        failed=tally.failed,
        errors=tally.errors,
        coverage=coverage,
        execution_time_ms=execution_time_ms,
        test_cases=list(outcomes),
        summary=build_summary(tally, coverage, execution_time_ms),
        **report_fields,
    )
