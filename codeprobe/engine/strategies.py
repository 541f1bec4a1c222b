"""
Per-language test strategies.

Every strategy turns (code, role) into an ordered list of TestOutcomes.
The role never adds or removes outcomes; it only raises the priority of
the test types that role cares about.
"""

import time
from typing import Dict, FrozenSet, List, Optional

from codeprobe.engine.analyzer import (
    STRUCTURAL_CHECKS,
    StructuralCheck,
    build_test_cases,
    check_delimiters,
    count_non_blank_lines,
    scan_bug_keywords,
)
from codeprobe.engine.sandbox import ProbeSandbox
from codeprobe.exceptions import SandboxError
from codeprobe.schemas import (
    AdvisoryResult,
    Language,
    Priority,
    Role,
    TestCase,
    TestOutcome,
    TestStatus,
)
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)

ROLE_FOCUS: Dict[Role, FrozenSet[str]] = {
    Role.DEVELOPER: frozenset({'functionality', 'bug_detection', 'error_handling', 'syntax'}),
    Role.TESTER: frozenset({'bug_detection', 'error_handling', 'existence', 'ai_bug_check'}),
    Role.PRODUCT_MANAGER: frozenset({'structure', 'imports', 'ai_quality', 'basic'}),
    Role.DEFAULT: frozenset(),
}


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class TestStrategy:
    """Base strategy: subclasses implement evaluate()."""

    __test__ = False
    name = 'base'

    def run(self, code: str, role: Role = Role.DEFAULT, language_label: str = '') -> List[TestOutcome]:
        outcomes = self.evaluate(code, language_label)
        focus = ROLE_FOCUS.get(role, frozenset())
        if not focus:
            return outcomes
        return [
            o.model_copy(update={'priority': Priority.HIGH}) if o.type in focus else o
            for o in outcomes
        ]

    def evaluate(self, code: str, language_label: str = '') -> List[TestOutcome]:
        raise NotImplementedError


class ExecutableStrategy(TestStrategy):
    """Runs synthesized probes against the real code in a sandbox."""

    name = 'executable'

    def __init__(self, language: Language, sandbox: ProbeSandbox):
        self.language = language
        self.sandbox = sandbox
        self.name = f'executable:{language.value}'

    def evaluate(self, code: str, language_label: str = '') -> List[TestOutcome]:
        cases = build_test_cases(code, self.language)
        logger.debug(f"Running {len(cases)} {self.language.value} probes")
        return [self._run_case(code, case) for case in cases]

    def _run_case(self, code: str, case: TestCase) -> TestOutcome:
        start = time.perf_counter()
        try:
            result = self.sandbox.run_probe(code, case.body, load_source=case.load_source)
        except SandboxError as e:
            logger.warning(f"Sandbox unavailable for '{case.name}': {e}")
            return TestOutcome(
                name=case.name,
                type=case.type,
                status=TestStatus.ERROR,
                message=str(e),
                execution_time_ms=_elapsed_ms(start),
                error=type(e).__name__,
            )

        logger.debug(f"{case.name}: {result.status.value} ({result.execution_time_ms}ms)")
        return TestOutcome(
            name=case.name,
            type=case.type,
            status=result.status,
            message=result.message,
            execution_time_ms=result.execution_time_ms,
            error=result.error,
        )


class SimulatedStrategy(TestStrategy):
    """Deterministic text checks for languages the host cannot run."""

    name = 'simulated'

    def __init__(self, language: Language, checks: Optional[List[StructuralCheck]] = None):
        self.language = language
        self.checks = tuple(checks) if checks is not None else STRUCTURAL_CHECKS[language]
        self.name = f'simulated:{language.value}'

    def evaluate(self, code: str, language_label: str = '') -> List[TestOutcome]:
        outcomes = []
        for check in self.checks:
            start = time.perf_counter()
            ok = check.predicate(code)
            outcomes.append(TestOutcome(
                name=check.name,
                type=check.type,
                status=TestStatus.PASSED if ok else check.fail_status,
                message=check.pass_message if ok else check.fail_message,
                execution_time_ms=_elapsed_ms(start),
            ))
        return outcomes


class GenericHeuristicStrategy(TestStrategy):
    """Final fallback for any language: presence, balance and keyword checks."""

    name = 'generic'

    def evaluate(self, code: str, language_label: str = '') -> List[TestOutcome]:
        return [
            self._presence(code),
            self._balance(code),
            self._bug_scan(code),
            TestOutcome(
                name='Unsupported Language',
                type='support',
                status=TestStatus.WARNING,
                message=(
                    f"No dedicated test strategy for '{language_label}'; "
                    if language_label else "No dedicated test strategy for this language; "
                ) + 'results are based on generic heuristics only',
            ),
        ]

    @staticmethod
    def _presence(code: str) -> TestOutcome:
        lines = count_non_blank_lines(code)
        return TestOutcome(
            name='Code Presence Check',
            type='basic',
            status=TestStatus.PASSED if lines else TestStatus.FAILED,
            message=f'Code provided ({lines} non-blank lines)' if lines else 'No code provided',
            details={'nonBlankLines': lines},
        )

    @staticmethod
    def _balance(code: str) -> TestOutcome:
        report = check_delimiters(code)
        if report.balanced:
            return TestOutcome(
                name='Syntax Balance Check',
                type='syntax',
                status=TestStatus.PASSED,
                message='Brackets and quotes are balanced',
            )
        return TestOutcome(
            name='Syntax Balance Check',
            type='syntax',
            status=TestStatus.FAILED,
            message='Unbalanced brackets or quotes: ' + '; '.join(report.problems),
            details={'problems': list(report.problems)},
        )

    @staticmethod
    def _bug_scan(code: str) -> TestOutcome:
        found = scan_bug_keywords(code)
        if not found:
            return TestOutcome(
                name='Bug Indicator Scan',
                type='bugginess',
                status=TestStatus.PASSED,
                message='No bug indicators found',
            )
        return TestOutcome(
            name='Bug Indicator Scan',
            type='bugginess',
            status=TestStatus.FAILED,
            message='Potential bug indicators found: ' + ', '.join(found),
            details={'keywords': found},
        )


class AdvisoryStrategy(TestStrategy):
    """
    Asks the AI evaluator about code in a language with no native strategy.

    Falls back to the generic strategy, prefixed with a warning, when the
    evaluator is missing, unconfigured or fails.
    """

    name = 'advisory'

    def __init__(self, evaluator=None, fallback: Optional[TestStrategy] = None, quality_threshold: int = 7):
        self.evaluator = evaluator
        self.fallback = fallback or GenericHeuristicStrategy()
        self.quality_threshold = quality_threshold

    def evaluate(self, code: str, language_label: str = '') -> List[TestOutcome]:
        if self.evaluator is None or not self.evaluator.is_configured():
            return self._degrade(
                code, language_label,
                'AI Evaluation Not Configured',
                'No AI evaluator is configured; using generic heuristics',
            )

        try:
            response = self.evaluator.evaluate_code_with_ai(code, 'test', language_label)
        except Exception as e:
            logger.warning(f"AI evaluator raised: {e}")
            return self._degrade(code, language_label, 'AI Evaluation Failed', f'AI evaluation failed: {e}')

        if response.status != 'success' or response.ai_result is None:
            reason = response.message or 'no result returned'
            logger.warning(f"AI evaluation unavailable: {reason}")
            return self._degrade(code, language_label, 'AI Evaluation Failed', f'AI evaluation failed: {reason}')

        return self._map_result(response.ai_result)

    def _degrade(self, code: str, language_label: str, name: str, message: str) -> List[TestOutcome]:
        warning = TestOutcome(name=name, type='ai_evaluation', status=TestStatus.WARNING, message=message)
        return [warning] + self.fallback.evaluate(code, language_label)

    def _map_result(self, result: AdvisoryResult) -> List[TestOutcome]:
        bug_count = len(result.bugs)
        outcomes = [
            TestOutcome(
                name='AI Bug Check',
                type='ai_bug_check',
                status=TestStatus.PASSED if result.is_correct else TestStatus.FAILED,
                message=(
                    'No bugs detected by AI analysis' if result.is_correct
                    else f'AI analysis found {bug_count} potential issue(s)'
                ),
                details={'bugs': list(result.bugs)} if result.bugs else None,
            ),
            TestOutcome(
                name='AI Quality Check',
                type='ai_quality',
                status=(
                    TestStatus.PASSED if result.quality_score >= self.quality_threshold
                    else TestStatus.FAILED
                ),
                message=f'Code quality score: {result.quality_score}/10',
                details={'qualityScore': result.quality_score, 'threshold': self.quality_threshold},
            ),
        ]
        if result.improvements:
            outcomes.append(TestOutcome(
                name='AI Suggestions',
                type='ai_suggestion',
                status=TestStatus.INFO,
                message='; '.join(result.improvements),
                details={'improvements': list(result.improvements)},
            ))
        if result.test_case:
            outcomes.append(TestOutcome(
                name='AI Suggested Test Case',
                type='ai_suggestion',
                status=TestStatus.INFO,
                message=str(result.test_case.get('description') or result.test_case.get('name') or 'Suggested test case'),
                details=dict(result.test_case),
            ))
        return outcomes
