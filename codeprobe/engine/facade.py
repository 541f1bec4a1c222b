"""
Test Execution Facade.

TestExecutionService.execute_tests is the one entry point callers use: it
picks the strategy registered for the language, folds the outcomes into a
report, attaches a quality grade and never raises for normal input.
"""

import time
from typing import Dict, Optional

from codeprobe.ai_evaluation import AIEvaluator
from codeprobe.config import Settings, get_settings
from codeprobe.engine.aggregator import aggregate
from codeprobe.engine.quality import assess_quality
from codeprobe.engine.sandbox import NodeSandbox, PythonSandbox
from codeprobe.engine.strategies import (
    AdvisoryStrategy,
    ExecutableStrategy,
    GenericHeuristicStrategy,
    SimulatedStrategy,
    TestStrategy,
)
from codeprobe.exceptions import ConfigurationError
from codeprobe.schemas import Language, Role, TestOutcome, TestReport, TestStatus
from codeprobe.utils.logger import setup_logger
from codeprobe.utils.metrics import MetricsCollector, get_metrics_collector

logger = setup_logger(__name__)


def build_strategy_table(settings: Settings, evaluator=None) -> Dict[Language, TestStrategy]:
    """One strategy per Language member, chosen from what the host can run."""
    table: Dict[Language, TestStrategy] = {}

    python_sandbox = PythonSandbox(
        settings.python_executable,
        timeout_ms=settings.probe_timeout_ms,
        max_memory_mb=settings.max_memory_mb,
    )
    if not settings.sandbox_enabled:
        logger.info("Sandbox disabled by configuration, using simulated Python and JavaScript checks")

    if settings.sandbox_enabled and python_sandbox.is_available():
        table[Language.PYTHON] = ExecutableStrategy(Language.PYTHON, python_sandbox)
    else:
        if settings.sandbox_enabled:
            logger.warning(f"'{settings.python_executable}' not available, using simulated Python checks")
        table[Language.PYTHON] = SimulatedStrategy(Language.PYTHON)

    node_sandbox = NodeSandbox(
        settings.node_binary,
        timeout_ms=settings.probe_timeout_ms,
        max_memory_mb=settings.max_memory_mb,
    )
    if settings.sandbox_enabled and node_sandbox.is_available():
        table[Language.JAVASCRIPT] = ExecutableStrategy(Language.JAVASCRIPT, node_sandbox)
        table[Language.TYPESCRIPT] = ExecutableStrategy(Language.TYPESCRIPT, node_sandbox)
    else:
        if settings.sandbox_enabled:
            logger.info(f"'{settings.node_binary}' not available, using simulated JavaScript checks")
        simulated_js = SimulatedStrategy(Language.JAVASCRIPT)
        table[Language.JAVASCRIPT] = simulated_js
        table[Language.TYPESCRIPT] = simulated_js

    for language in (Language.JAVA, Language.CSHARP, Language.CPP):
        table[language] = SimulatedStrategy(language)

    table[Language.UNKNOWN] = AdvisoryStrategy(
        evaluator=evaluator,
        fallback=GenericHeuristicStrategy(),
        quality_threshold=settings.ai_quality_threshold,
    )
    return table


def check_strategy_table(table: Dict[Language, TestStrategy]):
    missing = [language.value for language in Language if language not in table]
    if missing:
        raise ConfigurationError(f"No test strategy registered for: {', '.join(missing)}")


class TestExecutionService:
    """Dispatches code to its language strategy and composes the report."""

    __test__ = False

    def __init__(
        self,
        settings: Optional[Settings] = None,
        evaluator=None,
        metrics: Optional[MetricsCollector] = None,
        strategies: Optional[Dict[Language, TestStrategy]] = None,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics_collector()
        self.strategies = strategies if strategies is not None else build_strategy_table(self.settings, evaluator)
        check_strategy_table(self.strategies)

    def strategy_for(self, language: Language) -> TestStrategy:
        return self.strategies[language]

    def execute_tests(self, code: str, language: str, role: str = 'developer') -> TestReport:
        """
        Run the language's test strategy over code and return the report.

        Strategy failures are logged and turned into a degraded report with
        a single "Test Execution" error outcome.
        """
        lang = Language.parse(language)
        requester = Role.parse(role)
        strategy = self.strategy_for(lang)
        label = (language or '').strip() or lang.value

        logger.info(f"Executing tests: language={lang.value} strategy={strategy.name} role={requester.value}")
        start = time.perf_counter()
        fields = {'language': lang.value, 'role': requester.value, 'strategy': strategy.name}

        try:
            outcomes = strategy.run(code, requester, label)
        except Exception as e:
            elapsed = time.perf_counter() - start
            logger.exception(f"Strategy {strategy.name} failed")
            self.metrics.record_run(f"strategy:{strategy.name}", elapsed, success=False)
            return self._degraded_report(code, e, int(elapsed * 1000), fields)

        elapsed = time.perf_counter() - start
        report = aggregate(outcomes, code, int(elapsed * 1000), **fields)
        report = report.model_copy(update={'quality': assess_quality(report, code)})

        self.metrics.record_run(f"strategy:{strategy.name}", elapsed, success=True)
        logger.info(
            f"Tests finished: {report.passed}/{report.total_tests} passed, "
            f"{report.failed} failed, {report.errors} errors in {report.execution_time_ms}ms"
        )
        return report

    @staticmethod
    def _degraded_report(code: str, error: Exception, execution_time_ms: int, fields: dict) -> TestReport:
        outcome = TestOutcome(
            name='Test Execution',
            type='execution',
            status=TestStatus.ERROR,
            message=str(error) or type(error).__name__,
            execution_time_ms=execution_time_ms,
            error=type(error).__name__,
        )
        report = aggregate([outcome], code, execution_time_ms, **fields)
        report = report.model_copy(update={
            'summary': f"Test execution failed: {outcome.message}",
            'quality': assess_quality(report, code),
        })
        return report


_default_service: Optional[TestExecutionService] = None


def get_service() -> TestExecutionService:
    """Lazily build the process-wide service from environment settings."""
    global _default_service
    if _default_service is None:
        _default_service = TestExecutionService(evaluator=AIEvaluator())
    return _default_service


def execute_tests(code: str, language: str, role: str = 'developer') -> TestReport:
    return get_service().execute_tests(code, language, role)
