"""codeprobe: multi-language test execution and heuristic bug detection."""

from codeprobe.engine.facade import TestExecutionService, execute_tests
from codeprobe.schemas import Language, Role, TestOutcome, TestReport, TestStatus

__version__ = "0.1.0"

__all__ = [
    'TestExecutionService',
    'execute_tests',
    'Language',
    'Role',
    'TestOutcome',
    'TestReport',
    'TestStatus',
]
