"""Code quality scorer: a letter grade from a TestReport plus the raw source."""

import re
from statistics import mean

from codeprobe.engine.aggregator import round_half_up
from codeprobe.schemas import Grade, QualityAssessment, QualityMetrics, TestReport

FUNCTION_RE = re.compile(
    r'\bdef\s+\w+|\bfunction\b|=>|'
    r'\b(?:public|private|protected|internal|static)\s[\w\s<>\[\],]*\w+\s*\([^)]*\)\s*\{'
)
CONDITIONAL_RE = re.compile(r'\b(?:if|elif|switch|case)\b|\?\s*[^:?\s]')
LOOP_RE = re.compile(r'\b(?:for|foreach|while)\b')

GRADE_THRESHOLDS = (
    (90, Grade.A),
    (80, Grade.B),
    (70, Grade.C),
    (60, Grade.D),
)

GRADE_DESCRIPTIONS = {
    Grade.A: 'Excellent code quality with comprehensive testing',
    Grade.B: 'Good code quality with minor improvements needed',
    Grade.C: 'Acceptable code quality but needs some improvements',
    Grade.D: 'Below average code quality, significant improvements needed',
    Grade.F: 'Poor code quality, major refactoring required',
}


def _clamp(value, low=0, high=100):
    return max(low, min(high, value))


def complexity_score(code: str) -> int:
    """Inverted scale: 100 is trivially simple code."""
    functions = len(FUNCTION_RE.findall(code))
    conditionals = len(CONDITIONAL_RE.findall(code))
    loops = len(LOOP_RE.findall(code))
    lines = len(code.split('\n'))
    raw = 100 - (functions * 5 + conditionals * 3 + loops * 3 + lines * 0.1)
    return round_half_up(_clamp(raw))


def grade_for(overall: int) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if overall >= threshold:
            return grade
    return Grade.F


def assess_quality(report: TestReport, code: str) -> QualityAssessment:
    complexity = complexity_score(code)
    maintainability = report.coverage
    if report.total_tests == 0:
        reliability = 50
    else:
        reliability = round_half_up(report.passed / report.total_tests * 100)
    testability = (
        (40 if report.total_tests > 0 else 0)
        + (40 if report.passed > 0 else 0)
        + (20 if report.errors < 2 else 0)
    )
    overall = round_half_up(mean([complexity, maintainability, reliability, testability]))
    grade = grade_for(overall)

    return QualityAssessment(
        metrics=QualityMetrics(
            complexity=complexity,
            maintainability=maintainability,
            reliability=reliability,
            testability=testability,
            overall=overall,
        ),
        grade=grade,
        description=GRADE_DESCRIPTIONS[grade],
    )
