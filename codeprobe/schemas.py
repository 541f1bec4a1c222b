"""
Data model for the test execution engine, using Pydantic.

Reports serialize with camelCase keys (totalTests, executionTimeMs,
testCases) so the JSON handed to the persistence layer and the UI keeps
the shape they already consume.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ========================================
# Enums for constrained values
# ========================================

class TestStatus(str, Enum):
    """Outcome status of a single test"""
    __test__ = False

    PASSED = 'passed'
    FAILED = 'failed'
    ERROR = 'error'
    WARNING = 'warning'
    INFO = 'info'


class Priority(str, Enum):
    """Emphasis given to an outcome for the requesting role"""
    HIGH = 'high'
    NORMAL = 'normal'


class Grade(str, Enum):
    """Quality grade"""
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'
    F = 'F'


class Language(str, Enum):
    """Languages the engine knows a strategy for"""
    PYTHON = 'python'
    JAVASCRIPT = 'javascript'
    TYPESCRIPT = 'typescript'
    JAVA = 'java'
    CSHARP = 'csharp'
    CPP = 'cpp'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Language":
        """Map a free-form language string onto a known member (or UNKNOWN)."""
        key = (raw or '').strip().lower()
        return _LANGUAGE_ALIASES.get(key, cls.UNKNOWN)


_LANGUAGE_ALIASES = {
    'python': Language.PYTHON,
    'python3': Language.PYTHON,
    'py': Language.PYTHON,
    'javascript': Language.JAVASCRIPT,
    'js': Language.JAVASCRIPT,
    'node': Language.JAVASCRIPT,
    'nodejs': Language.JAVASCRIPT,
    'typescript': Language.TYPESCRIPT,
    'ts': Language.TYPESCRIPT,
    'java': Language.JAVA,
    'csharp': Language.CSHARP,
    'c#': Language.CSHARP,
    'cs': Language.CSHARP,
    'cpp': Language.CPP,
    'c++': Language.CPP,
    'cxx': Language.CPP,
}


class Role(str, Enum):
    """Requester roles; only bias which outcomes are emphasized"""
    DEVELOPER = 'developer'
    TESTER = 'tester'
    PRODUCT_MANAGER = 'product_manager'
    DEFAULT = 'default'

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Role":
        key = (raw or '').strip().lower().replace(' ', '_').replace('-', '_')
        try:
            return cls(key)
        except ValueError:
            return cls.DEFAULT


# ========================================
# Engine models
# ========================================

class _EngineModel(BaseModel):
    """Immutable model serialized with camelCase aliases"""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=False,
    )


class TestCase(_EngineModel):
    """
    Candidate test produced by the static analyzer.

    body holds probe source for executable strategies; load_source tells the
    sandbox whether the submitted code is executed before the probe.
    """
    __test__ = False

    name: str
    type: str
    body: str = ''
    load_source: bool = True


class TestOutcome(_EngineModel):
    """Result of evaluating one TestCase"""
    __test__ = False

    name: str
    type: str
    status: TestStatus
    message: str = ''
    execution_time_ms: int = Field(0, ge=0)
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    priority: Priority = Priority.NORMAL


class ProbeResult(_EngineModel):
    """What the sandbox returns for one probe"""
    status: TestStatus
    message: str
    execution_time_ms: int = Field(0, ge=0)
    error: Optional[str] = None


class QualityMetrics(_EngineModel):
    """Composite quality metrics, each on a 0..100 scale"""
    complexity: int = Field(..., ge=0, le=100)
    maintainability: int = Field(..., ge=0, le=100)
    reliability: int = Field(..., ge=0, le=100)
    testability: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=0, le=100)


class QualityAssessment(_EngineModel):
    """Grade derived from a report plus the raw source"""
    metrics: QualityMetrics
    grade: Grade
    description: str


class TestReport(_EngineModel):
    """Aggregate root returned by execute_tests"""
    __test__ = False

    total_tests: int = Field(0, ge=0)
    passed: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    errors: int = Field(0, ge=0)
    coverage: int = Field(0, ge=0, le=100)
    execution_time_ms: int = Field(0, ge=0)
    test_cases: List[TestOutcome] = Field(default_factory=list)
    summary: str = ''
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    language: str = Language.UNKNOWN.value
    role: str = Role.DEFAULT.value
    strategy: str = ''
    quality: Optional[QualityAssessment] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys"""
        return self.model_dump(mode='json', by_alias=True)


# ========================================
# Advisory collaborator contract
# ========================================

class AdvisoryResult(_EngineModel):
    """AI assessment of code in a language without a native strategy"""
    bugs: List[str] = Field(default_factory=list)
    is_correct: bool = True
    quality_score: int = Field(8, ge=0, le=10)
    improvements: List[str] = Field(default_factory=list)
    test_case: Optional[Dict[str, Any]] = None


class AdvisoryResponse(_EngineModel):
    """Envelope returned by evaluate_code_with_ai"""
    status: Literal['success', 'error']
    ai_result: Optional[AdvisoryResult] = None
    message: Optional[str] = None


# ========================================
# Request models (HTTP adapter)
# ========================================

class ExecuteTestsRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=100000)
    language: str = Field(..., min_length=1, max_length=50)
    role: Optional[str] = Field('developer', max_length=50)

    @field_validator('code')
    @classmethod
    def validate_code_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Code must contain at least one non-whitespace character')
        return v
