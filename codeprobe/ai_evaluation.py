"""
AI evaluation of code in languages without a native test strategy.

The LLM is asked for a JSON review with security, performance,
optimization and functionality lists; the review is reduced to an
AdvisoryResult.  evaluate_code_with_ai never raises: every failure comes
back as an AdvisoryResponse with status "error".
"""

import json
import re
from typing import Any, Dict, List, Optional

from codeprobe.exceptions import LLMError
from codeprobe.schemas import AdvisoryResponse, AdvisoryResult
from codeprobe.utils.llm_service import LLMService
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)

REVIEW_CATEGORIES = ('security', 'performance', 'optimization', 'functionality')

# Review items that state an absence ("No issues found") are not bugs
_NEGATIVE_ITEM_RE = re.compile(r'\b(no|none)\b', re.IGNORECASE)
_CODE_FENCE_RE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)

ANALYSIS_PROMPT = """Analyze the following {language} code written for this purpose: {purpose}.

Return ONLY a JSON object with these keys, each a list of short strings:
- "security": security vulnerabilities
- "performance": performance problems
- "optimization": optimization suggestions
- "functionality": functional bugs and suggested test cases

Use an empty list (or a single "No issues found" entry) when a category has nothing to report.

Code:
```
{code}
```
"""


def _strings(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def parse_review(text: str) -> Dict[str, Any]:
    """Parse the model's JSON review, tolerating a surrounding code fence."""
    cleaned = _CODE_FENCE_RE.sub('', (text or '').strip())
    try:
        review = json.loads(cleaned)
    except ValueError as e:
        raise LLMError(f"AI response is not valid JSON: {e}") from e
    if not isinstance(review, dict):
        raise LLMError("AI response is not a JSON object")
    return review


def review_to_result(review: Dict[str, Any]) -> AdvisoryResult:
    """Reduce a categorized review to bugs, quality score and suggestions."""
    bugs = [
        item
        for category in REVIEW_CATEGORIES
        for item in _strings(review.get(category))
        if not _NEGATIVE_ITEM_RE.search(item)
    ]

    if len(bugs) >= 3:
        quality_score = 5
    elif bugs:
        quality_score = 7
    else:
        quality_score = 8

    improvements = _strings(review.get('optimization')) + _strings(review.get('performance'))

    test_case = None
    for item in _strings(review.get('functionality')):
        if 'test' in item.lower():
            test_case = {'description': item}
            break

    return AdvisoryResult(
        bugs=bugs,
        is_correct=not bugs,
        quality_score=quality_score,
        improvements=improvements,
        test_case=test_case,
    )


class AIEvaluator:
    """Advisory collaborator backed by LLMService."""

    def __init__(self, llm: Optional[LLMService] = None):
        self._llm = llm

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = LLMService()
        return self._llm

    def is_configured(self) -> bool:
        return self.llm.is_configured()

    def evaluate_code_with_ai(self, code: str, purpose: str = 'test', language: str = 'unknown') -> AdvisoryResponse:
        if not self.is_configured():
            return AdvisoryResponse(status='error', message='No LLM provider is configured')

        prompt = ANALYSIS_PROMPT.format(language=language, purpose=purpose, code=code)
        try:
            response = self.llm.generate_with_retry(prompt, max_tokens=2000, temperature=0.1, response_format='json')
            result = review_to_result(parse_review(response.get('text', '')))
        except Exception as e:
            logger.error(f"AI code evaluation failed: {e}")
            return AdvisoryResponse(status='error', message=str(e) or 'AI code evaluation failed')

        logger.info(f"AI evaluation finished: {len(result.bugs)} bug(s), quality {result.quality_score}/10")
        return AdvisoryResponse(status='success', ai_result=result)


def evaluate_code_with_ai(code: str, purpose: str = 'test', language: str = 'unknown') -> AdvisoryResponse:
    return AIEvaluator().evaluate_code_with_ai(code, purpose, language)
