"""Tests for the AI evaluator and the LLM service it wraps."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from codeprobe.ai_evaluation import AIEvaluator, parse_review, review_to_result
from codeprobe.config import Settings
from codeprobe.exceptions import LLMError, LLMUnavailableError
from codeprobe.utils.llm_service import LLMService


REVIEW = {
    'security': ['No issues found'],
    'performance': ['Loop is quadratic in the input size'],
    'optimization': ['Cache intermediate results'],
    'functionality': ['Add a test for empty input'],
}


def _llm(text=None, configured=True, side_effect=None):
    llm = MagicMock()
    llm.is_configured.return_value = configured
    llm.generate_with_retry = MagicMock(return_value={'text': text}, side_effect=side_effect)
    return llm


# ── Review reduction ──


class TestReviewToResult:
    def test_bugs_and_score(self):
        result = review_to_result(REVIEW)
        assert result.bugs == [
            'Loop is quadratic in the input size',
            'Cache intermediate results',
            'Add a test for empty input',
        ]
        assert result.is_correct is False
        assert result.quality_score == 5
        assert result.improvements == ['Cache intermediate results', 'Loop is quadratic in the input size']
        assert result.test_case == {'description': 'Add a test for empty input'}

    def test_clean_review(self):
        result = review_to_result({'security': ['None'], 'performance': [], 'functionality': ['No bugs']})
        assert result.bugs == []
        assert result.is_correct is True
        assert result.quality_score == 8
        assert result.test_case is None

    def test_one_or_two_bugs(self):
        result = review_to_result({'security': ['SQL built by string concatenation']})
        assert result.quality_score == 7

    def test_non_string_items_ignored(self):
        result = review_to_result({'security': [{'issue': 'x'}, 42], 'performance': 'slow'})
        assert result.bugs == []


class TestParseReview:
    def test_code_fence(self):
        assert parse_review('```json\n{"security": []}\n```') == {'security': []}

    def test_invalid_json(self):
        with pytest.raises(LLMError):
            parse_review('I think the code is fine.')

    def test_not_an_object(self):
        with pytest.raises(LLMError):
            parse_review('[1, 2]')


# ── Evaluator ──


class TestAIEvaluator:
    def test_success(self):
        evaluator = AIEvaluator(llm=_llm(json.dumps(REVIEW)))
        response = evaluator.evaluate_code_with_ai('PROGRAM-ID. HELLO.', 'test', 'cobol')
        assert response.status == 'success'
        assert response.ai_result.quality_score == 5

    def test_prompt_mentions_language_and_code(self):
        llm = _llm(json.dumps(REVIEW))
        AIEvaluator(llm=llm).evaluate_code_with_ai('PROGRAM-ID. HELLO.', 'test', 'cobol')
        prompt = llm.generate_with_retry.call_args[0][0]
        assert 'cobol' in prompt
        assert 'PROGRAM-ID. HELLO.' in prompt

    def test_unconfigured(self):
        llm = _llm(configured=False)
        response = AIEvaluator(llm=llm).evaluate_code_with_ai('x')
        assert response.status == 'error'
        llm.generate_with_retry.assert_not_called()

    def test_provider_failure_never_raises(self):
        evaluator = AIEvaluator(llm=_llm(side_effect=LLMError('quota exceeded')))
        response = evaluator.evaluate_code_with_ai('x')
        assert response.status == 'error'
        assert response.message == 'quota exceeded'

    def test_unparseable_response(self):
        response = AIEvaluator(llm=_llm('not json')).evaluate_code_with_ai('x')
        assert response.status == 'error'
        assert 'not valid JSON' in response.message


# ── LLM service ──


class TestLLMService:
    def test_is_configured(self):
        assert not LLMService(Settings(llm_provider='')).is_configured()
        assert not LLMService(Settings(llm_provider='deepseek', deepseek_api_key='')).is_configured()
        assert LLMService(Settings(llm_provider='deepseek', deepseek_api_key='k')).is_configured()
        assert LLMService(Settings(llm_provider='ollama')).is_configured()

    def test_unsupported_provider(self):
        with pytest.raises(LLMError):
            LLMService(Settings(llm_provider='')).generate_content('hi')

    @patch('codeprobe.utils.llm_service.requests.post')
    def test_deepseek_request(self, mock_post):
        mock_post.return_value.json.return_value = {'choices': [{'message': {'content': '{"security": []}'}}]}
        service = LLMService(Settings(llm_provider='deepseek', deepseek_api_key='secret'))

        result = service.generate_content('review this', response_format='json')

        assert result['text'] == '{"security": []}'
        url = mock_post.call_args[0][0]
        kwargs = mock_post.call_args[1]
        assert url == 'https://api.deepseek.com/chat/completions'
        assert kwargs['headers']['Authorization'] == 'Bearer secret'
        assert kwargs['json']['response_format'] == {'type': 'json_object'}

    @patch('codeprobe.utils.llm_service.requests.post')
    def test_deepseek_without_choices(self, mock_post):
        mock_post.return_value.json.return_value = {'choices': []}
        service = LLMService(Settings(llm_provider='deepseek', deepseek_api_key='secret'))
        with pytest.raises(LLMError):
            service.generate_content('review this')

    @patch('codeprobe.utils.retry.time.sleep')
    def test_generate_with_retry_recovers(self, mock_sleep):
        service = LLMService(Settings(llm_provider='deepseek', deepseek_api_key='secret'))
        with patch.object(service, 'generate_content',
                          side_effect=[requests.exceptions.ConnectionError('reset'), {'text': 'ok'}]) as gen:
            assert service.generate_with_retry('hi') == {'text': 'ok'}
        assert gen.call_count == 2
        mock_sleep.assert_called_once_with(2.0)

    @patch('codeprobe.utils.retry.time.sleep')
    def test_missing_sdk_is_not_retried(self, mock_sleep):
        service = LLMService(Settings(llm_provider='ollama'))
        with patch.dict('sys.modules', {'ollama': None}):
            with pytest.raises(LLMUnavailableError, match='ollama is not installed'):
                service.generate_with_retry('hi')
        mock_sleep.assert_not_called()

    @patch('codeprobe.utils.retry.time.sleep')
    def test_unsupported_provider_is_not_retried(self, mock_sleep):
        with pytest.raises(LLMUnavailableError):
            LLMService(Settings(llm_provider='')).generate_with_retry('hi')
        mock_sleep.assert_not_called()

    def test_provider_info(self):
        info = LLMService(Settings(llm_provider='ollama', ollama_model='llama3.1:8b')).get_provider_info()
        assert info['provider'] == 'Ollama'
        assert info['model'] == 'llama3.1:8b'
