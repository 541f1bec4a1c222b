from typing import Dict, Any, Optional

import requests

from codeprobe.config import Settings, get_settings
from codeprobe.exceptions import LLMError, LLMUnavailableError
from codeprobe.utils.retry import retry_with_backoff
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)


class LLMService:
    """
    Unified LLM service that supports multiple providers.
    Currently supports: DeepSeek (OpenAI-compatible HTTP), Google Gemini and Ollama.
    The Google and Ollama SDKs are optional extras, imported on first use.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.provider = self.settings.llm_provider
        self._client = None

    def is_configured(self) -> bool:
        """True when a provider is selected and has what it needs to run."""
        if self.provider == 'deepseek':
            return bool(self.settings.deepseek_api_key)
        if self.provider == 'google':
            return bool(self.settings.google_api_key)
        return self.provider == 'ollama'

    def _google_model(self):
        if self._client is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise LLMUnavailableError("google-generativeai is not installed (pip install codeprobe[google])") from e
            genai.configure(api_key=self.settings.google_api_key)
            self._client = (genai, genai.GenerativeModel(self.settings.google_model))
        return self._client

    def _ollama_client(self):
        if self._client is None:
            try:
                import ollama
            except ImportError as e:
                raise LLMUnavailableError("ollama is not installed (pip install codeprobe[ollama])") from e
            self._client = ollama.Client(host=self.settings.ollama_base_url)
        return self._client

    def generate_content(
        self,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Generate content using the configured LLM provider.

        Args:
            prompt: The input prompt
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            response_format: Expected format (e.g., 'json')

        Returns:
            Dict with 'text' and 'raw_response' keys
        """
        if self.provider == 'deepseek':
            return self._generate_deepseek(prompt, max_tokens, temperature, response_format)
        elif self.provider == 'google':
            return self._generate_google(prompt, max_tokens, temperature, response_format)
        elif self.provider == 'ollama':
            return self._generate_ollama(prompt, max_tokens, temperature, response_format)
        else:
            raise LLMUnavailableError(f"Unsupported LLM provider: '{self.provider}'")

    def _generate_deepseek(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        response_format: Optional[str] = None
    ) -> Dict[str, Any]:
        """Generate using the DeepSeek chat completions endpoint"""
        body = {
            'model': self.settings.deepseek_model,
            'messages': [
                {'role': 'system', 'content': 'You are an expert code reviewer.'},
                {'role': 'user', 'content': prompt},
            ],
            'max_tokens': max_tokens,
            'temperature': temperature,
        }
        if response_format == 'json':
            body['response_format'] = {'type': 'json_object'}

        response = requests.post(
            f"{self.settings.deepseek_base_url.rstrip('/')}/chat/completions",
            json=body,
            headers={
                'Authorization': f"Bearer {self.settings.deepseek_api_key}",
                'Content-Type': 'application/json',
            },
            timeout=self.settings.llm_timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()

        try:
            text = data['choices'][0]['message']['content'] or ''
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("DeepSeek API returned no choices") from e

        return {
            'text': text,
            'raw_response': data
        }

    def _generate_google(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        response_format: Optional[str] = None
    ) -> Dict[str, Any]:
        """Generate using Google Gemini"""
        genai, model = self._google_model()
        config = genai.types.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature
        )

        if response_format == 'json':
            config.response_mime_type = "application/json"

        response = model.generate_content(
            contents=prompt,
            generation_config=config
        )

        if not response.candidates:
            raise LLMError("Google API returned no candidates")

        candidate = response.candidates[0]
        text = ""

        if hasattr(candidate, 'content') and hasattr(candidate.content, 'parts'):
            parts = candidate.content.parts
            if len(parts) > 0 and hasattr(parts[0], 'text'):
                text = parts[0].text

        return {
            'text': text,
            'raw_response': response
        }

    def _generate_ollama(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        response_format: Optional[str] = None
    ) -> Dict[str, Any]:
        """Generate using Ollama"""
        options = {
            'temperature': temperature,
            'num_predict': max_tokens,  # Ollama uses num_predict instead of max_tokens
            'num_ctx': 4096,
            'top_k': 40,
            'top_p': 0.9,
        }

        response = self._ollama_client().generate(
            model=self.settings.ollama_model,
            prompt=prompt,
            format='json' if response_format == 'json' else None,
            options=options,
            keep_alive='5m'
        )

        text = response.get('response', '')

        return {
            'text': text,
            'raw_response': response
        }

    def get_provider_info(self) -> Dict[str, str]:
        """Get information about current provider"""
        if self.provider == 'deepseek':
            return {
                'provider': 'DeepSeek',
                'model': self.settings.deepseek_model,
                'base_url': self.settings.deepseek_base_url
            }
        elif self.provider == 'google':
            return {
                'provider': 'Google Gemini',
                'model': self.settings.google_model
            }
        elif self.provider == 'ollama':
            return {
                'provider': 'Ollama',
                'model': self.settings.ollama_model,
                'base_url': self.settings.ollama_base_url
            }
        return {'provider': 'none'}

    @retry_with_backoff(
        max_attempts=3,
        initial_delay=2.0,
        exceptions=(requests.exceptions.RequestException, ConnectionError, TimeoutError, LLMError),
        giveup_on=(LLMUnavailableError,)
    )
    def generate_with_retry(
        self,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: Optional[str] = None
    ) -> Dict[str, Any]:
        """generate_content with exponential backoff on transient failures."""
        logger.info(f"Generating content with {self.provider} (max_tokens={max_tokens})")
        result = self.generate_content(prompt, max_tokens, temperature, response_format)
        logger.info(f"Content generated successfully ({len(result.get('text', ''))} chars)")
        return result
