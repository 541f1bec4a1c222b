"""
Runtime configuration.

Values come from environment variables; a local .env file is loaded first
unless ENV=production (deployments use native env vars).
"""
import os
import sys
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from codeprobe.exceptions import ConfigurationError

ENV = os.getenv("ENV", "local")
if ENV != "production":
    # Check current directory first, then parent directory
    env_path = Path('.') / '.env'
    if not env_path.exists():
        env_path = Path('..') / '.env'
    load_dotenv(dotenv_path=env_path)

SUPPORTED_LLM_PROVIDERS = ('deepseek', 'google', 'ollama')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


class Settings(BaseModel):
    """Engine settings; see from_env for the variable names."""

    probe_timeout_ms: int = Field(5000, gt=0, le=60000)
    sandbox_enabled: bool = True
    python_executable: str = sys.executable
    node_binary: str = 'node'
    max_memory_mb: int = Field(256, ge=32)
    ai_quality_threshold: int = Field(7, ge=0, le=10)

    llm_provider: str = ''
    deepseek_api_key: str = ''
    deepseek_base_url: str = 'https://api.deepseek.com'
    deepseek_model: str = 'deepseek-chat'
    google_api_key: str = ''
    google_model: str = 'gemini-2.5-flash'
    ollama_model: str = 'llama3.1:8b'
    ollama_base_url: str = 'http://localhost:11434'
    llm_timeout_seconds: int = Field(60, gt=0)

    @field_validator('llm_provider')
    @classmethod
    def validate_provider(cls, v):
        v = (v or '').strip().lower()
        if v and v not in SUPPORTED_LLM_PROVIDERS:
            raise ValueError(
                f"LLM_PROVIDER must be one of {', '.join(SUPPORTED_LLM_PROVIDERS)} (got '{v}')"
            )
        return v

    @property
    def probe_timeout_seconds(self) -> float:
        return self.probe_timeout_ms / 1000.0

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ

        values = {
            'probe_timeout_ms': env.get('CODEPROBE_PROBE_TIMEOUT_MS'),
            'sandbox_enabled': _parse_bool(env.get('CODEPROBE_SANDBOX_ENABLED')),
            'python_executable': env.get('CODEPROBE_PYTHON_EXECUTABLE'),
            'node_binary': env.get('CODEPROBE_NODE_BINARY'),
            'max_memory_mb': env.get('CODEPROBE_MAX_MEMORY_MB'),
            'ai_quality_threshold': env.get('CODEPROBE_AI_QUALITY_THRESHOLD'),
            'llm_provider': env.get('LLM_PROVIDER'),
            'deepseek_api_key': env.get('DEEPSEEK_API_KEY'),
            'deepseek_base_url': env.get('DEEPSEEK_BASE_URL'),
            'deepseek_model': env.get('DEEPSEEK_MODEL'),
            'google_api_key': env.get('GOOGLE_API_KEY'),
            'google_model': env.get('GOOGLE_MODEL'),
            'ollama_model': env.get('OLLAMA_MODEL'),
            'ollama_base_url': env.get('OLLAMA_BASE_URL'),
            'llm_timeout_seconds': env.get('LLM_TIMEOUT_SECONDS'),
        }
        # Unset variables keep the field defaults
        values = {k: v for k, v in values.items() if v is not None}

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def _parse_bool(raw):
    if raw is None:
        return None
    return raw.strip().lower() in _TRUE_VALUES


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, built once from the environment."""
    return Settings.from_env()
