"""Exception hierarchy for the engine and its collaborators."""


class CodeProbeError(Exception):
    """Base class for every error raised by codeprobe."""


class ConfigurationError(CodeProbeError):
    """Invalid settings or an incomplete strategy table."""


class SandboxError(CodeProbeError):
    """The sandbox could not start a probe (missing interpreter, spawn failure)."""


class LLMError(CodeProbeError):
    """An LLM provider call failed or returned an unusable response."""


class LLMUnavailableError(LLMError):
    """The configured provider cannot be used at all (unknown provider, SDK not installed)."""
